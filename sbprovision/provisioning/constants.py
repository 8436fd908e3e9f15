"""
Provisioning Constants

Centralized defaults, floors and limits applied when normalizing entity
descriptions, plus error message templates.

Author: sbprovision Contributors
Date: 2026-10-19
"""

# Error message templates
ERROR_CROSS_KIND_COLLISION = "Cannot create {kind} '{name}': path already exists as a {other_kind}"
ERROR_PARENT_TOPIC_NOT_FOUND = "Parent topic '{topic}' not found"
ERROR_NON_EMPTY_ENTITY = "{kind} '{name}' still holds {count} message(s); use force to delete anyway"

# Duration floors. Values below a floor are treated as unset.
MIN_AUTO_DELETE_ON_IDLE_MINUTES = 5
MIN_LOCK_DURATION_SECONDS = 5
MAX_LOCK_DURATION_SECONDS = 300

# Defaults
DEFAULT_QUEUE_LOCK_DURATION_SECONDS = 60
DEFAULT_SUBSCRIPTION_LOCK_DURATION_SECONDS = 30
DEFAULT_MAX_DELIVERY_COUNT = 10
DEFAULT_DUPLICATE_DETECTION_WINDOW_MINUTES = 10
DEFAULT_MAX_SIZE_IN_MEGABYTES = 1024

# Rules
DEFAULT_RULE_NAME = "$Default"
MATCH_ALL_FILTER = "1=1"

# Name limits
MAX_NAMESPACE_NAME_LENGTH = 50
MAX_QUEUE_NAME_LENGTH = 260
MAX_TOPIC_NAME_LENGTH = 260
MAX_SUBSCRIPTION_NAME_LENGTH = 50
MAX_RULE_NAME_LENGTH = 50
