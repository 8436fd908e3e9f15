"""
Name Validation

Namespace and entity name checks applied before any broker call.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import re

from .constants import (
    MAX_NAMESPACE_NAME_LENGTH,
    MAX_QUEUE_NAME_LENGTH,
    MAX_RULE_NAME_LENGTH,
    MAX_SUBSCRIPTION_NAME_LENGTH,
    MAX_TOPIC_NAME_LENGTH,
)
from .exceptions import InvalidEntityNameError, InvalidNamespaceNameError


class EntityNameValidator:
    """
    Validates entity names against Service Bus naming rules.

    Queue and topic paths may be hierarchical (``orders/eu``); subscription
    and rule names may not.
    """

    NAMESPACE_PATTERN = re.compile(r'^[a-z0-9]+$')

    # Queue/topic paths: alphanumerics, periods, hyphens, underscores, slashes
    QUEUE_TOPIC_PATTERN = re.compile(r'^[a-zA-Z0-9](?:[\w\-./]*[a-zA-Z0-9])?$')

    SUBSCRIPTION_PATTERN = re.compile(r'^[a-zA-Z0-9](?:[\w\-.]*[a-zA-Z0-9])?$')

    # Rule names: the broker's own "$Default" is allowed
    RULE_PATTERN = re.compile(r'^\$?[a-zA-Z0-9](?:[\w\-.]*[a-zA-Z0-9])?$')

    @classmethod
    def validate_namespace_name(cls, name: str) -> None:
        """
        Validate a namespace identifier (lowercase alphanumerics only).

        Raises:
            InvalidNamespaceNameError: If validation fails
        """
        if not name:
            raise InvalidNamespaceNameError(name, "Name cannot be empty")

        if len(name) > MAX_NAMESPACE_NAME_LENGTH:
            raise InvalidNamespaceNameError(
                name,
                f"Name exceeds maximum length of {MAX_NAMESPACE_NAME_LENGTH} characters"
            )

        if not cls.NAMESPACE_PATTERN.match(name):
            raise InvalidNamespaceNameError(
                name,
                "Name must contain only lowercase letters and digits"
            )

    @classmethod
    def validate_queue_name(cls, name: str) -> None:
        cls._validate_entity_name(name, "queue", MAX_QUEUE_NAME_LENGTH, cls.QUEUE_TOPIC_PATTERN)

    @classmethod
    def validate_topic_name(cls, name: str) -> None:
        cls._validate_entity_name(name, "topic", MAX_TOPIC_NAME_LENGTH, cls.QUEUE_TOPIC_PATTERN)

    @classmethod
    def validate_subscription_name(cls, name: str) -> None:
        cls._validate_entity_name(
            name, "subscription", MAX_SUBSCRIPTION_NAME_LENGTH, cls.SUBSCRIPTION_PATTERN
        )

    @classmethod
    def validate_rule_name(cls, name: str) -> None:
        cls._validate_entity_name(name, "rule", MAX_RULE_NAME_LENGTH, cls.RULE_PATTERN)

    @classmethod
    def _validate_entity_name(
        cls,
        name: str,
        entity_type: str,
        max_length: int,
        pattern: re.Pattern
    ) -> None:
        """Internal validation logic."""
        if not name:
            raise InvalidEntityNameError(entity_type, name, "Name cannot be empty")

        if len(name) > max_length:
            raise InvalidEntityNameError(
                entity_type,
                name,
                f"Name exceeds maximum length of {max_length} characters"
            )

        if '//' in name:
            raise InvalidEntityNameError(
                entity_type,
                name,
                "Name cannot contain empty path segments"
            )

        if not pattern.match(name):
            raise InvalidEntityNameError(
                entity_type,
                name,
                "Name must start and end with an alphanumeric character and contain only "
                "letters, digits, periods, hyphens and underscores"
            )
