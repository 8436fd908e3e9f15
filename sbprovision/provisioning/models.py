"""
Provisioning Models

Pydantic models for namespaces, canonical entity descriptions, raw
provisioning parameters and operation results.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import ClassVar, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import (
    DEFAULT_MAX_DELIVERY_COUNT,
    DEFAULT_MAX_SIZE_IN_MEGABYTES,
    DEFAULT_QUEUE_LOCK_DURATION_SECONDS,
    DEFAULT_RULE_NAME,
    DEFAULT_SUBSCRIPTION_LOCK_DURATION_SECONDS,
    MATCH_ALL_FILTER,
)


class EntityKind(str, Enum):
    """Kinds of broker entities managed by the provisioner."""
    QUEUE = "queue"
    TOPIC = "topic"
    SUBSCRIPTION = "subscription"

    @property
    def sibling(self) -> Optional["EntityKind"]:
        """The kind sharing this kind's path namespace, if any."""
        if self is EntityKind.QUEUE:
            return EntityKind.TOPIC
        if self is EntityKind.TOPIC:
            return EntityKind.QUEUE
        return None

    @property
    def requires_parent(self) -> bool:
        return self is EntityKind.SUBSCRIPTION


class NamespaceHandle(BaseModel):
    """Resolved namespace: its name and the connection string used to reach it."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str
    connection_string: str = Field(repr=False)

    @property
    def endpoint(self) -> Optional[str]:
        """Endpoint segment of the connection string (e.g. sb://orders.servicebus.windows.net/)."""
        for part in self.connection_string.split(';'):
            key, sep, value = part.partition('=')
            if sep and key.strip().lower() == 'endpoint':
                return value.strip()
        return None


class RuleDescription(BaseModel):
    """A subscription rule: a SQL filter plus an optional SQL action."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str = DEFAULT_RULE_NAME
    filter_expression: str = MATCH_ALL_FILTER
    action_expression: Optional[str] = None


# ========== Canonical Entity Descriptions ==========

class _EntityDescriptionBase(BaseModel):
    """Fields shared by every entity kind."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    kind: ClassVar[EntityKind]

    auto_delete_on_idle: Optional[timedelta] = None
    default_message_time_to_live: Optional[timedelta] = None
    enable_batched_operations: bool = True
    requires_duplicate_detection: bool = False
    duplicate_detection_history_time_window: Optional[timedelta] = None
    support_ordering: bool = False
    user_metadata: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert description to a JSON-friendly dictionary."""
        data = self.model_dump(mode='json', exclude_none=True)
        data["kind"] = self.kind.value
        return data


class _PartitionedEntityDescription(_EntityDescriptionBase):
    """Queues and topics: partitionable entities."""

    enable_partitioning: bool = False

    @model_validator(mode='after')
    def _partitioning_excludes_ordering(self):
        if self.enable_partitioning and self.support_ordering:
            raise ValueError("Partitioned entities cannot support ordering")
        return self


class QueueDescription(_PartitionedEntityDescription):
    """Canonical configuration of a queue."""

    kind: ClassVar[EntityKind] = EntityKind.QUEUE

    path: str
    lock_duration: timedelta = timedelta(seconds=DEFAULT_QUEUE_LOCK_DURATION_SECONDS)
    max_delivery_count: int = Field(default=DEFAULT_MAX_DELIVERY_COUNT, ge=1)
    max_size_in_megabytes: int = Field(default=DEFAULT_MAX_SIZE_IN_MEGABYTES, ge=1)
    is_anonymous_accessible: bool = False
    forward_to: Optional[str] = None


class TopicDescription(_PartitionedEntityDescription):
    """Canonical configuration of a topic."""

    kind: ClassVar[EntityKind] = EntityKind.TOPIC

    path: str
    max_size_in_megabytes: int = Field(default=DEFAULT_MAX_SIZE_IN_MEGABYTES, ge=1)
    is_anonymous_accessible: bool = False
    forward_to: Optional[str] = None


class SubscriptionDescription(_EntityDescriptionBase):
    """Canonical configuration of a subscription under a topic."""

    kind: ClassVar[EntityKind] = EntityKind.SUBSCRIPTION

    topic_name: str
    subscription_name: str
    lock_duration: timedelta = timedelta(seconds=DEFAULT_SUBSCRIPTION_LOCK_DURATION_SECONDS)
    max_delivery_count: int = Field(default=DEFAULT_MAX_DELIVERY_COUNT, ge=1)
    dead_lettering_on_message_expiration: bool = False
    dead_lettering_on_filter_evaluation_exceptions: bool = False
    requires_session: bool = False
    forward_to: Optional[str] = None
    rule: Optional[RuleDescription] = None

    @property
    def path(self) -> str:
        return self.topic_name


EntityDescription = Union[QueueDescription, TopicDescription, SubscriptionDescription]


# ========== Raw Parameters ==========

class _EntityParametersBase(BaseModel):
    """
    Optional, caller-facing parameters for any entity kind.

    Durations are plain integers in the units the command surface uses:
    minutes for idle/TTL/duplicate window, seconds for lock duration.
    """
    model_config = ConfigDict(extra='forbid')

    auto_delete_on_idle: Optional[int] = None
    default_message_time_to_live: Optional[int] = None
    enable_batched_operations: Optional[bool] = None
    requires_duplicate_detection: Optional[bool] = None
    duplicate_detection_history_time_window: Optional[int] = None
    support_ordering: Optional[bool] = None
    user_metadata: Optional[str] = None


class QueueParameters(_EntityParametersBase):
    """Raw queue parameters."""
    path: Optional[str] = None
    lock_duration: Optional[int] = None
    max_delivery_count: Optional[int] = None
    max_size_in_megabytes: Optional[int] = None
    enable_partitioning: Optional[bool] = None
    is_anonymous_accessible: Optional[bool] = None
    forward_to: Optional[str] = None


class TopicParameters(_EntityParametersBase):
    """Raw topic parameters."""
    path: Optional[str] = None
    max_size_in_megabytes: Optional[int] = None
    enable_partitioning: Optional[bool] = None
    is_anonymous_accessible: Optional[bool] = None
    forward_to: Optional[str] = None


class SubscriptionParameters(_EntityParametersBase):
    """Raw subscription parameters."""
    topic_name: Optional[str] = None
    subscription_name: Optional[str] = None
    lock_duration: Optional[int] = None
    max_delivery_count: Optional[int] = None
    dead_lettering_on_message_expiration: Optional[bool] = None
    dead_lettering_on_filter_evaluation_exceptions: Optional[bool] = None
    requires_session: Optional[bool] = None
    forward_to: Optional[str] = None
    rule_name: Optional[str] = None
    rule_filter: Optional[str] = None
    rule_action: Optional[str] = None


PARAMETER_MODELS = {
    EntityKind.QUEUE: QueueParameters,
    EntityKind.TOPIC: TopicParameters,
    EntityKind.SUBSCRIPTION: SubscriptionParameters,
}


# ========== Results ==========

class EntityHandle(BaseModel):
    """Handle to an entity created on the broker."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    namespace: str
    kind: EntityKind
    path: str
    subscription_name: Optional[str] = None
    description: Optional[EntityDescription] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def entity_name(self) -> str:
        """Broker-side entity name (topic/Subscriptions/name for subscriptions)."""
        if self.subscription_name:
            return f"{self.path}/Subscriptions/{self.subscription_name}"
        return self.path


class DeletionState(str, Enum):
    """Steps of a guarded delete."""
    NOT_CHECKED = "NotChecked"
    VERIFIED = "Verified"
    BLOCKED = "Blocked"
    PROCEEDING = "Proceeding"
    DELETED = "Deleted"
    FAILED = "Failed"


class DeletionResult(BaseModel):
    """Outcome of a delete operation."""
    model_config = ConfigDict(extra='forbid')

    namespace: str
    kind: EntityKind
    path: str
    subscription_name: Optional[str] = None
    state: DeletionState = DeletionState.NOT_CHECKED
    message_count: int = Field(default=0, ge=0)
    forced: bool = False
