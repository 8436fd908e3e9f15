"""
Description Normalizer

Turns raw, optional provisioning parameters into canonical entity
descriptions: unit conversion, broker defaults, duration floors and the
partitioning/ordering mutual exclusion. Pure functions, no I/O.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from datetime import timedelta
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from .constants import (
    DEFAULT_DUPLICATE_DETECTION_WINDOW_MINUTES,
    DEFAULT_MAX_DELIVERY_COUNT,
    DEFAULT_MAX_SIZE_IN_MEGABYTES,
    DEFAULT_QUEUE_LOCK_DURATION_SECONDS,
    DEFAULT_RULE_NAME,
    DEFAULT_SUBSCRIPTION_LOCK_DURATION_SECONDS,
    MATCH_ALL_FILTER,
    MAX_LOCK_DURATION_SECONDS,
    MIN_AUTO_DELETE_ON_IDLE_MINUTES,
    MIN_LOCK_DURATION_SECONDS,
)
from .exceptions import EntityValidationError
from .models import (
    PARAMETER_MODELS,
    EntityDescription,
    EntityKind,
    QueueDescription,
    QueueParameters,
    RuleDescription,
    SubscriptionDescription,
    SubscriptionParameters,
    TopicDescription,
    TopicParameters,
)
from .validation import EntityNameValidator


RawParameters = Union[Mapping[str, Any], BaseModel]


def parse_kind(kind: Union[EntityKind, str]) -> EntityKind:
    """Coerce ``kind`` to an EntityKind, rejecting unknown kinds as validation errors."""
    try:
        return EntityKind(kind)
    except ValueError as e:
        raise EntityValidationError(
            f"Unknown entity kind '{kind}'; expected one of: "
            + ", ".join(k.value for k in EntityKind),
            field="kind",
        ) from e


def normalize(kind: Union[EntityKind, str], raw_params: RawParameters) -> EntityDescription:
    """
    Build the canonical description of an entity from raw parameters.

    Args:
        kind: Entity kind (queue, topic or subscription)
        raw_params: Mapping of optional parameters, or a parameters model

    Returns:
        QueueDescription, TopicDescription or SubscriptionDescription

    Raises:
        EntityValidationError: A required field is empty, a value has the
            wrong type, or a value is outside the broker's limits
    """
    kind = parse_kind(kind)
    params = _parse_parameters(kind, raw_params)

    if kind is EntityKind.QUEUE:
        return _normalize_queue(params)
    if kind is EntityKind.TOPIC:
        return _normalize_topic(params)
    return _normalize_subscription(params)


def _parse_parameters(kind: EntityKind, raw_params: RawParameters):
    model = PARAMETER_MODELS[kind]
    if isinstance(raw_params, model):
        return raw_params
    if isinstance(raw_params, BaseModel):
        raw_params = raw_params.model_dump()

    try:
        return model.model_validate(dict(raw_params))
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "reason": err["msg"]}
            for err in e.errors()
        ]
        summary = "; ".join(f"{err['field']}: {err['reason']}" for err in errors)
        raise EntityValidationError(
            f"Invalid {kind.value} parameters: {summary}",
            details={"entity_type": kind.value, "errors": errors},
        ) from e


# ========== Field Rules ==========

def _required(value: Optional[str], field: str, entity_type: str) -> str:
    value = (value or "").strip()
    if not value:
        raise EntityValidationError(
            f"{field.replace('_', ' ').capitalize()} is required for a {entity_type}",
            field=field,
        )
    return value


def _minutes(value: Optional[int], floor: int) -> Optional[timedelta]:
    """Minutes as a timedelta, or None when unset or below ``floor``."""
    if value is None or value < floor:
        return None
    return timedelta(minutes=value)


def _lock_duration(value: Optional[int], default_seconds: int) -> timedelta:
    if value is None or value < MIN_LOCK_DURATION_SECONDS:
        return timedelta(seconds=default_seconds)
    if value > MAX_LOCK_DURATION_SECONDS:
        raise EntityValidationError(
            f"Lock duration cannot exceed {MAX_LOCK_DURATION_SECONDS} seconds, got {value}",
            field="lock_duration",
        )
    return timedelta(seconds=value)


def _positive_or_default(value: Optional[int], default: int) -> int:
    if value is None or value < 1:
        return default
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _common_fields(params) -> dict:
    """Fields shared by all kinds."""
    requires_duplicate_detection = bool(params.requires_duplicate_detection)

    # The history window only means something while detection is on
    window = None
    if requires_duplicate_detection:
        if params.duplicate_detection_history_time_window is None:
            window = timedelta(minutes=DEFAULT_DUPLICATE_DETECTION_WINDOW_MINUTES)
        else:
            window = _minutes(params.duplicate_detection_history_time_window, 1)

    return {
        "auto_delete_on_idle": _minutes(params.auto_delete_on_idle, MIN_AUTO_DELETE_ON_IDLE_MINUTES),
        "default_message_time_to_live": _minutes(params.default_message_time_to_live, 1),
        "enable_batched_operations": (
            True if params.enable_batched_operations is None else params.enable_batched_operations
        ),
        "requires_duplicate_detection": requires_duplicate_detection,
        "duplicate_detection_history_time_window": window,
        "support_ordering": bool(params.support_ordering),
        "user_metadata": _optional_text(params.user_metadata),
    }


def _partitioned_fields(params) -> dict:
    """Fields shared by queues and topics; partitioning wins over ordering."""
    enable_partitioning = bool(params.enable_partitioning)
    fields = {
        "enable_partitioning": enable_partitioning,
        "max_size_in_megabytes": _positive_or_default(
            params.max_size_in_megabytes, DEFAULT_MAX_SIZE_IN_MEGABYTES
        ),
        "is_anonymous_accessible": bool(params.is_anonymous_accessible),
        "forward_to": _optional_text(params.forward_to),
    }
    if enable_partitioning:
        fields["support_ordering"] = False
    return fields


# ========== Per-Kind Normalization ==========

def _normalize_queue(params: QueueParameters) -> QueueDescription:
    path = _required(params.path, "path", "queue")
    EntityNameValidator.validate_queue_name(path)

    fields = _common_fields(params)
    fields.update(_partitioned_fields(params))
    return QueueDescription(
        path=path,
        lock_duration=_lock_duration(params.lock_duration, DEFAULT_QUEUE_LOCK_DURATION_SECONDS),
        max_delivery_count=_positive_or_default(params.max_delivery_count, DEFAULT_MAX_DELIVERY_COUNT),
        **fields,
    )


def _normalize_topic(params: TopicParameters) -> TopicDescription:
    path = _required(params.path, "path", "topic")
    EntityNameValidator.validate_topic_name(path)

    fields = _common_fields(params)
    fields.update(_partitioned_fields(params))
    return TopicDescription(path=path, **fields)


def _normalize_subscription(params: SubscriptionParameters) -> SubscriptionDescription:
    topic_name = _required(params.topic_name, "topic_name", "subscription")
    subscription_name = _required(params.subscription_name, "subscription_name", "subscription")
    EntityNameValidator.validate_topic_name(topic_name)
    EntityNameValidator.validate_subscription_name(subscription_name)

    return SubscriptionDescription(
        topic_name=topic_name,
        subscription_name=subscription_name,
        lock_duration=_lock_duration(
            params.lock_duration, DEFAULT_SUBSCRIPTION_LOCK_DURATION_SECONDS
        ),
        max_delivery_count=_positive_or_default(params.max_delivery_count, DEFAULT_MAX_DELIVERY_COUNT),
        dead_lettering_on_message_expiration=bool(params.dead_lettering_on_message_expiration),
        dead_lettering_on_filter_evaluation_exceptions=bool(
            params.dead_lettering_on_filter_evaluation_exceptions
        ),
        requires_session=bool(params.requires_session),
        forward_to=_optional_text(params.forward_to),
        rule=_rule(params),
        **_common_fields(params),
    )


def _rule(params: SubscriptionParameters) -> Optional[RuleDescription]:
    """
    Bind filter and action into one named rule.

    Only an action triggers a custom rule; without one the broker's
    default match-all rule stays in place.
    """
    action = _optional_text(params.rule_action)
    if action is None:
        return None

    name = _optional_text(params.rule_name) or DEFAULT_RULE_NAME
    EntityNameValidator.validate_rule_name(name)
    return RuleDescription(
        name=name,
        filter_expression=_optional_text(params.rule_filter) or MATCH_ALL_FILTER,
        action_expression=action,
    )
