"""
Provisioning Exception Hierarchy

Typed failures surfaced by the namespace resolver, description normalizer,
collision guard and reconcilers. Every error carries a machine-readable code
and a details payload.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from typing import Optional, Dict, Any

from .constants import (
    ERROR_CROSS_KIND_COLLISION,
    ERROR_NON_EMPTY_ENTITY,
    ERROR_PARENT_TOPIC_NOT_FOUND,
)


class ProvisioningError(Exception):
    """
    Base exception for all provisioning errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., 'EntityNotFound')
        details: Additional context (entity_type, entity_name, etc.)
    """

    error_code: str = "ProvisioningError"
    is_transient: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for CLI/JSON output."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# ========== Validation Errors ==========

class EntityValidationError(ProvisioningError):
    """
    Raised when input is malformed.

    Local checks raise it before any broker call; the broker rejecting a
    malformed request (HTTP 400, e.g. a bad SQL rule filter) raises it too.
    """
    error_code = "ValidationError"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details=details)


class InvalidEntityNameError(EntityValidationError):
    """Raised when an entity name breaks the broker naming rules."""
    error_code = "InvalidEntityName"

    def __init__(
        self,
        entity_type: str,
        entity_name: str,
        reason: str,
        message: Optional[str] = None
    ):
        message = message or f"Invalid {entity_type} name '{entity_name}': {reason}"
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_name": entity_name,
                "reason": reason,
            },
        )


class InvalidNamespaceNameError(InvalidEntityNameError):
    """Raised when a namespace identifier is not lowercase alphanumeric."""
    error_code = "InvalidNamespaceName"

    def __init__(self, namespace: str, reason: str, message: Optional[str] = None):
        super().__init__("namespace", namespace, reason, message)


# ========== Transport Errors ==========

class TransportError(ProvisioningError):
    """
    Raised when the namespace directory or the broker cannot complete a call.

    Never retried inside the provisioning core; retry policy belongs to the caller.
    """
    error_code = "TransportError"
    is_transient = True

    def __init__(
        self,
        operation: str,
        reason: str,
        message: Optional[str] = None
    ):
        message = message or f"Transport failure during '{operation}': {reason}"
        super().__init__(message, details={"operation": operation, "reason": reason})


# ========== Entity Errors ==========

class EntityError(ProvisioningError):
    """Base class for entity-related errors."""
    error_code = "EntityError"


class EntityNotFoundError(EntityError):
    """Raised when a deletion target does not exist."""
    error_code = "EntityNotFound"

    def __init__(
        self,
        entity_type: str,
        entity_name: str,
        message: Optional[str] = None,
        topic_name: Optional[str] = None
    ):
        if message is None:
            if topic_name:
                message = f"{entity_type.capitalize()} '{entity_name}' not found on topic '{topic_name}'"
            else:
                message = f"{entity_type.capitalize()} '{entity_name}' not found"
        details = {"entity_type": entity_type, "entity_name": entity_name}
        if topic_name:
            details["topic_name"] = topic_name
        super().__init__(message, details=details)


class ParentTopicNotFoundError(EntityError):
    """Raised when a subscription operation names a topic that does not exist."""
    error_code = "ParentNotFound"

    def __init__(
        self,
        topic_name: str,
        subscription_name: Optional[str] = None,
        message: Optional[str] = None
    ):
        message = message or ERROR_PARENT_TOPIC_NOT_FOUND.format(topic=topic_name)
        details = {"entity_type": "topic", "entity_name": topic_name}
        if subscription_name:
            details["subscription_name"] = subscription_name
        super().__init__(message, details=details)


class EntityAlreadyExistsError(EntityError):
    """Raised when attempting to create an entity that already exists."""
    error_code = "EntityAlreadyExists"

    def __init__(
        self,
        entity_type: str,
        entity_name: str,
        message: Optional[str] = None,
        topic_name: Optional[str] = None
    ):
        if message is None:
            if topic_name:
                message = f"Subscription '{entity_name}' already exists on topic '{topic_name}'"
            else:
                message = f"{entity_type.capitalize()} '{entity_name}' already exists"
        details = {"entity_type": entity_type, "entity_name": entity_name}
        if topic_name:
            details["topic_name"] = topic_name
        super().__init__(message, details=details)


class CrossKindCollisionError(EntityAlreadyExistsError):
    """
    Raised when a queue/topic path is already taken by the other kind.

    Queues and topics share one namespace of uniqueness, so a queue cannot be
    created at a path that holds a topic and vice versa.
    """
    error_code = "CrossKindCollision"

    def __init__(
        self,
        entity_type: str,
        entity_name: str,
        existing_type: str,
        message: Optional[str] = None
    ):
        message = message or ERROR_CROSS_KIND_COLLISION.format(
            kind=entity_type, name=entity_name, other_kind=existing_type
        )
        super().__init__(entity_type, entity_name, message)
        self.details["existing_type"] = existing_type


class NonEmptyEntityError(EntityError):
    """Raised when a delete would discard messages that are still in flight."""
    error_code = "NonEmptyEntity"

    def __init__(
        self,
        entity_type: str,
        entity_name: str,
        message_count: int,
        topic_name: Optional[str] = None,
        message: Optional[str] = None
    ):
        message = message or ERROR_NON_EMPTY_ENTITY.format(
            kind=entity_type.capitalize(), name=entity_name, count=message_count
        )
        details = {
            "entity_type": entity_type,
            "entity_name": entity_name,
            "message_count": message_count,
        }
        if topic_name:
            details["topic_name"] = topic_name
        super().__init__(message, details=details)
        self.message_count = message_count


# ========== Utility Functions ==========

def is_transient_error(error: Exception) -> bool:
    """
    Determine if an error is transient and could be retried by the caller.

    Args:
        error: Exception to check

    Returns:
        True if error is transient
    """
    if isinstance(error, ProvisioningError):
        return error.is_transient

    return isinstance(error, (ConnectionError, TimeoutError))
