"""
Unit Tests for Provisioning Exceptions

Tests for the error hierarchy, codes and payloads.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import pytest

from sbprovision.provisioning.exceptions import (
    CrossKindCollisionError,
    EntityAlreadyExistsError,
    EntityError,
    EntityNotFoundError,
    EntityValidationError,
    InvalidEntityNameError,
    InvalidNamespaceNameError,
    NonEmptyEntityError,
    ParentTopicNotFoundError,
    ProvisioningError,
    TransportError,
    is_transient_error,
)


class TestProvisioningError:
    """Tests for base ProvisioningError class."""

    def test_basic_error(self):
        """Test basic error creation."""
        error = ProvisioningError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.error_code == "ProvisioningError"
        assert error.details == {}

    def test_error_with_custom_code(self):
        """Test error with custom code."""
        error = ProvisioningError("Custom error", error_code="CustomCode", details={"key": "value"})
        assert error.error_code == "CustomCode"
        assert error.details == {"key": "value"}

    def test_to_dict(self):
        """Test conversion to dictionary."""
        error = ProvisioningError("Test error", error_code="TestCode", details={"field": "value"})
        assert error.to_dict() == {
            "error": {
                "code": "TestCode",
                "message": "Test error",
                "details": {"field": "value"},
            }
        }


class TestValidationErrors:
    """Tests for input validation errors."""

    def test_validation_error_field(self):
        """Test the offending field is recorded."""
        error = EntityValidationError("Path is required", field="path")
        assert error.error_code == "ValidationError"
        assert error.details == {"field": "path"}

    def test_invalid_entity_name(self):
        """Test invalid entity name payload."""
        error = InvalidEntityNameError("queue", "-bad", "Name must start with a letter")
        assert isinstance(error, EntityValidationError)
        assert error.error_code == "InvalidEntityName"
        assert "Invalid queue name '-bad'" in error.message
        assert error.details["reason"] == "Name must start with a letter"

    def test_invalid_namespace_name(self):
        """Test namespace names report the namespace entity type."""
        error = InvalidNamespaceNameError("Orders", "Name must contain only lowercase letters and digits")
        assert isinstance(error, InvalidEntityNameError)
        assert error.error_code == "InvalidNamespaceName"
        assert error.details["entity_type"] == "namespace"


class TestEntityErrors:
    """Tests for entity lifecycle errors."""

    def test_not_found(self):
        """Test not-found message and payload."""
        error = EntityNotFoundError("queue", "orders")
        assert isinstance(error, EntityError)
        assert error.message == "Queue 'orders' not found"
        assert error.error_code == "EntityNotFound"

    def test_subscription_not_found_names_topic(self):
        """Test subscription not-found mentions its topic."""
        error = EntityNotFoundError("subscription", "audit", topic_name="events")
        assert error.message == "Subscription 'audit' not found on topic 'events'"
        assert error.details["topic_name"] == "events"

    def test_parent_not_found(self):
        """Test parent-topic errors."""
        error = ParentTopicNotFoundError("events", "audit")
        assert error.error_code == "ParentNotFound"
        assert error.message == "Parent topic 'events' not found"
        assert error.details == {
            "entity_type": "topic",
            "entity_name": "events",
            "subscription_name": "audit",
        }

    def test_parent_not_found_is_not_entity_not_found(self):
        """Test a missing parent is distinguishable from a missing target."""
        assert not isinstance(ParentTopicNotFoundError("events"), EntityNotFoundError)

    def test_already_exists(self):
        """Test already-exists message."""
        error = EntityAlreadyExistsError("topic", "events")
        assert error.message == "Topic 'events' already exists"
        assert error.error_code == "EntityAlreadyExists"

    def test_cross_kind_collision(self):
        """Test cross-kind collision is an already-exists variant."""
        error = CrossKindCollisionError("queue", "orders", "topic")
        assert isinstance(error, EntityAlreadyExistsError)
        assert error.error_code == "CrossKindCollision"
        assert error.message == "Cannot create queue 'orders': path already exists as a topic"
        assert error.details == {
            "entity_type": "queue",
            "entity_name": "orders",
            "existing_type": "topic",
        }

    def test_non_empty_entity(self):
        """Test the observed message count is carried."""
        error = NonEmptyEntityError("queue", "orders", 5)
        assert error.error_code == "NonEmptyEntity"
        assert error.message_count == 5
        assert error.details["message_count"] == 5
        assert "5 message(s)" in error.message
        assert error.message.startswith("Queue 'orders'")

    def test_non_empty_subscription_names_topic(self):
        """Test non-empty subscription payload includes the topic."""
        error = NonEmptyEntityError("subscription", "audit", 2, topic_name="events")
        assert error.details["topic_name"] == "events"


class TestTransientErrors:
    """Tests for transient error classification."""

    def test_transport_error(self):
        """Test transport errors are transient."""
        error = TransportError("create_queue", "connection reset")
        assert error.error_code == "TransportError"
        assert error.details == {"operation": "create_queue", "reason": "connection reset"}
        assert "create_queue" in error.message
        assert is_transient_error(error)

    @pytest.mark.parametrize("error", [
        EntityNotFoundError("queue", "orders"),
        EntityAlreadyExistsError("queue", "orders"),
        NonEmptyEntityError("queue", "orders", 1),
        EntityValidationError("bad"),
    ])
    def test_non_transient(self, error):
        """Test lifecycle errors are not transient."""
        assert not is_transient_error(error)

    def test_builtin_connectivity_errors(self):
        """Test builtin connection and timeout errors are transient."""
        assert is_transient_error(ConnectionError("refused"))
        assert is_transient_error(TimeoutError())
        assert not is_transient_error(ValueError("nope"))
