"""
Unit Tests for the In-Memory Broker Backend

Author: sbprovision Contributors
Date: 2026-10-19
"""

import pytest

from sbprovision.backends.memory import InMemoryBroker
from sbprovision.provisioning.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    TransportError,
)
from sbprovision.provisioning.models import (
    EntityKind,
    NamespaceHandle,
    QueueDescription,
    RuleDescription,
    SubscriptionDescription,
    TopicDescription,
)


@pytest.fixture
def client(broker):
    directory = broker.directory()
    directory.create("orders")
    handle = NamespaceHandle(name="orders", connection_string=directory.connection_string_for("orders"))
    return broker.client_for(handle)


class TestDirectory:
    """Namespace directory behavior."""

    def test_create_and_lookup(self, broker):
        """Test namespaces get a SAS connection string on creation."""
        directory = broker.directory()
        assert not directory.exists("orders")

        directory.create("orders")

        assert directory.exists("orders")
        connection_string = directory.connection_string_for("orders")
        assert connection_string.startswith("Endpoint=sb://orders.servicebus.localhost/;")
        assert "SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey=" in connection_string

    def test_keys_differ_per_namespace(self, broker):
        """Test each namespace gets its own key."""
        directory = broker.directory()
        directory.create("orders")
        directory.create("billing")

        orders_key = directory.connection_string_for("orders").split("SharedAccessKey=")[1]
        billing_key = directory.connection_string_for("billing").split("SharedAccessKey=")[1]
        assert orders_key != billing_key

    def test_custom_endpoint_suffix(self):
        """Test the endpoint suffix is configurable."""
        broker = InMemoryBroker(endpoint_suffix="servicebus.windows.net")
        directory = broker.directory()
        directory.create("orders")

        assert directory.connection_string_for("orders").startswith(
            "Endpoint=sb://orders.servicebus.windows.net/;"
        )

    def test_duplicate_namespace(self, broker):
        """Test a namespace cannot be created twice."""
        directory = broker.directory()
        directory.create("orders")

        with pytest.raises(EntityAlreadyExistsError):
            directory.create("orders")

    def test_unknown_namespace(self, broker):
        """Test looking up an unknown namespace fails."""
        with pytest.raises(EntityNotFoundError):
            broker.directory().connection_string_for("orders")

    def test_unavailable(self, broker):
        """Test an unavailable broker records then fails every call."""
        broker.available = False

        with pytest.raises(TransportError):
            broker.directory().exists("orders")

        assert broker.calls == ["namespace_exists:orders"]

    def test_reset(self, broker):
        """Test reset drops namespaces and calls."""
        broker.directory().create("orders")
        broker.reset()

        assert broker.calls == []
        assert not broker.directory().exists("orders")


class TestEntityClient:
    """Entity client behavior."""

    def test_queue_lifecycle(self, client):
        """Test create, exists and delete for a queue."""
        handle = client.create_queue(QueueDescription(path="incoming"))

        assert handle.namespace == "orders"
        assert handle.kind is EntityKind.QUEUE
        assert client.queue_exists("incoming")
        assert not client.topic_exists("incoming")

        client.delete_queue("incoming")
        assert not client.queue_exists("incoming")

    def test_duplicate_queue_rejected(self, client):
        """Test the broker rejects a duplicate create."""
        client.create_queue(QueueDescription(path="incoming"))

        with pytest.raises(EntityAlreadyExistsError):
            client.create_queue(QueueDescription(path="incoming"))

    def test_duplicate_topic_rejected(self, client):
        """Test the broker rejects a duplicate topic."""
        client.create_topic(TopicDescription(path="events"))

        with pytest.raises(EntityAlreadyExistsError):
            client.create_topic(TopicDescription(path="events"))

    def test_delete_missing(self, client):
        """Test deleting missing entities fails with NotFound."""
        with pytest.raises(EntityNotFoundError):
            client.delete_queue("incoming")
        with pytest.raises(EntityNotFoundError):
            client.delete_topic("events")
        with pytest.raises(EntityNotFoundError):
            client.delete_subscription("events", "audit")

    def test_subscription_needs_topic(self, client):
        """Test the broker refuses a subscription on a missing topic."""
        with pytest.raises(EntityNotFoundError):
            client.create_subscription(SubscriptionDescription(topic_name="events", subscription_name="audit"))

    def test_subscription_rules(self, broker, client):
        """Test the default rule applies unless a rule is given."""
        client.create_topic(TopicDescription(path="events"))
        client.create_subscription(SubscriptionDescription(topic_name="events", subscription_name="all"))
        rule = RuleDescription(name="eu", filter_expression="region = 'eu'", action_expression="SET a = 1")
        client.create_subscription(
            SubscriptionDescription(topic_name="events", subscription_name="eu"), rule
        )

        assert broker.rules_for("orders", "events", "all") == [RuleDescription()]
        assert broker.rules_for("orders", "events", "eu") == [rule]

    def test_delete_topic_cascades(self, broker, client):
        """Test subscriptions and their counts go with their topic."""
        client.create_topic(TopicDescription(path="events"))
        client.create_subscription(SubscriptionDescription(topic_name="events", subscription_name="audit"))
        broker.set_message_count("orders", EntityKind.SUBSCRIPTION, "events", 3, "audit")

        client.delete_topic("events")

        assert not client.subscription_exists("events", "audit")
        client.create_topic(TopicDescription(path="events"))
        assert client.message_count(EntityKind.TOPIC, "events") == 0

    def test_message_counts(self, broker, client):
        """Test seeded counts per kind; topics sum their subscriptions."""
        client.create_queue(QueueDescription(path="incoming"))
        client.create_topic(TopicDescription(path="events"))
        client.create_subscription(SubscriptionDescription(topic_name="events", subscription_name="a"))
        client.create_subscription(SubscriptionDescription(topic_name="events", subscription_name="b"))
        broker.set_message_count("orders", EntityKind.QUEUE, "incoming", 4)
        broker.set_message_count("orders", EntityKind.SUBSCRIPTION, "events", 2, "a")
        broker.set_message_count("orders", EntityKind.SUBSCRIPTION, "events", 5, "b")
        broker.set_message_count("orders", EntityKind.TOPIC, "events", 1)

        assert client.message_count(EntityKind.QUEUE, "incoming") == 4
        assert client.message_count(EntityKind.SUBSCRIPTION, "events", "a") == 2
        assert client.message_count(EntityKind.TOPIC, "events") == 8
        assert client.message_count(EntityKind.QUEUE, "other") == 0

    def test_namespaces_are_isolated(self, broker, client):
        """Test entities in one namespace are invisible in another."""
        client.create_queue(QueueDescription(path="incoming"))
        directory = broker.directory()
        directory.create("billing")
        other = broker.client_for(
            NamespaceHandle(name="billing", connection_string=directory.connection_string_for("billing"))
        )

        assert not other.queue_exists("incoming")

    def test_calls_recorded(self, broker, client):
        """Test client calls are recorded in order."""
        broker.calls.clear()
        client.queue_exists("incoming")
        client.create_queue(QueueDescription(path="incoming"))
        client.message_count(EntityKind.QUEUE, "incoming")

        assert broker.calls == [
            "queue_exists:incoming",
            "create_queue:incoming",
            "message_count_queue:incoming",
        ]
