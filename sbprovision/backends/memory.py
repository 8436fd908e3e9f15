"""
In-Memory Broker Backend

In-process namespace directory and entity client with Service Bus
semantics: queues and topics per namespace, subscriptions keyed by
(topic, name), runtime message counts, and duplicate/missing entity
rejection on create/delete. Used for dry runs and as the broker double in
tests.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import base64
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..provisioning.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    TransportError,
)
from ..provisioning.interfaces import EntityClient, NamespaceDirectory
from ..provisioning.logging_utils import StructuredLogger
from ..provisioning.models import (
    EntityHandle,
    EntityKind,
    NamespaceHandle,
    QueueDescription,
    RuleDescription,
    SubscriptionDescription,
    TopicDescription,
)

DEFAULT_ENDPOINT_SUFFIX = "servicebus.localhost"


@dataclass
class _StoredSubscription:
    description: SubscriptionDescription
    rules: List[RuleDescription]


@dataclass
class _NamespaceState:
    """Entities and runtime counts of one namespace."""
    connection_string: str
    queues: Dict[str, QueueDescription] = field(default_factory=dict)
    topics: Dict[str, TopicDescription] = field(default_factory=dict)
    subscriptions: Dict[Tuple[str, str], _StoredSubscription] = field(default_factory=dict)
    message_counts: Dict[Tuple[EntityKind, str, Optional[str]], int] = field(default_factory=dict)


class InMemoryBroker:
    """
    Shared state behind InMemoryNamespaceDirectory and InMemoryEntityClient.

    Attributes:
        calls: Every client/directory call, in order, as "operation:target"
        available: When False every call raises TransportError
    """

    def __init__(self, endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX):
        self._namespaces: Dict[str, _NamespaceState] = {}
        self._lock = threading.Lock()
        self._endpoint_suffix = endpoint_suffix
        self._logger = StructuredLogger('sbprovision.backends.memory')
        self.calls: List[str] = []
        self.available = True

    def directory(self) -> "InMemoryNamespaceDirectory":
        return InMemoryNamespaceDirectory(self)

    def client_for(self, namespace: NamespaceHandle) -> "InMemoryEntityClient":
        return InMemoryEntityClient(self, namespace)

    def reset(self) -> None:
        """Drop all namespaces, entities and recorded calls."""
        with self._lock:
            self._namespaces.clear()
            self.calls.clear()

    # ========== Namespace Operations ==========

    def namespace_exists(self, name: str) -> bool:
        self._record("namespace_exists", name)
        with self._lock:
            return name in self._namespaces

    def create_namespace(self, name: str) -> None:
        self._record("namespace_create", name)
        with self._lock:
            if name in self._namespaces:
                raise EntityAlreadyExistsError("namespace", name)
            key = base64.b64encode(uuid.uuid4().bytes).decode('ascii')
            self._namespaces[name] = _NamespaceState(
                connection_string=(
                    f"Endpoint=sb://{name}.{self._endpoint_suffix}/;"
                    f"SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey={key}"
                )
            )
        self._logger.debug(f"Namespace '{name}' created", operation="namespace_created", namespace=name)

    def namespace_connection_string(self, name: str) -> str:
        self._record("namespace_connection_string", name)
        return self._state(name).connection_string

    # ========== Runtime Seeding ==========

    def set_message_count(
        self,
        namespace: str,
        kind: EntityKind,
        path: str,
        count: int,
        subscription_name: Optional[str] = None
    ) -> None:
        """Record how many messages an entity currently holds."""
        with self._lock:
            self._state_unlocked(namespace).message_counts[(kind, path, subscription_name)] = count

    def rules_for(self, namespace: str, topic_name: str, subscription_name: str) -> List[RuleDescription]:
        """Rules attached to a subscription."""
        with self._lock:
            stored = self._state_unlocked(namespace).subscriptions.get((topic_name, subscription_name))
            if stored is None:
                raise EntityNotFoundError("subscription", subscription_name, topic_name=topic_name)
            return list(stored.rules)

    # ========== Internals ==========

    def _record(self, operation: str, target: str) -> None:
        self.calls.append(f"{operation}:{target}")
        if not self.available:
            raise TransportError(operation, "in-memory broker marked unavailable")

    def _state(self, name: str) -> _NamespaceState:
        with self._lock:
            return self._state_unlocked(name)

    def _state_unlocked(self, name: str) -> _NamespaceState:
        if name not in self._namespaces:
            raise EntityNotFoundError("namespace", name)
        return self._namespaces[name]

    @property
    def lock(self) -> threading.Lock:
        return self._lock


class InMemoryNamespaceDirectory(NamespaceDirectory):
    """Namespace directory over an InMemoryBroker."""

    def __init__(self, broker: InMemoryBroker):
        self._broker = broker

    def exists(self, name: str) -> bool:
        return self._broker.namespace_exists(name)

    def create(self, name: str) -> None:
        self._broker.create_namespace(name)

    def connection_string_for(self, name: str) -> str:
        return self._broker.namespace_connection_string(name)


class InMemoryEntityClient(EntityClient):
    """Entity client bound to one namespace of an InMemoryBroker."""

    def __init__(self, broker: InMemoryBroker, namespace: NamespaceHandle):
        super().__init__(namespace)
        self._broker = broker
        self.closed = False

    def close(self) -> None:
        self.closed = True

    @property
    def _ns(self) -> _NamespaceState:
        return self._broker._state_unlocked(self.namespace.name)

    # ========== Existence ==========

    def queue_exists(self, path: str) -> bool:
        self._broker._record("queue_exists", path)
        with self._broker.lock:
            return path in self._ns.queues

    def topic_exists(self, path: str) -> bool:
        self._broker._record("topic_exists", path)
        with self._broker.lock:
            return path in self._ns.topics

    def subscription_exists(self, topic_name: str, subscription_name: str) -> bool:
        self._broker._record("subscription_exists", f"{topic_name}/{subscription_name}")
        with self._broker.lock:
            return (topic_name, subscription_name) in self._ns.subscriptions

    # ========== Creation ==========

    def create_queue(self, description: QueueDescription) -> EntityHandle:
        self._broker._record("create_queue", description.path)
        with self._broker.lock:
            if description.path in self._ns.queues:
                raise EntityAlreadyExistsError("queue", description.path)
            self._ns.queues[description.path] = description
        return self._handle(EntityKind.QUEUE, description.path, description=description)

    def create_topic(self, description: TopicDescription) -> EntityHandle:
        self._broker._record("create_topic", description.path)
        with self._broker.lock:
            if description.path in self._ns.topics:
                raise EntityAlreadyExistsError("topic", description.path)
            self._ns.topics[description.path] = description
        return self._handle(EntityKind.TOPIC, description.path, description=description)

    def create_subscription(
        self,
        description: SubscriptionDescription,
        rule: Optional[RuleDescription] = None
    ) -> EntityHandle:
        topic_name = description.topic_name
        subscription_name = description.subscription_name
        self._broker._record("create_subscription", f"{topic_name}/{subscription_name}")
        with self._broker.lock:
            if topic_name not in self._ns.topics:
                raise EntityNotFoundError("topic", topic_name)
            key = (topic_name, subscription_name)
            if key in self._ns.subscriptions:
                raise EntityAlreadyExistsError("subscription", subscription_name, topic_name=topic_name)
            self._ns.subscriptions[key] = _StoredSubscription(
                description=description,
                rules=[rule or RuleDescription()],
            )
        return self._handle(
            EntityKind.SUBSCRIPTION, topic_name, subscription_name, description=description
        )

    # ========== Deletion ==========

    def delete_queue(self, path: str) -> None:
        self._broker._record("delete_queue", path)
        with self._broker.lock:
            if path not in self._ns.queues:
                raise EntityNotFoundError("queue", path)
            del self._ns.queues[path]
            self._ns.message_counts.pop((EntityKind.QUEUE, path, None), None)

    def delete_topic(self, path: str) -> None:
        """Delete a topic and all its subscriptions."""
        self._broker._record("delete_topic", path)
        with self._broker.lock:
            if path not in self._ns.topics:
                raise EntityNotFoundError("topic", path)
            del self._ns.topics[path]
            for key in [k for k in self._ns.subscriptions if k[0] == path]:
                del self._ns.subscriptions[key]
            for key in [k for k in self._ns.message_counts if k[1] == path and k[0] is not EntityKind.QUEUE]:
                del self._ns.message_counts[key]

    def delete_subscription(self, topic_name: str, subscription_name: str) -> None:
        self._broker._record("delete_subscription", f"{topic_name}/{subscription_name}")
        with self._broker.lock:
            key = (topic_name, subscription_name)
            if key not in self._ns.subscriptions:
                raise EntityNotFoundError("subscription", subscription_name, topic_name=topic_name)
            del self._ns.subscriptions[key]
            self._ns.message_counts.pop((EntityKind.SUBSCRIPTION, topic_name, subscription_name), None)

    # ========== Runtime ==========

    def message_count(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> int:
        target = f"{path}/{subscription_name}" if subscription_name else path
        self._broker._record(f"message_count_{kind.value}", target)
        with self._broker.lock:
            counts = self._ns.message_counts
            if kind is EntityKind.TOPIC:
                return counts.get((EntityKind.TOPIC, path, None), 0) + sum(
                    count for (k, topic, _), count in counts.items()
                    if k is EntityKind.SUBSCRIPTION and topic == path
                )
            return counts.get((kind, path, subscription_name), 0)

    def _handle(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None,
        description=None
    ) -> EntityHandle:
        return EntityHandle(
            namespace=self.namespace.name,
            kind=kind,
            path=path,
            subscription_name=subscription_name,
            description=description,
        )
