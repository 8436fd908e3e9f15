"""
Collaborator Interfaces

Abstract contracts for the namespace directory and the per-namespace
entity client. The provisioning core only talks to the broker through
these; backends in ``sbprovision.backends`` implement them.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from abc import ABC, abstractmethod
from typing import Optional

from .models import (
    EntityHandle,
    EntityKind,
    NamespaceHandle,
    QueueDescription,
    RuleDescription,
    SubscriptionDescription,
    TopicDescription,
)


class NamespaceDirectory(ABC):
    """
    Directory of broker namespaces.

    **Error Handling**:
    Implementations raise TransportError when the directory cannot be reached.
    """

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Return True if the namespace exists."""

    @abstractmethod
    def create(self, name: str) -> None:
        """Create the namespace."""

    @abstractmethod
    def connection_string_for(self, name: str) -> str:
        """Return the connection string of an existing namespace."""


class EntityClient(ABC):
    """
    Entity CRUD and existence queries against a single namespace.

    **Error Handling**:
    - TransportError for connectivity or protocol failures
    - EntityAlreadyExistsError when the broker rejects a duplicate create
    - EntityNotFoundError when the broker rejects a delete of a missing entity
    """

    def __init__(self, namespace: NamespaceHandle):
        self.namespace = namespace

    def close(self) -> None:
        """Release broker connections held by the client."""

    def __enter__(self) -> "EntityClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ========== Existence ==========

    @abstractmethod
    def queue_exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def topic_exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def subscription_exists(self, topic_name: str, subscription_name: str) -> bool:
        ...

    def exists(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> bool:
        """Dispatch an existence query by entity kind."""
        if kind is EntityKind.QUEUE:
            return self.queue_exists(path)
        if kind is EntityKind.TOPIC:
            return self.topic_exists(path)
        return self.subscription_exists(path, subscription_name)

    # ========== Creation ==========

    @abstractmethod
    def create_queue(self, description: QueueDescription) -> EntityHandle:
        ...

    @abstractmethod
    def create_topic(self, description: TopicDescription) -> EntityHandle:
        ...

    @abstractmethod
    def create_subscription(
        self,
        description: SubscriptionDescription,
        rule: Optional[RuleDescription] = None
    ) -> EntityHandle:
        """Create a subscription, attaching ``rule`` in place of the broker default rule."""

    # ========== Deletion ==========

    @abstractmethod
    def delete_queue(self, path: str) -> None:
        ...

    @abstractmethod
    def delete_topic(self, path: str) -> None:
        ...

    @abstractmethod
    def delete_subscription(self, topic_name: str, subscription_name: str) -> None:
        ...

    # ========== Runtime ==========

    @abstractmethod
    def message_count(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> int:
        """
        Return the number of messages still held by an entity.

        For topics this is the total across all of the topic's subscriptions.
        """
