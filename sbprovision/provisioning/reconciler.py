"""
Entity Reconcilers

Create and delete reconcilers for queues, topics and subscriptions, and the
EntityProvisioner facade the command surface calls.

Every operation is a check-then-act sequence against the broker: existence
checks and the create/delete call are separate requests, so a concurrent
actor can change the entity in between. The broker's own rejection then
surfaces as EntityAlreadyExistsError / EntityNotFoundError.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from contextlib import contextmanager
from typing import Any, Callable, Mapping, Optional, Union

from .audit_logger import AuditLogger
from .collision import CollisionGuard
from .exceptions import (
    EntityNotFoundError,
    EntityValidationError,
    NonEmptyEntityError,
    ParentTopicNotFoundError,
    ProvisioningError,
    TransportError,
)
from .interfaces import EntityClient, NamespaceDirectory
from .logging_utils import StructuredLogger, track_operation_time
from .models import (
    DeletionResult,
    DeletionState,
    EntityDescription,
    EntityHandle,
    EntityKind,
    NamespaceHandle,
    SubscriptionDescription,
)
from .namespace import NamespaceResolver
from .normalizer import RawParameters, normalize, parse_kind


ClientFactory = Callable[[NamespaceHandle], EntityClient]

logger = StructuredLogger('sbprovision.provisioning.reconciler')


@contextmanager
def _transport_errors(operation: str):
    """Report low-level connectivity failures as TransportError."""
    try:
        yield
    except (ConnectionError, TimeoutError) as e:
        raise TransportError(operation, str(e)) from e


def _require_parent_topic(
    client: EntityClient,
    topic_name: str,
    subscription_name: Optional[str] = None
) -> None:
    if not client.topic_exists(topic_name):
        raise ParentTopicNotFoundError(topic_name, subscription_name)


class CreateReconciler:
    """Creates an entity after namespace, parent and collision checks."""

    def __init__(
        self,
        resolver: NamespaceResolver,
        client_factory: ClientFactory,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = resolver
        self._client_factory = client_factory
        self._audit_logger = audit_logger

    @track_operation_time(logger, "create_entity")
    def create(
        self,
        namespace: Optional[str],
        description: EntityDescription
    ) -> EntityHandle:
        """
        Create the entity described by ``description``.

        Args:
            namespace: Namespace identifier (None for the configured default)
            description: Normalized entity description

        Returns:
            EntityHandle of the created entity

        Raises:
            ParentTopicNotFoundError: Subscription's topic does not exist
            CrossKindCollisionError: Queue/topic path is held by the other kind
            EntityAlreadyExistsError: Entity already exists
            TransportError: Broker or directory unreachable
        """
        handle = self._resolver.resolve(namespace)
        kind = description.kind

        with _transport_errors(f"create_{kind.value}"):
            with self._client_factory(handle) as client:
                guard = CollisionGuard(client)

                if isinstance(description, SubscriptionDescription):
                    _require_parent_topic(
                        client, description.topic_name, description.subscription_name
                    )
                    guard.check(kind, description.topic_name, description.subscription_name)
                    entity = client.create_subscription(description, description.rule)
                elif kind is EntityKind.QUEUE:
                    guard.check(kind, description.path)
                    entity = client.create_queue(description)
                else:
                    guard.check(kind, description.path)
                    entity = client.create_topic(description)

        logger.log_operation(
            operation=f"{kind.value}_created",
            entity_type=kind.value,
            entity_name=entity.entity_name,
            namespace=handle.name,
        )
        if self._audit_logger:
            self._audit_logger.log_entity_created(
                handle.name, kind.value, entity.entity_name, description.to_dict()
            )
        return entity


class DeleteReconciler:
    """
    Deletes an entity, refusing to drop in-flight messages unless forced.

    States: NotChecked -> Verified -> (Blocked | Proceeding) -> Deleted | Failed.
    """

    def __init__(
        self,
        resolver: NamespaceResolver,
        client_factory: ClientFactory,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = resolver
        self._client_factory = client_factory
        self._audit_logger = audit_logger

    @track_operation_time(logger, "delete_entity")
    def delete(
        self,
        namespace: Optional[str],
        kind: Union[EntityKind, str],
        path: str,
        subscription_name: Optional[str] = None,
        force: bool = False
    ) -> DeletionResult:
        """
        Delete an entity.

        Args:
            namespace: Namespace identifier (None for the configured default)
            kind: Entity kind
            path: Entity path (parent topic path for subscriptions)
            subscription_name: Subscription name, for subscriptions
            force: Delete even if messages are still in flight

        Returns:
            DeletionResult in state DELETED

        Raises:
            ParentTopicNotFoundError: Subscription's topic does not exist
            EntityNotFoundError: Entity does not exist
            NonEmptyEntityError: Entity holds messages and force is False
            TransportError: Broker or directory unreachable
        """
        kind = parse_kind(kind)
        if not path:
            raise EntityValidationError(f"Path is required to delete a {kind.value}", field="path")
        if kind is EntityKind.SUBSCRIPTION and not subscription_name:
            raise EntityValidationError(
                "Subscription name is required to delete a subscription",
                field="subscription_name",
            )

        handle = self._resolver.resolve(namespace)
        result = DeletionResult(
            namespace=handle.name,
            kind=kind,
            path=path,
            subscription_name=subscription_name,
            forced=False,
        )

        try:
            with _transport_errors(f"delete_{kind.value}"):
                with self._client_factory(handle) as client:
                    self._verify(client, result)
                    self._check_backlog(client, result, force)
                    self._remove(client, result)
        except NonEmptyEntityError:
            raise
        except ProvisioningError:
            self._transition(result, DeletionState.FAILED)
            raise

        if self._audit_logger:
            self._audit_logger.log_entity_deleted(
                handle.name,
                kind.value,
                self._entity_name(result),
                message_count=result.message_count,
                forced=result.forced,
            )
        return result

    def _verify(self, client: EntityClient, result: DeletionResult) -> None:
        if result.kind.requires_parent:
            _require_parent_topic(client, result.path, result.subscription_name)

        if not client.exists(result.kind, result.path, result.subscription_name):
            if result.kind is EntityKind.SUBSCRIPTION:
                raise EntityNotFoundError(
                    result.kind.value, result.subscription_name, topic_name=result.path
                )
            raise EntityNotFoundError(result.kind.value, result.path)

        self._transition(result, DeletionState.VERIFIED)

    def _check_backlog(self, client: EntityClient, result: DeletionResult, force: bool) -> None:
        count = client.message_count(result.kind, result.path, result.subscription_name)
        result.message_count = count
        if count <= 0:
            return

        if not force:
            self._transition(result, DeletionState.BLOCKED)
            raise NonEmptyEntityError(
                result.kind.value,
                result.subscription_name or result.path,
                count,
                topic_name=result.path if result.subscription_name else None,
            )

        result.forced = True
        logger.warning(
            f"Force-deleting {result.kind.value} '{self._entity_name(result)}' "
            f"with {count} message(s) still in flight",
            operation="forced_delete",
            entity_type=result.kind.value,
            entity_name=self._entity_name(result),
            namespace=result.namespace,
            message_count=count,
        )

    def _remove(self, client: EntityClient, result: DeletionResult) -> None:
        self._transition(result, DeletionState.PROCEEDING)

        if result.kind is EntityKind.QUEUE:
            client.delete_queue(result.path)
        elif result.kind is EntityKind.TOPIC:
            client.delete_topic(result.path)
        else:
            client.delete_subscription(result.path, result.subscription_name)

        self._transition(result, DeletionState.DELETED)
        logger.log_operation(
            operation=f"{result.kind.value}_deleted",
            entity_type=result.kind.value,
            entity_name=self._entity_name(result),
            namespace=result.namespace,
            message_count=result.message_count,
        )

    @staticmethod
    def _entity_name(result: DeletionResult) -> str:
        if result.subscription_name:
            return f"{result.path}/Subscriptions/{result.subscription_name}"
        return result.path

    def _transition(self, result: DeletionResult, state: DeletionState) -> None:
        logger.log_state_transition(
            entity_type=result.kind.value,
            entity_name=self._entity_name(result),
            from_state=result.state.value,
            to_state=state.value,
        )
        result.state = state


class EntityProvisioner:
    """
    One entry point per (create | delete) x (queue | topic | subscription).

    Raw parameters are normalized before any broker call, so malformed
    input fails without touching the network.

    Example:
        provisioner = EntityProvisioner(directory, client_factory, default_namespace="orders")
        provisioner.create_queue("orders", auto_delete_on_idle=3)
        provisioner.delete_queue("orders", force=True)
    """

    def __init__(
        self,
        directory: NamespaceDirectory,
        client_factory: ClientFactory,
        default_namespace: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.resolver = NamespaceResolver(directory, default_namespace, audit_logger)
        self.creator = CreateReconciler(self.resolver, client_factory, audit_logger)
        self.deleter = DeleteReconciler(self.resolver, client_factory, audit_logger)

    # ========== Namespaces ==========

    def resolve_namespace(self, namespace: Optional[str] = None) -> NamespaceHandle:
        return self.resolver.resolve(namespace)

    def connection_string(self, namespace: Optional[str] = None) -> str:
        return self.resolver.resolve(namespace).connection_string

    # ========== Creation ==========

    def create(
        self,
        kind: Union[EntityKind, str],
        params: RawParameters,
        namespace: Optional[str] = None
    ) -> EntityHandle:
        """Normalize ``params`` for ``kind`` and create the entity."""
        description = normalize(kind, params)
        if isinstance(description, SubscriptionDescription):
            self._warn_on_unbound_filter(description, params)
        return self.creator.create(namespace, description)

    def create_queue(self, path: str, namespace: Optional[str] = None, **params: Any) -> EntityHandle:
        return self.create(EntityKind.QUEUE, dict(params, path=path), namespace)

    def create_topic(self, path: str, namespace: Optional[str] = None, **params: Any) -> EntityHandle:
        return self.create(EntityKind.TOPIC, dict(params, path=path), namespace)

    def create_subscription(
        self,
        topic_name: str,
        subscription_name: str,
        namespace: Optional[str] = None,
        **params: Any
    ) -> EntityHandle:
        return self.create(
            EntityKind.SUBSCRIPTION,
            dict(params, topic_name=topic_name, subscription_name=subscription_name),
            namespace,
        )

    # ========== Deletion ==========

    def delete_queue(self, path: str, namespace: Optional[str] = None, force: bool = False) -> DeletionResult:
        return self.deleter.delete(namespace, EntityKind.QUEUE, path, force=force)

    def delete_topic(self, path: str, namespace: Optional[str] = None, force: bool = False) -> DeletionResult:
        return self.deleter.delete(namespace, EntityKind.TOPIC, path, force=force)

    def delete_subscription(
        self,
        topic_name: str,
        subscription_name: str,
        namespace: Optional[str] = None,
        force: bool = False
    ) -> DeletionResult:
        return self.deleter.delete(
            namespace, EntityKind.SUBSCRIPTION, topic_name, subscription_name, force=force
        )

    @staticmethod
    def _warn_on_unbound_filter(description: SubscriptionDescription, params: RawParameters) -> None:
        if description.rule is not None:
            return
        raw_filter = params.get("rule_filter") if isinstance(params, Mapping) else getattr(params, "rule_filter", None)
        if raw_filter:
            logger.warning(
                "Rule filter given without a rule action; the subscription keeps the default rule",
                operation="create_subscription",
                entity_type="subscription",
                entity_name=description.subscription_name,
                rule_filter=raw_filter,
            )
