"""
Azure Service Bus Backend

Entity client over ``azure.servicebus.management.ServiceBusAdministrationClient``
and a namespace directory driven by configuration.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from contextlib import contextmanager
from typing import Any, Dict, Optional

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.servicebus.management import (
    ServiceBusAdministrationClient,
    SqlRuleAction,
    SqlRuleFilter,
)

from ..provisioning.constants import DEFAULT_RULE_NAME
from ..provisioning.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    EntityValidationError,
    ProvisioningError,
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


def _options(**kwargs: Any) -> Dict[str, Any]:
    """Keyword arguments with unset values dropped so the SDK applies broker defaults."""
    return {k: v for k, v in kwargs.items() if v is not None}


class ConfiguredNamespaceDirectory(NamespaceDirectory):
    """
    Namespace directory backed by configuration.

    Known namespaces map to their connection strings. Creating a namespace
    registers a connection string rendered from ``connection_string_template``
    (``{namespace}`` is substituted); without a template, namespaces must be
    declared up front.
    """

    def __init__(
        self,
        namespaces: Optional[Dict[str, str]] = None,
        connection_string_template: Optional[str] = None,
    ):
        self._namespaces = dict(namespaces or {})
        self._template = connection_string_template
        self._logger = StructuredLogger('sbprovision.backends.azure')

    def exists(self, name: str) -> bool:
        return name in self._namespaces

    def create(self, name: str) -> None:
        if not self._template:
            raise TransportError(
                "create_namespace",
                f"namespace '{name}' is not configured and no connection string template is set",
            )
        self._namespaces[name] = self._template.format(namespace=name)
        self._logger.info(
            f"Registered namespace '{name}' from connection string template",
            operation="namespace_registered",
            namespace=name,
        )

    def connection_string_for(self, name: str) -> str:
        if name not in self._namespaces:
            raise EntityNotFoundError("namespace", name)
        return self._namespaces[name]


class AzureEntityClient(EntityClient):
    """Entity client for one Service Bus namespace."""

    def __init__(
        self,
        namespace: NamespaceHandle,
        admin_client: Optional[ServiceBusAdministrationClient] = None,
    ):
        super().__init__(namespace)
        self._admin = admin_client or ServiceBusAdministrationClient.from_connection_string(
            namespace.connection_string
        )
        self._logger = StructuredLogger('sbprovision.backends.azure')

    def close(self) -> None:
        self._admin.close()

    @contextmanager
    def _call(
        self,
        operation: str,
        entity_type: str,
        entity_name: str,
        topic_name: Optional[str] = None,
        field: Optional[str] = None
    ):
        """Translate SDK exceptions into provisioning errors."""
        try:
            yield
        except ResourceExistsError as e:
            raise EntityAlreadyExistsError(entity_type, entity_name, topic_name=topic_name) from e
        except ResourceNotFoundError as e:
            raise EntityNotFoundError(entity_type, entity_name, topic_name=topic_name) from e
        except HttpResponseError as e:
            if e.status_code == 400:
                raise EntityValidationError(
                    f"Broker rejected {entity_type} '{entity_name}': {e}", field=field
                ) from e
            raise TransportError(operation, str(e)) from e
        except AzureError as e:
            raise TransportError(operation, str(e)) from e

    def _exists(self, operation: str, getter, *args) -> bool:
        try:
            getter(*args)
        except ResourceNotFoundError:
            return False
        except AzureError as e:
            raise TransportError(operation, str(e)) from e
        return True

    # ========== Existence ==========

    def queue_exists(self, path: str) -> bool:
        return self._exists("queue_exists", self._admin.get_queue, path)

    def topic_exists(self, path: str) -> bool:
        return self._exists("topic_exists", self._admin.get_topic, path)

    def subscription_exists(self, topic_name: str, subscription_name: str) -> bool:
        return self._exists(
            "subscription_exists", self._admin.get_subscription, topic_name, subscription_name
        )

    # ========== Creation ==========

    def create_queue(self, description: QueueDescription) -> EntityHandle:
        self._skip_unsupported(description, "queue", support_ordering=False, is_anonymous_accessible=False)
        with self._call("create_queue", "queue", description.path):
            self._admin.create_queue(
                description.path,
                **_options(
                    auto_delete_on_idle=description.auto_delete_on_idle,
                    default_message_time_to_live=description.default_message_time_to_live,
                    enable_batched_operations=description.enable_batched_operations,
                    requires_duplicate_detection=description.requires_duplicate_detection,
                    duplicate_detection_history_time_window=description.duplicate_detection_history_time_window,
                    lock_duration=description.lock_duration,
                    max_delivery_count=description.max_delivery_count,
                    max_size_in_megabytes=description.max_size_in_megabytes,
                    enable_partitioning=description.enable_partitioning,
                    forward_to=description.forward_to,
                    user_metadata=description.user_metadata,
                ),
            )
        return EntityHandle(
            namespace=self.namespace.name,
            kind=EntityKind.QUEUE,
            path=description.path,
            description=description,
        )

    def create_topic(self, description: TopicDescription) -> EntityHandle:
        self._skip_unsupported(description, "topic", is_anonymous_accessible=False, forward_to=None)
        with self._call("create_topic", "topic", description.path):
            self._admin.create_topic(
                description.path,
                **_options(
                    auto_delete_on_idle=description.auto_delete_on_idle,
                    default_message_time_to_live=description.default_message_time_to_live,
                    enable_batched_operations=description.enable_batched_operations,
                    requires_duplicate_detection=description.requires_duplicate_detection,
                    duplicate_detection_history_time_window=description.duplicate_detection_history_time_window,
                    max_size_in_megabytes=description.max_size_in_megabytes,
                    enable_partitioning=description.enable_partitioning,
                    support_ordering=description.support_ordering,
                    user_metadata=description.user_metadata,
                ),
            )
        return EntityHandle(
            namespace=self.namespace.name,
            kind=EntityKind.TOPIC,
            path=description.path,
            description=description,
        )

    def create_subscription(
        self,
        description: SubscriptionDescription,
        rule: Optional[RuleDescription] = None
    ) -> EntityHandle:
        topic_name = description.topic_name
        name = description.subscription_name
        self._skip_unsupported(
            description, "subscription", support_ordering=False, requires_duplicate_detection=False
        )

        with self._call("create_subscription", "subscription", name, topic_name=topic_name):
            self._admin.create_subscription(
                topic_name,
                name,
                **_options(
                    auto_delete_on_idle=description.auto_delete_on_idle,
                    default_message_time_to_live=description.default_message_time_to_live,
                    enable_batched_operations=description.enable_batched_operations,
                    lock_duration=description.lock_duration,
                    max_delivery_count=description.max_delivery_count,
                    dead_lettering_on_message_expiration=description.dead_lettering_on_message_expiration,
                    dead_lettering_on_filter_evaluation_exceptions=(
                        description.dead_lettering_on_filter_evaluation_exceptions
                    ),
                    requires_session=description.requires_session,
                    forward_to=description.forward_to,
                    user_metadata=description.user_metadata,
                ),
            )

        if rule is not None:
            try:
                self._replace_default_rule(topic_name, name, rule)
            except ProvisioningError:
                self._remove_partial_subscription(topic_name, name)
                raise

        return EntityHandle(
            namespace=self.namespace.name,
            kind=EntityKind.SUBSCRIPTION,
            path=topic_name,
            subscription_name=name,
            description=description,
        )

    def _replace_default_rule(self, topic_name: str, subscription_name: str, rule: RuleDescription) -> None:
        """Swap the broker's match-all $Default rule for ``rule``."""
        sql_filter = SqlRuleFilter(rule.filter_expression)
        sql_action = SqlRuleAction(rule.action_expression) if rule.action_expression else None

        with self._call("create_rule", "rule", rule.name, topic_name=topic_name, field="rule"):
            if rule.name == DEFAULT_RULE_NAME:
                self._admin.delete_rule(topic_name, subscription_name, DEFAULT_RULE_NAME)
                self._admin.create_rule(
                    topic_name, subscription_name, rule.name, filter=sql_filter, action=sql_action
                )
            else:
                # Add first so the subscription never sits without a rule
                self._admin.create_rule(
                    topic_name, subscription_name, rule.name, filter=sql_filter, action=sql_action
                )
                self._admin.delete_rule(topic_name, subscription_name, DEFAULT_RULE_NAME)

    def _remove_partial_subscription(self, topic_name: str, subscription_name: str) -> None:
        """Delete a subscription whose rule could not be attached."""
        try:
            self._admin.delete_subscription(topic_name, subscription_name)
        except AzureError as e:
            self._logger.error(
                f"Subscription '{topic_name}/{subscription_name}' was created but its rule "
                f"failed and it could not be removed; delete it manually",
                operation="create_subscription",
                entity_type="subscription",
                entity_name=subscription_name,
                topic_name=topic_name,
                error_message=str(e),
            )
            return
        self._logger.warning(
            f"Removed subscription '{topic_name}/{subscription_name}' after its rule failed",
            operation="create_subscription",
            entity_type="subscription",
            entity_name=subscription_name,
            topic_name=topic_name,
        )

    def _skip_unsupported(self, description, entity_type: str, **unsupported_defaults: Any) -> None:
        for field_name, default in unsupported_defaults.items():
            value = getattr(description, field_name)
            if value != default:
                self._logger.warning(
                    f"{entity_type} property '{field_name}' is not supported by the "
                    f"management API and was not applied",
                    operation=f"create_{entity_type}",
                    entity_type=entity_type,
                    field=field_name,
                )

    # ========== Deletion ==========

    def delete_queue(self, path: str) -> None:
        with self._call("delete_queue", "queue", path):
            self._admin.delete_queue(path)

    def delete_topic(self, path: str) -> None:
        with self._call("delete_topic", "topic", path):
            self._admin.delete_topic(path)

    def delete_subscription(self, topic_name: str, subscription_name: str) -> None:
        with self._call("delete_subscription", "subscription", subscription_name, topic_name=topic_name):
            self._admin.delete_subscription(topic_name, subscription_name)

    # ========== Runtime ==========

    def message_count(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> int:
        if kind is EntityKind.QUEUE:
            with self._call("queue_runtime_properties", "queue", path):
                return self._admin.get_queue_runtime_properties(path).total_message_count

        if kind is EntityKind.SUBSCRIPTION:
            with self._call(
                "subscription_runtime_properties", "subscription", subscription_name, topic_name=path
            ):
                props = self._admin.get_subscription_runtime_properties(path, subscription_name)
                return props.total_message_count

        with self._call("topic_runtime_properties", "topic", path):
            scheduled = self._admin.get_topic_runtime_properties(path).scheduled_message_count
            return scheduled + sum(
                props.total_message_count
                for props in self._admin.list_subscriptions_runtime_properties(path)
            )
