"""
Entity Lifecycle Provisioning

Namespace resolution, description normalization, collision checks and the
create/delete reconcilers.
"""

from .collision import CollisionGuard, PathOccupancy
from .exceptions import (
    CrossKindCollisionError,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    EntityValidationError,
    InvalidEntityNameError,
    InvalidNamespaceNameError,
    NonEmptyEntityError,
    ParentTopicNotFoundError,
    ProvisioningError,
    TransportError,
)
from .interfaces import EntityClient, NamespaceDirectory
from .models import (
    DeletionResult,
    DeletionState,
    EntityHandle,
    EntityKind,
    NamespaceHandle,
    QueueDescription,
    RuleDescription,
    SubscriptionDescription,
    TopicDescription,
)
from .namespace import NamespaceResolver
from .normalizer import normalize, parse_kind
from .reconciler import CreateReconciler, DeleteReconciler, EntityProvisioner

__all__ = [
    "CollisionGuard",
    "PathOccupancy",
    "CrossKindCollisionError",
    "EntityAlreadyExistsError",
    "EntityNotFoundError",
    "EntityValidationError",
    "InvalidEntityNameError",
    "InvalidNamespaceNameError",
    "NonEmptyEntityError",
    "ParentTopicNotFoundError",
    "ProvisioningError",
    "TransportError",
    "EntityClient",
    "NamespaceDirectory",
    "DeletionResult",
    "DeletionState",
    "EntityHandle",
    "EntityKind",
    "NamespaceHandle",
    "QueueDescription",
    "RuleDescription",
    "SubscriptionDescription",
    "TopicDescription",
    "NamespaceResolver",
    "normalize",
    "parse_kind",
    "CreateReconciler",
    "DeleteReconciler",
    "EntityProvisioner",
]
