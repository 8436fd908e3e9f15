"""
Collision Guard

Checks, before creation, whether an entity path is already taken. Queues
and topics share one uniqueness namespace, so both kinds are queried;
subscriptions are keyed by (topic, name) and only checked against
themselves.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from enum import Enum
from typing import Optional

from .exceptions import CrossKindCollisionError, EntityAlreadyExistsError
from .interfaces import EntityClient
from .logging_utils import StructuredLogger
from .models import EntityKind


class PathOccupancy(str, Enum):
    """Result of probing a path for an entity kind."""
    ABSENT = "absent"
    EXISTS_AS_SELF = "exists_as_self"
    EXISTS_AS_OTHER_KIND = "exists_as_other_kind"


class CollisionGuard:
    """Probes an entity client for name collisions."""

    def __init__(self, client: EntityClient):
        self._client = client
        self._logger = StructuredLogger('sbprovision.provisioning.collision')

    def probe(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> PathOccupancy:
        """
        Find out who holds ``path``.

        Args:
            kind: Kind about to be created
            path: Entity path (parent topic path for subscriptions)
            subscription_name: Subscription name, for subscriptions

        Returns:
            PathOccupancy
        """
        if self._client.exists(kind, path, subscription_name):
            return PathOccupancy.EXISTS_AS_SELF

        sibling = kind.sibling
        if sibling is not None and self._client.exists(sibling, path):
            return PathOccupancy.EXISTS_AS_OTHER_KIND

        return PathOccupancy.ABSENT

    def check(
        self,
        kind: EntityKind,
        path: str,
        subscription_name: Optional[str] = None
    ) -> None:
        """
        Fail if ``path`` cannot be created as ``kind``.

        Raises:
            CrossKindCollisionError: Path is held by the sibling kind
            EntityAlreadyExistsError: Path is held by the same kind
        """
        occupancy = self.probe(kind, path, subscription_name)
        self._logger.debug(
            f"Collision probe for {kind.value}/{path}: {occupancy.value}",
            operation="collision_probe",
            entity_type=kind.value,
            entity_name=path,
            subscription_name=subscription_name,
            occupancy=occupancy.value,
        )

        if occupancy is PathOccupancy.EXISTS_AS_OTHER_KIND:
            raise CrossKindCollisionError(kind.value, path, kind.sibling.value)

        if occupancy is PathOccupancy.EXISTS_AS_SELF:
            if kind is EntityKind.SUBSCRIPTION:
                raise EntityAlreadyExistsError(kind.value, subscription_name, topic_name=path)
            raise EntityAlreadyExistsError(kind.value, path)
