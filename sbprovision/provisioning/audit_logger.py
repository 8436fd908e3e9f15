"""
Provisioning Audit Logger

JSON-formatted audit trail for entity creation and deletion, including
deletes that were forced past a non-empty check.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional


class AuditLogger:
    """
    Audit logger for provisioning operations.

    Events are written as one JSON document per line to the
    ``sbprovision.audit`` logger, and to ``log_file`` when given.
    """

    def __init__(self, log_file: Optional[str] = None, user: str = "system"):
        """
        Initialize audit logger.

        Args:
            log_file: Optional path of a JSON-lines audit file
            user: Principal recorded on every event
        """
        self.log_file = log_file
        self.user = user

        self.logger = logging.getLogger("sbprovision.audit")
        self.logger.setLevel(logging.INFO)

        if log_file and not any(
            isinstance(h, logging.FileHandler) and h.baseFilename.endswith(log_file)
            for h in self.logger.handlers
        ):
            handler = logging.FileHandler(log_file)
            handler.setLevel(logging.INFO)
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def _log_event(self, event_data: Dict[str, Any]) -> None:
        event_data["timestamp"] = datetime.now(timezone.utc).isoformat()
        event_data["user"] = self.user
        event_data["version"] = "1.0"

        self.logger.info(json.dumps(event_data, default=str))

    def log_namespace_created(self, namespace: str) -> None:
        self._log_event({
            "event_type": "namespace_created",
            "entity_type": "namespace",
            "entity_name": namespace,
        })

    def log_entity_created(
        self,
        namespace: str,
        entity_type: str,
        entity_name: str,
        properties: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log entity creation event.

        Args:
            namespace: Namespace holding the entity
            entity_type: queue, topic or subscription
            entity_name: Entity path (topic/Subscriptions/name for subscriptions)
            properties: Normalized description that was applied
        """
        self._log_event({
            "event_type": f"{entity_type}_created",
            "namespace": namespace,
            "entity_type": entity_type,
            "entity_name": entity_name,
            "properties": properties or {},
        })

    def log_entity_deleted(
        self,
        namespace: str,
        entity_type: str,
        entity_name: str,
        message_count: int = 0,
        forced: bool = False
    ) -> None:
        """
        Log entity deletion event.

        Args:
            namespace: Namespace holding the entity
            entity_type: queue, topic or subscription
            entity_name: Entity path
            message_count: In-flight messages observed before deletion
            forced: Whether the delete overrode a non-empty check
        """
        self._log_event({
            "event_type": f"{entity_type}_deleted",
            "namespace": namespace,
            "entity_type": entity_type,
            "entity_name": entity_name,
            "message_count": message_count,
            "forced": forced,
        })
