"""
Backend Factory

Builds an EntityProvisioner wired to the backend named in configuration.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from typing import Optional

from ..core.config_manager import BackendType, SbProvisionConfig
from ..provisioning.audit_logger import AuditLogger
from ..provisioning.reconciler import EntityProvisioner
from .memory import InMemoryBroker


def create_provisioner(
    config: SbProvisionConfig,
    broker: Optional[InMemoryBroker] = None,
) -> EntityProvisioner:
    """
    Create a provisioner for the configured backend.

    Args:
        config: Loaded configuration
        broker: In-memory broker to use for the memory backend (a fresh one if omitted)

    Returns:
        EntityProvisioner
    """
    audit_logger = None
    if config.audit.enabled:
        audit_logger = AuditLogger(log_file=config.audit.file, user=config.audit.user)

    backend = BackendType(config.backend)

    if backend == BackendType.MEMORY:
        broker = broker or InMemoryBroker()
        return EntityProvisioner(
            broker.directory(),
            broker.client_for,
            default_namespace=config.default_namespace,
            audit_logger=audit_logger,
        )

    # Imported lazily so the memory backend works without the Azure SDK loaded
    from .azure import AzureEntityClient, ConfiguredNamespaceDirectory

    directory = ConfiguredNamespaceDirectory(
        namespaces=config.namespaces,
        connection_string_template=config.connection_string_template,
    )
    return EntityProvisioner(
        directory,
        AzureEntityClient,
        default_namespace=config.default_namespace,
        audit_logger=audit_logger,
    )
