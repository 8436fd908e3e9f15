"""
Namespace Resolver

Resolves a namespace identifier to a connection handle, creating the
namespace on first use.

Author: sbprovision Contributors
Date: 2026-10-19
"""

from typing import Optional

from .audit_logger import AuditLogger
from .exceptions import EntityValidationError, TransportError
from .interfaces import NamespaceDirectory
from .logging_utils import StructuredLogger
from .models import NamespaceHandle
from .validation import EntityNameValidator


class NamespaceResolver:
    """
    Resolves namespaces through a NamespaceDirectory.

    The default namespace is explicit configuration handed to the resolver,
    used when a caller does not name a namespace.

    Failures of the directory surface as TransportError; nothing is retried.
    """

    def __init__(
        self,
        directory: NamespaceDirectory,
        default_namespace: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._directory = directory
        self._default_namespace = default_namespace
        self._audit_logger = audit_logger
        self._logger = StructuredLogger('sbprovision.provisioning.namespace')

    @property
    def default_namespace(self) -> Optional[str]:
        return self._default_namespace

    def resolve(self, name: Optional[str] = None) -> NamespaceHandle:
        """
        Return the handle of ``name``, creating the namespace if it is absent.

        Args:
            name: Namespace identifier; falls back to the configured default

        Returns:
            NamespaceHandle

        Raises:
            EntityValidationError: No name and no default, or malformed name
            TransportError: Directory or creation call failed
        """
        name = name or self._default_namespace
        if not name:
            raise EntityValidationError(
                "No namespace given and no default namespace configured",
                field="namespace",
            )
        EntityNameValidator.validate_namespace_name(name)

        try:
            if not self._directory.exists(name):
                self._logger.info(
                    f"Namespace '{name}' not found, creating it",
                    operation="namespace_create",
                    namespace=name,
                )
                self._directory.create(name)
                if self._audit_logger:
                    self._audit_logger.log_namespace_created(name)
            connection_string = self._directory.connection_string_for(name)
        except (ConnectionError, TimeoutError) as e:
            raise TransportError("resolve_namespace", str(e)) from e

        self._logger.debug(
            f"Resolved namespace '{name}'",
            operation="namespace_resolved",
            namespace=name,
        )
        return NamespaceHandle(name=name, connection_string=connection_string)
