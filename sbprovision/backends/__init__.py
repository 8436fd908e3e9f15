"""
Broker Backends

Implementations of the namespace directory and entity client contracts.
The Azure backend is imported on demand from ``sbprovision.backends.azure``.
"""

from .memory import InMemoryBroker, InMemoryEntityClient, InMemoryNamespaceDirectory
from .factory import create_provisioner

__all__ = [
    "InMemoryBroker",
    "InMemoryEntityClient",
    "InMemoryNamespaceDirectory",
    "create_provisioner",
]
