"""
sbprovision: Service Bus entity provisioning

Declarative, one-shot creation and guarded deletion of Service Bus
namespaces, queues, topics and subscriptions.
"""

__version__ = "0.1.0"

from .provisioning.reconciler import EntityProvisioner

__all__ = ["EntityProvisioner", "__version__"]
