"""
Shared fixtures: an in-memory broker and a provisioner wired to it.

Author: sbprovision Contributors
Date: 2026-10-19
"""

import pytest

from sbprovision.backends.memory import InMemoryBroker
from sbprovision.provisioning.reconciler import EntityProvisioner


@pytest.fixture
def broker():
    """Fresh in-memory broker for each test."""
    return InMemoryBroker()


@pytest.fixture
def provisioner(broker):
    """Provisioner over the in-memory broker with 'orders' as default namespace."""
    return EntityProvisioner(
        broker.directory(),
        broker.client_for,
        default_namespace="orders",
    )
