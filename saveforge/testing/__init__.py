"""Testing utilities for SaveForge applications.

This module provides in-memory collaborators, document builders and
pytest fixtures for testing migrations and loads.

Usage in conftest.py:
    from saveforge.testing import (
        InMemoryBackup,
        SaveDocumentFactory,
        create_test_settings,
    )

Or use provided fixtures directly:
    pytest_plugins = ["saveforge.testing.fixtures"]
"""

from saveforge.testing.factories import SaveDocumentFactory
from saveforge.testing.mocks import FailingBackup, FixedClock, InMemoryBackup
from saveforge.testing.utils import SaveForgeTestCase, create_test_settings

__all__ = [
    "InMemoryBackup",
    "FailingBackup",
    "FixedClock",
    "SaveDocumentFactory",
    "create_test_settings",
    "SaveForgeTestCase",
]
