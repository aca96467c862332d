"""Pytest fixtures for SaveForge testing.

To use these fixtures, add to your conftest.py:

    pytest_plugins = ["saveforge.testing.fixtures"]

Or import specific fixtures:

    from saveforge.testing.fixtures import registry, loader
"""

import pytest

from saveforge.core.codecs import PydanticCodec
from saveforge.core.loader import SaveLoader
from saveforge.core.settings import SaveForgeSettings
from saveforge.migrations.history import build_default_registry
from saveforge.migrations.registry import MigrationRegistry
from saveforge.models import SaveFile
from saveforge.testing.factories import SaveDocumentFactory
from saveforge.testing.mocks import FixedClock, InMemoryBackup
from saveforge.testing.utils import create_test_settings


@pytest.fixture
def saveforge_settings() -> SaveForgeSettings:
    """Provide test settings with backups enabled.

    Returns:
        SaveForgeSettings instance configured for testing
    """
    return create_test_settings(backup_enabled=True)


@pytest.fixture
def registry() -> MigrationRegistry:
    """Provide a fresh registry holding the released schema history."""
    return build_default_registry()


@pytest.fixture
def memory_backup() -> InMemoryBackup:
    """Provide an in-memory backup target."""
    backup = InMemoryBackup()
    yield backup
    backup.clear()


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def save_codec() -> PydanticCodec:
    return PydanticCodec(SaveFile)


@pytest.fixture
def loader(
    registry: MigrationRegistry,
    save_codec: PydanticCodec,
    saveforge_settings: SaveForgeSettings,
    memory_backup: InMemoryBackup,
    fixed_clock: FixedClock,
) -> SaveLoader:
    """Provide a loader wired to in-memory collaborators."""
    return SaveLoader(
        registry,
        save_codec,
        settings=saveforge_settings,
        backup=memory_backup,
        clock=fixed_clock,
    )


@pytest.fixture
def document_factory() -> SaveDocumentFactory:
    """Provide a save document builder.

    Example:
        def test_something(document_factory):
            doc = document_factory.build("0.2.0", factories={"1": {"name": "Iron"}})
    """
    return SaveDocumentFactory()
