"""Testing utilities for SaveForge applications."""

from unittest import TestCase

from saveforge.core.codecs import PydanticCodec
from saveforge.core.loader import SaveLoader
from saveforge.core.settings import SaveForgeSettings
from saveforge.migrations.history import build_default_registry
from saveforge.models import SaveFile
from saveforge.testing.mocks import FixedClock, InMemoryBackup


def create_test_settings(**overrides) -> SaveForgeSettings:
    """Create SaveForge settings for testing.

    Backups are disabled unless overridden and no ``.env`` file is read.

    Args:
        **overrides: Settings to override

    Returns:
        SaveForgeSettings instance configured for testing
    """
    values = {
        "backup_enabled": False,
        "backup_required": False,
        "stamp_last_modified_on_migrate": True,
    }
    values.update(overrides)
    return SaveForgeSettings(_env_file=None, **values)


class SaveForgeTestCase(TestCase):
    """Base test case with a loader wired to in-memory collaborators.

    Example:
        >>> class TestMyMigration(SaveForgeTestCase):
        ...     def test_old_save_loads(self):
        ...         result = self.loader.load(b'{"version": "0.1.0"}')
        ...         self.assertEqual(len(result.report.steps), 4)
    """

    def setUp(self) -> None:
        """Set up test fixtures."""
        super().setUp()
        self.settings = create_test_settings(backup_enabled=True)
        self.backup = InMemoryBackup()
        self.clock = FixedClock()
        self.registry = build_default_registry()
        self.loader = SaveLoader(
            self.registry,
            PydanticCodec(SaveFile),
            settings=self.settings,
            backup=self.backup,
            clock=self.clock,
        )

    def tearDown(self) -> None:
        """Clean up after test."""
        self.backup.clear()
        super().tearDown()

    def assertNoBackupTaken(self) -> None:
        self.assertEqual(self.backup.backups, {})
