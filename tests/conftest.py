"""Shared pytest configuration."""

pytest_plugins = ["saveforge.testing.fixtures"]
