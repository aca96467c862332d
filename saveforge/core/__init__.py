"""Core components: versions, documents, settings, errors and loading."""
