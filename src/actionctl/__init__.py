"""actionctl — schema-validated action dispatch for agent tool servers."""

__version__ = "0.1.0"
