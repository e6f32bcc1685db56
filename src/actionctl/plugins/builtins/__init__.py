"""Built-in action providers, enabled by name via ``[plugins] builtins``."""
