"""Exceptions raised by the productivity simulator."""


class ConfigurationError(ValueError):
    """Role table is incomplete, or a role or batch size is not defined."""


class InvalidArgumentError(ValueError):
    """A caller-supplied argument is outside its valid range."""
