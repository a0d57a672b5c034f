"""Exceptions raised by springlayout."""


class SpringLayoutError(Exception):
    """Base class for springlayout errors."""
    pass


class ConcurrentModificationError(SpringLayoutError):
    """Raised when a graph is structurally modified while it is being iterated.

    Layout phases catch this and restart; it never reaches the caller of
    ``step()``.
    """
    pass


class LayoutNotAttachedError(SpringLayoutError):
    """Raised when a layout algorithm is stepped before ``attach()``."""
    pass


class ConfigError(SpringLayoutError, ValueError):
    """Raised for invalid layout configuration values or files."""
    pass
