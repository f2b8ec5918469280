"""textmorph error hierarchy.

All textmorph-specific errors inherit from MorphError for easy catching.
"""


class MorphError(Exception):
    """Base error for all textmorph operations."""


class InvariantViolation(MorphError):
    """An engine invariant was broken; continuing would corrupt later renders."""


class LifecycleError(InvariantViolation):
    """A component Context was moved through an illegal phase transition."""


class AlreadyMountedError(MorphError):
    """mount() was called more than once for the same surface."""


class ConfigError(MorphError):
    """Invalid or unreadable configuration."""
