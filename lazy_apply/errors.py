"""Exceptions raised while reconciling a lazy edit."""


class LazyApplyError(Exception):
    """Base class for lazy-apply failures."""
    pass


class FullFileRequiredError(LazyApplyError):
    """The provider must return the whole file but the proposal looks truncated."""
    pass


class UnifiedDiffError(LazyApplyError, ValueError):
    """A unified diff could not be applied to the original file."""
    pass


class LazyApplyUnsupportedError(LazyApplyError):
    """The streaming fallback cannot run for this model."""
    pass
