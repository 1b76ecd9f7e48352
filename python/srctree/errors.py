"""Configuration errors raised while composing a source tree."""


class SrcTreeError(Exception):
    """Base class for errors that abort composition before any script exists."""
