"""
Errors raised by track import and derivation.
"""


class EmptyTrackError(ValueError):
    """Raised when a track has no samples to derive."""


class TrackNotDerivedError(RuntimeError):
    """Raised when derived fields are read before derive_all() succeeded."""


class TrackAlreadyImportedError(RuntimeError):
    """Raised on a second bulk import into the same track."""
