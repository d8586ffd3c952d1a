"""Error taxonomy for project and world resolution.

Stale cached worlds are not represented here: a stale world is regenerated
silently and never surfaces as an error.
"""


class ResolutionError(Exception):
    """Base class for every error raised by the resolution engine."""


class NotFoundError(ResolutionError, LookupError):
    """A definition, project record or world does not exist."""


class MalformedDataError(ResolutionError, ValueError):
    """A document could not be parsed or does not match the expected shape."""


class StoreCorruptionError(ResolutionError):
    """A persisted collection could not be read back."""


class DuplicateIdentityError(ResolutionError):
    """Two projects share an id or a name."""
