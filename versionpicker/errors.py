"""
Exception hierarchy for versioned identity and selection.

Callers must be able to tell "nothing found" apart from "lookup failed",
so every failure surfaces as one of these types and never as an empty result.
"""


class VersionPickerError(Exception):
    """Base class for all errors raised by versionpicker."""
    pass


class CodecError(VersionPickerError, ValueError):
    """Raised when a composite key cannot be encoded or decoded."""
    pass


class MalformedTokenError(CodecError):
    """Raised when a token does not decode to exactly one composite key."""
    pass


class InvalidVersionNameError(CodecError):
    """Raised when a version name contains the reserved separator."""
    pass


class InvalidIdentityError(CodecError):
    """Raised when an identity is not a non-negative integer."""
    pass


class RelationResolutionError(VersionPickerError):
    """Raised when related rows cannot be loaded for a parent."""
    pass


class SearchError(VersionPickerError):
    """Raised when a selector scope or search query fails."""
    pass


class DeadlineExceededError(VersionPickerError):
    """Raised when a call outlives the deadline handed to it."""
    pass
