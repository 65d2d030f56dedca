"""
Error taxonomy shared by all use cases.

The API layer maps each class to an HTTP status (see fintrack.main).
"""


class FinTrackError(Exception):
    """Base for every error a use case raises on purpose"""
    pass


class ValidationError(FinTrackError, ValueError):
    """Input rejected before anything is written"""
    pass


class NotFoundError(FinTrackError):
    """Entity missing or owned by another user"""
    pass


class ConflictError(FinTrackError):
    """Write rejected by a uniqueness rule"""
    pass


class TransportError(FinTrackError):
    """Database unreachable or the connection dropped mid-operation"""
    pass
