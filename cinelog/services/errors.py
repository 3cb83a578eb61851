"""
cinelog/services/errors.py

Domain errors raised by the media resolver, the rating store and the aggregator.
They are raised where the problem is detected and travel unchanged up to the API
layer, where `cinelog.api.main` maps each class to its HTTP status code.
"""


class CineLogError(Exception):
    """Base class of all domain errors."""


class ValidationError(CineLogError, ValueError):
    """Caller supplied input violates a documented rule (score range, username format, ...)."""


class InvalidMediaKindError(ValidationError):
    """The given media type string is neither a movie nor a tv kind."""


class NotFoundError(CineLogError):
    """A referenced entity does not exist where its absence is an error."""


class ForbiddenError(CineLogError):
    """The acting user tried to modify a resource owned by somebody else."""


class UnauthenticatedError(CineLogError):
    """No valid acting user could be established."""


class ConflictError(CineLogError):
    """The entity to create collides with an existing one (e.g. taken username)."""


class ExternalDependencyError(CineLogError):
    """The external catalog could not supply the requested data."""


class UnsupportedOperationError(CineLogError):
    """A recognized media kind that has no catalog handler."""
