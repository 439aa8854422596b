"""
Intervention service errors.

NotFound, Validation, Conflict and Upstream failures all surface to the
caller. None of them is ever converted into a default level or transition.
"""


class InterventionError(Exception):
    """Base class for intervention service failures."""
    pass


class NotFoundError(InterventionError):
    """Raised when a case, intervention or domain id does not resolve."""
    pass


class ValidationError(InterventionError):
    """Raised when a request is missing a required field or breaks a lifecycle rule."""
    pass


class InvalidTransitionError(ValidationError):
    """Raised when a case cannot move from its current status."""
    pass


class ConflictError(InterventionError):
    """Raised when a concurrent write won the race. Reread and retry."""
    pass


class UpstreamError(InterventionError):
    """Raised when the record store or the Level B store fails."""
    pass
