"""
Domain errors raised by the service layer.

Each error carries the HTTP status it is reported with; the API layer
renders all of them as ``{"error": message}``.
"""


class PadelError(ValueError):
    """Base class for expected, caller-facing failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PadelError):
    """Malformed or insufficient input."""

    status_code = 400


class ForbiddenError(PadelError):
    """The caller is not allowed to perform the operation."""

    status_code = 403


class NotFoundError(PadelError):
    """A referenced league, team, match or user does not exist."""

    status_code = 404


class ConflictError(PadelError):
    """The operation clashes with existing state (e.g. a calendar already exists)."""

    status_code = 409
