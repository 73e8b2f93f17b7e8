"""
Error Taxonomy Module

Every failure a portal operation can report is one of the classes below. They are
raised by the repositories and the access policy engine and converted into the
uniform ``{"success": false, "error": ...}`` envelope by the handlers registered
in ``portal.main``.
"""
from fastapi import status


class PortalError(Exception):
    """Base class: carries an HTTP status code and a human-readable message."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    """Missing, malformed or out-of-enum input."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(PortalError):
    """Missing, invalid or expired credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class AuthorizationError(PortalError):
    """Valid credential but insufficient role or ownership."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(PortalError):
    """Unique-constraint or dependent-record conflict."""
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalError(PortalError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
