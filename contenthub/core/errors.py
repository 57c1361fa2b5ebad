"""
Domain error taxonomy.

Every error raised by the services derives from ContentHubError and carries
the HTTP status and machine-readable code the API boundary reports.
"""

from typing import Any, Optional


class ContentHubError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400
    code = "error"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class ValidationError(ContentHubError):
    """A submitted value is missing or malformed"""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message, code=code, details={"field": field} if field else None)
        self.field = field


class AuthorizationError(ContentHubError):
    status_code = 401
    code = "unauthorized"


class NotFoundError(ContentHubError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class CapacityError(ContentHubError):
    """Registration cannot be accepted; no attendee is created"""

    status_code = 409
    code = "capacity_error"


class TicketUnavailable(CapacityError):
    code = "ticket_unavailable"


class TicketCapacityExceeded(CapacityError):
    code = "ticket_capacity_exceeded"


class EventCapacityExceeded(CapacityError):
    code = "event_capacity_exceeded"


class RegistrationClosedError(ContentHubError):
    status_code = 409
    code = "registration_closed"


class CheckInWindowError(ContentHubError):
    status_code = 409
    code = "check_in_unavailable"


class RateLimitError(ContentHubError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message)


class StorageError(ContentHubError):
    """The document store or blob store failed.

    The message shown to clients is generic; the underlying cause is kept on
    ``__cause__`` and logged at the API boundary.
    """

    status_code = 500
    code = "storage_error"

    def __init__(self, message: str = "Storage operation failed", details: Any = None):
        super().__init__(message, details=details)


class UpstreamError(ContentHubError):
    """The hosted auth service could not be reached or answered unexpectedly"""

    status_code = 502
    code = "upstream_error"
