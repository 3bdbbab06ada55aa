"""
Domain error taxonomy.

Services raise these; main.py maps them onto HTTP responses. Routers that need
a different status for a specific case still raise HTTPException directly.
"""
from typing import Iterable, Optional


class PortalError(Exception):
    """Base class for errors raised by the portal's services"""

    status_code = 500
    code = "PORTAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PortalError):
    """Malformed input at a boundary. Never retried automatically."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(PortalError):
    """Lookup miss (e.g. email not present in the buyer store)"""

    status_code = 404
    code = "NOT_FOUND"


class TransientError(PortalError):
    """Backend or network failure; state is left unchanged"""

    status_code = 503
    code = "TRANSIENT_ERROR"


class PartialFailure(PortalError):
    """Some writes of a batch succeeded and some failed; caller must refetch"""

    status_code = 409
    code = "PARTIAL_FAILURE"

    def __init__(self, message: str, failed_ids: Iterable[int], scope: Optional[str] = None):
        super().__init__(message)
        self.failed_ids = list(failed_ids)
        self.scope = scope


class ConfigurationError(PortalError):
    """A value outside a closed enumeration reached the access rules"""

    status_code = 500
    code = "CONFIGURATION_ERROR"
