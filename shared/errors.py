"""
Shared error handling for the JWKS Configurator.

Exactly four error kinds leave the core: ValidationError, SecurityError,
NetworkError and ConflictError. Everything else is a bug and surfaces as a
500 through the service-wide handler.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ConfiguratorException(Exception):
    """Base exception for the configurator core."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(ConfiguratorException):
    """Malformed or incomplete input. Fixed by the caller, never retried."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ComponentNotFoundError(ValidationError):
    """The host knows no component with the requested id."""

    def __init__(self, component_id: str, details: Optional[Dict[str, Any]] = None):
        self.component_id = component_id
        super().__init__(f"Component not found: {component_id}", details)


class SecurityError(ConfiguratorException):
    """Input rejected because it may be malicious (traversal, bad scheme, SSRF)."""

    def __init__(self, message: str = "Security constraint violated", details: Optional[Dict[str, Any]] = None):
        super().__init__("SECURITY_ERROR", message, details)


class NetworkError(ConfiguratorException):
    """A remote endpoint was unreachable or answered with a failure status."""

    def __init__(
        self,
        message: str = "Network error",
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        self.body = body
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__("NETWORK_ERROR", message, details)


class HostUnreachableError(NetworkError):
    """DNS failure, refused connection or timeout. The host never answered."""

    def __init__(self, message: str = "Host unreachable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class HostResponseError(NetworkError):
    """The host answered with a non-2xx status; carries the raw body."""

    def __init__(self, status_code: int, body: str, details: Optional[Dict[str, Any]] = None):
        message = body.strip() or f"HTTP {status_code}"
        super().__init__(message, status_code=status_code, body=body, details=details)


class ConflictError(ConfiguratorException):
    """The host rejected a write because the supplied revision is stale."""

    def __init__(self, message: str, status_code: int = 409, body: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.body = body
        details = dict(details or {})
        details.setdefault("status_code", status_code)
        super().__init__("CONFLICT_ERROR", message, details)
