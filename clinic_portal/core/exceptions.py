"""
Custom exceptions for the clinic portal client.

Provides a hierarchy of exceptions for transport, envelope and service errors.
"""

from typing import Any, Dict, Optional


class ClinicPortalError(Exception):
    """Base exception for all clinic portal errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ClinicPortalError):
    """Raised when there are configuration issues."""

    pass


class DataAccessError(ClinicPortalError):
    """Base class for errors raised while talking to the backend."""

    pass


class NetworkError(DataAccessError):
    """The HTTP call failed before a response was received."""

    pass


class TimeoutError(DataAccessError):
    """The request deadline expired and the call was aborted."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


class ApiError(DataAccessError):
    """Non-2xx status or a ``success: false`` envelope."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.code = code


class ParseError(DataAccessError):
    """Response body was not valid JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RequestCancelledError(ClinicPortalError):
    """The caller cancelled the request before a response arrived."""

    pass


class ServiceError(ClinicPortalError):
    """A domain service operation failed.

    The message carries a ``[Service.method]`` prefix in front of the
    original message; the original exception is kept on ``cause``.
    """

    def __init__(self, service: str, method: str, cause: BaseException, **kwargs):
        original = getattr(cause, "message", None) or str(cause)
        if not original:
            original = f"Unknown error occurred: {type(cause).__name__}"
        super().__init__(f"[{service}.{method}] {original}", **kwargs)
        self.service = service
        self.method = method
        self.cause = cause


class ValidationError(ClinicPortalError):
    """Data validation errors."""

    pass


class ExportError(ClinicPortalError):
    """Report export errors."""

    pass
