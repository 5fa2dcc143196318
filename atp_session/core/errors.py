"""Error Hierarchy - typed, categorized exceptions for every session failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Network errors are recoverable; rejections and bad configuration are not
    - to_dict() never includes bearer tokens
    - is_network_error() is the single classifier the reconciler relies on

Design Decisions:
    - Single hierarchy with SessionError base: callers catch one type at the boundary
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - AuthenticationError subclasses XrpcRequestError: an auth rejection is still a
      server answer, never a connectivity problem
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    CONFIGURATION = "configuration"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    service: str | None = None
    nsid: str | None = None
    did: str | None = None
    status_code: int | None = None
    debug_info: dict[str, Any] | None = None


class SessionError(Exception):
    """Base exception for all session core errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    @property
    def recoverable(self) -> bool:
        return self.severity in (ErrorSeverity.INFO, ErrorSeverity.WARNING)

    def to_dict(self) -> dict:
        """Convert to a flat, log-friendly error envelope."""
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "service": self.context.service,
                "nsid": self.context.nsid,
                "did": self.context.did,
                "status_code": self.context.status_code,
            },
        }


# --- Configuration Errors ----------------------------------------------------------

class InvalidServiceUrlError(SessionError):
    """Service endpoint is not an absolute http(s) URL."""
    def __init__(self, url: str, reason: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.service = url
        super().__init__(
            f"Invalid service URL '{url}': {reason}",
            "INVALID_SERVICE_URL", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.url = url


# --- Transport Errors --------------------------------------------------------------

class NetworkError(SessionError):
    """Server unreachable: DNS failure, refused connection, timeout, broken stream."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Network failure: {message}",
            "NETWORK_ERROR", ErrorCategory.NETWORK,
            ErrorSeverity.WARNING, context,
        )


# --- Server Rejections -------------------------------------------------------------

class XrpcRequestError(SessionError):
    """Server answered an XRPC call with an error status."""
    def __init__(
        self,
        message: str,
        status_code: int | None,
        error_name: str | None = None,
        context: ErrorContext | None = None,
        code: str = "XRPC_REQUEST_FAILED",
        category: ErrorCategory = ErrorCategory.EXTERNAL_API,
    ):
        ctx = context or ErrorContext()
        ctx.status_code = status_code
        super().__init__(message, code, category, ErrorSeverity.ERROR, ctx)
        self.status_code = status_code
        self.error_name = error_name


class AuthenticationError(XrpcRequestError):
    """Server rejected the presented credentials (expired, revoked, unknown)."""
    def __init__(
        self,
        message: str,
        status_code: int = 401,
        error_name: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, status_code, error_name, context,
            code="AUTHENTICATION_FAILED",
            category=ErrorCategory.AUTHENTICATION,
        )

    @property
    def token_expired(self) -> bool:
        return self.error_name == "ExpiredToken"


class MissingCredentialsError(SessionError):
    """Session-creating call succeeded but the response carried no token pair."""
    def __init__(self, nsid: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.nsid = nsid
        super().__init__(
            f"{nsid} response did not include accessJwt and refreshJwt",
            "MISSING_CREDENTIALS", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, ctx,
        )


def is_network_error(exc: BaseException) -> bool:
    """True only for transport-level failures where credentials may still be valid."""
    return isinstance(exc, NetworkError)
