"""Error Hierarchy - typed, categorized exceptions for all clansync failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - AuthError and StoreError carry a reason enum; adapters never leak library exceptions
    - to_response() produces the REST envelope; to_state() the SessionState failure record
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ClanSyncError base: FastAPI global handler catches all
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORE = "store"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


class AuthErrorReason(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    ACCOUNT_EXISTS = "account_exists"
    NETWORK = "network"
    UNKNOWN = "unknown"


class StoreErrorReason(str, Enum):
    WRITE_CONFLICT = "write_conflict"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context attached to an error for logs and responses."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity_id: str | None = None
    operation: str | None = None
    attempt: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class ClanSyncError(Exception):
    """Base exception for all clansync errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "identity_id": self.context.identity_id,
                    "operation": self.context.operation,
                },
            }
        }

    def to_state(self) -> "SessionError":
        """Failure record stored in SessionState by event-driven paths."""
        return SessionError(
            code=self.code, message=self.context.user_message or self.message,
        )


@dataclass(frozen=True)
class SessionError:
    """Terminal failure recorded into SessionState (no caller to raise to)."""
    code: str
    message: str


# --- Authentication Errors ----------------------------------------------------

class AuthError(ClanSyncError):
    """Identity service rejected or failed an explicit auth call."""

    def __init__(
        self,
        message: str,
        reason: AuthErrorReason = AuthErrorReason.UNKNOWN,
        code: str = "AUTH_ERROR",
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 400,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            severity, context, http_status,
        )
        self.reason = reason


class InvalidCredentialError(AuthError):
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid email or password",
            AuthErrorReason.INVALID_CREDENTIAL, "INVALID_CREDENTIAL",
            ErrorSeverity.WARNING, context, 401,
        )


class AccountExistsError(AuthError):
    """sign_up for an email that already has an identity."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "An account already exists for this email",
            AuthErrorReason.ACCOUNT_EXISTS, "ACCOUNT_EXISTS",
            ErrorSeverity.WARNING, context, 409,
        )


class AuthNetworkError(AuthError):
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Identity service unreachable: {message}",
            AuthErrorReason.NETWORK, "AUTH_NETWORK_ERROR",
            ErrorSeverity.CRITICAL, context, 503,
        )


# --- Store Errors -------------------------------------------------------------

_STORE_HTTP_STATUS = {
    StoreErrorReason.WRITE_CONFLICT: 409,
    StoreErrorReason.NETWORK: 503,
    StoreErrorReason.NOT_FOUND: 404,
    StoreErrorReason.UNKNOWN: 503,
}


class StoreError(ClanSyncError):
    """Profile store operation failed."""

    def __init__(
        self,
        message: str,
        operation: str,
        reason: StoreErrorReason = StoreErrorReason.UNKNOWN,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Profile store {operation} failed: {message}",
            f"STORE_{reason.name}", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL if reason is StoreErrorReason.NETWORK
            else ErrorSeverity.ERROR,
            ctx, _STORE_HTTP_STATUS[reason],
        )
        self.operation = operation
        self.reason = reason


# --- Reconciliation Errors ----------------------------------------------------

class ReconciliationTimeoutError(ClanSyncError):
    """Profile row never became visible within the retry budget."""
    def __init__(
        self, identity_id: str, attempts: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.identity_id = identity_id
        ctx.attempt = attempts
        super().__init__(
            f"Profile not available after {attempts} attempts",
            "RECONCILIATION_TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.ERROR, ctx, 504,
        )
        self.attempts = attempts


class NotSettledError(ClanSyncError):
    """Operation needs a settled CurrentUser."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"No settled user for {operation}",
            "NOT_SETTLED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )


class InvalidProfileFieldError(ClanSyncError):
    def __init__(self, field_name: str, context: ErrorContext | None = None):
        super().__init__(
            f"Profile field '{field_name}' cannot be updated",
            "INVALID_PROFILE_FIELD", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field_name


class SessionUnavailableError(ClanSyncError):
    """Session runtime not started (identity service not configured)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Session service is not available",
            "SESSION_UNAVAILABLE", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 503,
        )
