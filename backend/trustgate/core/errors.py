"""Error Hierarchy — typed, categorized exceptions for every trust-engine failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - A failed operation leaves the session / transaction it was given untouched
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with TrustGateError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - StaleObfuscationCacheError is an internal signal: raised and caught inside
      core/geo_privacy, never crosses the core boundary
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
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    AUTHENTICATION = "authentication"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    identity_id: str | None = None
    escrow_id: str | None = None
    resource_id: str | None = None
    active_role: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class TrustGateError(Exception):
    """Base exception for all trust-engine errors."""

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

    @property
    def recoverable(self) -> bool:
        return self.severity is not ErrorSeverity.CRITICAL

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "recoverable": self.recoverable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "identity_id": self.context.identity_id,
                    "escrow_id": self.context.escrow_id,
                    "resource_id": self.context.resource_id,
                    "active_role": self.context.active_role,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidRoleSwitchError(TrustGateError):
    """Target persona is not in the session's unlocked set."""
    def __init__(
        self, target: str, unlocked: list[str], context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Persona '{target}' is not unlocked. Unlocked: {', '.join(unlocked) or 'none'}.",
            "INVALID_ROLE_SWITCH", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.target = target
        self.unlocked = unlocked


class GuestSessionError(TrustGateError):
    """Operation requires an authenticated session."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot {operation} on a guest session. Sign in first.",
            "GUEST_SESSION", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )
        self.operation = operation


class InvalidEscrowTransitionError(TrustGateError):
    """Requested escrow transition is not in the transition table."""
    def __init__(
        self, current: str, event: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Escrow in status '{current}' cannot accept event '{event}'.",
            "INVALID_ESCROW_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.current = current
        self.event = event


class EscrowValidationError(TrustGateError):
    """Escrow amount or fee rate is not a valid integer quantity."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "ESCROW_VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class PayoutNotReleasedError(TrustGateError):
    """Payout split requested before the escrow reached a terminal status."""
    def __init__(self, status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Payout is only settled for released or refunded escrows (status: '{status}').",
            "PAYOUT_NOT_RELEASED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.status = status


class LocationUnavailableError(TrustGateError):
    """Resource has no true coordinate — nothing is revealed or fabricated."""
    def __init__(self, resource_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.resource_id = resource_id
        super().__init__(
            f"Location unavailable for resource '{resource_id}'.",
            "LOCATION_UNAVAILABLE", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, ctx, 404,
        )


class StaleObfuscationCacheError(TrustGateError):
    """Internal signal: an obfuscation cache entry outlived its TTL."""
    def __init__(self, viewer_id: str, resource_id: str):
        super().__init__(
            f"Obfuscation cache entry for ({viewer_id}, {resource_id}) expired.",
            "STALE_OBFUSCATION_CACHE", ErrorCategory.INTERNAL,
            ErrorSeverity.INFO, ErrorContext(identity_id=viewer_id, resource_id=resource_id),
            500,
        )
        self.viewer_id = viewer_id
        self.resource_id = resource_id


class ResourceNotFoundError(TrustGateError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(TrustGateError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
