"""Error Handlers — global exception handlers for the trust-engine API.

Invariants:
    - TrustGateError -> structured JSON with error code, message, severity
    - RequestValidationError -> field-level error details
    - Exception (catch-all) -> never leaks internal details

Design Decisions:
    - Recoverable domain errors (denied switch, invalid transition) log at WARNING,
      infrastructure errors at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from trustgate.core.errors import ErrorSeverity, TrustGateError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_trustgate_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_trustgate_error_handler(app: FastAPI) -> None:

    @app.exception_handler(TrustGateError)
    async def trustgate_error_handler(request: Request, exc: TrustGateError):
        """Handle all trust-engine domain/infrastructure errors."""
        log = logger.warning if exc.recoverable else logger.error
        log(
            "TrustGateError: %s", exc.message,
            extra={
                "error_code": exc.code, "path": request.url.path,
                "identity_id": exc.context.identity_id,
                "escrow_id": exc.context.escrow_id,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            "Validation error on %s: %s", request.url.path, exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            "Unhandled exception on %s: %s", request.url.path, exc,
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
