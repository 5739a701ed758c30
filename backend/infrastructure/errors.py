"""
Global Error Handling for Apex Fleet
Structured exceptions for the cycle path and the HTTP surface

Features:
- Custom exception classes
- Automatic error logging
- Structured JSON error responses
- Error tracking and aggregation
"""

import logging
import traceback
from datetime import datetime
from typing import Dict, Optional
from enum import Enum

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger("ErrorHandler")


# ============================================
# ERROR CODES
# ============================================

class ErrorCode(str, Enum):
    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"

    # Fleet errors
    ADAPTER_FAILED = "ADAPTER_FAILED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"


# ============================================
# CUSTOM EXCEPTIONS
# ============================================

class FleetError(Exception):
    """Base exception for Apex Fleet"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Dict = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat()
            }
        }


class NotFoundError(FleetError):
    """Resource not found"""
    def __init__(self, resource: str, identifier: str = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message, ErrorCode.NOT_FOUND, 404)


class ConfigurationError(FleetError):
    """Broken startup configuration. Fatal: initialization must abort."""
    def __init__(self, message: str, setting: str = None):
        details = {}
        if setting:
            details["setting"] = setting
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, 500, details)


class AdapterError(FleetError):
    """Single strategy invocation failed"""
    def __init__(self, strategy_id: int, message: str, timed_out: bool = False):
        super().__init__(
            message,
            ErrorCode.TIMEOUT_ERROR if timed_out else ErrorCode.ADAPTER_FAILED,
            502,
            {"strategy_id": strategy_id}
        )
        self.strategy_id = strategy_id
        self.timed_out = timed_out


class TransportError(FleetError):
    """Vault call failed: reinvestment submission, confirmation or balance read"""
    def __init__(self, message: str, tx_hash: str = None, original_error: Exception = None):
        details = {}
        if tx_hash:
            details["tx_hash"] = tx_hash
        if original_error:
            details["original_error"] = str(original_error)
        super().__init__(message, ErrorCode.TRANSACTION_FAILED, 502, details)
        self.tx_hash = tx_hash


# ============================================
# ERROR TRACKING
# ============================================

class ErrorTracker:
    """Tracks and aggregates errors for monitoring"""

    def __init__(self, max_errors: int = 1000):
        self.errors: list = []
        self.max_errors = max_errors
        self.error_counts: Dict[str, int] = {}

    def track(self, error: Exception, source: Optional[str] = None):
        """Track an error"""
        error_type = type(error).__name__

        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

        error_info = {
            "type": error_type,
            "message": str(error),
            "source": source,
            "timestamp": datetime.now().isoformat(),
            "traceback": traceback.format_exc() if not isinstance(error, FleetError) else None
        }

        if isinstance(error, FleetError):
            error_info["code"] = error.code.value
            error_info["details"] = error.details

        self.errors.append(error_info)

        # Trim if too many
        if len(self.errors) > self.max_errors:
            self.errors = self.errors[-self.max_errors:]

        if not isinstance(error, FleetError) or error.status_code >= 500:
            logger.error(f"Error tracked: {error_type} - {str(error)[:200]}")

    def get_stats(self) -> Dict:
        """Get error statistics"""
        return {
            "total_errors": len(self.errors),
            "error_counts": self.error_counts,
            "recent_errors": self.errors[-10:],
            "timestamp": datetime.now().isoformat()
        }


# Global error tracker
error_tracker = ErrorTracker()


# ============================================
# FASTAPI EXCEPTION HANDLERS
# ============================================

async def fleet_exception_handler(request: Request, exc: FleetError) -> JSONResponse:
    """Handle FleetError exceptions"""
    error_tracker.track(exc, str(request.url.path))

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPExceptions"""
    error_tracker.track(exc, str(request.url.path))

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR.value,
                "message": exc.detail,
                "timestamp": datetime.now().isoformat()
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    error_tracker.track(exc, str(request.url.path))

    logger.error(f"Unhandled exception: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
                "timestamp": datetime.now().isoformat()
            }
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with FastAPI app"""
    app.add_exception_handler(FleetError, fleet_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
