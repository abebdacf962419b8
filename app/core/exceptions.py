"""
Custom exceptions for the Job Dispatch Service.

Broker, listener and persistence failures are not wrapped here: they
propagate as raised by kombu and SQLAlchemy. OAuth2 protocol errors are
Authlib's own and rendered by the application's Authlib error handler.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class JobDispatchError(Exception):
    """Base exception for all job dispatch related errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class JobNotFoundError(JobDispatchError):
    """Raised when a requested schedule job cannot be found."""

    def __init__(self, job_id: int, message: Optional[str] = None):
        message = message or f"Job with ID '{job_id}' not found"
        super().__init__(
            message,
            error_code="JOB_NOT_FOUND",
            details={"job_id": job_id}
        )
        self.job_id = job_id


class JobConflictError(JobDispatchError):
    """Raised when a schedule job with the same ID already exists."""

    def __init__(self, job_id: int):
        super().__init__(
            f"Job with ID '{job_id}' already exists",
            error_code="JOB_CONFLICT",
            details={"job_id": job_id}
        )
        self.job_id = job_id


# Exception mapping for HTTP status codes
EXCEPTION_HTTP_STATUS_MAP = {
    JobNotFoundError: 404,
    JobConflictError: 409,
    JobDispatchError: 500,  # Default fallback
}


def http_status_for(exc: JobDispatchError) -> int:
    """Resolve the HTTP status for an exception, walking its MRO."""
    for cls in type(exc).__mro__:
        if cls in EXCEPTION_HTTP_STATUS_MAP:
            return EXCEPTION_HTTP_STATUS_MAP[cls]
    return 500
