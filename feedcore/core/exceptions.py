"""
Custom exception hierarchy for centralized error handling.
All exceptions map to appropriate HTTP status codes.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppException):
    """Invalid input data."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": identifier},
        )


class CacheError(AppException):
    """Blob cache read or write failed."""

    def __init__(self, operation: str, reason: str = "Unknown") -> None:
        super().__init__(
            message=f"Cache {operation} failed: {reason}",
            status_code=500,
            error_code="CACHE_ERROR",
            details={"operation": operation, "reason": reason},
        )


class KeyPoolEmptyError(AppException):
    """No narration credentials are configured."""

    def __init__(self) -> None:
        super().__init__(
            message="Narration key pool is empty",
            status_code=503,
            error_code="KEY_POOL_EMPTY",
        )


class KeyRejectedError(AppException):
    """Provider refused the credential (unauthorized or quota exhausted)."""

    def __init__(self, status: int) -> None:
        super().__init__(
            message=f"Narration key rejected with status {status}",
            status_code=503,
            error_code="KEY_REJECTED",
            details={"provider_status": status},
        )
        self.provider_status = status


class NarrationProviderError(AppException):
    """Provider failed for a reason unrelated to the credential."""

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(
            message=f"Narration provider error: {status} {reason}".rstrip(),
            status_code=502,
            error_code="NARRATION_PROVIDER_ERROR",
            details={"provider_status": status},
        )
        self.provider_status = status
