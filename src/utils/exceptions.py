"""
Custom exceptions for the application
"""
from typing import List, Optional


class AnalysisServiceException(Exception):
    """Base exception for the analysis service"""

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ProvidersUnavailableError(AnalysisServiceException):
    """Raised when no provider of a required capability is configured"""

    def __init__(self, capability: str, message: str = None):
        if message is None:
            message = f"No {capability} providers are configured. Please try again later."
        super().__init__(message, status_code=503, details={"capability": capability})


class AllProvidersFailedError(AnalysisServiceException):
    """Raised when every provider of a required capability failed"""

    def __init__(self, capability: str, failures: Optional[dict] = None):
        message = f"All {capability} providers failed. Please try again later."
        super().__init__(
            message,
            status_code=502,
            details={"capability": capability, "failures": failures or {}}
        )


class AssessmentValidationError(AnalysisServiceException):
    """Raised when a synthesized assessment is incomplete"""

    def __init__(self, missing_fields: List[str], subject: Optional[str] = None):
        self.missing_fields = list(missing_fields)
        target = f" for {subject}" if subject else ""
        message = (
            f"The generated analysis{target} is incomplete "
            f"({len(self.missing_fields)} required answers missing). "
            "Please regenerate the analysis."
        )
        details = {"missing_fields": self.missing_fields}
        if subject:
            details["subject"] = subject
        super().__init__(message, status_code=500, details=details)


class MediaProcessingError(AnalysisServiceException):
    """Raised when a transcoding step fails or yields unusable media"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class InvalidMediaError(AnalysisServiceException):
    """Raised when uploaded media cannot be decoded"""

    def __init__(self, message: str = "Invalid or corrupted media"):
        super().__init__(message, status_code=400)


class InvalidDocumentError(AnalysisServiceException):
    """Raised when a document cannot be read"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)


class FileSizeExceededError(AnalysisServiceException):
    """Raised when uploaded media exceeds size limit"""

    def __init__(self, max_size: int):
        message = f"File size exceeds maximum allowed size of {max_size / (1024*1024):.1f}MB"
        super().__init__(message, status_code=413)


class RecordNotFoundError(AnalysisServiceException):
    """Raised when a stored record does not exist"""

    def __init__(self, message: str = "Record not found"):
        super().__init__(message, status_code=404)


class StorageError(AnalysisServiceException):
    """Raised when storage operation fails"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=500, details=details)


class RequestTimeoutError(AnalysisServiceException):
    """Raised when a request exceeds its overall deadline"""

    def __init__(self, deadline: float):
        message = f"Analysis did not complete within {deadline:.0f} seconds"
        super().__init__(message, status_code=504, details={"deadline_seconds": deadline})


class RateLimitExceededError(AnalysisServiceException):
    """Raised when rate limit is exceeded"""

    def __init__(self, retry_after: int = None):
        message = "Rate limit exceeded"
        if retry_after:
            message += f". Retry after {retry_after} seconds"
        super().__init__(message, status_code=429, details={"retry_after": retry_after})
