"""Custom exception classes"""

from typing import Any, Optional


class ScreenerException(Exception):
    """Base exception for the screening pipeline"""
    
    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UnsupportedFormatException(ScreenerException):
    """CV format could not be determined or is not supported"""


class CorruptDocumentException(ScreenerException):
    """CV bytes could not be parsed"""


class OracleUnavailableException(ScreenerException):
    """Scoring oracle could not be reached after all attempts"""
    
    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message, details={"attempts": attempts})
        self.attempts = attempts


class OracleMalformedResponseException(ScreenerException):
    """Scoring oracle answered with something that is not a valid scoring result"""
    
    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message, details={"raw_response": (raw_response or "")[:500]})
        self.raw_response = raw_response


class StorageUnavailableException(ScreenerException):
    """Blob store failure"""


class StoreUnavailableException(ScreenerException):
    """Relational store failure"""


class NotFoundException(ScreenerException):
    """Exception for resource not found errors"""


class QueueUnavailableException(ScreenerException):
    """Queue backing store cannot accept writes"""


class PipelineFailureException(ScreenerException):
    """Wraps any error surfaced from the analysis pipeline to the queue layer"""
    
    def __init__(self, step: str, cause: Exception):
        message = f"Pipeline failed at {step}: {cause}"
        super().__init__(message, details={"step": step, "error_type": type(cause).__name__})
        self.step = step
        self.cause = cause
