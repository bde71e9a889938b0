"""
Exception handling module

This module defines the custom exception classes used by the resync pipeline.
Per-record exceptions carry the identifier of the record they belong to so that
the outcome stream can report them without losing context.
"""

from typing import Optional, Dict, Any
from core.constants.errors import ErrorCode


class BaseException(Exception):
    """Base exception class

    Base class for all custom exceptions, providing a unified exception handling interface.
    Includes error code, error message, and optional details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        """
        Initialize base exception

        Args:
            code: Error code
            message: Error message
            details: Optional dictionary of detailed information
            original_exception: Original exception object
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.original_exception = original_exception

    def __str__(self) -> str:
        """Return string representation of the exception"""
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation of the exception"""
        details_str = f", details={self.details}" if self.details else ""
        original_str = (
            f", original={self.original_exception}" if self.original_exception else ""
        )
        return f"{self.__class__.__name__}(code='{self.code}', message='{self.message}'{details_str}{original_str})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for easy serialization"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class ConfigurationException(BaseException):
    """Configuration exception

    Raised when sync or connection configuration is incorrect or missing.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if config_key:
            message = f"Configuration error for '{config_key}': {message}"

        super().__init__(
            code=ErrorCode.CONFIGURATION_ERROR.value, message=message, details=details
        )


class SyncException(BaseException):
    """Base class for resync pipeline exceptions

    `record_id` is the primary key of the record being processed, or None when
    the failure is not tied to a single record (or the record has no `_id`).
    """

    def __init__(
        self,
        code: str,
        message: str,
        record_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(code, message, details, original_exception)
        self.record_id = record_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["record_id"] = self.record_id
        return data


class ValidationException(SyncException):
    """Record validation exception

    Raised when a record cannot be converted into a search document,
    e.g. because a required indexed field is missing.
    """

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        if field:
            message = f"Field '{field}': {message}"

        super().__init__(
            code=ErrorCode.VALIDATION_ERROR.value,
            message=message,
            record_id=record_id,
            details=details,
            original_exception=original_exception,
        )
        self.field = field


class IndexingException(SyncException):
    """Search engine indexing exception

    Raised when Elasticsearch rejects a document or cannot be reached.
    `retryable` tells the retry policy whether another attempt may succeed.
    """

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        retryable: bool = False,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        if status_code:
            message = f"Elasticsearch error (HTTP {status_code}): {message}"
        else:
            message = f"Elasticsearch error: {message}"

        super().__init__(
            code=ErrorCode.INDEXING_ERROR.value,
            message=message,
            record_id=record_id,
            details=details,
            original_exception=original_exception,
        )
        self.retryable = retryable
        self.status_code = status_code


class PersistenceException(SyncException):
    """Write-back exception

    Raised when a record was indexed but saving it back to MongoDB failed.
    The search engine already holds the document, hence `indexed`.
    """

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        indexed: bool = True,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            code=ErrorCode.PERSISTENCE_ERROR.value,
            message=f"Database save failed: {message}",
            record_id=record_id,
            details=details,
            original_exception=original_exception,
        )
        self.indexed = indexed


class SyncCancelledException(SyncException):
    """Raised for a record whose processing was aborted by a cancel request"""

    def __init__(self, record_id: Optional[str] = None):
        super().__init__(
            code=ErrorCode.SYNC_CANCELLED.value,
            message="Record processing aborted by cancellation",
            record_id=record_id,
        )


class SourceException(SyncException):
    """Record source exception

    Raised when the MongoDB cursor fails. Fatal for the whole run.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
    ):
        super().__init__(
            code=ErrorCode.SOURCE_ERROR.value,
            message=f"Record source failed: {message}",
            details=details,
            original_exception=original_exception,
        )
