"""
Error definition module

Contains unified definitions of the error codes raised by the resync pipeline
"""

from enum import Enum


class ErrorCode(Enum):
    """Error code enumeration

    Each per-record failure and each pipeline-fatal condition has its own code,
    so that consumers of the outcome stream can classify failures without
    inspecting exception types.
    """

    # General errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Per-record errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INDEXING_ERROR = "INDEXING_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    SYNC_CANCELLED = "SYNC_CANCELLED"

    # Pipeline-fatal errors
    SOURCE_ERROR = "SOURCE_ERROR"
