"""Centralized exception hierarchy for siyuan-anki-sync.

All custom exceptions inherit from SiyuanAnkiSyncError, so a single except
clause is enough to catch every sync-related failure.

Exception Hierarchy:
    SiyuanAnkiSyncError (base)
     ConfigurationError - Configuration loading/validation errors
     BackendError - Remote backend communication errors
        AnkiConnectError - AnkiConnect transport or API errors
        SiyuanApiError - SiYuan kernel API errors
     SchemaError - Anki note type missing and could not be created
     RecordDataError - Malformed or incomplete records
     SyncError - Synchronization pipeline errors

Usage Examples:
    try:
        await orchestrator.run()
    except SiyuanAnkiSyncError as e:
        logger.error("sync_failed", **e.to_dict())

    raise AnkiConnectError(
        "Cannot connect to AnkiConnect",
        suggestion="Ensure Anki is running",
        error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
    )
"""

from typing import Any


class SiyuanAnkiSyncError(Exception):
    """Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (e.g., action names, URLs)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            suggestion: Optional suggestion for resolving the error
            error_code: Structured error code (e.g., "ANK-CONN-001")
            context: Additional context for debugging
        """
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with error code and suggestion if available."""
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


# Configuration Errors


class ConfigurationError(SiyuanAnkiSyncError):
    """Configuration loading or validation errors.

    Raised when:
    - Config file is missing or malformed
    - Configuration values fail validation
    """


# Backend Errors


class BackendError(SiyuanAnkiSyncError):
    """Base class for errors talking to either remote backend.

    Covers connectivity failures (backend unreachable, timeouts) as well as
    error envelopes returned by the backend itself.
    """


class AnkiConnectError(BackendError):
    """AnkiConnect communication errors.

    Raised when:
    - Cannot connect to AnkiConnect
    - Anki is not running
    - AnkiConnect returns a top-level error
    """


class SiyuanApiError(BackendError):
    """SiYuan kernel API errors.

    Raised when:
    - The SiYuan kernel is unreachable
    - The response envelope carries a non-zero code
    """


# Schema / data errors


class SchemaError(SiyuanAnkiSyncError):
    """Anki note type is missing and could not be created."""


class RecordDataError(SiyuanAnkiSyncError):
    """Malformed record data.

    Raised when a fetched block or Anki card lacks the fields needed to build
    a flashcard record. Extractors catch it per record and skip the record.
    """


# Sync Errors


class SyncError(SiyuanAnkiSyncError):
    """Synchronization pipeline errors.

    The orchestrator wraps unexpected exceptions of a run in this type so the
    run ends in FAILED instead of propagating.
    """

