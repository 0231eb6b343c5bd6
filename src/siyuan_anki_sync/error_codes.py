"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    ANK - Anki errors (connection, schema, batch operations)
    SIY - SiYuan errors (connection, API envelope)
    DAT - Record data errors
    CFG - Configuration errors
    SYN - Sync run errors

Usage:
    from siyuan_anki_sync.error_codes import ErrorCode

    logger.error(
        "anki_connection_failed",
        error_code=ErrorCode.ANK_CONNECTION_FAILED.value,
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling."""

    # =========================================================================
    # Anki Errors (ANK-xxx-xxx)
    # =========================================================================
    ANK_CONNECTION_FAILED = "ANK-CONN-001"
    """AnkiConnect is unreachable or timed out."""

    ANK_API_ERROR = "ANK-API-001"
    """AnkiConnect returned a top-level error."""

    ANK_MODEL_CREATE_FAILED = "ANK-MODEL-001"
    """The flashcard note type could not be created."""

    ANK_CREATE_FAILED = "ANK-CREATE-001"
    """Note creation failed for one or more items."""

    ANK_PARTIAL_BATCH = "ANK-BATCH-001"
    """A batched request reported per-item failures."""

    # =========================================================================
    # SiYuan Errors (SIY-xxx-xxx)
    # =========================================================================
    SIY_CONNECTION_FAILED = "SIY-CONN-001"
    """SiYuan kernel is unreachable or timed out."""

    SIY_API_ERROR = "SIY-API-001"
    """SiYuan returned a non-zero response code."""

    # =========================================================================
    # Data Errors (DAT-xxx-xxx)
    # =========================================================================
    DAT_MISSING_ID = "DAT-ID-001"
    """A record has no identifier."""

    DAT_INVALID_RECORD = "DAT-REC-001"
    """A record failed validation."""

    # =========================================================================
    # Configuration Errors (CFG-xxx-xxx)
    # =========================================================================
    CFG_INVALID = "CFG-INVALID-001"
    """Configuration validation failed."""

    CFG_PARSE_FAILED = "CFG-PARSE-001"
    """Configuration file could not be parsed."""

    # =========================================================================
    # Sync Errors (SYN-xxx-xxx)
    # =========================================================================
    SYN_UNEXPECTED = "SYN-RUN-001"
    """A sync run stopped on an unexpected error."""
