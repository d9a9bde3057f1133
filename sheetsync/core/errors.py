"""
Error Hierarchy for the Attribute Synchronization Engine

Design Principles:
- Host I/O failures travel as Err values (see core.types.Result)
- Programming errors (misuse of the session API) are raised immediately
- Never swallow errors; a failed session issues no write
- Carry context for debugging

Each error type includes:
- Unique error code for programmatic handling
- Human-readable message for logging
- Optional cause for root cause analysis
- Timestamp for correlating with log records

Usage:
    result = await SyncSession.open(host, fields=["x"])
    match result:
        case Ok(session):
            ...
        case Err(SyncError() as error):
            logger.error(str(error))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from sheetsync.core.types import Timestamp


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(Enum):
    """
    Unique error codes for programmatic error handling.

    Codes are grouped by subsystem:
    - 1xxx: Host storage errors
    - 2xxx: Session errors
    - 3xxx: Programming errors
    - 4xxx: Import errors
    """

    # Host storage errors (1xxx)
    STORAGE_READ_FAILED = 1001
    STORAGE_WRITE_FAILED = 1002
    STORAGE_LIST_FAILED = 1003
    STORAGE_NOT_CONNECTED = 1004

    # Session errors (2xxx)
    SESSION_HOST_FAILURE = 2001
    SESSION_ID_EXHAUSTED = 2002

    # Programming errors (3xxx)
    PROGRAMMING_SECTION_WRITE = 3001
    PROGRAMMING_SESSION_CLOSED = 3002
    PROGRAMMING_DUPLICATE_ROW = 3003

    # Import errors (4xxx)
    IMPORT_MALFORMED_DROP = 4001


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass
class SheetSyncError(Exception):
    """
    Base class for all engine errors.

    Provides common infrastructure for error handling:
    - Unique error ID for log correlation
    - Error code for programmatic handling
    - Timestamp
    - Cause chain for root cause analysis
    """

    code: ErrorCode
    message: str
    error_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: Timestamp = field(default_factory=Timestamp.now)
    cause: Optional[Exception] = None
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "code": self.code.name,
            "code_value": self.code.value,
            "message": self.message,
            "timestamp_nanos": self.timestamp.nanos,
            "context": self.context,
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (id={self.error_id[:8]})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.name}, "
            f"message={self.message!r}, "
            f"error_id={self.error_id!r})"
        )


# =============================================================================
# HOST STORAGE ERRORS
# =============================================================================
@dataclass
class StorageError(SheetSyncError):
    """Errors reported by a host store backend."""

    @classmethod
    def read_failed(
        cls,
        keys: list[str],
        cause: Optional[Exception] = None,
    ) -> StorageError:
        """Batched read failed."""
        return cls(
            code=ErrorCode.STORAGE_READ_FAILED,
            message=f"Failed to read {len(keys)} field(s)",
            cause=cause,
            context={"keys": keys[:20]},
        )

    @classmethod
    def write_failed(
        cls,
        keys: list[str],
        cause: Optional[Exception] = None,
    ) -> StorageError:
        """Batched write failed."""
        return cls(
            code=ErrorCode.STORAGE_WRITE_FAILED,
            message=f"Failed to write {len(keys)} field(s)",
            cause=cause,
            context={"keys": keys[:20]},
        )

    @classmethod
    def list_failed(
        cls,
        section: str,
        cause: Optional[Exception] = None,
    ) -> StorageError:
        """Listing the row ids of a section failed."""
        return cls(
            code=ErrorCode.STORAGE_LIST_FAILED,
            message=f"Failed to list rows of section '{section}'",
            cause=cause,
            context={"section": section},
        )

    @classmethod
    def not_connected(cls, backend: str) -> StorageError:
        """Backend used before connect()."""
        return cls(
            code=ErrorCode.STORAGE_NOT_CONNECTED,
            message=f"{backend} is not connected",
            context={"backend": backend},
        )

    @classmethod
    def connection_failed(
        cls,
        backend: str,
        cause: Exception,
    ) -> StorageError:
        """Backend could not be reached while connecting."""
        return cls(
            code=ErrorCode.STORAGE_NOT_CONNECTED,
            message=f"{backend} connection failed: {cause}",
            cause=cause,
            context={"backend": backend},
        )


# =============================================================================
# SESSION ERRORS
# =============================================================================
@dataclass
class SyncError(SheetSyncError):
    """
    Errors that abort a synchronization session.

    A session that ends in SyncError has issued no write.
    """

    @classmethod
    def host_failure(
        cls,
        stage: str,
        cause: StorageError,
    ) -> SyncError:
        """A host call failed during the given session stage."""
        return cls(
            code=ErrorCode.SESSION_HOST_FAILURE,
            message=f"Host failure during {stage}: {cause.message}",
            cause=cause,
            context={"stage": stage, "host_error": cause.code.name},
        )

    @classmethod
    def id_generation_exhausted(
        cls,
        section: str,
        attempts: int,
    ) -> SyncError:
        """Host id generator kept returning already-seen ids."""
        return cls(
            code=ErrorCode.SESSION_ID_EXHAUSTED,
            message=f"No unused row id for '{section}' after {attempts} attempts",
            context={"section": section, "attempts": attempts},
        )


# =============================================================================
# PROGRAMMING ERRORS
# =============================================================================
@dataclass
class SectionWriteError(SheetSyncError):
    """A section name was assigned as if it were a scalar field."""

    @classmethod
    def for_section(cls, section: str) -> SectionWriteError:
        return cls(
            code=ErrorCode.PROGRAMMING_SECTION_WRITE,
            message=f"'{section}' is a repeating section and cannot be assigned",
            context={"section": section},
        )


@dataclass
class SessionClosedError(SheetSyncError):
    """The session was used after it was finalized."""

    @classmethod
    def after_finalize(cls, operation: str) -> SessionClosedError:
        return cls(
            code=ErrorCode.PROGRAMMING_SESSION_CLOSED,
            message=f"Cannot {operation}: session already finalized",
            context={"operation": operation},
        )


@dataclass
class DuplicateRowError(SheetSyncError):
    """An explicit row id was appended to a section that already has it."""

    @classmethod
    def for_row(cls, section: str, row_id: str) -> DuplicateRowError:
        return cls(
            code=ErrorCode.PROGRAMMING_DUPLICATE_ROW,
            message=f"Row '{row_id}' already exists in section '{section}'",
            context={"section": section, "row_id": row_id},
        )


# =============================================================================
# IMPORT ERRORS
# =============================================================================
@dataclass
class DropImportError(SheetSyncError):
    """Structured data dropped onto the sheet could not be parsed."""

    @classmethod
    def malformed(
        cls,
        reason: str,
        payload: str,
        cause: Optional[Exception] = None,
    ) -> DropImportError:
        return cls(
            code=ErrorCode.IMPORT_MALFORMED_DROP,
            message=f"Malformed drop payload: {reason}",
            cause=cause,
            context={"reason": reason, "payload": payload[:100]},
        )
