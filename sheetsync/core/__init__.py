"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the engine:
- Result/Either monads for host I/O without exceptions
- Field keys, section declarations and row records
- Error hierarchy with programming-error and host-error branches
- Configuration management with validation
"""

from sheetsync.core.types import (
    Result,
    Ok,
    Err,
    Timestamp,
    RowKey,
    SectionSpec,
    Row,
    coerce_value,
    normalize_section,
)
from sheetsync.core.errors import (
    ErrorCode,
    SheetSyncError,
    StorageError,
    SyncError,
    SectionWriteError,
    SessionClosedError,
    DuplicateRowError,
    DropImportError,
)
from sheetsync.core.config import (
    SheetSyncConfig,
    SessionConfig,
    TriggerConfig,
    HostConfig,
    RedisHostConfig,
    ObservabilityConfig,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Timestamp",
    "RowKey",
    "SectionSpec",
    "Row",
    "coerce_value",
    "normalize_section",
    "ErrorCode",
    "SheetSyncError",
    "StorageError",
    "SyncError",
    "SectionWriteError",
    "SessionClosedError",
    "DuplicateRowError",
    "DropImportError",
    "SheetSyncConfig",
    "SessionConfig",
    "TriggerConfig",
    "HostConfig",
    "RedisHostConfig",
    "ObservabilityConfig",
]
