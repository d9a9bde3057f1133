"""
sheetsync: Attribute Synchronization Engine for Interactive Character Sheets

Keeps derived sheet values (roll formulas, localized labels, query
prompts) in step with user edits against an asynchronous, batched host
store, persisting only the fields that actually changed:
- Group resolution: concurrent section listing joined on a barrier
- Sync sessions: one batched read, in-memory get/set, row views
- Diff finalize: re-read and a single silent write of changed keys
- Trigger coordination: change, open, throttled button and drop events

License: MIT
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from sheetsync.core.types import (
    Result,
    Ok,
    Err,
    RowKey,
    SectionSpec,
)
from sheetsync.core.errors import (
    SheetSyncError,
    StorageError,
    SyncError,
    SectionWriteError,
    SessionClosedError,
    DuplicateRowError,
    DropImportError,
)
from sheetsync.core.config import SheetSyncConfig, SessionConfig, TriggerConfig

from sheetsync.storage import (
    HostStore,
    InMemoryHostStore,
    TriggerEvent,
    create_host_store,
)

from sheetsync.session import (
    AttributeView,
    RowCollection,
    RowHandle,
    SyncSession,
    WriteReport,
    open_session,
    sync_attrs,
)

from sheetsync.triggers import Throttle, TriggerCoordinator

from sheetsync.sheet import SheetSchema, Translator, register_sheet_workers

__all__ = [
    # Version
    "__version__",
    # Core
    "Result",
    "Ok",
    "Err",
    "RowKey",
    "SectionSpec",
    # Errors
    "SheetSyncError",
    "StorageError",
    "SyncError",
    "SectionWriteError",
    "SessionClosedError",
    "DuplicateRowError",
    "DropImportError",
    # Config
    "SheetSyncConfig",
    "SessionConfig",
    "TriggerConfig",
    # Storage
    "HostStore",
    "InMemoryHostStore",
    "TriggerEvent",
    "create_host_store",
    # Session
    "AttributeView",
    "RowCollection",
    "RowHandle",
    "SyncSession",
    "WriteReport",
    "open_session",
    "sync_attrs",
    # Triggers
    "Throttle",
    "TriggerCoordinator",
    # Sheet
    "SheetSchema",
    "Translator",
    "register_sheet_workers",
]
