"""
Session module: one trigger invocation's read, mutate and diffed write.

Components:
- CompletionBarrier: joins concurrent section listings
- GroupResolver: expands declared fields and sections into read keys
- SyncSession / AttributeView: in-memory get/set with write-through
- RowCollection / RowHandle: append-only row views over the row arena
- DiffFinalizer: re-read, diff and single silent write
"""

from sheetsync.session.barrier import CompletionBarrier
from sheetsync.session.resolver import GroupResolver, ResolvedKeys, merge_sections
from sheetsync.session.rows import RowCollection, RowHandle
from sheetsync.session.finalizer import DiffFinalizer, WriteReport, compute_write_set
from sheetsync.session.session import (
    AttributeView,
    SyncSession,
    open_session,
    sync_attrs,
)

__all__ = [
    "CompletionBarrier",
    "GroupResolver",
    "ResolvedKeys",
    "merge_sections",
    "RowCollection",
    "RowHandle",
    "DiffFinalizer",
    "WriteReport",
    "compute_write_set",
    "AttributeView",
    "SyncSession",
    "open_session",
    "sync_attrs",
]
