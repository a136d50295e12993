"""Storage layer for the NoteTree server."""

from notetree.storage.locks import SubtreeLockManager
from notetree.storage.record_store import RecordStore, StoreTransaction

__all__ = ["RecordStore", "StoreTransaction", "SubtreeLockManager"]
