"""Core reconciliation logic package."""

from .sync_engine import ReconciliationEngine, SyncResult, SyncEngineError, DEFAULT_CHUNK_SIZE

__all__ = [
    "ReconciliationEngine",
    "SyncResult",
    "SyncEngineError",
    "DEFAULT_CHUNK_SIZE"
]
