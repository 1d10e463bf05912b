from .store import CheckpointError, CheckpointStore, IngestionCheckpoint

__all__ = ["CheckpointError", "CheckpointStore", "IngestionCheckpoint"]
