"""Clients for the live API server and the historical snapshot store."""

from .live_client import LiveResponse, LiveStateClient
from .snapshot_store import (
    BigQuerySnapshotStore,
    SnapshotStore,
    SqliteSnapshotStore,
    create_snapshot_store,
)

__all__ = [
    "LiveResponse",
    "LiveStateClient",
    "SnapshotStore",
    "BigQuerySnapshotStore",
    "SqliteSnapshotStore",
    "create_snapshot_store",
]
