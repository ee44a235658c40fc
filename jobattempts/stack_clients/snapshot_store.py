"""
Snapshot store clients - read-only access to historical framework snapshots.

This module defines the protocol that any snapshot store must implement,
allowing the reconciler to be decoupled from the actual storage backend.
Rows are written by an external change-capture pipeline; nothing here
writes to the table.

Implementations:
- BigQuerySnapshotStore: snapshots table in BigQuery
- SqliteSnapshotStore: snapshots table in a local SQLite file
"""

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery

from jobattempts.config import JobAttemptsConfig
from jobattempts.errors import PermanentError, TransientError
from jobattempts.query_builder import build_snapshot_query, params_as_dict
from jobattempts.schemas import ObjectUID

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Protocol for historical snapshot lookups.

    Every lookup is scoped by object UID: two unrelated frameworks may share
    a name over time, but never a UID.
    """

    def query_snapshots(
        self,
        uid: ObjectUID,
        kind: str,
        attempt_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch captured object snapshots.

        Args:
            uid: Object UID (metadata.uid)
            kind: Object kind (e.g. "Framework")
            attempt_id: If given, only snapshots of this attempt index

        Returns:
            Raw object snapshots ordered ascending by attempt index

        Raises:
            TransientError: Store temporarily unavailable
            PermanentError: Store rejected the query (missing table, bad credentials)
        """
        ...

    def ping(self) -> None:
        """Round trip to the store. Raises on failure."""
        ...


# Retrying may succeed for these; every other GoogleAPIError is permanent
_BIGQUERY_TRANSIENT = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.TooManyRequests,
    google_exceptions.DeadlineExceeded,
)


def _bigquery_error(e: google_exceptions.GoogleAPIError) -> Exception:
    if isinstance(e, _BIGQUERY_TRANSIENT):
        return TransientError(f"snapshot store unavailable: {e}")
    return PermanentError(f"snapshot query rejected: {e}")


def _sqlite_error(e: sqlite3.Error) -> Exception:
    if isinstance(e, sqlite3.OperationalError) and "locked" in str(e):
        return TransientError(f"snapshot store busy: {e}")
    return PermanentError(f"snapshot query failed: {e}")


def _decode_snapshot(value: Any) -> dict[str, Any]:
    # JSON columns come back as dicts, STRING/TEXT columns as serialized JSON
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return dict(value)


class BigQuerySnapshotStore:
    """Snapshot store backed by a BigQuery table with a JSON ``record`` column."""

    def __init__(
        self,
        project: str,
        dataset: str,
        table: str = "fc_objectsnapshots",
        client: Optional[bigquery.Client] = None,
    ):
        self.table_ref = f"{project}.{dataset}.{table}"
        self._client = client or bigquery.Client(project=project)

    def query_snapshots(
        self,
        uid: ObjectUID,
        kind: str,
        attempt_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        sql, query_params = build_snapshot_query(
            self.table_ref, uid=uid, kind=kind, attempt_id=attempt_id, dialect="bigquery"
        )
        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter(p.name, p.type, p.value) for p in query_params
            ]
        )
        logger.debug(f"Querying snapshots in {self.table_ref} for uid={uid} attempt_id={attempt_id}")
        try:
            rows = self._client.query(sql, job_config=job_config).result()
        except google_exceptions.GoogleAPIError as e:
            raise _bigquery_error(e) from e
        return [_decode_snapshot(row["data"]) for row in rows]

    def ping(self) -> None:
        try:
            self._client.query("SELECT 1").result()
        except google_exceptions.GoogleAPIError as e:
            raise _bigquery_error(e) from e


class SqliteSnapshotStore:
    """Snapshot store backed by a SQLite table with a JSON text ``record`` column."""

    def __init__(self, path: str, table: str = "fc_objectsnapshots"):
        self.path = str(Path(path).expanduser())
        self.table = table

    def _connect(self) -> sqlite3.Connection:
        # uri=True with mode=ro keeps the store strictly read-only
        return sqlite3.connect(f"file:{self.path}?mode=ro", uri=True)

    def query_snapshots(
        self,
        uid: ObjectUID,
        kind: str,
        attempt_id: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        sql, query_params = build_snapshot_query(
            self.table, uid=uid, kind=kind, attempt_id=attempt_id, dialect="sqlite"
        )
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(sql, params_as_dict(query_params)).fetchall()
        except sqlite3.Error as e:
            raise _sqlite_error(e) from e
        return [_decode_snapshot(row[0]) for row in rows]

    def ping(self) -> None:
        try:
            with closing(self._connect()) as conn:
                conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as e:
            raise _sqlite_error(e) from e


def create_snapshot_store(config: JobAttemptsConfig) -> Optional[SnapshotStore]:
    """
    Build the snapshot store named in config.

    Returns:
        Store instance, or None when no backend is configured
    """
    if not config.snapshot_enabled:
        logger.warning("No snapshot backend configured, attempt lookups are disabled")
        return None

    if config.snapshot_backend == "bigquery":
        return BigQuerySnapshotStore(
            project=config.bigquery_project,
            dataset=config.bigquery_dataset,
            table=config.snapshot_table,
        )
    return SqliteSnapshotStore(config.sqlite_path, table=config.snapshot_table)
