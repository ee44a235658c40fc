"""Tests for snapshot store clients.

Tests cover:
- SQLite store against a real snapshots table (tmp_path)
- Integer ordering of attempt ids
- UID and kind scoping
- BigQuery store binds typed query parameters
- Backend errors translated to TransientError / PermanentError
- create_snapshot_store backend selection
"""

import json
import sqlite3
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery
from jobattempts.errors import PermanentError, TransientError
from jobattempts.stack_clients.snapshot_store import (
    BigQuerySnapshotStore,
    SnapshotStore,
    SqliteSnapshotStore,
    create_snapshot_store,
)


def _snapshot(uid, attempt_id, kind="Framework"):
    return {
        "kind": kind,
        "metadata": {"uid": uid, "name": "abc"},
        "status": {"attemptStatus": {"id": attempt_id}},
    }


@pytest.fixture
def sqlite_path(tmp_path):
    path = tmp_path / "snapshots.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE fc_objectsnapshots (record TEXT)")
    rows = [
        _snapshot("u1", 10),
        _snapshot("u1", 2),
        _snapshot("u1", 0),
        _snapshot("u2", 1),
        _snapshot("u1", 1, kind="Pod"),
    ]
    conn.executemany(
        "INSERT INTO fc_objectsnapshots (record) VALUES (?)",
        [(json.dumps({"objectSnapshot": row}),) for row in rows],
    )
    conn.commit()
    conn.close()
    return path


class TestSqliteSnapshotStore:
    """Tests for SqliteSnapshotStore."""

    def test_implements_protocol(self, sqlite_path):
        assert isinstance(SqliteSnapshotStore(str(sqlite_path)), SnapshotStore)

    def test_orders_by_integer_attempt_id(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))

        snapshots = store.query_snapshots("u1", "Framework")

        # 10 sorts after 2 numerically, before it lexically
        assert [s["status"]["attemptStatus"]["id"] for s in snapshots] == [0, 2, 10]

    def test_scoped_by_uid(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        snapshots = store.query_snapshots("u2", "Framework")
        assert [s["metadata"]["uid"] for s in snapshots] == ["u2"]

    def test_scoped_by_kind(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        snapshots = store.query_snapshots("u1", "Pod")
        assert len(snapshots) == 1
        assert snapshots[0]["kind"] == "Pod"

    def test_attempt_filter(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        snapshots = store.query_snapshots("u1", "Framework", attempt_id=2)
        assert len(snapshots) == 1
        assert snapshots[0]["status"]["attemptStatus"]["id"] == 2

    def test_missing_attempt(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        assert store.query_snapshots("u1", "Framework", attempt_id=7) == []

    def test_unknown_uid(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        assert store.query_snapshots("nope' OR '1'='1", "Framework") == []

    def test_ping(self, sqlite_path):
        SqliteSnapshotStore(str(sqlite_path)).ping()

    def test_ping_missing_file_raises(self, tmp_path):
        with pytest.raises(PermanentError) as exc_info:
            SqliteSnapshotStore(str(tmp_path / "missing.db")).ping()
        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_query_missing_file_is_permanent(self, tmp_path):
        store = SqliteSnapshotStore(str(tmp_path / "missing.db"))
        with pytest.raises(PermanentError, match="unable to open database file"):
            store.query_snapshots("u1", "Framework")

    def test_query_missing_table_is_permanent(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path), table="other_snapshots")
        with pytest.raises(PermanentError, match="no such table"):
            store.query_snapshots("u1", "Framework")

    def test_locked_database_is_transient(self, sqlite_path, monkeypatch):
        store = SqliteSnapshotStore(str(sqlite_path))
        monkeypatch.setattr(store, "_connect", MagicMock(side_effect=sqlite3.OperationalError("database is locked")))
        with pytest.raises(TransientError):
            store.query_snapshots("u1", "Framework")

    def test_store_is_read_only(self, sqlite_path):
        store = SqliteSnapshotStore(str(sqlite_path))
        conn = store._connect()
        try:
            with pytest.raises(sqlite3.OperationalError):
                conn.execute("DELETE FROM fc_objectsnapshots")
        finally:
            conn.close()


class TestBigQuerySnapshotStore:
    """Tests for BigQuerySnapshotStore with a mocked client."""

    def _store(self, rows):
        client = MagicMock()
        client.query.return_value.result.return_value = rows
        return BigQuerySnapshotStore("proj", "ds", client=client), client

    def test_table_ref(self):
        store, _ = self._store([])
        assert store.table_ref == "proj.ds.fc_objectsnapshots"

    def test_binds_typed_parameters(self):
        store, client = self._store([])

        store.query_snapshots("u1", "Framework", attempt_id=3)

        sql = client.query.call_args.args[0]
        job_config = client.query.call_args.kwargs["job_config"]
        assert "`proj.ds.fc_objectsnapshots`" in sql
        assert "u1" not in sql
        params = {p.name: (p.type_, p.value) for p in job_config.query_parameters}
        assert params == {
            "uid": ("STRING", "u1"),
            "kind": ("STRING", "Framework"),
            "attempt_id": ("INT64", 3),
        }

    def test_decodes_string_and_json_columns(self):
        rows = [
            {"data": json.dumps(_snapshot("u1", 0))},
            {"data": _snapshot("u1", 1)},
        ]
        store, _ = self._store(rows)

        snapshots = store.query_snapshots("u1", "Framework")

        assert [s["status"]["attemptStatus"]["id"] for s in snapshots] == [0, 1]

    def test_ping(self):
        store, client = self._store([])
        store.ping()
        client.query.assert_called_once_with("SELECT 1")

    def test_ping_failure_raises(self):
        store, client = self._store([])
        client.query.side_effect = RuntimeError("forbidden")
        with pytest.raises(RuntimeError):
            store.ping()

    def test_missing_table_is_permanent(self):
        store, client = self._store([])
        client.query.side_effect = google_exceptions.NotFound("Table proj:ds.fc_objectsnapshots")
        with pytest.raises(PermanentError) as exc_info:
            store.query_snapshots("u1", "Framework")
        assert not isinstance(exc_info.value, TransientError)

    def test_unavailable_is_transient(self):
        store, client = self._store([])
        client.query.return_value.result.side_effect = google_exceptions.ServiceUnavailable("backend error")
        with pytest.raises(TransientError):
            store.query_snapshots("u1", "Framework")

    def test_ping_forbidden_is_permanent(self):
        store, client = self._store([])
        client.query.side_effect = google_exceptions.Forbidden("access denied")
        with pytest.raises(PermanentError):
            store.ping()


class TestCreateSnapshotStore:
    """Tests for create_snapshot_store."""

    def test_sqlite(self, test_config):
        store = create_snapshot_store(test_config)
        assert isinstance(store, SqliteSnapshotStore)
        assert store.table == "fc_objectsnapshots"

    def test_bigquery(self, test_config, monkeypatch):
        client_cls = MagicMock()
        monkeypatch.setattr(bigquery, "Client", client_cls)
        test_config.snapshot_backend = "bigquery"
        test_config.bigquery_project = "proj"
        test_config.bigquery_dataset = "ds"

        store = create_snapshot_store(test_config)

        assert isinstance(store, BigQuerySnapshotStore)
        client_cls.assert_called_once_with(project="proj")

    def test_disabled(self, test_config):
        test_config.snapshot_backend = None
        assert create_snapshot_store(test_config) is None
