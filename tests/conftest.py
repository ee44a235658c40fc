import logging

import pytest
from unittest.mock import MagicMock

from jobattempts.config import JobAttemptsConfig
from jobattempts.stack_clients.live_client import LiveResponse


@pytest.fixture(autouse=True)
def reset_logging():
    # setup_logging binds handlers to the streams of the test that called it
    yield
    logger = logging.getLogger("jobattempts")
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def test_config():
    return JobAttemptsConfig(
        api_server_uri="https://k8s.test:6443",
        namespace="default",
        snapshot_backend="sqlite",
        sqlite_path="/tmp/test-snapshots.db",
    )


def make_framework(
    uid="u1",
    max_retry_count=2,
    attempt_id=2,
    name="abc123",
    state="AttemptRunning",
    exit_code=None,
):
    """Build a framework object as served by the API server."""
    attempt_status = {
        "id": attempt_id,
        "instanceUID": f"{attempt_id}_{uid}",
        "startTime": "2024-01-01T00:00:00Z",
        "completionTime": None,
        "taskRoleStatuses": [
            {
                "name": "worker",
                "taskStatuses": [
                    {"index": 0, "attemptStatus": {"completionStatus": None}},
                ],
            }
        ],
    }
    if exit_code is not None:
        attempt_status["completionStatus"] = {
            "code": exit_code,
            "phrase": "Succeeded" if exit_code == 0 else "Failed",
            "type": {"name": "Succeeded" if exit_code == 0 else "Failed", "attributes": []},
            "diagnostics": "",
        }
    metadata = {
        "name": name,
        "creationTimestamp": "2024-01-01T00:00:00Z",
        "labels": {"userName": "alice"},
        "annotations": {"jobName": "train"},
    }
    if uid is not None:
        metadata["uid"] = uid
    return {
        "apiVersion": "frameworkcontroller.microsoft.com/v1",
        "kind": "Framework",
        "metadata": metadata,
        "spec": {
            "retryPolicy": {"fancyRetryPolicy": True, "maxRetryCount": max_retry_count},
            "taskRoles": [{"name": "worker", "taskNumber": 1}],
        },
        "status": {"state": state, "attemptStatus": attempt_status},
    }


@pytest.fixture
def framework_factory():
    return make_framework


@pytest.fixture
def live_client():
    """API client mock that serves the standard u1 framework (current attempt 2)."""
    client = MagicMock()
    client.framework_path.side_effect = lambda name: f"https://k8s.test/frameworks/{name}"
    client.get.return_value = LiveResponse(status=200, data=make_framework())
    return client


@pytest.fixture
def snapshot_store():
    """Store mock holding closed attempts 0 and 1 of framework u1."""
    history = {
        0: make_framework(attempt_id=0, state="Completed", exit_code=1),
        1: make_framework(attempt_id=1, state="Completed", exit_code=1),
    }

    def query_snapshots(uid, kind, attempt_id=None):
        if uid != "u1" or kind != "Framework":
            return []
        if attempt_id is None:
            return [history[i] for i in sorted(history)]
        return [history[attempt_id]] if attempt_id in history else []

    store = MagicMock()
    store.query_snapshots.side_effect = query_snapshots
    return store
