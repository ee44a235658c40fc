"""Convert a framework object snapshot into user-facing attempt fields.

The same conversion is applied to the live framework and to historical
snapshots, so it must depend only on the snapshot it is given.
"""

from typing import Any, Optional

# Framework controller exit code when a user stopped the framework
STOP_REQUESTED_EXIT_CODE = -210

_WAITING_STATES = {
    "AttemptCreationPending",
    "AttemptCreationRequested",
    "AttemptPreparing",
}
_DELETING_STATES = {
    "AttemptDeletionPending",
    "AttemptDeletionRequested",
    "AttemptDeleting",
}
_COMPLETED_STATES = {"AttemptCompleted", "Completed"}


def _get(data: Optional[dict], *path: str, default: Any = None) -> Any:
    for key in path:
        if not isinstance(data, dict) or key not in data:
            return default
        data = data[key]
    return data if data is not None else default


def attempt_index_of(snapshot: dict) -> Optional[int]:
    """Attempt index recorded by the orchestrator, or None if absent."""
    attempt_id = _get(snapshot, "status", "attemptStatus", "id")
    return None if attempt_id is None else int(attempt_id)


def convert_state(framework_state: Optional[str], exit_code: Optional[int], exit_type: Optional[str]) -> str:
    """Map a framework controller state onto the user-facing job state."""
    if framework_state in _WAITING_STATES:
        return "WAITING"
    if framework_state == "AttemptRunning":
        return "RUNNING"
    if framework_state in _DELETING_STATES:
        return "STOPPING" if exit_code == STOP_REQUESTED_EXIT_CODE else "RUNNING"
    if framework_state in _COMPLETED_STATES:
        if exit_code == 0 or exit_type == "Succeeded":
            return "SUCCEEDED"
        if exit_code == STOP_REQUESTED_EXIT_CODE:
            return "STOPPED"
        return "FAILED"
    return "UNKNOWN"


def _convert_task_roles(snapshot: dict) -> dict[str, dict[str, int]]:
    role_statuses = {
        role.get("name"): role.get("taskStatuses") or []
        for role in _get(snapshot, "status", "attemptStatus", "taskRoleStatuses", default=[])
    }
    task_roles = {}
    for role in _get(snapshot, "spec", "taskRoles", default=[]):
        name = role.get("name")
        statuses = role_statuses.get(name, [])
        codes = [_get(s, "attemptStatus", "completionStatus", "code") for s in statuses]
        task_roles[name] = {
            "task_number": role.get("taskNumber", 0),
            "succeeded": sum(1 for code in codes if code == 0),
            "failed": sum(1 for code in codes if code not in (None, 0)),
        }
    return task_roles


def convert_to_job_attempt(snapshot: dict) -> dict[str, Any]:
    """
    Project a framework snapshot into attempt fields.

    Args:
        snapshot: Framework object as served by the API server or captured
            by the snapshot pipeline

    Returns:
        Dict of attempt fields (without is_latest, which the caller adds)
    """
    completion = _get(snapshot, "status", "attemptStatus", "completionStatus")
    exit_code = _get(completion, "code")
    exit_type = _get(completion, "type", "name")
    original_state = _get(snapshot, "status", "state")
    task_roles = _convert_task_roles(snapshot)

    return {
        "job_name": _get(snapshot, "metadata", "annotations", "jobName")
        or _get(snapshot, "metadata", "name"),
        "framework_name": _get(snapshot, "metadata", "name"),
        "uid": _get(snapshot, "metadata", "uid"),
        "user_name": _get(snapshot, "metadata", "labels", "userName", default="unknown"),
        "state": convert_state(original_state, exit_code, exit_type),
        "original_state": original_state,
        "max_attempt_count": _get(snapshot, "spec", "retryPolicy", "maxRetryCount", default=0) + 1,
        "attempt_index": attempt_index_of(snapshot),
        "attempt_uid": _get(snapshot, "status", "attemptStatus", "instanceUID"),
        "job_started_time": _get(snapshot, "metadata", "creationTimestamp"),
        "attempt_started_time": _get(snapshot, "status", "attemptStatus", "startTime"),
        "attempt_completed_time": _get(snapshot, "status", "attemptStatus", "completionTime"),
        "exit_code": exit_code,
        "exit_phrase": _get(completion, "phrase"),
        "exit_type": exit_type,
        "exit_diagnostics": _get(completion, "diagnostics"),
        "total_task_number": sum(role["task_number"] for role in task_roles.values()),
        "total_task_role_number": len(task_roles),
        "task_roles": task_roles,
    }
