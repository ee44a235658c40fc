"""
Attempt reconciler - merge live and historical framework attempts.

The API server only knows the current attempt of a framework. Earlier
attempts were captured into the snapshot store when they were superseded.
The reconciler answers two questions on top of both sources:

    list_attempts(name)      -> latest attempt, then history ascending
    get_attempt(name, index) -> one attempt, live or historical

Lookup flow (both operations):
    1. encode_name(name)               (once)
    2. live_client.get(framework)      (always; yields UID and retry bound)
    3. snapshot_store.query_snapshots  (only for indices below the bound)

Not-found is returned as LookupResult(404, None). Transport, upstream and
snapshot store failures are logged and raised, never turned into empty results.
"""

import logging
from typing import Any, Callable, Optional

from jobattempts.config import JobAttemptsConfig
from jobattempts.converter import attempt_index_of, convert_to_job_attempt
from jobattempts.errors import TransportError, UnexpectedCallError, UpstreamError
from jobattempts.naming import encode_name
from jobattempts.schemas import AttemptRecord, JobIdentity, LookupResult, ObjectUID
from jobattempts.stack_clients.live_client import LiveStateClient
from jobattempts.stack_clients.snapshot_store import SnapshotStore, create_snapshot_store

logger = logging.getLogger(__name__)

FRAMEWORK_KIND = "Framework"

Converter = Callable[[dict], dict]


def max_retry_count_of(snapshot: dict) -> int:
    """Retry bound configured on the framework's retry policy."""
    retry_policy = (snapshot.get("spec") or {}).get("retryPolicy") or {}
    return int(retry_policy.get("maxRetryCount") or 0)


def uid_of(snapshot: dict) -> Optional[ObjectUID]:
    return (snapshot.get("metadata") or {}).get("uid") or None


class AttemptReconciler:
    """
    Resolve attempts of a framework from the live API and the snapshot store.

    Holds no state between calls: every lookup fetches the live object fresh.
    """

    def __init__(
        self,
        live_client: LiveStateClient,
        snapshot_store: SnapshotStore,
        *,
        converter: Converter = convert_to_job_attempt,
        kind: str = FRAMEWORK_KIND,
    ):
        self._live = live_client
        self._store = snapshot_store
        self._convert = converter
        self.kind = kind

    @staticmethod
    def resolve(name: str) -> JobIdentity:
        return JobIdentity(user_facing_name=name, resolved_name=encode_name(name))

    def _fetch_live(self, identity: JobIdentity) -> Optional[dict[str, Any]]:
        """Return the live framework snapshot, or None if the API reports it absent."""
        context = {"job_name": identity.user_facing_name}
        path = self._live.framework_path(identity.resolved_name)
        try:
            response = self._live.get(path)
        except TransportError:
            logger.error(
                f"could not reach api server for framework {identity.resolved_name}",
                extra=context,
            )
            raise

        if response.status == 200:
            return response.data
        if response.status == 404:
            logger.warning(
                f"could not get framework {identity.resolved_name} from api server: {response.message}",
                extra={**context, "status": response.status},
            )
            return None

        logger.error(
            f"unexpected response for framework {identity.resolved_name}: {response.message}",
            extra={**context, "status": response.status},
        )
        raise UpstreamError(response.status, response.message)

    def _query_history(self, identity: JobIdentity, uid: ObjectUID, **filters) -> list[dict[str, Any]]:
        try:
            return self._store.query_snapshots(uid, self.kind, **filters)
        except Exception:
            logger.error(
                f"snapshot query failed for framework {identity.resolved_name}",
                extra={"job_name": identity.user_facing_name, "uid": uid},
            )
            raise

    def _to_record(self, snapshot: dict[str, Any], is_latest: bool) -> Optional[AttemptRecord]:
        """Convert a snapshot; None for a historical row that carries no attempt id."""
        index = attempt_index_of(snapshot)
        if index is None:
            if not is_latest:
                logger.warning(
                    f"skipping snapshot of {uid_of(snapshot)} without attempt id",
                    extra={"uid": uid_of(snapshot)},
                )
                return None
            # a framework whose status is not populated yet is on its first attempt
            index = 0
        return AttemptRecord(
            index=index,
            is_latest=is_latest,
            fields=self._convert(snapshot),
        )

    def list_attempts(self, name: str) -> LookupResult:
        """
        List every attempt of a job.

        Args:
            name: User-facing job name

        Returns:
            LookupResult with the live attempt first, then historical
            attempts ascending by index; 404 if the framework is absent.

        Raises:
            TransportError: API server unreachable
            UpstreamError: API server answered with an unexpected status
            TransientError, PermanentError: Snapshot store query failed
        """
        identity = self.resolve(name)
        live = self._fetch_live(identity)
        if live is None:
            return LookupResult.not_found()

        uid = uid_of(live)
        if uid is None:
            logger.warning(
                f"framework {identity.resolved_name} has no uid, cannot correlate history",
                extra={"job_name": name},
            )
            return LookupResult.not_found()

        attempts = [self._to_record(live, is_latest=True)]
        for snapshot in self._query_history(identity, uid):
            record = self._to_record(snapshot, is_latest=False)
            if record is not None:
                attempts.append(record)

        logger.debug(
            f"resolved {len(attempts)} attempts for framework {identity.resolved_name}",
            extra={"job_name": name, "uid": uid},
        )
        return LookupResult.found(attempts)

    def get_attempt(self, name: str, index: int) -> LookupResult:
        """
        Get one attempt of a job by index.

        Indices below the framework's maxRetryCount are closed attempts read
        from the snapshot store; the index equal to maxRetryCount is the live
        attempt; anything above it will never be scheduled.

        Args:
            name: User-facing job name
            index: Attempt index

        Returns:
            LookupResult with a single AttemptRecord, or 404

        Raises:
            TransportError: API server unreachable
            UpstreamError: API server answered with an unexpected status
            TransientError, PermanentError: Snapshot store query failed
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"attempt index must be an int, got {type(index).__name__}")

        identity = self.resolve(name)
        live = self._fetch_live(identity)
        if live is None:
            return LookupResult.not_found()

        uid = uid_of(live)
        if uid is None:
            logger.warning(
                f"framework {identity.resolved_name} has no uid, cannot correlate history",
                extra={"job_name": name},
            )
            return LookupResult.not_found()

        max_retry_count = max_retry_count_of(live)

        if index < max_retry_count:
            snapshots = self._query_history(identity, uid, attempt_id=index)
            record = self._to_record(snapshots[0], is_latest=False) if snapshots else None
            if record is None:
                logger.info(
                    f"attempt {index} of framework {identity.resolved_name} not in snapshot store",
                    extra={"job_name": name, "uid": uid},
                )
                return LookupResult.not_found()
            return LookupResult.found(record)

        if index == max_retry_count:
            return LookupResult.found(self._to_record(live, is_latest=True))

        return LookupResult.not_found()

    def health_check(self) -> bool:
        """True if the snapshot store answers a round trip. Never raises."""
        try:
            self._store.ping()
            return True
        except Exception as e:
            logger.error(f"snapshot store health check failed: {e}")
            return False


class DisabledAttemptReconciler:
    """
    Stand-in used when no snapshot store is configured.

    Lookups fail loudly instead of returning live-only or empty data.
    """

    def list_attempts(self, name: str) -> LookupResult:
        raise UnexpectedCallError("Unexpected call: no snapshot store configured")

    def get_attempt(self, name: str, index: int) -> LookupResult:
        raise UnexpectedCallError("Unexpected call: no snapshot store configured")

    def health_check(self) -> bool:
        return False


def create_reconciler(
    live_client: LiveStateClient,
    snapshot_store: Optional[SnapshotStore] = None,
    **kwargs,
):
    """
    Build a reconciler, or its disabled stand-in when there is no store.

    Args:
        live_client: Client for the API server
        snapshot_store: Historical store; None selects the disabled mode
        **kwargs: Passed to AttemptReconciler (converter, kind)
    """
    if snapshot_store is None:
        return DisabledAttemptReconciler()
    return AttemptReconciler(live_client, snapshot_store, **kwargs)


def build_reconciler(config: JobAttemptsConfig):
    """Wire clients from configuration into a reconciler."""
    return create_reconciler(
        LiveStateClient.from_config(config),
        create_snapshot_store(config),
        kind=config.object_kind,
    )
