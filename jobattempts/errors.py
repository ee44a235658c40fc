"""
Error classes for jobattempts lookups.

These error types separate "the job does not exist" (a 404 LookupResult,
never raised) from failures of the systems being queried:
- TransientError: Safe to retry (network issues, API server unreachable)
- PermanentError: Do not retry (upstream rejected the request)

Callers decide retry behavior; the reconciler never retries internally.

Error handling contract:
- Not-found is a value (LookupResult with status 404)
- Everything else is an exception
- Don't translate failures into empty success results
"""


class JobAttemptsError(Exception):
    """Base exception for jobattempts."""
    pass


class TransientError(JobAttemptsError):
    """
    Transient error - safe to retry.

    Examples:
    - Network timeout
    - Connection refused / reset
    - DNS failure reaching the API server
    """
    pass


class PermanentError(JobAttemptsError):
    """
    Permanent error - do not retry.

    Examples:
    - Upstream API answered with an unexpected status
    - Authorization failed (401/403)
    """
    pass


class TransportError(TransientError):
    """The live-state API could not be reached (no HTTP response at all)."""
    pass


class UpstreamError(PermanentError):
    """
    The live-state API answered with a status other than 200 or 404.

    Attributes:
        status: HTTP status returned by the API server
        code: Error code surfaced to callers
        message: Message taken from the upstream error body
    """

    def __init__(self, status: int, message: str, code: str = "UnknownError"):
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message


class UnexpectedCallError(JobAttemptsError):
    """Raised when attempt lookups are called without a snapshot store configured."""
    pass
