"""
Live state client - read-only view of framework objects on the API server.

This module is the single boundary where jobattempts talks to the cluster
orchestrator. Only the current (latest) attempt of a framework is visible
here; earlier attempts live in the snapshot store.

Error classification:
- Any HTTP response (200, 404, 5xx, ...) -> LiveResponse, caller decides
- No response at all (connection refused, timeout, DNS) -> TransportError
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import requests

from jobattempts.config import JobAttemptsConfig
from jobattempts.errors import TransportError
from jobattempts.utils import sanitize_error_message

logger = logging.getLogger(__name__)

FRAMEWORK_API_GROUP = "frameworkcontroller.microsoft.com"
FRAMEWORK_API_VERSION = "v1"


@dataclass
class LiveResponse:
    """
    Response of the API server for a single object.

    Attributes:
        status: HTTP status code
        data: Decoded JSON body (object snapshot on 200, error body otherwise)
    """
    status: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        """Error message carried by a non-200 body."""
        return str(self.data.get("message") or f"HTTP {self.status}")


class LiveStateClient:
    """
    HTTP client for framework objects served by the orchestrator API.

    Usage:
        client = LiveStateClient("https://k8s.example:6443", token="...")
        response = client.get(client.framework_path("a1b2c3"))
    """

    def __init__(
        self,
        api_server_uri: str,
        *,
        namespace: str = "default",
        token: Optional[str] = None,
        verify: Union[bool, str] = True,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_server_uri = api_server_uri.rstrip("/")
        self.namespace = namespace
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.verify = verify
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(cls, config: JobAttemptsConfig) -> "LiveStateClient":
        return cls(
            config.api_server_uri,
            namespace=config.namespace,
            token=config.bearer_token,
            verify=config.verify_tls,
            timeout=config.request_timeout,
        )

    def framework_path(self, name: str) -> str:
        """Full URL of a framework object."""
        return (
            f"{self.api_server_uri}/apis/{FRAMEWORK_API_GROUP}/{FRAMEWORK_API_VERSION}"
            f"/namespaces/{self.namespace}/frameworks/{name}"
        )

    def get(self, path: str) -> LiveResponse:
        """
        GET a single object.

        Args:
            path: Full object URL (see framework_path)

        Returns:
            LiveResponse for any HTTP answer

        Raises:
            TransportError: If the API server could not be reached
        """
        try:
            response = self._session.get(path, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"error when getting framework from api server: {sanitize_error_message(str(e))}")
            if e.response is None:
                raise TransportError(f"could not reach api server: {sanitize_error_message(str(e))}") from e
            response = e.response

        return LiveResponse(status=response.status_code, data=_decode_body(response))


def _decode_body(response: requests.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": sanitize_error_message(response.text or "")}
    if not isinstance(body, dict):
        return {"message": sanitize_error_message(str(body))}
    return body
