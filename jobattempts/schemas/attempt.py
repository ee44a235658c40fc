"""
Attempt schemas - one retry attempt of a framework and lookup results.

AttemptRecord is a single attempt as returned to callers.
LookupResult wraps the outcome of list/get lookups with an HTTP-style status.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

# UID type alias for documentation
ObjectUID = str

STATUS_OK = 200
STATUS_NOT_FOUND = 404


@dataclass(frozen=True)
class JobIdentity:
    """
    A job name and the framework object name it resolves to.

    Attributes:
        user_facing_name: Name as submitted by the user
        resolved_name: Framework object name (see jobattempts.naming)
    """
    user_facing_name: str
    resolved_name: str


@dataclass(frozen=True)
class AttemptRecord:
    """
    A single retry attempt of a framework.

    Attributes:
        index: Attempt index assigned by the orchestrator (0-indexed)
        is_latest: True only for the attempt backed by the live object
        fields: Converted attempt details (see jobattempts.converter)
    """
    index: int
    is_latest: bool
    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.index < 0:
            raise ValueError("index must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            **self.fields,
            "attempt_index": self.index,
            "is_latest": self.is_latest,
        }


@dataclass(frozen=True)
class LookupResult:
    """
    Outcome of an attempt lookup.

    Attributes:
        status: 200 when found, 404 when the job or attempt does not exist
        data: List of attempts (list lookups), one attempt (get lookups), or None
    """
    status: int
    data: Optional[Union[AttemptRecord, list[AttemptRecord]]] = None

    def __post_init__(self):
        if self.status not in (STATUS_OK, STATUS_NOT_FOUND):
            raise ValueError(f"Unsupported lookup status: {self.status}")
        if self.status == STATUS_NOT_FOUND and self.data is not None:
            raise ValueError("Not-found results must not carry data")

    @classmethod
    def found(cls, data: Union[AttemptRecord, list[AttemptRecord]]) -> "LookupResult":
        return cls(status=STATUS_OK, data=data)

    @classmethod
    def not_found(cls) -> "LookupResult":
        return cls(status=STATUS_NOT_FOUND, data=None)

    @property
    def is_found(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        if self.data is None:
            data = None
        elif isinstance(self.data, list):
            data = [record.to_dict() for record in self.data]
        else:
            data = self.data.to_dict()
        return {"status": self.status, "data": data}
