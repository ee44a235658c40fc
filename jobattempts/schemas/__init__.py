"""
jobattempts.schemas - Data structures returned by attempt lookups.

JobIdentity -> LookupResult(AttemptRecord | list[AttemptRecord])
"""

from .attempt import (
    AttemptRecord,
    JobIdentity,
    LookupResult,
    ObjectUID,
    STATUS_NOT_FOUND,
    STATUS_OK,
)

__all__ = [
    "AttemptRecord",
    "JobIdentity",
    "LookupResult",
    "ObjectUID",
    "STATUS_NOT_FOUND",
    "STATUS_OK",
]
