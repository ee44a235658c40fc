"""
Framework name encoding.

Maps a user-facing job name to the name of the framework object the
orchestrator stores it under. Names the platform generated itself look like
``<user>~<job>`` and are hashed; anything else is sanitized in place.
"""

import hashlib
import re

# Prefix marking frameworks that were not submitted through this platform
RESERVED_PREFIX = "unknown"

# Separator between user and job in platform-generated names
NAME_SEPARATOR = "~"

_ILLEGAL_CHARS = re.compile(r"[^a-z0-9]")


def convert_name(name: str) -> str:
    """Lower-case and drop every character the framework controller rejects."""
    return _ILLEGAL_CHARS.sub("", name.lower())


def encode_name(name: str) -> str:
    """
    Resolve a user-facing job name to the framework object name.

    Args:
        name: Job name as the user submitted or sees it

    Returns:
        Sanitized name for external frameworks, otherwise the 32-char
        MD5 hex digest of the exact input.
    """
    if name.startswith(RESERVED_PREFIX):
        # framework is not generated by the platform
        return convert_name(name[len(RESERVED_PREFIX):])
    if NAME_SEPARATOR not in name:
        return convert_name(name)
    return hashlib.md5(name.encode("utf-8")).hexdigest()
