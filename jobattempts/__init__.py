"""
jobattempts - Retry-attempt history of orchestrator jobs

Merges the live framework object from the cluster API with historical
snapshots captured into a queryable store.
"""

__version__ = "0.1.0"


__all__ = ["JobAttemptsConfig", "load_config", "get_jobattempts_home", "encode_name"]

from .config import JobAttemptsConfig, load_config, get_jobattempts_home
from .naming import encode_name
