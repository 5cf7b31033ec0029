"""Services"""

from syncbridge.services.engine import EventResult, ReconciliationEngine, build_engine
from syncbridge.services.github_client import GitHubClient
from syncbridge.services.linear_client import LinearClient
from syncbridge.services.mapping_store import MappingStore

__all__ = [
    "EventResult",
    "GitHubClient",
    "LinearClient",
    "MappingStore",
    "ReconciliationEngine",
    "build_engine",
]
