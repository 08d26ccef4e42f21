"""External provider services."""

from .agent import AgentService, parse_identities
from .vault import VaultService, build_metadata_lookup

__all__ = [
    "AgentService",
    "VaultService",
    "parse_identities",
    "build_metadata_lookup",
]
