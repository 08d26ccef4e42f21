"""Exceptions raised by the sync stages."""

from typing import Optional

from .models import SyncStage


class SyncError(Exception):
    """Base class for errors that abort a sync run."""

    stage: Optional[SyncStage] = None

    def __init__(self, message: str, stage: Optional[SyncStage] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class BootstrapFailure(SyncError):
    """Output directory, config file or link could not be prepared."""
    stage = SyncStage.INIT


class VaultUnlockFailure(SyncError):
    """The vault could not be unlocked (wrong password, not logged in)."""
    stage = SyncStage.UNLOCK


class MetadataFetchFailure(SyncError):
    """Items could not be listed from the vault."""
    stage = SyncStage.FETCH_METADATA


class AgentUnavailable(SyncError):
    """No agent is reachable or listing its identities failed."""
    stage = SyncStage.FETCH_IDENTITIES


class ConfigNotFoundError(Exception):
    """Custom exception for configuration not found errors."""
    pass
