"""Sync orchestration: bootstrap, unlock, fetch and reconcile."""

import logging
from typing import Dict, List, Optional

from .errors import SyncError, VaultUnlockFailure
from .models import ConnectionMetadata, Identity, SyncReport, SyncSettings, SyncStage, VaultStatus
from .services import AgentService, VaultService, build_metadata_lookup
from .utils.bootstrap import bootstrap
from .utils.display import display_stage, display_sync_report
from .utils.ssh_config import reconcile_identity

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Run one sync from vault and agent into the generated SSH config."""

    def __init__(
        self,
        settings: SyncSettings,
        vault: Optional[VaultService] = None,
        agent: Optional[AgentService] = None,
    ):
        """Initialize orchestrator with settings and provider services."""
        self.settings = settings
        self.vault = vault or VaultService(settings.vault_binary, settings.password_env)
        self.agent = agent or AgentService(settings.agent_binary)
        self.stage = SyncStage.INIT
        self.session: Optional[str] = None

    def _enter(self, stage: SyncStage, title: str) -> None:
        self.stage = stage
        logger.info(f"Entering stage {stage.value}")
        display_stage(title)

    def unlock(self) -> Optional[str]:
        """Unlock the vault if needed and return the session token to use."""
        status = self.vault.status()
        if status == VaultStatus.UNAUTHENTICATED:
            raise VaultUnlockFailure(
                f"Not logged in. Run '{self.vault.binary} login' first."
            )
        if status == VaultStatus.LOCKED:
            logger.info("Vault is locked, unlocking")
            return self.vault.unlock()

        logger.info("Vault already unlocked")
        return None

    def fetch_metadata(self) -> Dict[str, ConnectionMetadata]:
        """Sync the vault and build the metadata lookup."""
        self.vault.sync(self.session)
        items = self.vault.list_items(self.session)
        lookup = build_metadata_lookup(
            items,
            hostname_field=self.settings.hostname_field,
            user_field=self.settings.user_field,
        )
        logger.info(f"Loaded metadata for {len(lookup)} SSH key items")
        return lookup

    def reconcile(
        self, identities: List[Identity], lookup: Dict[str, ConnectionMetadata]
    ) -> SyncReport:
        """Reconcile every identity in order."""
        report = SyncReport(config_path=self.settings.config_path)
        for identity in identities:
            report.outcomes.append(
                reconcile_identity(
                    identity,
                    lookup,
                    self.settings.config_path,
                    self.settings.keys_dir,
                )
            )
        return report

    def run(self) -> SyncReport:
        """
        Execute all stages in order.

        Returns:
            SyncReport for the run

        Raises:
            SyncError: From the first failing stage, with `stage` set
        """
        try:
            self._enter(SyncStage.INIT, "📁 Preparing output directory...")
            backup_path = bootstrap(self.settings)

            self._enter(SyncStage.UNLOCK, "🔐 Unlocking vault...")
            self.session = self.unlock()

            self._enter(SyncStage.FETCH_METADATA, "☁️  Fetching vault metadata...")
            lookup = self.fetch_metadata()

            self._enter(SyncStage.FETCH_IDENTITIES, "🔑 Reading SSH agent identities...")
            identities = self.agent.list_identities()

            self._enter(SyncStage.RECONCILE, "🔧 Updating SSH config...")
            report = self.reconcile(identities, lookup)
            report.backup_path = backup_path

            self._enter(SyncStage.REPORT, "📋 Sync report")
            display_sync_report(report)
            return report

        except SyncError as e:
            if e.stage is None:
                e.stage = self.stage
            raise
        except OSError as e:
            logger.error(f"Filesystem error during {self.stage.value}: {e}")
            raise SyncError(str(e), stage=self.stage) from e
