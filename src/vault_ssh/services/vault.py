"""Bitwarden vault operations."""

import getpass
import json
import logging
import os
import subprocess
from typing import Any, Dict, Iterable, List, Optional

from ..errors import MetadataFetchFailure, VaultUnlockFailure
from ..models import ConnectionMetadata, ItemType, VaultStatus

logger = logging.getLogger(__name__)

# Child-only variable used to hand a prompted password to `bw unlock`
PROMPT_PASSWORD_ENV = "VAULT_SSH_UNLOCK_PASSWORD"


def _field_value(item: Dict[str, Any], field_name: str) -> Optional[str]:
    """Return the value of the custom field named exactly `field_name`."""
    for item_field in item.get("fields") or []:
        if item_field.get("name") == field_name:
            return item_field.get("value")
    return None


def build_metadata_lookup(
    items: Iterable[Dict[str, Any]],
    hostname_field: str = "HostName",
    user_field: str = "User",
) -> Dict[str, ConnectionMetadata]:
    """
    Build a name -> connection metadata mapping from vault items.

    Only SSH key items are considered. When several items share a name the
    later one wins.

    Args:
        items: Decoded `bw list items` output
        hostname_field: Custom field holding the hostname
        user_field: Custom field holding the user name

    Returns:
        Dict keyed by item name
    """
    lookup: Dict[str, ConnectionMetadata] = {}

    for item in items:
        if item.get("type") != ItemType.SSH_KEY:
            continue

        name = item.get("name")
        if name in lookup:
            logger.warning(f"Duplicate vault item '{name}', the later item shadows the earlier one")

        lookup[name] = ConnectionMetadata(
            name=name,
            hostname=_field_value(item, hostname_field),
            user=_field_value(item, user_field),
        )

    return lookup


class VaultService:
    """Service class for the Bitwarden CLI."""

    def __init__(self, binary: str = "bw", password_env: Optional[str] = None):
        """Initialize vault service."""
        self.binary = binary
        self.password_env = password_env

    def _run(
        self,
        args: List[str],
        session: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        cmd = [self.binary] + args
        if session:
            cmd += ["--session", session]
        return subprocess.run(cmd, capture_output=True, text=True, env=env)

    def status(self) -> VaultStatus:
        """Return the current lock status of the vault."""
        try:
            result = self._run(["status"])
        except OSError as e:
            logger.error(f"Failed to run {self.binary}: {e}")
            raise VaultUnlockFailure(f"Could not run '{self.binary}': {e}") from e

        if result.returncode != 0:
            raise VaultUnlockFailure(f"'{self.binary} status' failed: {result.stderr.strip()}")

        try:
            return VaultStatus(json.loads(result.stdout)["status"])
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise VaultUnlockFailure(f"Unexpected '{self.binary} status' output: {e}") from e

    def unlock(self) -> str:
        """
        Unlock the vault and return the session token.

        The master password is read from the configured environment variable,
        or prompted for on the terminal and handed to the child process only.

        Raises:
            VaultUnlockFailure: If the password is rejected or the CLI fails
        """
        env = None
        password_env = self.password_env
        if not password_env:
            env = os.environ.copy()
            env[PROMPT_PASSWORD_ENV] = getpass.getpass("Vault master password: ")
            password_env = PROMPT_PASSWORD_ENV

        try:
            result = self._run(["unlock", "--raw", "--passwordenv", password_env], env=env)
        except OSError as e:
            logger.error(f"Failed to run {self.binary}: {e}")
            raise VaultUnlockFailure(f"Could not run '{self.binary}': {e}") from e

        token = result.stdout.strip()
        if result.returncode != 0 or not token:
            logger.error(f"Vault unlock failed: {result.stderr.strip()}")
            raise VaultUnlockFailure("Failed to unlock the vault. Check the master password.")

        return token

    def sync(self, session: Optional[str] = None) -> bool:
        """Pull the latest vault data from the server. Failures are not fatal."""
        try:
            result = self._run(["sync"], session=session)
        except OSError as e:
            logger.warning(f"Vault sync skipped: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"Vault sync failed, using cached data: {result.stderr.strip()}")
            return False
        return True

    def list_items(self, session: Optional[str] = None) -> List[Dict[str, Any]]:
        """List all vault items."""
        try:
            result = self._run(["list", "items"], session=session)
        except OSError as e:
            logger.error(f"Failed to run {self.binary}: {e}")
            raise MetadataFetchFailure(f"Could not run '{self.binary}': {e}") from e

        if result.returncode != 0:
            logger.error(f"Failed to list vault items: {result.stderr.strip()}")
            raise MetadataFetchFailure(f"'{self.binary} list items' failed: {result.stderr.strip()}")

        try:
            items = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MetadataFetchFailure(f"Vault returned invalid JSON: {e}") from e

        if not isinstance(items, list):
            raise MetadataFetchFailure("Vault returned an unexpected item listing")
        return items
