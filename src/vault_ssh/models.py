"""Data models for vault SSH sync."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class VaultStatus(str, Enum):
    """Lock states reported by `bw status`."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    UNAUTHENTICATED = "unauthenticated"


class ItemType(int, Enum):
    """Bitwarden item categories."""
    LOGIN = 1
    SECURE_NOTE = 2
    CARD = 3
    IDENTITY = 4
    SSH_KEY = 5


class SyncStage(str, Enum):
    """Stages of a sync run, in execution order."""
    INIT = "init"
    UNLOCK = "unlock"
    FETCH_METADATA = "fetch_metadata"
    FETCH_IDENTITIES = "fetch_identities"
    RECONCILE = "reconcile"
    REPORT = "report"


@dataclass
class Identity:
    """One SSH key as listed by the agent."""
    key_material: str
    key_type: str
    comment: str

    @property
    def public_key_line(self) -> str:
        """The line written to the exported public key file."""
        return f"{self.key_material} {self.key_type} {self.comment}"


@dataclass
class ConnectionMetadata:
    """Connection attributes stored in the vault under a record name."""
    name: str
    hostname: Optional[str] = None
    user: Optional[str] = None


@dataclass
class ConfigEntry:
    """A single Host block of the generated SSH config."""
    alias: str
    hostname: str
    identity_file: str
    user: Optional[str] = None

    def to_config_text(self) -> str:
        """Convert to SSH config text format."""
        identity_file = self.identity_file
        if any(char.isspace() for char in identity_file):
            identity_file = f'"{identity_file}"'

        text = (
            f"Host {self.alias}\n"
            f"  HostName {self.hostname}\n"
            f"  IdentityFile {identity_file}\n"
            f"  IdentitiesOnly yes\n"
        )
        if self.user:
            text += f"  User {self.user}\n"
        return text


@dataclass
class ReconcileOutcome:
    """Result of reconciling one identity."""
    entry: ConfigEntry
    public_key_path: Path
    written: bool


@dataclass
class SyncReport:
    """Summary of a completed sync run."""
    config_path: Path
    backup_path: Optional[Path] = None
    outcomes: List[ReconcileOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def written(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.written)

    @property
    def skipped(self) -> int:
        return self.processed - self.written

    @property
    def success_count(self) -> int:
        """Number of identities for which a new Host block was appended."""
        return self.written


class SyncSettings(BaseModel):
    """Sync configuration model with validation."""
    model_config = ConfigDict(validate_assignment=True, validate_default=True)

    output_dir: Path = Path("~/.ssh/vault-ssh")
    link_path: Optional[Path] = Path("~/.ssh/config")
    rotate_existing: bool = True
    vault_binary: str = "bw"
    agent_binary: str = "ssh-add"
    password_env: Optional[str] = None
    hostname_field: str = "HostName"
    user_field: str = "User"

    @field_validator("output_dir", "link_path")
    @classmethod
    def _expand_home(cls, value: Optional[Path]) -> Optional[Path]:
        if value is None:
            return None
        return Path(value).expanduser()

    @property
    def config_path(self) -> Path:
        return self.output_dir / "config"

    @property
    def keys_dir(self) -> Path:
        return self.output_dir / "keys"
