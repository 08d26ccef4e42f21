"""
SSH config reconciliation: alias derivation, Host block detection and append-only writes.
"""

import logging
from pathlib import Path
from typing import Dict, Mapping

from rich.console import Console

from ..models import ConfigEntry, ConnectionMetadata, Identity, ReconcileOutcome

logger = logging.getLogger(__name__)
console = Console()

ALIAS_UNSAFE_CHARS = '/:\\*?"<>|'
_ALIAS_TABLE = str.maketrans({char: "_" for char in ALIAS_UNSAFE_CHARS})


def derive_alias(comment: str) -> str:
    """Lowercase the comment and replace path/config unsafe characters with '_'."""
    return comment.lower().translate(_ALIAS_TABLE)


def parse_host_blocks(content: str) -> Dict[str, str]:
    """
    Parse SSH config content into Host blocks.

    Returns:
        Dict mapping the pattern list of each `Host` line to the block text.
        Lines before the first Host line are not part of any block.
    """
    blocks: Dict[str, str] = {}
    current_host = None
    current_lines = []

    for line in content.splitlines(keepends=True):
        parts = line.strip().split(None, 1)
        keyword = parts[0].lower() if parts else ""

        if keyword in ("host", "match"):
            if current_host is not None:
                blocks[current_host] = "".join(current_lines)
            current_host = parts[1].strip() if keyword == "host" and len(parts) > 1 else None
            current_lines = [line]
        elif current_host is not None:
            current_lines.append(line)

    if current_host is not None:
        blocks[current_host] = "".join(current_lines)

    return blocks


def has_host_block(content: str, alias: str) -> bool:
    """
    Check whether a Host block for `alias` already exists.

    The alias must equal the whole pattern text of a Host line, so `prod`
    matches neither `Host prod-backup` nor `Host prod backup`.
    """
    for patterns in parse_host_blocks(content):
        if alias == patterns:
            return True
    return False


def write_public_key(identity: Identity, keys_dir: Path, alias: str) -> Path:
    """Export the identity's public key to `<keys_dir>/<alias>.pub`, replacing any previous file."""
    pubkey_path = keys_dir / f"{alias}.pub"
    pubkey_path.write_text(identity.public_key_line + "\n")
    return pubkey_path


def append_entry(config_path: Path, entry: ConfigEntry) -> None:
    """Append a Host block, preceded by a blank line, to the config file."""
    with open(config_path, "a") as f:
        f.write("\n")
        f.write(entry.to_config_text())


def build_entry(
    identity: Identity,
    lookup: Mapping[str, ConnectionMetadata],
    identity_file: Path,
) -> ConfigEntry:
    """Resolve hostname and user for an identity, falling back to its comment."""
    match = lookup.get(identity.comment)

    hostname = identity.comment
    user = None
    if match is not None:
        if match.hostname:
            hostname = match.hostname
        if match.user:
            user = match.user

    return ConfigEntry(
        alias=derive_alias(identity.comment),
        hostname=hostname,
        identity_file=str(identity_file.resolve()),
        user=user,
    )


def reconcile_identity(
    identity: Identity,
    lookup: Mapping[str, ConnectionMetadata],
    config_path: Path,
    keys_dir: Path,
) -> ReconcileOutcome:
    """
    Export the public key of one identity and add its Host block if missing.

    The public key file is always rewritten. The config block is only
    appended when no block with the same alias exists yet.

    Args:
        identity: Identity from the agent
        lookup: Vault metadata keyed by item name
        config_path: Generated SSH config file
        keys_dir: Directory for exported public keys

    Returns:
        ReconcileOutcome describing what was written
    """
    alias = derive_alias(identity.comment)
    pubkey_path = write_public_key(identity, keys_dir, alias)
    entry = build_entry(identity, lookup, pubkey_path)

    content = config_path.read_text() if config_path.exists() else ""
    if has_host_block(content, alias):
        logger.debug(f"Host {alias} already present, leaving config untouched")
        console.print(f"  [dim]•[/dim] {alias} [dim](exists)[/dim]")
        return ReconcileOutcome(entry=entry, public_key_path=pubkey_path, written=False)

    append_entry(config_path, entry)
    console.print(f"  [green]✓[/green] {alias} -> {entry.hostname}")
    return ReconcileOutcome(entry=entry, public_key_path=pubkey_path, written=True)
