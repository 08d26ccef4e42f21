"""
Filesystem bootstrap for the generated SSH config: directories, backups, default block and link.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..errors import BootstrapFailure
from ..models import SyncSettings

logger = logging.getLogger(__name__)

DEFAULT_BLOCK = "Host *\n  Port 22\n  AddKeysToAgent yes\n"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def ensure_layout(settings: SyncSettings) -> None:
    """Create the output and keys directories."""
    settings.output_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    settings.keys_dir.mkdir(mode=0o700, parents=True, exist_ok=True)


def rotate_config(config_path: Path, now: Optional[datetime] = None) -> Optional[Path]:
    """
    Rename an existing config to `<name>_<yyyyMMdd_HHmmss>.bak`.

    A counter is added (`<name>_<ts>_1.bak`) when a backup with the same
    timestamp already exists, so earlier backups are never replaced.

    Returns:
        Path of the backup, or None if there was nothing to rotate
    """
    if not config_path.exists():
        return None

    timestamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    stem = f"{config_path.name}_{timestamp}"
    backup_path = config_path.with_name(f"{stem}.bak")
    counter = 1
    while backup_path.exists():
        backup_path = config_path.with_name(f"{stem}_{counter}.bak")
        counter += 1

    config_path.rename(backup_path)
    logger.info(f"Backed up existing config to {backup_path}")
    return backup_path


def ensure_default_block(config_path: Path) -> bool:
    """
    Make sure the config starts with the `Host *` defaults.

    Existing content is kept verbatim after the default block.

    Returns:
        True if the default block was added
    """
    content = config_path.read_text() if config_path.exists() else ""
    if "Host *" in content:
        return False

    new_content = DEFAULT_BLOCK
    if content:
        new_content += "\n" + content
    config_path.write_text(new_content)
    return True


def link_config(config_path: Path, link_path: Path) -> None:
    """Hard link the generated config to `link_path`, replacing whatever is there."""
    link_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    if link_path.exists() or link_path.is_symlink():
        link_path.unlink()
    os.link(config_path, link_path)
    logger.info(f"Linked {link_path} -> {config_path}")


def bootstrap(settings: SyncSettings, now: Optional[datetime] = None) -> Optional[Path]:
    """
    Prepare the output layout, config file and link.

    Returns:
        Path of the backup made of a previous config, if any

    Raises:
        BootstrapFailure: On any filesystem error
    """
    try:
        ensure_layout(settings)

        backup_path = None
        if settings.rotate_existing:
            backup_path = rotate_config(settings.config_path, now)

        ensure_default_block(settings.config_path)

        if settings.link_path is not None:
            link_config(settings.config_path, settings.link_path)

        return backup_path

    except OSError as e:
        logger.error(f"Bootstrap failed: {e}")
        raise BootstrapFailure(f"Failed to prepare {settings.output_dir}: {e}") from e
