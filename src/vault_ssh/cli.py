#!/usr/bin/env python3
"""
Vault SSH Sync - SSH Configuration Generator

This tool synchronizes an SSH client config by:
1. Unlocking the Bitwarden vault and reading SSH key items
2. Listing identities loaded in the SSH agent
3. Exporting each identity's public key
4. Appending one Host entry per identity that is not configured yet

Usage:
    vault-ssh-sync [--config-file config.yaml] [--output-dir DIR] [--no-link]
"""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from .errors import ConfigNotFoundError, SyncError
from .sync import SyncOrchestrator
from .utils.config import load_settings
from .utils.display import display_configuration_info, display_sync_header

logger = logging.getLogger(__name__)
console = Console()


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Vault SSH Sync - Generate SSH config from agent identities and vault metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-ssh-sync
  vault-ssh-sync --output-dir ~/.ssh/generated --no-link
  vault-ssh-sync --keep-existing --password-env BW_PASSWORD
        """
    )

    parser.add_argument(
        '--config-file',
        help='Path to the YAML settings file (default: ~/.config/vault-ssh/config.yaml)'
    )

    parser.add_argument(
        '--output-dir',
        help='Directory for the generated config and exported keys (default: ~/.ssh/vault-ssh)'
    )

    parser.add_argument(
        '--link-path',
        help='Path to hard link the generated config to (default: ~/.ssh/config)'
    )

    parser.add_argument(
        '--no-link',
        action='store_true',
        help='Do not link the generated config into place'
    )

    parser.add_argument(
        '--keep-existing',
        action='store_true',
        help='Append to the existing config instead of rotating it to a backup'
    )

    parser.add_argument(
        '--password-env',
        help='Environment variable holding the vault master password'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    """Configure rich logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)]
    )


def main(argv=None) -> int:
    """Run a sync and return the process exit code."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    display_sync_header()

    try:
        settings = load_settings(
            args.config_file,
            overrides={
                "output_dir": args.output_dir,
                "link_path": args.link_path,
                "password_env": args.password_env,
                "rotate_existing": False if args.keep_existing else None,
            },
        )
    except ConfigNotFoundError as e:
        console.print(f"[red]Configuration Error: {e}[/red]")
        return 1

    if args.no_link:
        settings.link_path = None

    display_configuration_info(settings)

    try:
        report = SyncOrchestrator(settings).run()
    except SyncError as e:
        stage = e.stage.value if e.stage else "unknown"
        console.print(f"\n[red]✗ Sync failed during {stage}: {e}[/red]")
        return 1

    console.print("\n[bold green]✅ SSH Configuration Sync Complete![/bold green]")
    console.print(f"[green]{report.success_count} new entries written to {report.config_path}[/green]")
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Program interrupted by user.[/yellow]")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
