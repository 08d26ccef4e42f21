"""
Vault SSH Sync - SSH Configuration Generator

Builds SSH client config entries for the identities loaded in the SSH agent,
using hostnames and users stored on Bitwarden SSH key items.
"""

__version__ = "1.0.0"
__description__ = "SSH Configuration Generator for ssh-agent identities and Bitwarden metadata"

from .sync import SyncOrchestrator

__all__ = ["SyncOrchestrator"]
