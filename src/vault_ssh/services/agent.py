"""SSH agent operations."""

import logging
import subprocess
from typing import Iterator, List

from ..errors import AgentUnavailable
from ..models import Identity

logger = logging.getLogger(__name__)

NO_IDENTITIES_SENTINEL = "The agent has no identities"


def parse_identities(text: str) -> Iterator[Identity]:
    """
    Parse `ssh-add -L` output into identities.

    Each line is split into at most three fields: key material, key type and
    the comment, which keeps any whitespace it contains. Empty lines, the
    "no identities" message and lines with fewer than three fields are skipped.

    Args:
        text: Raw agent output

    Yields:
        Identity for every usable line
    """
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(NO_IDENTITIES_SENTINEL):
            continue

        parts = line.split(None, 2)
        if len(parts) < 3:
            logger.debug(f"Skipping agent line with {len(parts)} field(s)")
            continue

        key_material, key_type, comment = parts
        yield Identity(key_material=key_material, key_type=key_type, comment=comment)


class AgentService:
    """Service class for listing identities held by the SSH agent."""

    def __init__(self, binary: str = "ssh-add"):
        """Initialize agent service."""
        self.binary = binary

    def fetch_raw(self) -> str:
        """Return the raw public key listing from the agent."""
        try:
            result = subprocess.run([self.binary, "-L"], capture_output=True, text=True)
        except OSError as e:
            logger.error(f"Failed to run {self.binary}: {e}")
            raise AgentUnavailable(f"Could not run '{self.binary}': {e}") from e

        if result.returncode != 0:
            # ssh-add exits 1 when the agent is running but empty
            if result.returncode == 1 and result.stdout.strip().startswith(NO_IDENTITIES_SENTINEL):
                return result.stdout

            message = (result.stderr or result.stdout).strip() or f"exit code {result.returncode}"
            logger.error(f"Failed to list agent identities: {message}")
            raise AgentUnavailable(f"SSH agent unavailable: {message}")

        return result.stdout

    def list_identities(self) -> List[Identity]:
        """List identities currently loaded in the agent."""
        identities = list(parse_identities(self.fetch_raw()))
        logger.info(f"Found {len(identities)} identities in the SSH agent")
        return identities
