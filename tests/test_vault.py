"""Tests for the vault service and metadata lookup."""

import json
import os
from unittest.mock import Mock, patch

import pytest

from vault_ssh.errors import MetadataFetchFailure, VaultUnlockFailure
from vault_ssh.models import ConnectionMetadata, ItemType, VaultStatus
from vault_ssh.services.vault import (
    PROMPT_PASSWORD_ENV,
    VaultService,
    build_metadata_lookup,
)


def ssh_item(name, hostname=None, user=None, item_type=ItemType.SSH_KEY):
    """Build a vault item the way `bw list items` returns it."""
    fields = []
    if hostname is not None:
        fields.append({"name": "HostName", "value": hostname, "type": 0})
    if user is not None:
        fields.append({"name": "User", "value": user, "type": 0})
    return {"id": f"id-{name}", "name": name, "type": int(item_type), "fields": fields}


class TestBuildMetadataLookup:
    """Test metadata lookup construction."""

    def test_reads_hostname_and_user(self):
        """Test the HostName and User fields are extracted."""
        lookup = build_metadata_lookup([ssh_item("build-server", "10.0.0.5", "deploy")])

        assert lookup == {
            "build-server": ConnectionMetadata(name="build-server", hostname="10.0.0.5", user="deploy")
        }

    def test_ignores_other_item_types(self):
        """Test only SSH key items are consumed."""
        items = [
            ssh_item("login", "example.com", item_type=ItemType.LOGIN),
            ssh_item("note", item_type=ItemType.SECURE_NOTE),
            ssh_item("key", "10.0.0.1"),
        ]

        assert list(build_metadata_lookup(items)) == ["key"]

    def test_missing_fields_are_none(self):
        """Test items without fields still appear."""
        item = {"name": "bare", "type": 5}

        lookup = build_metadata_lookup([item])

        assert lookup["bare"].hostname is None
        assert lookup["bare"].user is None

    def test_field_names_are_exact(self):
        """Test fields with other casing are not read."""
        item = {
            "name": "k",
            "type": 5,
            "fields": [{"name": "hostname", "value": "x"}, {"name": "user", "value": "y"}],
        }

        lookup = build_metadata_lookup([item])

        assert lookup["k"].hostname is None
        assert lookup["k"].user is None

    def test_later_duplicate_wins(self, caplog):
        """Test duplicate names keep the last item and warn."""
        items = [ssh_item("dup", "first"), ssh_item("dup", "second")]

        lookup = build_metadata_lookup(items)

        assert lookup["dup"].hostname == "second"
        assert "Duplicate vault item 'dup'" in caplog.text

    def test_custom_field_names(self):
        """Test configurable field names."""
        item = {"name": "k", "type": 5, "fields": [{"name": "Address", "value": "h"}]}

        lookup = build_metadata_lookup([item], hostname_field="Address")

        assert lookup["k"].hostname == "h"


class TestVaultService:
    """Test Vault Service."""

    @pytest.fixture
    def vault_service(self):
        """Create vault service reading the password from the environment."""
        return VaultService("bw", password_env="BW_PASSWORD")

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_status(self, mock_run, vault_service):
        """Test parsing `bw status`."""
        mock_run.return_value = Mock(
            returncode=0, stdout=json.dumps({"status": "locked", "serverUrl": None}), stderr=""
        )

        assert vault_service.status() == VaultStatus.LOCKED

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_status_garbage_raises(self, mock_run, vault_service):
        """Test unexpected status output."""
        mock_run.return_value = Mock(returncode=0, stdout="not json", stderr="")

        with pytest.raises(VaultUnlockFailure):
            vault_service.status()

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_unlock_returns_token(self, mock_run, vault_service):
        """Test unlocking with a password environment variable."""
        mock_run.return_value = Mock(returncode=0, stdout="session-token\n", stderr="")

        token = vault_service.unlock()

        assert token == "session-token"
        mock_run.assert_called_once_with(
            ["bw", "unlock", "--raw", "--passwordenv", "BW_PASSWORD"],
            capture_output=True,
            text=True,
            env=None,
        )

    @patch("vault_ssh.services.vault.getpass.getpass")
    @patch("vault_ssh.services.vault.subprocess.run")
    def test_unlock_prompts_without_touching_environ(self, mock_run, mock_getpass):
        """Test the prompted password only reaches the child process."""
        mock_getpass.return_value = "hunter2"
        mock_run.return_value = Mock(returncode=0, stdout="tok", stderr="")

        with patch.dict("os.environ", {}, clear=False):
            VaultService("bw").unlock()
            assert PROMPT_PASSWORD_ENV not in os.environ

        env = mock_run.call_args.kwargs["env"]
        assert env[PROMPT_PASSWORD_ENV] == "hunter2"
        assert mock_run.call_args.args[0][-1] == PROMPT_PASSWORD_ENV

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_unlock_wrong_password(self, mock_run, vault_service):
        """Test a rejected password."""
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="Invalid master password.")

        with pytest.raises(VaultUnlockFailure):
            vault_service.unlock()

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_session_is_passed_as_argument(self, mock_run, vault_service):
        """Test the session token is threaded through as --session."""
        mock_run.return_value = Mock(returncode=0, stdout="[]", stderr="")

        vault_service.list_items("tok")

        assert mock_run.call_args.args[0] == ["bw", "list", "items", "--session", "tok"]

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_sync_failure_is_not_fatal(self, mock_run, vault_service):
        """Test `bw sync` failures only warn."""
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="offline")

        assert vault_service.sync("tok") is False

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_list_items(self, mock_run, vault_service):
        """Test listing items."""
        items = [ssh_item("a", "1.2.3.4")]
        mock_run.return_value = Mock(returncode=0, stdout=json.dumps(items), stderr="")

        assert vault_service.list_items() == items
        assert mock_run.call_args.args[0] == ["bw", "list", "items"]

    @patch("vault_ssh.services.vault.subprocess.run")
    def test_list_items_failure(self, mock_run, vault_service):
        """Test provider errors while listing."""
        mock_run.return_value = Mock(returncode=1, stdout="", stderr="Session key is invalid.")

        with pytest.raises(MetadataFetchFailure):
            vault_service.list_items("bad")
