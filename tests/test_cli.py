import re
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from tokenlic.cli import cli
from tokenlic.common.config import Config
from tokenlic.engine.license_validator import hardware_fingerprint
from tokenlic.engine.services import LicenseService


@pytest.fixture
def dirs(tmp_path, monkeypatch):
    """Point the CLI at temporary key and data directories."""
    keys_dir = tmp_path / "keys"
    data_dir = tmp_path / "data"
    monkeypatch.setenv("TOKENLIC_KEYS_DIR", str(keys_dir))
    monkeypatch.setenv("TOKENLIC_DATA_DIR", str(data_dir))
    monkeypatch.setenv("TOKENLIC_LOG_LEVEL", "WARNING")
    return keys_dir, data_dir


@pytest.fixture
def runner():
    return CliRunner()


def _issue(runner, *args):
    result = runner.invoke(cli, ["issue", "--customer-id", "acme", *args])
    assert result.exit_code == 0, result.output
    return result.output.strip().splitlines()[-1]


def test_cli_help(runner):
    """Test CLI help command."""
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    for command in ("keygen", "symkey", "issue", "verify", "revoke", "list", "fingerprint"):
        assert command in result.output


def test_cli_keygen(runner, dirs, tmp_path):
    """Test keygen command."""
    other_keys = tmp_path / "other"

    result = runner.invoke(cli, ["--keys-dir", str(other_keys), "keygen"])

    assert result.exit_code == 0
    assert "Keys generated and saved" in result.output
    assert (other_keys / "private.pem").exists()
    assert (other_keys / "public.pem").exists()


def test_cli_issue_and_verify(runner, dirs):
    runner.invoke(cli, ["keygen"])
    token = _issue(runner, "--metadata", '{"seats": 3}')
    assert token.count(".") == 1

    result = runner.invoke(cli, ["verify", token])

    assert result.exit_code == 0
    assert '"valid": true' in result.output
    assert '"customer_id": "acme"' in result.output
    assert '"seats": 3' in result.output


def test_cli_issue_ignores_malformed_metadata(runner, dirs):
    runner.invoke(cli, ["keygen"])
    token = _issue(runner, "--metadata", "{oops")
    result = runner.invoke(cli, ["verify", token])
    assert result.exit_code == 0
    assert '"metadata": {}' in result.output


def test_cli_issue_without_keys(runner, dirs):
    result = runner.invoke(cli, ["issue", "--customer-id", "acme"])
    assert result.exit_code != 0
    assert "tokenlic keygen" in result.output


def test_cli_verify_invalid_token(runner, dirs):
    runner.invoke(cli, ["keygen"])
    result = runner.invoke(cli, ["verify", "not.atoken"])
    assert result.exit_code == 1
    assert '"valid": false' in result.output


def test_cli_encrypted(runner, dirs):
    runner.invoke(cli, ["keygen"])
    runner.invoke(cli, ["symkey"])
    token = _issue(runner, "--encrypt")

    assert runner.invoke(cli, ["verify", "--encrypted", token]).exit_code == 0
    assert runner.invoke(cli, ["verify", token]).exit_code == 1


def test_cli_this_machine(runner, dirs):
    runner.invoke(cli, ["keygen"])
    token = _issue(runner, "--this-machine")

    assert runner.invoke(cli, ["verify", "--this-machine", token]).exit_code == 0
    assert runner.invoke(cli, ["verify", token]).exit_code == 1
    assert runner.invoke(cli, ["verify", "--hw", "elsewhere", token]).exit_code == 1


def test_cli_revoke_and_list(runner, dirs):
    runner.invoke(cli, ["keygen"])
    token = _issue(runner)

    listed = runner.invoke(cli, ["list"])
    assert listed.exit_code == 0
    uuid = re.search(r"^(\S+)\s+acme", listed.output, re.MULTILINE).group(1)

    result = runner.invoke(cli, ["revoke", uuid])
    assert "revoked" in result.output
    assert "already" in runner.invoke(cli, ["revoke", uuid]).output

    verified = runner.invoke(cli, ["verify", token])
    assert verified.exit_code == 1
    assert '"revoked": true' in verified.output


def test_cli_fingerprint(runner):
    result = runner.invoke(cli, ["fingerprint"])
    assert result.exit_code == 0
    assert result.output.strip() == hardware_fingerprint()


def test_cli_show_and_delete_keys(runner, dirs):
    runner.invoke(cli, ["keygen"])
    shown = runner.invoke(cli, ["show-keys"])
    assert "private: present" in shown.output
    assert "symmetric: missing" in shown.output
    assert "-----BEGIN PUBLIC KEY-----" in shown.output

    assert runner.invoke(cli, ["delete-keys"]).exit_code == 0
    assert runner.invoke(cli, ["delete-symkey"]).exit_code == 0
    assert "private: missing" in runner.invoke(cli, ["show-keys"]).output


def test_cli_issue_uses_configured_defaults(runner, dirs, monkeypatch):
    def service():
        config = Config()
        config.DEFAULT_VALIDITY_DAYS = 5
        config.DEFAULT_VERSION = "3.1"
        return LicenseService(config)

    monkeypatch.setattr("tokenlic.cli._service", service)
    runner.invoke(cli, ["keygen"])
    _issue(runner)

    listed = runner.invoke(cli, ["list"]).output
    expires = datetime.fromisoformat(re.search(r"expires (\S+)", listed).group(1))
    remaining = expires - datetime.now(timezone.utc)
    assert timedelta(days=4) < remaining <= timedelta(days=5)

    token = _issue(runner, "--license-version", "")
    assert '"version": ""' in runner.invoke(cli, ["verify", token]).output
    assert '"version": "3.1"' in runner.invoke(cli, ["verify", _issue(runner)]).output


def test_cli_revoke_with_corrupt_revocation_file(runner, dirs):
    _, data_dir = dirs
    data_dir.mkdir(parents=True)
    revoked = data_dir / "revoked_licenses.json"
    revoked.write_text('{"u-1": 1')

    result = runner.invoke(cli, ["revoke", "u-2"])

    assert result.exit_code != 0
    assert "corrupt" in result.output
    assert revoked.read_text() == '{"u-1": 1'
