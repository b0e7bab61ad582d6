"""
tests/test_cli.py

journalkeep CLI: keygen, derive and schema through click's CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from journalkeep.cli import cli
from journalkeep.core.address import derive_journal_address
from journalkeep.core.config import DEFAULT_PROGRAM_ID
from journalkeep.core.crypto import Ed25519KeyManager
from journalkeep.core.exceptions import NoValidBumpError


@pytest.fixture
def runner(monkeypatch):
    for name in ("JOURNALKEEP_PROGRAM_ID", "JOURNALKEEP_LOG_LEVEL", "JOURNALKEEP_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


@pytest.fixture
def owner():
    return Ed25519KeyManager.generate().public_key_hex


class TestKeygen:

    def test_writes_loadable_key(self, runner, tmp_path):
        path = tmp_path / "owner.pem"
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 0, result.output
        assert result.output.strip() == Ed25519KeyManager.from_file(path).public_key_hex

    def test_refuses_to_overwrite(self, runner, tmp_path):
        path = tmp_path / "owner.pem"
        path.write_text("keep me")
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 2
        assert path.read_text() == "keep me"

    def test_force_overwrites(self, runner, tmp_path):
        path = tmp_path / "owner.pem"
        path.write_text("old")
        result = runner.invoke(cli, ["keygen", str(path), "--force"])
        assert result.exit_code == 0
        Ed25519KeyManager.from_file(path)


class TestDerive:

    def test_text_output(self, runner, owner):
        address, bump = derive_journal_address("Day 1", owner, DEFAULT_PROGRAM_ID)
        result = runner.invoke(cli, ["derive", "--title", "Day 1", "--owner", owner])
        assert result.exit_code == 0, result.output
        assert f"address  {address}" in result.output
        assert f"bump     {bump}" in result.output

    def test_json_output_with_program_id(self, runner, owner):
        program_id = "cd" * 32
        address, bump = derive_journal_address("T", owner, program_id)
        result = runner.invoke(cli, [
            "derive", "--title", "T", "--owner", owner.upper(),
            "--program-id", program_id, "--format", "json",
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["address"] == address
        assert data["bump"] == bump
        assert data["owner"] == owner

    def test_owner_from_key_file(self, runner, tmp_path):
        key = Ed25519KeyManager.generate()
        key.save(tmp_path / "owner.pem")
        result = runner.invoke(cli, [
            "derive", "--title", "T", "--key", str(tmp_path / "owner.pem"), "--format", "json",
        ])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["owner"] == key.public_key_hex

    def test_program_id_from_env(self, runner, owner, monkeypatch):
        program_id = "ef" * 32
        monkeypatch.setenv("JOURNALKEEP_PROGRAM_ID", program_id)
        result = runner.invoke(cli, ["derive", "--title", "T", "--owner", owner, "--format", "json"])
        assert json.loads(result.output)["program_id"] == program_id

    def test_owner_and_key_are_exclusive(self, runner, owner, tmp_path):
        Ed25519KeyManager.generate().save(tmp_path / "k.pem")
        result = runner.invoke(cli, [
            "derive", "--title", "T", "--owner", owner, "--key", str(tmp_path / "k.pem"),
        ])
        assert result.exit_code == 2

    def test_owner_required(self, runner):
        assert runner.invoke(cli, ["derive", "--title", "T"]).exit_code == 2

    def test_malformed_owner(self, runner):
        result = runner.invoke(cli, ["derive", "--title", "T", "--owner", "xyz"])
        assert result.exit_code == 2

    def test_title_too_long(self, runner, owner):
        result = runner.invoke(cli, ["derive", "--title", "t" * 51, "--owner", owner])
        assert result.exit_code == 2

    def test_unreadable_key_file(self, runner, tmp_path):
        path = tmp_path / "bad.pem"
        path.write_text("not a key")
        result = runner.invoke(cli, ["derive", "--title", "T", "--key", str(path)])
        assert result.exit_code == 2

    def test_no_valid_bump_exits_one(self, runner, owner, monkeypatch):
        def exhausted(*args, **kwargs):
            raise NoValidBumpError("no bump")

        monkeypatch.setattr("journalkeep.cli.derive.derive_journal_address", exhausted)
        result = runner.invoke(cli, ["derive", "--title", "T", "--owner", owner])
        assert result.exit_code == 1


class TestSchema:

    def test_json_layout(self, runner):
        result = runner.invoke(cli, ["schema", "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["space"] == 1098
        assert data["deposit"] == 8532960
        assert sum(field["bytes"] for field in data["layout"]) == 1098
        assert len(bytes.fromhex(data["discriminator"])) == 8

    def test_text_layout(self, runner):
        result = runner.invoke(cli, ["schema"])
        assert result.exit_code == 0
        assert "1098" in result.output
        assert "8532960 lamports" in result.output

    def test_bad_env_config(self, runner, monkeypatch):
        monkeypatch.setenv("JOURNALKEEP_LOG_LEVEL", "LOUD")
        assert runner.invoke(cli, ["schema"]).exit_code == 2
