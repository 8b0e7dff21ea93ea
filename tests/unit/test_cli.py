"""Tests for the fleetref command line interface.

Each command runs its own event loop, so the tests use a file database that
survives between invocations.
"""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from fleetref.cli import app
from fleetref.config import reset_config

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    reset_config()
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0, result.output
    return tmp_path


def test_init_seeds_rules(cli_db):
    result = runner.invoke(app, ["rules"])

    assert result.exit_code == 0
    assert "*777*" in result.output


def test_canonicalize(cli_db):
    result = runner.invoke(app, ["canonicalize", "777-200F"])

    assert result.exit_code == 0
    assert "B777" in result.output
    assert "pattern" in result.output


def test_import_commit_then_history_and_export(cli_db):
    source = cli_db / "customers.csv"
    source.write_text("name,iata_code\nAtlas Air,5Y\nCargojet,W8\n")

    imported = runner.invoke(app, ["import", str(source), "--type", "customers", "--commit"])
    history = runner.invoke(app, ["history"])
    exported = runner.invoke(app, ["export", "customer"])

    assert imported.exit_code == 0, imported.output
    assert "2 added" in imported.output
    assert history.exit_code == 0
    assert exported.output.splitlines()[0].startswith("id,name,display_name")
    assert len(exported.output.splitlines()) == 3


def test_validate_only_writes_nothing(cli_db):
    source = cli_db / "customers.json"
    source.write_text('[{"name": "Atlas Air"}]')

    validated = runner.invoke(app, ["import", str(source), "-t", "customer"])
    exported = runner.invoke(app, ["export", "customer"])

    assert validated.exit_code == 0
    assert len(exported.output.splitlines()) == 1


def test_confirm(cli_db):
    source = cli_db / "customers.csv"
    source.write_text("name\nAtlas Air\n")
    runner.invoke(app, ["import", str(source), "-t", "customer", "--commit"])

    result = runner.invoke(app, ["confirm", "customer", "Atlas Air", "Nobody"])

    assert result.exit_code == 0
    assert "Confirmed 1 of 2" in result.output


def test_invalid_file_exits_nonzero(cli_db):
    source = cli_db / "aircraft.csv"
    source.write_text("registration,model\nN401KZ,747-400F\n")

    result = runner.invoke(app, ["import", str(source), "-t", "aircraft", "--commit"])

    assert result.exit_code == 1
    assert "Missing required headers" in result.output


def test_unknown_format(cli_db):
    source = cli_db / "customers.txt"
    source.write_text("name\nAtlas Air\n")

    result = runner.invoke(app, ["import", str(source), "-t", "customer"])

    assert result.exit_code != 0
