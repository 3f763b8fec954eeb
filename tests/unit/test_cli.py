"""
Unit tests for the logship CLI (fake client injected via make_client).
"""

import json

import pytest
from typer.testing import CliRunner

from logship import cli

runner = CliRunner()


@pytest.fixture
def patched_client(monkeypatch, fake_client):
    monkeypatch.setattr(cli, "make_client", lambda region=None: fake_client)
    return fake_client


def test_ship_from_file(tmp_path, patched_client):
    log = tmp_path / "app.log"
    log.write_text("first\n\nsecond\nthird\n", encoding="utf-8")

    result = runner.invoke(cli.app, ["ship", str(log), "--group", "g", "--stream", "s"])
    assert result.exit_code == 0, result.output
    summary = json.loads(result.output)
    assert summary == {"sent": 3, "batches": 1, "pending": 0}
    assert [e.message for e in patched_client.appended("g", "s")] == ["first", "second", "third"]


def test_ship_from_stdin(patched_client):
    result = runner.invoke(cli.app, ["ship", "-", "-g", "g", "-s", "s"], input="a\nb\n")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["sent"] == 2


def test_ship_reports_failure(tmp_path, patched_client):
    patched_client.groups["g"] = {}
    log = tmp_path / "app.log"
    log.write_text("line\n", encoding="utf-8")

    result = runner.invoke(
        cli.app, ["ship", str(log), "-g", "g", "-s", "s", "--no-ensure-log-group"]
    )
    assert result.exit_code == 1
    assert "Stream not found" in result.output


def test_ensure_prints_token(patched_client):
    patched_client.add_stream("g", "s", token="tok")
    result = runner.invoke(cli.app, ["ensure", "-g", "g", "-s", "s"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["upload_sequence_token"] == "tok"


def test_describe_lists_streams(patched_client):
    patched_client.add_stream("g", "web-1", token="a")
    patched_client.add_stream("g", "web-2")
    patched_client.add_stream("g", "db")
    result = runner.invoke(cli.app, ["describe", "-g", "g", "--prefix", "web"])
    assert result.exit_code == 0, result.output
    names = [json.loads(line)["name"] for line in result.output.splitlines()]
    assert names == ["web-1", "web-2"]


def test_limits_command():
    result = runner.invoke(cli.app, ["limits"])
    assert result.exit_code == 0
    assert json.loads(result.output)["max_batch_bytes"] == 1_000_000
