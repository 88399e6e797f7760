"""Tests for the command-line interface."""

import os
from unittest.mock import patch

import pytest

from conftest import StubClient, make_info
from dlnupkg import cli


@pytest.fixture
def stub_client(chain_client):
    chain_client.packages[("foo", "1.0")] = make_info(
        "Foo", "1.0", {"net8.0": [("Bar", "1.0")], "net6.0": []})
    with patch("dlnupkg.cli.RegistryClient", return_value=chain_client):
        yield chain_client


def test_downloads_package_and_dependencies(stub_client, tmp_path, capsys):
    cli.main(["Foo", "1.0", "--platform", "net8.0", "-d", str(tmp_path)])

    assert sorted(os.listdir(str(tmp_path))) == [
        "bar.1.0.0.nupkg", "baz.1.0.0.nupkg", "foo.1.0.0.nupkg"]
    out = capsys.readouterr().out
    assert "Successfully downloaded: 3 packages" in out


def test_prompts_for_missing_arguments(stub_client, tmp_path, monkeypatch):
    answers = iter(["Foo", "1.0", "1"])
    monkeypatch.setattr("builtins.input", lambda _: next(answers))

    cli.main(["-d", str(tmp_path)])

    assert len(os.listdir(str(tmp_path))) == 3


def test_empty_package_name_exits(stub_client, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda _: "")

    with pytest.raises(SystemExit) as exc_info:
        cli.main([])

    assert exc_info.value.code == 1
    assert "Package name cannot be empty." in capsys.readouterr().out
    assert stub_client.info_calls == []


def test_list_platforms(stub_client, capsys):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["Foo", "1.0", "--list-platforms"])

    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    assert "  - net8.0" in out
    assert "  - net6.0" in out


def test_unknown_package_reports_error(tmp_path, capsys):
    with patch("dlnupkg.cli.RegistryClient", return_value=StubClient()):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["Ghost", "1.0", "-d", str(tmp_path)])

    assert exc_info.value.code == 1
    assert "Error:" in capsys.readouterr().out


def test_all_downloads_failing_exits_nonzero(tmp_path, capsys):
    client = StubClient([make_info("Foo", "1.0", {"net8.0": []}, artifact_url=None)])
    with patch("dlnupkg.cli.RegistryClient", return_value=client):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["Foo", "1.0", "--platform", "net8.0", "-d", str(tmp_path)])

    assert exc_info.value.code == 1
    assert "    - foo 1.0: Could not find download link" in capsys.readouterr().out
