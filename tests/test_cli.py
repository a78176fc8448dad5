"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from xcsweep.cli import main

pytestmark = pytest.mark.usefixtures("isolate_settings", "no_dry_run_delay")


@pytest.fixture
def runner():
    return CliRunner()


def _invoke(runner, developer_folder, *args):
    return runner.invoke(main, [*args, "--developer-folder", str(developer_folder)])


class TestScanCommand:
    def test_lists_locations(self, runner, developer_folder):
        result = _invoke(runner, developer_folder, "scan")
        assert result.exit_code == 0, result.output
        for label in ("Device Support", "Archives", "Derived Data", "My App", "iOS"):
            assert label in result.output
        assert "Selected by default" in result.output

    def test_json_output(self, runner, developer_folder):
        result = _invoke(runner, developer_folder, "scan", "derived-data", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert list(data) == ["derived-data"]
        root = data["derived-data"]
        assert root["label"] == "Derived Data"
        assert [c["label"] for c in root["children"]] == ["My App", "Other-Tool"]
        assert root["selection"] == "off"
        assert root["size_bytes"] > 0

    def test_invalid_developer_folder(self, runner, tmp_path):
        result = runner.invoke(main, ["scan", "--developer-folder", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_settings_provide_developer_folder(self, runner, developer_folder):
        assert runner.invoke(main, ["config", "set", "folders.developer", str(developer_folder)]).exit_code == 0
        result = runner.invoke(main, ["scan", "archives", "--json"])
        assert result.exit_code == 0, result.output
        assert [c["label"] for c in json.loads(result.output)["archives"]["children"]] == ["App", "Tool"]


class TestCleanCommand:
    def test_dry_run_keeps_files(self, runner, developer_folder):
        derived = developer_folder / "Xcode" / "DerivedData"
        result = _invoke(runner, developer_folder, "clean", "derived-data", "--all", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "[1/2] Derived Data: My App" in result.output
        assert "[2/2] Derived Data: Other-Tool" in result.output
        assert "dry run" in result.output
        assert (derived / "My_App-abcdefgh").exists()

    def test_deletes_default_selection(self, runner, developer_folder):
        ios = developer_folder / "Xcode" / "iOS DeviceSupport"
        result = _invoke(runner, developer_folder, "clean", "device-support", "--yes")
        assert result.exit_code == 0, result.output
        assert not (ios / "iPhone 13.2.1 (19A339)").exists()
        assert (ios / "14.0 18A373").exists()
        assert "Freed" in result.output

    def test_confirmation_can_abort(self, runner, developer_folder):
        ios = developer_folder / "Xcode" / "iOS DeviceSupport"
        result = runner.invoke(
            main,
            ["clean", "device-support", "--developer-folder", str(developer_folder)],
            input="n\n",
        )
        assert result.exit_code == 0, result.output
        assert "Aborted" in result.output
        assert (ios / "iPhone 13.2.1 (19A339)").exists()

    def test_nothing_selected(self, runner, developer_folder):
        result = _invoke(runner, developer_folder, "clean", "archives", "--yes")
        assert result.exit_code == 0, result.output
        assert "Nothing selected" in result.output

    def test_json_output(self, runner, developer_folder):
        result = _invoke(runner, developer_folder, "clean", "archives", "--all", "--dry-run", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["status"] == "dry_run"
        assert len(data["targets"]) == 4
        assert data["failures"] == []
        assert data["selected_bytes"] > 0


class TestDumpCommand:
    def test_prints_tree(self, runner, developer_folder):
        result = _invoke(runner, developer_folder, "dump")
        assert result.exit_code == 0, result.output
        assert "\t Device Support" in result.output
        assert "\t\t App" in result.output


class TestConfigCommand:
    def test_set_show_unset(self, runner, tmp_path):
        folder = tmp_path / "DerivedData"
        result = runner.invoke(main, ["config", "set", "folders.derived_data", str(folder)])
        assert result.exit_code == 0, result.output

        shown = runner.invoke(main, ["config", "show"])
        assert str(folder) in shown.output

        removed = runner.invoke(main, ["config", "unset", "folders.derived_data"])
        assert "removed" in removed.output
        again = runner.invoke(main, ["config", "unset", "folders.derived_data"])
        assert "was not set" in again.output

    def test_rejects_unknown_key(self, runner):
        result = runner.invoke(main, ["config", "set", "folders.other", "/tmp"])
        assert result.exit_code != 0
