"""Shared test fixtures."""

from __future__ import annotations

import plistlib
from datetime import datetime
from pathlib import Path

import pytest

import xcsweep.core.engine as engine_module


def write_plist(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        plistlib.dump(data, f)


def make_archive(
    folder: Path,
    name: str,
    project: str | None = "App",
    bundle_id: str | None = "com.example.app",
    version: str | None = "1.0",
    build: str | None = "1",
    date: datetime | None = datetime(2024, 1, 10, 12, 30),
) -> Path:
    """Create a fake .xcarchive bundle; pass None to leave a field out."""
    archive = folder / f"{name}.xcarchive"
    archive.mkdir(parents=True)
    (archive / "Products").mkdir()
    (archive / "Products" / "App.ipa").write_bytes(b"a" * 4096)

    properties = {
        "CFBundleIdentifier": bundle_id,
        "CFBundleShortVersionString": version,
        "CFBundleVersion": build,
    }
    info = {
        "Name": project,
        "CreationDate": date,
        "ApplicationProperties": {k: v for k, v in properties.items() if v is not None},
    }
    write_plist(archive / "Info.plist", {k: v for k, v in info.items() if v is not None})
    return archive


def make_derived_data(folder: Path, name: str, workspace: str | None) -> Path:
    project = folder / name
    (project / "Build").mkdir(parents=True)
    (project / "Build" / "output.o").write_bytes(b"o" * 8192)
    if workspace is not None:
        write_plist(project / "info.plist", {"WorkspacePath": workspace, "LastAccessedDate": datetime(2024, 1, 1)})
    return project


def make_device_support(folder: Path, name: str) -> Path:
    path = folder / name
    (path / "Symbols").mkdir(parents=True)
    (path / "Symbols" / "dyld").write_bytes(b"s" * 4096)
    return path


@pytest.fixture
def developer_folder(tmp_path):
    """Create a fake ~/Library/Developer with every cache location populated."""
    developer = tmp_path / "Developer"
    xcode = developer / "Xcode"
    (developer / "CoreSimulator").mkdir(parents=True)

    ios = xcode / "iOS DeviceSupport"
    make_device_support(ios, "iPhone 13.2.1 (19A339)")
    make_device_support(ios, "14.0 18A373")
    make_device_support(ios, "garbage")
    make_device_support(xcode / "watchOS DeviceSupport", "Watch4,2 7.0 (18R382)")

    archives = xcode / "Archives"
    make_archive(archives / "2024-01-10", "App 1", version="1.0", build="1")
    make_archive(archives / "2024-01-10", "App 2", version="1.2", build="5")
    make_archive(archives / "2024-02-01", "App 3", version="1.2", build="7")
    make_archive(archives / "2024-02-01", "Tool", project="Tool", bundle_id="com.example.tool")
    make_archive(archives / "2024-02-01", "Broken", bundle_id=None)
    (archives / "2024-02-01" / "notes").mkdir()

    derived = xcode / "DerivedData"
    make_derived_data(derived, "My_App-abcdefgh", "/Users/dev/Projects/My App/My App.xcodeproj")
    make_derived_data(derived, "Other-Tool-ijklmnop", "/Users/dev/Projects/Other-Tool.xcworkspace")
    make_derived_data(derived, "Orphan-qrstuvwx", None)
    (derived / "ModuleCache").mkdir()
    (derived / "ModuleCache" / "cache.pcm").write_bytes(b"m" * 1024)

    return developer


@pytest.fixture
def no_dry_run_delay(monkeypatch):
    """Make simulated deletions instant."""
    monkeypatch.setattr(engine_module, "DRY_RUN_DELAY", 0)


@pytest.fixture
def isolate_settings(tmp_path, monkeypatch):
    """Redirect the settings file to a temp directory."""
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home / "xcsweep" / "settings.json"
