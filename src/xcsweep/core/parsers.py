"""Turn raw cache folder names and metadata into typed entries.

Every parser returns None for input it does not recognize; the reason
is logged and the scan carries on.
"""

from __future__ import annotations

import logging
import plistlib
from datetime import datetime
from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

from xcsweep.models.file_entry import ArchiveEntry, DerivedDataEntry, DeviceSupportEntry, OSType
from xcsweep.models.version import Version

log = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".xcarchive"
ARCHIVE_INFO_FILE = "Info.plist"
DERIVED_DATA_INFO_FILE = "info.plist"


def read_plist(path: Path) -> dict[str, Any] | None:
    """Load a property list file, returning None if it is missing or malformed."""
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ExpatError, ValueError) as e:
        log.debug("Cannot read property list %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        log.debug("Property list %s is not a dictionary", path)
        return None
    return data


def parse_device_support(name: str, os_label: str, selected: bool = True) -> DeviceSupportEntry | None:
    """Parse a device-support folder name.

    Accepted shapes are ``"<device> <version> <build>"`` and
    ``"<version> <build>"``, e.g. ``"iPhone 13.2.1 (19A339)"``.
    """
    tokens = name.split(maxsplit=2)

    match len(tokens):
        case 3:
            device, version_text, build = tokens
        case 2:
            device = None
            version_text, build = tokens
        case _:
            log.warning("Unrecognized device support folder: %s, skipping", name)
            return None

    version = Version.parse(version_text)
    if version is None:
        log.warning("No version for device support: %s, skipping", name)
        return None

    return DeviceSupportEntry(
        device=device,
        os_type=OSType.from_label(os_label),
        version=version,
        build=build,
        selected=selected,
    )


def parse_archive(location: Path, selected: bool = False) -> ArchiveEntry | None:
    """Build an entry for an ``.xcarchive`` bundle from its Info.plist."""
    if location.suffix != ARCHIVE_EXTENSION:
        return None

    info = read_plist(location / ARCHIVE_INFO_FILE)
    if info is None:
        log.warning("Cannot open Info.plist file from archive: %s", location)
        return None

    project_name = info.get("Name")
    if not isinstance(project_name, str):
        log.warning("Cannot get project name from archive: %s", location)
        return None

    date = info.get("CreationDate")
    if not isinstance(date, datetime):
        log.warning("Cannot get archive date from archive: %s", location)
        return None

    properties = info.get("ApplicationProperties")
    if not isinstance(properties, dict):
        log.warning("Cannot get 'ApplicationProperties' from archive Info.plist file: %s", location)
        return None

    bundle_id = properties.get("CFBundleIdentifier")
    if not isinstance(bundle_id, str):
        log.warning("Cannot get bundle identifier from archive: %s", location)
        return None

    version_text = properties.get("CFBundleShortVersionString")
    version = Version.parse(version_text) if isinstance(version_text, str) else None
    if version is None:
        log.warning("Cannot get bundle version from archive: %s", location)
        return None

    build = properties.get("CFBundleVersion")
    if not isinstance(build, str):
        log.warning("Cannot get bundle build from archive: %s", location)
        return None

    return ArchiveEntry(
        project_name=project_name,
        bundle_id=bundle_id,
        version=version,
        build=build,
        date=date,
        location=location,
        selected=selected,
    )


def derived_data_project_name(folder_name: str) -> str:
    """Recover a readable project name from a folder like ``My_App-abcdefgh``."""
    tokens = [t for t in folder_name.split("-") if t]
    name = "-".join(tokens[:-1]) or folder_name
    return name.replace("_", " ")


def parse_derived_data(location: Path, selected: bool = False) -> DerivedDataEntry | None:
    """Build an entry for a project's derived data folder."""
    info = read_plist(location / DERIVED_DATA_INFO_FILE)
    workspace_path = info.get("WorkspacePath") if info else None
    if not isinstance(workspace_path, str):
        log.warning("Cannot find workspace path for derived data: %s, skipping", location)
        return None

    return DerivedDataEntry(
        project_name=derived_data_project_name(location.name),
        project_path=Path(workspace_path),
        selected=selected,
    )
