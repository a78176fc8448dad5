"""xcsweep data models."""

from xcsweep.models.file_entry import (
    ArchiveEntry,
    DerivedDataEntry,
    DeviceSupportEntry,
    EntryContractError,
    FileEntry,
    OSType,
    Selection,
)
from xcsweep.models.version import Version

__all__ = [
    "ArchiveEntry",
    "DerivedDataEntry",
    "DeviceSupportEntry",
    "EntryContractError",
    "FileEntry",
    "OSType",
    "Selection",
    "Version",
]
