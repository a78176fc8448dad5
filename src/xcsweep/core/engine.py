"""Scanning and deletion engine for Xcode cache locations."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from xcsweep.core.access import AccessGrant
from xcsweep.core.dispatch import BackgroundWorker, MainQueue
from xcsweep.core.listeners import DeleteListener, ScanListener
from xcsweep.core.parsers import parse_archive, parse_derived_data, parse_device_support
from xcsweep.models.file_entry import ArchiveEntry, FileEntry
from xcsweep.utils import remove_path

log = logging.getLogger(__name__)

# Subfolders that must exist inside the developer folder.
_REQUIRED_FOLDERS = ("Xcode", "CoreSimulator")

# (OS label, folder under <developer>/Xcode)
_DEVICE_SUPPORT_FOLDERS = (
    ("iOS", "iOS DeviceSupport"),
    ("watchOS", "watchOS DeviceSupport"),
    ("tvOS", "tvOS DeviceSupport"),
)

_IGNORED_DERIVED_DATA_FOLDERS = frozenset({"ModuleCache", "ModuleCache.noindex"})

DRY_RUN_DELAY = 0.15


class DeveloperFolderError(Exception):
    """Raised when the developer folder is missing or lacks the Xcode data folders."""


class Location(Enum):
    """The cache categories the engine knows about."""

    DEVICE_SUPPORT = "device-support"
    ARCHIVES = "archives"
    DERIVED_DATA = "derived-data"

    @property
    def label(self) -> str:
        return _LOCATION_LABELS[self]

    @classmethod
    def all(cls) -> list[Location]:
        return list(cls)


_LOCATION_LABELS = {
    Location.DEVICE_SUPPORT: "Device Support",
    Location.ARCHIVES: "Archives",
    Location.DERIVED_DATA: "Derived Data",
}


@dataclass(frozen=True, slots=True)
class DeletionTarget:
    """A single path scheduled for removal."""

    location: str
    label: str
    path: Path


def _list_dir(path: Path) -> list[Path]:
    """List a directory non-recursively, sorted, without hidden items.

    A directory that cannot be read is logged and treated as empty.
    """
    try:
        return sorted(p for p in path.iterdir() if not p.name.startswith("."))
    except OSError as e:
        log.warning("Cannot check contents of '%s', skipping: %s", path, e)
        return []


class CacheEngine:
    """Discovers, sizes and deletes Xcode cache artifacts.

    Owns one root entry per :class:`Location`.  Roots are created once;
    rescans replace their children in place.

    ``scan`` and ``delete_selected`` run synchronously on the calling
    thread.  ``start_scan`` and ``start_delete`` run them on a single
    background worker.  Events go to ``scan_listener`` and
    ``delete_listener``, through *main_queue* when one is given or
    directly on the working thread otherwise.

    Callers must not start a scan or delete while another one is running.

    Raises:
        DeveloperFolderError: if *developer_folder* is not a usable Xcode
            developer folder.
    """

    def __init__(
        self,
        developer_folder: Path,
        custom_derived_data: Path | None = None,
        custom_archives: Path | None = None,
        main_queue: MainQueue | None = None,
    ) -> None:
        self._developer_folder = Path(developer_folder)
        self._developer_grant = AccessGrant(self._developer_folder)
        self._derived_data_grant: AccessGrant | None = None
        self._archives_grant: AccessGrant | None = None
        self._main_queue = main_queue
        self._worker: BackgroundWorker | None = None

        self.scan_listener: ScanListener | None = None
        self.delete_listener: DeleteListener | None = None
        self.dry_run_delay = DRY_RUN_DELAY

        self._developer_grant.acquire()
        try:
            self._adopt_custom_folders(custom_derived_data, custom_archives)
            if not self._check_developer_folder(self._developer_folder):
                raise DeveloperFolderError(
                    f"Xcode cache folders don't seem to exist in {self._developer_folder} "
                    "or they are not accessible"
                )
        except BaseException:
            self.close()
            raise

        self._locations = {
            Location.DEVICE_SUPPORT: FileEntry(Location.DEVICE_SUPPORT.label, selected=True),
            Location.ARCHIVES: FileEntry(Location.ARCHIVES.label, selected=False),
            Location.DERIVED_DATA: FileEntry(Location.DERIVED_DATA.label, selected=False),
        }

    def __enter__(self) -> CacheEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _check_developer_folder(folder: Path) -> bool:
        if not folder.is_dir():
            log.error("Developer folder does not exist: %s", folder)
            return False
        for name in _REQUIRED_FOLDERS:
            if not (folder / name).is_dir():
                log.error("Required folder '%s' not found in %s", name, folder)
                return False
        return True

    # -- Properties --

    @property
    def developer_folder(self) -> Path:
        return self._developer_folder

    @property
    def custom_derived_data(self) -> Path | None:
        return self._derived_data_grant.path if self._derived_data_grant else None

    @property
    def custom_archives(self) -> Path | None:
        return self._archives_grant.path if self._archives_grant else None

    @property
    def locations(self) -> Mapping[Location, FileEntry]:
        return MappingProxyType(self._locations)

    @property
    def total_size(self) -> int:
        return sum(entry.size or 0 for entry in self._locations.values())

    @property
    def selected_size(self) -> int:
        return sum(entry.selected_size for entry in self._locations.values())

    # -- Folders and access --

    def _adopt_custom_folders(self, derived_data: Path | None, archives: Path | None) -> None:
        if derived_data is not None:
            self._derived_data_grant = AccessGrant(Path(derived_data))
            self._derived_data_grant.acquire()
        if archives is not None:
            self._archives_grant = AccessGrant(Path(archives))
            self._archives_grant.acquire()

    def _release_custom_folders(self) -> None:
        for grant in (self._derived_data_grant, self._archives_grant):
            if grant is not None:
                grant.release()
        self._derived_data_grant = None
        self._archives_grant = None

    def update_custom_folders(self, derived_data: Path | None, archives: Path | None) -> None:
        """Replace the custom derived data and archives folders."""
        self._release_custom_folders()
        self._adopt_custom_folders(derived_data, archives)

    def close(self) -> None:
        """Release folder access and stop the background worker."""
        if self._worker is not None:
            self._worker.shutdown()
            self._worker = None
        self._release_custom_folders()
        self._developer_grant.release()

    def _search_folders(self, system_folder: Path, custom: AccessGrant | None) -> list[Path]:
        folders = [system_folder]
        if custom is not None and custom.path not in folders:
            folders.append(custom.path)
        return folders

    # -- Events --

    def _emit(self, listener_attr: str, event: str, *args: Any) -> None:
        def deliver() -> None:
            listener = getattr(self, listener_attr)
            if listener is not None:
                getattr(listener, event)(*args)

        if self._main_queue is not None:
            self._main_queue.post(deliver)
        else:
            deliver()

    # -- Background execution --

    def _get_worker(self) -> BackgroundWorker:
        if self._worker is None:
            self._worker = BackgroundWorker()
        return self._worker

    def start_scan(self, locations: Iterable[Location] | None = None) -> Future:
        """Run :meth:`scan` on the background worker."""
        return self._get_worker().submit(self.scan, locations)

    def start_delete(self, dry_run: bool = False) -> Future:
        """Run :meth:`delete_selected` on the background worker."""
        return self._get_worker().submit(self.delete_selected, dry_run)

    # -- Scanning --

    def clean_all_entries(self) -> None:
        """Forget every scanned entry."""
        for root in self._locations.values():
            root.remove_all_children()
            root.recalculate_size()

    def scan(self, locations: Iterable[Location] | None = None) -> None:
        """Rebuild the trees of the given locations (all of them by default)."""
        requested = list(locations) if locations is not None else Location.all()

        self._emit("scan_listener", "scan_will_begin")

        for location in requested:
            self._scan_location(location)

        self._emit("scan_listener", "scan_did_finish")

    def _scan_location(self, location: Location) -> None:
        root = self._locations[location]
        root.remove_all_children()

        match location:
            case Location.DEVICE_SUPPORT:
                root.add_children(self._scan_device_support())
            case Location.ARCHIVES:
                root.add_children(self._scan_archives())
            case Location.DERIVED_DATA:
                root.add_children(self._scan_derived_data())

        root.recalculate_size()
        root.recalculate_selection()
        log.info("Scanned %s: %d entries, %s bytes", location.label, len(root.children), root.size)

    def _scan_device_support(self) -> list[FileEntry]:
        xcode_folder = self._developer_folder / "Xcode"
        groups: list[FileEntry] = []

        for os_label, folder_name in _DEVICE_SUPPORT_FOLDERS:
            group = FileEntry(os_label, selected=True)
            entries = []
            for path in _list_dir(xcode_folder / folder_name):
                entry = parse_device_support(path.name, os_label)
                if entry is not None:
                    entry.add_path(path)
                    entries.append(entry)

            entries.sort(key=lambda e: e.version, reverse=True)

            # Symbols of the newest OS are most likely still in use
            if entries:
                entries[0].deselect_with_children()

            group.add_children(entries)
            groups.append(group)

        return groups

    def _scan_archives(self) -> list[FileEntry]:
        folders = self._search_folders(self._developer_folder / "Xcode" / "Archives", self._archives_grant)

        archives_by_bundle: dict[str, list[ArchiveEntry]] = {}
        for archives_folder in folders:
            for date_folder in _list_dir(archives_folder):
                if not date_folder.is_dir():
                    continue
                for archive_path in _list_dir(date_folder):
                    entry = parse_archive(archive_path)
                    if entry is not None:
                        entry.add_path(entry.location)
                        archives_by_bundle.setdefault(entry.bundle_id, []).append(entry)

        projects: list[FileEntry] = []
        for archives in archives_by_bundle.values():
            project = FileEntry(archives[0].project_name, selected=False)
            archives.sort(key=lambda e: (e.version, e.build), reverse=True)
            project.add_children(archives)
            projects.append(project)

        projects.sort(key=lambda p: p.label.lower())
        return projects

    def _scan_derived_data(self) -> list[FileEntry]:
        folders = self._search_folders(self._developer_folder / "Xcode" / "DerivedData", self._derived_data_grant)

        entries: list[FileEntry] = []
        for derived_data_folder in folders:
            for project_folder in _list_dir(derived_data_folder):
                if project_folder.name in _IGNORED_DERIVED_DATA_FOLDERS or not project_folder.is_dir():
                    continue
                entry = parse_derived_data(project_folder)
                if entry is not None:
                    entry.add_path(project_folder)
                    entries.append(entry)

        return entries

    # -- Deleting --

    def collect_selected_targets(self) -> list[DeletionTarget]:
        """Paths of every selected entry that owns paths, in tree order."""
        targets: list[DeletionTarget] = []

        for root in self._locations.values():
            # Iterative pre-order walk; children pushed reversed to keep their order
            stack = [root]
            while stack:
                entry = stack.pop()
                if entry.is_selected and entry.paths:
                    targets.extend(DeletionTarget(root.label, entry.label, path) for path in entry.paths)
                stack.extend(reversed(entry.children))

        return targets

    def delete_selected(self, dry_run: bool = False) -> list[DeletionTarget]:
        """Remove every selected path, one at a time.

        A failing target is reported to ``delete_item_failed`` and the
        batch continues.  With *dry_run* nothing is removed.

        Returns:
            The targets that were attempted, in order.
        """
        self._emit("delete_listener", "delete_will_begin")

        targets = self.collect_selected_targets()
        dry_run_info = "[DRY RUN] " if dry_run else ""
        total = len(targets)

        for ordinal, target in enumerate(targets, start=1):
            self._emit(
                "delete_listener",
                "delete_in_progress",
                target.location,
                target.label,
                target.path,
                ordinal,
                total,
            )
            log.info("Deleting %s%s: %s (%s)", dry_run_info, target.location, target.label, target.path)

            if dry_run:
                time.sleep(self.dry_run_delay)
                continue

            try:
                remove_path(target.path)
            except OSError as e:
                log.warning("Failed to delete %s: %s", target.path, e)
                self._emit("delete_listener", "delete_item_failed", e, target.location, target.label, target.path)

        self._emit("delete_listener", "delete_did_finish")
        return targets

    # -- Diagnostics --

    def debug_representation(self) -> str:
        """Plain-text dump of all location trees with their sizes."""
        return "".join(entry.debug_representation() + "\n" for entry in self._locations.values())
