"""Hierarchical entry model for discovered cache content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from xcsweep.models.version import Version
from xcsweep.utils import allocated_size, bytes_to_human

log = logging.getLogger(__name__)


class Selection(Enum):
    """Tri-state selection of an entry."""

    ON = "on"
    OFF = "off"
    MIXED = "mixed"


class EntryContractError(ValueError):
    """Raised when an entry would own both paths and children."""


@dataclass(slots=True)
class _Paths:
    items: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class _Children:
    items: list[FileEntry] = field(default_factory=list)


class FileEntry:
    """A node in the tree of discovered cache content.

    A node owns either filesystem paths or child entries, never both.
    The content is held in a single variant slot so the mixed state
    cannot be represented; adding the other kind raises
    :class:`EntryContractError`.

    ``size`` is None until :meth:`recalculate_size` runs.
    """

    def __init__(self, label: str, selected: bool) -> None:
        self._label = label
        self.selection = Selection.ON if selected else Selection.OFF
        self.size: int | None = None
        self._content: _Paths | _Children | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._label!r}, {self.selection.value})"

    @property
    def label(self) -> str:
        return self._label

    @property
    def paths(self) -> tuple[Path, ...]:
        if isinstance(self._content, _Paths):
            return tuple(self._content.items)
        return ()

    @property
    def children(self) -> tuple[FileEntry, ...]:
        if isinstance(self._content, _Children):
            return tuple(self._content.items)
        return ()

    @property
    def is_selected(self) -> bool:
        return self.selection is Selection.ON

    @property
    def selected_size(self) -> int:
        """Bytes that deleting the current selection would free.

        A node's own size counts only when it is fully selected and owns
        paths; a grouping node's size is already covered by its children.
        """
        result = sum(child.selected_size for child in self.children)
        if self.selection is Selection.ON and self.paths:
            result += self.size or 0
        return result

    # -- Content --

    def add_child(self, entry: FileEntry) -> None:
        self.add_children([entry])

    def add_children(self, entries: list[FileEntry]) -> None:
        if isinstance(self._content, _Paths):
            raise EntryContractError(f"Cannot add children to '{self._label}': it already owns paths")
        if self._content is None:
            self._content = _Children()
        self._content.items.extend(entries)

    def add_path(self, path: Path) -> None:
        if isinstance(self._content, _Children):
            raise EntryContractError(f"Cannot add a path to '{self._label}': it already has children")
        if self._content is None:
            self._content = _Paths()
        self._content.items.append(path)

    def remove_all_children(self) -> None:
        if isinstance(self._content, _Children):
            self._content = None

    # -- Selection --

    def select_with_children(self) -> None:
        """Select this entry and every descendant."""
        self._cascade(Selection.ON)

    def deselect_with_children(self) -> None:
        """Deselect this entry and every descendant."""
        self._cascade(Selection.OFF)

    def _cascade(self, selection: Selection) -> None:
        self.selection = selection
        for child in self.children:
            child._cascade(selection)

    def recalculate_selection(self) -> Selection:
        """Derive selection of grouping nodes from their children, bottom-up."""
        children = self.children
        for child in children:
            child.recalculate_selection()

        if children:
            selected = sum(1 for child in children if child.selection is Selection.ON)
            if selected == len(children):
                self.selection = Selection.ON
            elif all(child.selection is Selection.OFF for child in children):
                self.selection = Selection.OFF
            else:
                self.selection = Selection.MIXED
        return self.selection

    # -- Size --

    def recalculate_size(self) -> int:
        """Recompute sizes of this subtree, bottom-up, and return this node's size."""
        result = 0
        for child in self.children:
            result += child.recalculate_size()

        for path in self.paths:
            try:
                result += allocated_size(path)
            except OSError as e:
                log.warning("Cannot compute size of %s: %s", path, e)

        self.size = result
        return result

    def debug_representation(self, level: int = 1) -> str:
        """Plain-text dump of this subtree, one tab of indentation per level."""
        line = "\t" * level + f" {self._label}"
        if self.size is not None:
            line += f": {bytes_to_human(self.size)}"
        parts = [line + "\n"]
        for child in self.children:
            parts.append(child.debug_representation(level + 1))
        return "".join(parts)


class OSType(Enum):
    """Platform a device-support folder was collected for."""

    IOS = "iOS"
    WATCHOS = "watchOS"
    TVOS = "tvOS"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: str) -> OSType:
        for os_type in cls:
            if os_type.value == label:
                return os_type
        return cls.OTHER


class DeviceSupportEntry(FileEntry):
    """Symbol cache copied from a device running a given OS version."""

    def __init__(
        self,
        device: str | None,
        os_type: OSType,
        version: Version,
        build: str,
        selected: bool,
    ) -> None:
        label = f"{os_type.value} {version} {build}"
        if device:
            label = f"{device} {label}"
        super().__init__(label, selected)
        self.device = device
        self.os_type = os_type
        self.version = version
        self.build = build


class ArchiveEntry(FileEntry):
    """Single ``.xcarchive`` produced for a project."""

    def __init__(
        self,
        project_name: str,
        bundle_id: str,
        version: Version,
        build: str,
        date: datetime,
        location: Path,
        selected: bool,
    ) -> None:
        super().__init__(f"{version} ({build}) {date:%Y-%m-%d %H:%M}", selected)
        self.project_name = project_name
        self.bundle_id = bundle_id
        self.version = version
        self.build = build
        self.date = date
        self.location = location


class DerivedDataEntry(FileEntry):
    """Derived build data of one project."""

    def __init__(self, project_name: str, project_path: Path, selected: bool) -> None:
        super().__init__(project_name, selected)
        self.project_name = project_name
        self.project_path = project_path
