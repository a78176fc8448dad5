"""Callback interfaces through which the engine reports scan and delete progress."""

from __future__ import annotations

from pathlib import Path


class ScanListener:
    """Receives scan lifecycle events. Override the hooks you need."""

    def scan_will_begin(self) -> None:
        pass

    def scan_did_finish(self) -> None:
        pass


class DeleteListener:
    """Receives delete lifecycle and per-item events. Override the hooks you need."""

    def delete_will_begin(self) -> None:
        pass

    def delete_in_progress(self, location: str, label: str, path: Path, current: int, total: int) -> None:
        """Called before each target is removed; *current* counts from 1."""

    def delete_item_failed(self, error: Exception, location: str, label: str, path: Path) -> None:
        """Called when a single target could not be removed. The batch continues."""

    def delete_did_finish(self) -> None:
        pass
