"""Shared utility functions."""

from __future__ import annotations

import logging
import os
import shutil
import stat
from pathlib import Path

log = logging.getLogger(__name__)

# st_blocks is always expressed in 512-byte units, whatever the filesystem block size.
_BLOCK_UNIT = 512


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def default_developer_folder() -> Path:
    """Return the per-user developer data folder, ~/Library/Developer."""
    return Path.home() / "Library" / "Developer"


def _allocated(st: os.stat_result) -> int:
    blocks = getattr(st, "st_blocks", None)
    if blocks is None:
        return st.st_size
    return blocks * _BLOCK_UNIT


def allocated_size(path: Path | str) -> int:
    """Return the on-disk allocated size of a file or directory tree.

    Counts the blocks actually used, not the logical file lengths.
    Symlinks are not followed.  Unreadable subdirectories are skipped.

    Raises:
        OSError: if *path* itself cannot be examined.
    """
    root_stat = os.lstat(path)
    if not stat.S_ISDIR(root_stat.st_mode):
        return _allocated(root_stat)

    total = 0
    stack: list[Path | str] = [path]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as it:
                for entry in it:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(entry.path)
                        else:
                            total += _allocated(entry.stat(follow_symlinks=False))
                    except OSError:
                        log.debug("Cannot stat: %s", entry.path)
        except OSError:
            log.debug("Cannot read directory: %s", current)
    return total


def remove_path(path: Path) -> None:
    """Remove a file, symlink or whole directory tree.

    Raises:
        OSError: if the removal fails, including when *path* does not exist.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"
