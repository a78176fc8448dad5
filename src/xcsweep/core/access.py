"""Scoped access to user-chosen directories."""

from __future__ import annotations

import logging
import os
from pathlib import Path

log = logging.getLogger(__name__)


class AccessGrant:
    """Holds access to a directory from adoption until release.

    On sandboxed platforms a folder picked by the user is readable only
    while its grant is held open.  Here a grant records the adoption,
    checks readability and makes release idempotent so it can be called
    from every exit path.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def acquire(self) -> bool:
        """Start accessing the directory. Returns whether it is readable."""
        self._active = True
        readable = os.access(self.path, os.R_OK | os.X_OK)
        if readable:
            log.debug("Acquired access to %s", self.path)
        else:
            log.warning("No read access to %s", self.path)
        return readable

    def release(self) -> None:
        if self._active:
            self._active = False
            log.debug("Released access to %s", self.path)
