"""Comparable dotted version numbers."""

from __future__ import annotations

import functools
import logging

log = logging.getLogger(__name__)


@functools.total_ordering
class Version:
    """Version number made of non-negative integer components, e.g. ``13.2.1``.

    Missing trailing components compare as zero, so ``13.2 == 13.2.0``.
    """

    __slots__ = ("_components",)

    def __init__(self, *components: int) -> None:
        if not components:
            raise ValueError("Version needs at least one component")
        if any(not isinstance(c, int) or c < 0 for c in components):
            raise ValueError(f"Invalid version components: {components!r}")
        object.__setattr__(self, "_components", tuple(components))

    @classmethod
    def parse(cls, text: str) -> Version | None:
        """Parse a dot-separated numeric string, returning None if it is not one."""
        parts = text.strip().split(".")
        if not all(part.isascii() and part.isdigit() for part in parts):
            log.debug("Not a version string: %r", text)
            return None
        return cls(*(int(part) for part in parts))

    @property
    def components(self) -> tuple[int, ...]:
        return self._components

    @property
    def major(self) -> int:
        return self._components[0]

    @property
    def minor(self) -> int:
        return self._components[1] if len(self._components) > 1 else 0

    @property
    def patch(self) -> int:
        return self._components[2] if len(self._components) > 2 else 0

    def _padded(self, length: int) -> tuple[int, ...]:
        return self._components + (0,) * (length - len(self._components))

    def _normalized(self) -> tuple[int, ...]:
        components = list(self._components)
        while len(components) > 1 and components[-1] == 0:
            components.pop()
        return tuple(components)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Version is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        length = max(len(self._components), len(other._components))
        return self._padded(length) == other._padded(length)

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        length = max(len(self._components), len(other._components))
        return self._padded(length) < other._padded(length)

    def __hash__(self) -> int:
        return hash(self._normalized())

    def __str__(self) -> str:
        return ".".join(str(c) for c in self._components)

    def __repr__(self) -> str:
        return f"Version({str(self)!r})"
