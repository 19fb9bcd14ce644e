"""Content sources feeding the copy stage."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Protocol

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from .models import ContentSpec


@dataclass(frozen=True, slots=True)
class CopyEntry:
    """A single file to place in the mirror."""

    source: Path
    destination: PurePosixPath


class ContentSource(Protocol):
    """Anything that can enumerate the files to publish."""

    def entries(self) -> Iterable[CopyEntry]:
        """Yield the files to copy, destinations relative to the mirror root."""
        ...


class DirectoryContentSource:
    """Enumerate files from the ``contents`` entries of the configuration."""

    def __init__(self, specs: Iterable[ContentSpec]) -> None:
        self._specs = tuple(specs)

    def entries(self) -> Iterator[CopyEntry]:
        for spec in self._specs:
            yield from _entries_for(spec)


def _entries_for(spec: ContentSpec) -> Iterator[CopyEntry]:
    source = Path(spec.source)
    into = PurePosixPath(spec.into) if spec.into else PurePosixPath()
    if source.is_file():
        if spec.patterns.matches(source.name):
            yield CopyEntry(source=source, destination=into / source.name)
        return
    if not source.is_dir():
        msg = f"content source does not exist: {source}"
        raise ConfigurationError(msg)

    patterns = spec.patterns
    for root, dirnames, filenames in os.walk(source):
        dirnames.sort()
        base = Path(root)
        relative_root = PurePosixPath(base.relative_to(source).as_posix())
        for filename in sorted(filenames):
            relative = relative_root / filename
            if patterns.matches(relative):
                yield CopyEntry(source=base / filename, destination=into / relative)


__all__ = ["ContentSource", "CopyEntry", "DirectoryContentSource"]
