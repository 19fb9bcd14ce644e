"""Glob matching over relative POSIX paths.

Patterns follow the Ant conventions build tools use for file trees:

* ``**`` matches any number of directory levels, including none;
* ``*`` and ``?`` match within a single path segment;
* a trailing ``/`` is shorthand for ``/**``;
* a pattern without ``/`` only matches at the top of the tree, so
  ``*.txt`` matches ``a.txt`` but not ``docs/a.txt`` (use ``**/*.txt``).

Matching never touches the filesystem.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _split(path: str) -> tuple[str, ...]:
    return tuple(part for part in path.replace("\\", "/").split("/") if part and part != ".")


@lru_cache(maxsize=256)
def _compile(pattern: str) -> tuple[str, ...]:
    text = pattern.strip()
    if text.endswith("/"):
        text = f"{text}**"
    segments = _split(text)
    # collapse runs of ** so matching stays linear in practice
    collapsed: list[str] = []
    for segment in segments:
        if segment == "**" and collapsed and collapsed[-1] == "**":
            continue
        collapsed.append(segment)
    return tuple(collapsed)


def _match_segments(pattern: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_segments(rest, parts[index:]) for index in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_segments(rest, parts[1:])


def match_path(pattern: str, path: str | PurePosixPath) -> bool:
    """Return whether the relative ``path`` matches ``pattern``."""
    compiled = _compile(pattern)
    if not compiled:
        return False
    return _match_segments(compiled, _split(str(path)))


class PathPatterns(BaseModel):
    """Include/exclude pattern pair evaluated against relative paths.

    A path is selected when it matches at least one include pattern and no
    exclude pattern. With no include patterns nothing is selected.
    """

    include: tuple[str, ...] = Field(default_factory=tuple)
    exclude: tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _coerce_patterns(cls, value: object) -> object:
        if isinstance(value, str):
            return (value,)
        return value

    def matches(self, path: str | PurePosixPath) -> bool:
        """Return whether ``path`` is selected by these patterns."""
        if not any(match_path(pattern, path) for pattern in self.include):
            return False
        return not any(match_path(pattern, path) for pattern in self.exclude)


__all__ = ["PathPatterns", "match_path"]
