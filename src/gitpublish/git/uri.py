"""Normalisation of git remote URIs so equivalent spellings compare equal."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict

_DEFAULT_PORTS = {
    "ssh": 22,
    "git+ssh": 22,
    "ssh+git": 22,
    "git": 9418,
    "http": 80,
    "https": 443,
    "ftp": 21,
    "ftps": 990,
}
_SSH_SCHEMES = frozenset({"ssh", "git+ssh", "ssh+git"})

# hosts that serve every repository at the same path over https and ssh
_FORGE_HOSTS = frozenset(
    {"github.com", "gitlab.com", "bitbucket.org", "codeberg.org", "gitea.com", "ssh.dev.azure.com"},
)

Anchor = Literal["root", "home", "web"]

# user@host:path, but not a Windows drive letter such as C:\repo
_SCP_LIKE = re.compile(r"^(?:(?P<user>[^@/]+)@)?(?P<host>[^:/]{2,}):(?P<path>(?!//).*)$")
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


class RemoteLocation(BaseModel):
    """Canonical location of a git remote, independent of how it was written."""

    host: str | None
    port: int | None
    path: str
    anchor: Anchor | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def parse(cls, uri: str) -> RemoteLocation:
        """Parse a URL, scp-like or local path remote into a location.

        User names and schemes are ignored, host names are case-folded,
        default ports are dropped and trailing ``/`` or ``.git`` suffixes are
        stripped from the path. Local paths are made absolute.

        ``anchor`` records what a remote path is relative to: the filesystem
        root (``ssh://host/srv/site``, ``host:/srv/site``), the login home
        (``host:site``, ``host:~/site``) or the web server (``https://``).
        """
        text = uri.strip()
        if not text:
            msg = "remote URI must not be empty"
            raise ValueError(msg)

        if _URL_SCHEME.match(text):
            parts = urlsplit(text)
            scheme = parts.scheme.lower()
            if scheme == "file":
                return cls(host=None, port=None, path=_local_path(unquote(parts.path)))
            port = parts.port
            if port is not None and _DEFAULT_PORTS.get(scheme) == port:
                port = None
            host = (parts.hostname or "").lower() or None
            path = unquote(parts.path)
            anchor: Anchor = "web"
            if scheme in _SSH_SCHEMES:
                anchor = "home" if path.startswith("/~/") else "root"
                path = path.removeprefix("/~/")
            return cls(host=host, port=port, path=_remote_path(path), anchor=anchor)

        match = _SCP_LIKE.match(text)
        if match is not None:
            path = match.group("path").strip()
            return cls(
                host=match.group("host").lower(),
                port=None,
                path=_remote_path(path),
                anchor="root" if path.startswith("/") else "home",
            )

        return cls(host=None, port=None, path=_local_path(text))

    def same_location(self, other: RemoteLocation) -> bool:
        """Return whether ``other`` names the same repository.

        Absolute and home-relative ssh paths differ, except on forge hosts
        that map both spellings to one repository. Web paths match either.
        """
        if (self.host, self.port, self.path) != (other.host, other.port, other.path):
            return False
        if self.anchor == other.anchor:
            return True
        if self.anchor is None or other.anchor is None:
            return False
        if "web" in {self.anchor, other.anchor}:
            return True
        return self.host in _FORGE_HOSTS


def _remote_path(path: str) -> str:
    trimmed = path.strip().strip("/")
    trimmed = trimmed.removeprefix("~/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[: -len(".git")]
    return trimmed.rstrip("/")


def _local_path(path: str) -> str:
    resolved = Path(path).expanduser().resolve(strict=False).as_posix().rstrip("/")
    if resolved.endswith(".git"):
        without_suffix = resolved[: -len(".git")]
        # /srv/site/.git and /srv/site.git both name the repository at /srv/site
        return without_suffix.rstrip("/") or "/"
    return resolved or "/"


def same_remote(left: str | None, right: str | None) -> bool:
    """Return whether two remote URIs address the same repository."""
    if left is None or right is None:
        return False
    try:
        return RemoteLocation.parse(left).same_location(RemoteLocation.parse(right))
    except ValueError:
        return left == right


__all__ = ["RemoteLocation", "same_remote"]
