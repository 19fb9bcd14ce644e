"""Git command execution facade."""

from __future__ import annotations

import inspect
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, MutableSequence, Sequence
    from gitpublish.io.logging import StructuredLogger


_ORIGIN = "origin"


class GitCommandError(RuntimeError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        """Initialise the error with details from a git command invocation."""
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        message = (
            "git command failed",
            f"command={self.command}",
            f"returncode={returncode}",
        )
        if stderr.strip():
            message = (*message, f"stderr={stderr.strip()}")
        super().__init__("; ".join(message))


class GitTimeoutError(GitCommandError):
    """Raised when a git command exceeds its timeout."""

    def __init__(self, command: Sequence[str], timeout: float) -> None:
        """Record the command that timed out and the limit it exceeded."""
        self.timeout = timeout
        super().__init__(command, -1, "", f"timed out after {timeout}s")


class RepositoryClosedError(RuntimeError):
    """Raised when a command is issued through a closed repository handle."""


class GitFacade:
    """Handle on a local git working copy, driven through the git executable."""

    def __init__(
        self,
        repo_path: Path,
        logger: StructuredLogger,
        *,
        network_timeout: float | None = None,
    ) -> None:
        """Create a facade bound to a repository root and logger."""
        self._repo_path = Path(repo_path)
        self._logger = logger
        self._network_timeout = network_timeout
        self._closed = False
        self._command_history: MutableSequence[dict[str, object]] = []
        self._subprocess_run: Callable[
            ..., subprocess.CompletedProcess[str],
        ] = subprocess.run

    @property
    def repo_path(self) -> Path:
        """Return the repository root for the facade."""
        return self._repo_path

    @property
    def closed(self) -> bool:
        """Return whether :meth:`close` has been called."""
        return self._closed

    @property
    def command_history(self) -> Sequence[dict[str, object]]:
        """Return an immutable view of recorded commands."""
        return tuple(self._command_history)

    def close(self) -> None:
        """Release the handle. Closing twice is harmless."""
        if self._closed:
            return
        self._closed = True
        self._logger.debug("closed repository handle", path=str(self._repo_path))

    def run(
        self,
        args: Sequence[str],
        *,
        timeout: float | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute a git command while handling logging and failures."""
        command = tuple(str(part) for part in args)
        if self._closed:
            msg = f"repository handle for {self._repo_path} is closed"
            raise RepositoryClosedError(msg)
        working_dir = self._repo_path
        self._logger.info(
            "executing git command",
            command=list(command),
            cwd=str(working_dir),
        )

        kwargs: dict[str, object] = {
            "cwd": str(working_dir),
            "capture_output": True,
            "text": True,
            "timeout": timeout,
            "check": False,
        }
        filtered_kwargs = _filter_runner_kwargs(self._subprocess_run, kwargs)
        try:
            completed = self._subprocess_run(command, **filtered_kwargs)
        except subprocess.TimeoutExpired as exc:
            self._command_history.append(
                {"command": list(command), "cwd": str(working_dir), "returncode": -1},
            )
            raise GitTimeoutError(command, timeout or 0.0) from exc
        self._command_history.append(
            {
                "command": list(command),
                "cwd": str(working_dir),
                "returncode": completed.returncode,
            },
        )
        if completed.stdout:
            self._logger.debug("git stdout", stdout=completed.stdout)
        if completed.stderr:
            self._logger.debug("git stderr", stderr=completed.stderr)
        if check and completed.returncode != 0:
            raise GitCommandError(command, completed.returncode, completed.stdout or "", completed.stderr or "")
        return completed

    def init(self) -> subprocess.CompletedProcess[str]:
        """Initialise an empty repository at the facade root."""
        return self.run(["git", "init"])

    def toplevel(self) -> Path:
        """Return the root of the work tree containing the facade path."""
        result = self.run(["git", "rev-parse", "--show-toplevel"])
        return Path(result.stdout.strip())

    def remote_add(self, name: str, url: str) -> subprocess.CompletedProcess[str]:
        """Register a remote."""
        return self.run(["git", "remote", "add", name, url])

    def remote_url(self, name: str = _ORIGIN) -> str | None:
        """Return the URL configured for ``name`` or ``None`` when absent."""
        result = self.run(["git", "remote", "get-url", name], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def current_branch(self) -> str | None:
        """Return the branch HEAD points at, even when it is unborn."""
        result = self.run(["git", "symbolic-ref", "--quiet", "--short", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def has_commits(self) -> bool:
        """Return whether HEAD resolves to a commit."""
        result = self.run(["git", "rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        return result.returncode == 0

    def head_sha(self) -> str:
        """Return the commit id HEAD resolves to."""
        return self.run(["git", "rev-parse", "HEAD"]).stdout.strip()

    def ls_remote_heads(self, remote: str = _ORIGIN, *patterns: str) -> dict[str, str]:
        """Map remote head refs to their commit ids without fetching objects."""
        command = ["git", "ls-remote", "--heads", remote, *patterns]
        result = self.run(command, timeout=self._network_timeout)
        heads: dict[str, str] = {}
        for line in result.stdout.splitlines():
            sha, _, ref = line.partition("\t")
            if ref:
                heads[ref.strip()] = sha.strip()
        return heads

    def fetch(
        self,
        remote: str = _ORIGIN,
        refspecs: Sequence[str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Fetch ``refspecs`` from the remote without tags."""
        command: list[str] = ["git", "fetch", "--no-tags", remote]
        if refspecs:
            command.extend(refspecs)
        return self.run(command, timeout=self._network_timeout)

    def branch_exists(self, name: str) -> bool:
        """Return whether a local branch called ``name`` exists."""
        result = self.run(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{name}"],
            check=False,
        )
        return result.returncode == 0

    def branch_add(self, name: str, start_point: str) -> subprocess.CompletedProcess[str]:
        """Create ``name`` at ``start_point`` tracking it."""
        return self.run(["git", "branch", "--track", name, start_point])

    def branch_set_upstream(self, name: str, upstream: str) -> subprocess.CompletedProcess[str]:
        """Point the upstream of ``name`` at ``upstream``."""
        return self.run(["git", "branch", f"--set-upstream-to={upstream}", name])

    def branch_delete(self, name: str) -> subprocess.CompletedProcess[str]:
        """Force delete a local branch."""
        return self.run(["git", "branch", "-D", name])

    def clean(self, *, directories: bool = True) -> subprocess.CompletedProcess[str]:
        """Remove untracked files, leaving ignored files in place."""
        command = ["git", "clean", "-f"]
        if directories:
            command.append("-d")
        return self.run(command)

    def checkout(self, branch: str) -> subprocess.CompletedProcess[str]:
        """Switch to an existing branch."""
        return self.run(["git", "checkout", branch, "--"])

    def checkout_detach(self) -> subprocess.CompletedProcess[str]:
        """Detach HEAD at the current commit."""
        return self.run(["git", "checkout", "--detach"])

    def checkout_orphan(self, branch: str) -> subprocess.CompletedProcess[str]:
        """Start a branch with no parent history."""
        if not self.has_commits():
            return self.run(["git", "symbolic-ref", "HEAD", f"refs/heads/{branch}"])
        return self.run(["git", "checkout", "--orphan", branch])

    def reset_hard(self, commit: str) -> subprocess.CompletedProcess[str]:
        """Move the current branch to ``commit`` discarding local changes."""
        return self.run(["git", "reset", "--hard", commit])

    def add(self, *, update: bool = False) -> subprocess.CompletedProcess[str]:
        """Stage the work tree, limited to tracked files when ``update``."""
        return self.run(["git", "add", "--update" if update else "--all", "."])

    def is_clean(self) -> bool:
        """Return whether neither the index nor the work tree differ from HEAD."""
        status = self.run(["git", "status", "--porcelain"])
        return not status.stdout.strip()

    def commit(
        self,
        message: str,
        *,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Record the index as a new commit."""
        command: list[str] = ["git"]
        if author_name:
            command.extend(["-c", f"user.name={author_name}"])
        if author_email:
            command.extend(["-c", f"user.email={author_email}"])
        command.extend(["commit", "--quiet", "-m", message])
        return self.run(command)

    def push(
        self,
        remote: str = _ORIGIN,
        refspecs: Sequence[str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Push ``refspecs`` to the remote without forcing."""
        command: list[str] = ["git", "push", remote]
        if refspecs:
            command.extend(refspecs)
        return self.run(command, timeout=self._network_timeout)


__all__ = ["GitCommandError", "GitFacade", "GitTimeoutError", "RepositoryClosedError"]


def _filter_runner_kwargs(
    runner: Callable[..., subprocess.CompletedProcess[str]],
    kwargs: dict[str, object],
) -> dict[str, object]:
    """Limit keyword arguments to those supported by the runner callable."""
    try:
        signature = inspect.signature(runner)
    except (TypeError, ValueError):
        return kwargs
    parameters = tuple(signature.parameters.values())
    if any(parameter.kind is inspect.Parameter.VAR_KEYWORD for parameter in parameters):
        return kwargs
    accepted = {
        parameter.name
        for parameter in parameters
        if parameter.kind in {inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY}
    }
    return {name: value for name, value in kwargs.items() if name in accepted}
