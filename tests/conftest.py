"""Shared fixtures for the gitpublish test suite."""
from __future__ import annotations
import io
import os
import subprocess
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

import pytest
from gitpublish.core.context import PipelineContext
from gitpublish.core.content import DirectoryContentSource
from gitpublish.core.models import PublishConfig
from gitpublish.git.facade import GitCommandError, GitFacade
from gitpublish.io.logging import StructuredLogger

@dataclass(frozen=True)
class GitResponse:
    """Represents a scripted response for a git command."""

    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

class ScriptQueue:
    """Queue managing scripted git responses for :class:`FakeGitFacade`."""

    def __init__(self) -> None:
        """Initialise an empty script queue."""
        self._scripts: deque[dict[tuple[str, ...], deque[GitResponse]]] = deque()
    def push(self, script: Mapping[tuple[str, ...], list[GitResponse] | GitResponse]) -> None:
        """Append a new script that will be consumed by the next facade instance."""
        prepared: dict[tuple[str, ...], deque[GitResponse]] = {}
        for command, responses in script.items():
            if isinstance(responses, GitResponse):
                prepared[command] = deque([responses])
            else:
                prepared[command] = deque(responses)
        self._scripts.append(prepared)
    def pop(self) -> dict[tuple[str, ...], deque[GitResponse]]:
        """Return the next script or an empty script when none are queued."""
        if not self._scripts:
            return {}
        return self._scripts.popleft()
    def clear(self) -> None:
        """Remove all queued scripts."""
        self._scripts.clear()
class FakeGitFacade(GitFacade):
    """Test double for :class:`gitpublish.git.facade.GitFacade` answering from a script."""

    script_queue: ScriptQueue | None = None
    def __init__(
        self,
        repo_path: Path,
        logger: Any,
        *,
        network_timeout: float | None = None,
        script: Mapping[tuple[str, ...], list[GitResponse] | GitResponse] | None = None,
    ) -> None:
        """Initialise the facade with scripted responses."""
        super().__init__(repo_path, logger, network_timeout=network_timeout)
        if script is not None:
            queue = ScriptQueue()
            queue.push(script)
            self._script = queue.pop()
        else:
            self._script = self.script_queue.pop() if self.script_queue is not None else {}
        self.timeouts: list[float | None] = []
    @property
    def commands(self) -> list[tuple[str, ...]]:
        """Return the commands issued so far."""
        return [tuple(entry["command"]) for entry in self.command_history]  # type: ignore[arg-type]
    def run(
        self,
        args: Any,
        *,
        timeout: float | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute a git command using the scripted responses."""
        if self.closed:
            return super().run(args)
        command = tuple(str(part) for part in args)
        working_dir = self.repo_path
        self.timeouts.append(timeout)
        response = self._resolve_response(command)
        completed = subprocess.CompletedProcess(
            command,
            response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
        )
        self._command_history.append(
            {
                "command": list(command),
                "cwd": str(working_dir),
                "returncode": completed.returncode,
            },
        )
        if check and completed.returncode != 0:
            raise GitCommandError(command, completed.returncode, completed.stdout or "", completed.stderr or "")
        return completed
    def _resolve_response(self, command: tuple[str, ...]) -> GitResponse:
        """Retrieve the scripted response for ``command``."""
        if command not in self._script:
            message = f"Unexpected git command: {command}"
            raise AssertionError(message)
        responses = self._script[command]
        return responses.popleft() if len(responses) > 1 else responses[0]


@dataclass
class RemoteRepo:
    """A bare repository standing in for the publish remote."""

    path: Path
    workdir: Path
    logger: StructuredLogger
    _seeds: int = 0

    @property
    def uri(self) -> str:
        """Return the URI publishers are configured with."""
        return str(self.path)

    def git(self, *args: str, cwd: Path | None = None) -> str:
        """Run git against the bare repository and return stdout."""
        facade = GitFacade(cwd or self.path, self.logger)
        return facade.run(["git", *args]).stdout

    def seed(self, branch: str, files: Mapping[str, str], *, message: str = "seed") -> str:
        """Force ``branch`` to a new root commit holding exactly ``files``."""
        self._seeds += 1
        work = self.workdir / f"seed-{self._seeds}"
        work.mkdir(parents=True)
        self.git("init", "-q", cwd=work)
        for name, text in files.items():
            target = work / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        self.git("add", "--all", ".", cwd=work)
        self.git("commit", "-q", "--allow-empty", "-m", message, cwd=work)
        self.git("push", "-q", "--force", self.uri, f"HEAD:refs/heads/{branch}", cwd=work)
        return self.tip(branch) or ""

    def tip(self, branch: str) -> str | None:
        """Return the commit id of ``branch`` or ``None`` when it does not exist."""
        facade = GitFacade(self.path, self.logger)
        result = facade.run(["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"], check=False)
        return result.stdout.strip() or None

    def files(self, branch: str) -> dict[str, str]:
        """Return path to content for every file on ``branch``."""
        names = self.git("ls-tree", "-r", "--name-only", f"refs/heads/{branch}").splitlines()
        return {name: self.git("show", f"refs/heads/{branch}:{name}") for name in names}

    def commit_count(self, branch: str) -> int:
        """Return the number of commits reachable from ``branch``."""
        return int(self.git("rev-list", "--count", f"refs/heads/{branch}").strip())


@pytest.fixture(autouse=True)
def isolated_git_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user and system git configuration out of the tests."""
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.delenv("GIT_DIR", raising=False)
    monkeypatch.delenv("GIT_WORK_TREE", raising=False)


@pytest.fixture
def log_stream() -> io.StringIO:
    """Return the in-memory stream backing :func:`logger`."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> StructuredLogger:
    """Provide a structured logger backed by an in-memory stream."""
    return StructuredLogger(name="test", stream=log_stream)


@pytest.fixture
def remote(tmp_path: Path, logger: StructuredLogger) -> RemoteRepo:
    """Create an empty bare repository to publish into."""
    path = tmp_path / "remote.git"
    path.mkdir()
    repo = RemoteRepo(path=path, workdir=tmp_path / "seed-work", logger=logger)
    repo.git("init", "--bare", "-q", ".")
    return repo


@pytest.fixture
def make_context(tmp_path: Path, logger: StructuredLogger) -> Any:
    """Return a factory building pipeline contexts around a fake repository."""

    def factory(
        script: Mapping[tuple[str, ...], list[GitResponse] | GitResponse] | None = None,
        **config: Any,
    ) -> PipelineContext:
        settings: dict[str, Any] = {"repo_uri": "https://example.com/site.git", "repo_dir": tmp_path / "mirror"}
        settings.update(config)
        publish_config = PublishConfig(**settings)
        context = PipelineContext(
            config=publish_config,
            logger=logger,
            content=DirectoryContentSource(publish_config.contents),
        )
        if script is not None:
            context.repo = FakeGitFacade(
                publish_config.repo_dir,
                logger,
                network_timeout=publish_config.network_timeout_sec,
                script=script,
            )
        return context

    return factory


@pytest.fixture
def fake_git() -> type[FakeGitFacade]:
    """Return the scripted facade class for tests building handles directly."""
    return FakeGitFacade


@pytest.fixture
def configure_fake_git_facade(monkeypatch: pytest.MonkeyPatch) -> Iterator[ScriptQueue]:
    """Patch the facade used by the reset stage with a scripted fake."""
    queue = ScriptQueue()
    FakeGitFacade.script_queue = queue
    monkeypatch.setattr("gitpublish.actions.reset.GitFacade", FakeGitFacade)
    yield queue
    queue.clear()
    FakeGitFacade.script_queue = None
__all__ = ["FakeGitFacade", "GitResponse", "RemoteRepo", "ScriptQueue"]
