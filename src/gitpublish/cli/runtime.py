"""Helpers shared across CLI commands for loading settings and logging."""

from __future__ import annotations

import io
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gitpublish.git.facade import GitCommandError, GitFacade
from gitpublish.io import StructuredLogger, load_config

if TYPE_CHECKING:
    from gitpublish.core.models import PipelineResult, PublishConfig


CONFIG_FILENAME = "gitpublish.toml"


@dataclass(frozen=True, slots=True)
class CliOverrides:
    """Values given on the command line that win over the config file."""

    repo_uri: str | None = None
    branch: str | None = None
    repo_dir: Path | None = None
    message: str | None = None

    def as_mapping(self) -> dict[str, Any]:
        """Return the overrides in the shape of the ``[publish]`` table."""
        publish: dict[str, Any] = {}
        if self.repo_uri is not None:
            publish["repo_uri"] = self.repo_uri
        if self.branch is not None:
            publish["branch"] = self.branch
        if self.repo_dir is not None:
            publish["repo_dir"] = str(self.repo_dir.resolve())
        if self.message is not None:
            publish["commit_message"] = self.message
        return {"publish": publish} if publish else {}


def build_logger(*, json_logs: bool, verbose: bool, silence_logs: bool = False) -> StructuredLogger:
    """Create the logger used for a CLI invocation."""
    stream = io.StringIO() if silence_logs else sys.stderr
    return StructuredLogger(
        name="gitpublish",
        json_mode=json_logs,
        stream=stream,
        level="DEBUG" if verbose else "INFO",
    )


def detect_origin_url(project_dir: Path, logger: StructuredLogger) -> str | None:
    """Return the ``origin`` URL of the project repository, if there is one."""
    facade = GitFacade(project_dir, logger)
    try:
        return facade.remote_url("origin")
    except (GitCommandError, OSError) as error:
        logger.debug("could not read project origin", path=str(project_dir), error=str(error))
        return None
    finally:
        facade.close()


def load_cli_config(
    config_path: Path | None,
    overrides: CliOverrides,
    *,
    project_dir: Path,
    logger: StructuredLogger,
) -> PublishConfig:
    """Load configuration, defaulting the remote to the project's ``origin``.

    Without ``config_path`` a ``gitpublish.toml`` in ``project_dir`` is used
    when present, otherwise the configuration comes from defaults and flags.
    """
    path = config_path
    if path is None and (project_dir / CONFIG_FILENAME).is_file():
        path = project_dir / CONFIG_FILENAME

    patch = overrides.as_mapping()
    if overrides.repo_uri is None and not _configures_repo_uri(path):
        origin = detect_origin_url(project_dir, logger)
        if origin is not None:
            patch.setdefault("publish", {})["repo_uri"] = origin

    if path is None:
        return load_config(data="", overrides=patch, base_dir=project_dir)
    return load_config(path=path, overrides=patch)


def _configures_repo_uri(path: Path | None) -> bool:
    if path is None or not path.is_file():
        return False
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        # load_config reports the problem properly
        return False
    return "repo_uri" in raw.get("publish", {}) or "repo_uri" in raw


def format_result(result: PipelineResult) -> str:
    """Render a pipeline result for terminal output."""
    lines: list[str] = []
    for outcome in result.outcomes:
        line = f"{outcome.stage.value}: {outcome.status.value}"
        if outcome.detail:
            line = f"{line} ({outcome.detail})"
        lines.append(line)
    if result.pushed:
        lines.append(f"Published commit {result.commit_sha}.")
    elif result.did_work:
        lines.append(f"Committed {result.commit_sha} without pushing.")
    else:
        lines.append("Nothing to publish.")
    return "\n".join(lines)


__all__ = [
    "CONFIG_FILENAME",
    "CliOverrides",
    "build_logger",
    "detect_origin_url",
    "format_result",
    "load_cli_config",
]
