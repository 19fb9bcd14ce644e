"""Core data models for gitpublish."""

from __future__ import annotations

from enum import Enum
import pathlib
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .patterns import PathPatterns

DEFAULT_BRANCH = "gh-pages"
DEFAULT_REPO_DIR = pathlib.Path("build") / "git-publish"
DEFAULT_COMMIT_MESSAGE = "Generated by git-publish."
DEFAULT_NETWORK_TIMEOUT_SEC = 120.0


class Stage(str, Enum):
    """Pipeline stages in execution order."""

    reset = "reset"
    copy = "copy"
    commit = "commit"
    push = "push"


class StageStatus(str, Enum):
    """How a stage finished."""

    done = "done"
    up_to_date = "up_to_date"
    skipped = "skipped"


class ContentSpec(BaseModel):
    """A file or directory to publish and where it lands in the mirror."""

    source: pathlib.Path = Field(alias="from")
    into: str = ""
    include: tuple[str, ...] = ("**",)
    exclude: tuple[str, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @field_validator("into")
    @classmethod
    def _normalise_into(cls, value: str) -> str:
        """Keep destinations relative to the mirror root."""
        candidate = PurePosixPath(value.replace("\\", "/"))
        if candidate.is_absolute() or ".." in candidate.parts:
            msg = f"content destination must stay inside the mirror: {value!r}"
            raise ValueError(msg)
        normalised = candidate.as_posix()
        return "" if normalised == "." else normalised

    @property
    def patterns(self) -> PathPatterns:
        """Return the include/exclude filter for files under ``source``."""
        return PathPatterns(include=self.include, exclude=self.exclude)


class PublishConfig(BaseModel):
    """Settings for one publish run, fixed for its whole duration."""

    branch: str = Field(default=DEFAULT_BRANCH, min_length=1)
    repo_uri: str = Field(min_length=1)
    repo_dir: pathlib.Path = DEFAULT_REPO_DIR
    preserve: PathPatterns = Field(default_factory=PathPatterns)
    commit_message: str = Field(default=DEFAULT_COMMIT_MESSAGE, min_length=1)
    contents: tuple[ContentSpec, ...] = Field(default_factory=tuple)
    network_timeout_sec: float | None = Field(default=DEFAULT_NETWORK_TIMEOUT_SEC, gt=0)
    author_name: str | None = None
    author_email: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("branch")
    @classmethod
    def _validate_branch(cls, value: str) -> str:
        """Reject names git would refuse as a branch."""
        branch = value.strip().removeprefix("refs/heads/")
        if not branch or branch.startswith("-") or any(char in branch for char in " ~^:?*[\\"):
            msg = f"invalid branch name: {value!r}"
            raise ValueError(msg)
        return branch

    @property
    def remote_ref(self) -> str:
        """Return the branch ref on the remote."""
        return f"refs/heads/{self.branch}"

    @property
    def tracking_ref(self) -> str:
        """Return the remote-tracking ref the branch is fetched into."""
        return f"refs/remotes/origin/{self.branch}"


class StageOutcome(BaseModel):
    """Result of a single stage."""

    stage: Stage
    status: StageStatus
    detail: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class PipelineResult(BaseModel):
    """Summary of a pipeline run."""

    outcomes: list[StageOutcome] = Field(default_factory=list)
    did_work: bool = False
    commit_sha: str | None = None
    pushed: bool = False

    model_config = ConfigDict(extra="forbid")


__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_COMMIT_MESSAGE",
    "DEFAULT_NETWORK_TIMEOUT_SEC",
    "DEFAULT_REPO_DIR",
    "ContentSpec",
    "PipelineResult",
    "PublishConfig",
    "Stage",
    "StageOutcome",
    "StageStatus",
]
