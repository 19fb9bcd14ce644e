"""Copy the generated content into the mirror work tree."""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from gitpublish.core.errors import ConfigurationError
from gitpublish.core.models import Stage, StageOutcome, StageStatus

if TYPE_CHECKING:
    from gitpublish.core.context import PipelineContext


def copy_contents(context: PipelineContext) -> StageOutcome:
    """Place every entry of the content source under the mirror root.

    Existing files are overwritten, preserved files that nothing overwrites
    are left alone. No git commands are issued.
    """
    repo_dir = Path(context.config.repo_dir)
    copied = 0
    for entry in context.content.entries():
        target = _destination(repo_dir, entry.destination)
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink():
            target.unlink()
        elif target.is_dir():
            msg = f"cannot copy {entry.source} over directory {target}"
            raise ConfigurationError(msg)
        shutil.copy2(entry.source, target)
        copied += 1
    context.logger.info("copied publish contents", count=copied, path=str(repo_dir))
    return StageOutcome(stage=Stage.copy, status=StageStatus.done, detail=f"copied {copied} file(s)")


def _destination(repo_dir: Path, destination: PurePosixPath) -> Path:
    parts = [part for part in PurePosixPath(destination).parts if part not in {"", "."}]
    if not parts or destination.is_absolute() or ".." in parts or parts[0] == ".git":
        msg = f"invalid publish destination: {destination}"
        raise ConfigurationError(msg)
    return repo_dir.joinpath(*parts)


__all__ = ["copy_contents"]
