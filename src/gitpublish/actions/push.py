"""Publish the new commit to the remote branch."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitpublish.core.models import Stage, StageOutcome, StageStatus

if TYPE_CHECKING:
    from gitpublish.core.context import PipelineContext


_ORIGIN = "origin"


def should_push(context: PipelineContext) -> bool:
    """Return whether the commit stage produced anything to push."""
    return context.did_work


def push_changes(context: PipelineContext) -> StageOutcome:
    """Push the publish branch to ``origin``; rejections propagate unchanged."""
    repo = context.require_repo()
    ref = context.config.remote_ref
    context.logger.info("pushing publish branch", branch=context.config.branch, sha=context.commit_sha)
    repo.push(_ORIGIN, [f"{ref}:{ref}"])
    return StageOutcome(stage=Stage.push, status=StageStatus.done, detail=context.commit_sha)


__all__ = ["push_changes", "should_push"]
