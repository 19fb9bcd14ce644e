"""Record the mirror's work tree as a commit when it changed."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gitpublish.core.models import Stage, StageOutcome, StageStatus

if TYPE_CHECKING:
    from gitpublish.core.context import PipelineContext


def commit_changes(context: PipelineContext) -> StageOutcome:
    """Stage everything and commit, setting the did-work flag only on a new commit."""
    repo = context.require_repo()
    config = context.config
    repo.add()
    if repo.is_clean():
        context.did_work = False
        context.commit_sha = None
        context.logger.info("nothing to publish; work tree matches HEAD", branch=config.branch)
        return StageOutcome(stage=Stage.commit, status=StageStatus.up_to_date, detail="no changes")

    repo.commit(
        config.commit_message,
        author_name=config.author_name,
        author_email=config.author_email,
    )
    context.did_work = True
    context.commit_sha = repo.head_sha()
    context.logger.info("committed publish changes", branch=config.branch, sha=context.commit_sha)
    return StageOutcome(stage=Stage.commit, status=StageStatus.done, detail=context.commit_sha)


__all__ = ["commit_changes"]
