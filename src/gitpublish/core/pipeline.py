"""Run the reset, copy, commit and push stages in dependency order."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from gitpublish.actions import (
    commit_changes,
    copy_contents,
    push_changes,
    reset_repo,
    should_push,
)

from .content import DirectoryContentSource
from .context import PipelineContext
from .models import PipelineResult, Stage, StageOutcome, StageStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from gitpublish.io.logging import StructuredLogger

    from .content import ContentSource
    from .models import PublishConfig


@dataclass(frozen=True, slots=True)
class StageHandler:
    """Bundle a stage with the stage it depends on and its run condition."""

    stage: Stage
    description: str
    run: Callable[[PipelineContext], StageOutcome]
    depends_on: Stage | None = None
    only_if: Callable[[PipelineContext], bool] | None = None


STAGE_HANDLER_SEQUENCE: tuple[StageHandler, ...] = (
    StageHandler(
        stage=Stage.reset,
        description="Prepares a git repo for new content to be generated.",
        run=reset_repo,
    ),
    StageHandler(
        stage=Stage.copy,
        description="Copy contents to be published to git.",
        run=copy_contents,
        depends_on=Stage.reset,
    ),
    StageHandler(
        stage=Stage.commit,
        description="Commits changes to be published to git.",
        run=commit_changes,
        depends_on=Stage.copy,
    ),
    StageHandler(
        stage=Stage.push,
        description="Pushes changes to git.",
        run=push_changes,
        depends_on=Stage.commit,
        only_if=should_push,
    ),
)


STAGE_HANDLERS: dict[Stage, StageHandler] = {
    handler.stage: handler for handler in STAGE_HANDLER_SEQUENCE
}


def resolve_stages(target: Stage) -> list[StageHandler]:
    """Return ``target`` preceded by everything it depends on, in run order."""
    chain: list[StageHandler] = []
    current: Stage | None = target
    while current is not None:
        handler = STAGE_HANDLERS[current]
        chain.append(handler)
        current = handler.depends_on
    chain.reverse()
    return chain


class PublishPipeline:
    """Drive one publish run and always release the repository afterwards."""

    def __init__(
        self,
        config: PublishConfig,
        logger: StructuredLogger,
        *,
        content: ContentSource | None = None,
    ) -> None:
        """Bind the pipeline to its configuration and content source."""
        self._config = config
        self._logger = logger
        self._content = content if content is not None else DirectoryContentSource(config.contents)

    def run(self, target: Stage = Stage.push) -> PipelineResult:
        """Execute every stage up to ``target`` and return their outcomes."""
        context = PipelineContext(config=self._config, logger=self._logger, content=self._content)
        result = PipelineResult()
        try:
            for handler in resolve_stages(target):
                outcome = self._run_stage(handler, context)
                result.outcomes.append(outcome)
                if handler.stage is Stage.push and outcome.status is StageStatus.done:
                    result.pushed = True
        finally:
            context.close()
        result.did_work = context.did_work
        result.commit_sha = context.commit_sha
        return result

    def _run_stage(self, handler: StageHandler, context: PipelineContext) -> StageOutcome:
        log = self._logger.bind(stage=handler.stage.value)
        if handler.only_if is not None and not handler.only_if(context):
            log.info("skipping stage", reason="condition not met")
            return StageOutcome(stage=handler.stage, status=StageStatus.skipped, detail="nothing to publish")

        log.info("running stage", description=handler.description)
        try:
            outcome = handler.run(context)
        except Exception as error:
            log.error("stage failed", error=str(error))
            raise
        log.info("finished stage", status=outcome.status.value)
        return outcome


def publish(
    config: PublishConfig,
    logger: StructuredLogger,
    *,
    content: ContentSource | None = None,
    target: Stage = Stage.push,
) -> PipelineResult:
    """Run the publish pipeline once."""
    return PublishPipeline(config, logger, content=content).run(target)


__all__ = [
    "STAGE_HANDLERS",
    "STAGE_HANDLER_SEQUENCE",
    "PublishPipeline",
    "StageHandler",
    "publish",
    "resolve_stages",
]
