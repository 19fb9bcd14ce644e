"""State shared between pipeline stages for a single run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import PublishStateError

if TYPE_CHECKING:
    from gitpublish.git.facade import GitFacade
    from gitpublish.io.logging import StructuredLogger

    from .content import ContentSource
    from .models import PublishConfig


@dataclass(slots=True)
class PipelineContext:
    """Container for the configuration and the repository opened by reset.

    ``repo`` stays ``None`` until the reset stage attaches a handle, and is
    cleared again by :meth:`close`.
    """

    config: PublishConfig
    logger: StructuredLogger
    content: ContentSource
    repo: GitFacade | None = None
    did_work: bool = False
    commit_sha: str | None = None

    def require_repo(self) -> GitFacade:
        """Return the open repository or fail when reset has not run."""
        if self.repo is None:
            msg = "no publish repository is open; the reset stage must run first"
            raise PublishStateError(msg)
        return self.repo

    def close(self) -> None:
        """Close the repository handle if one is open."""
        repo = self.repo
        if repo is None:
            return
        self.logger.info("closing git publish repo", path=str(repo.repo_path))
        self.repo = None
        repo.close()


__all__ = ["PipelineContext"]
