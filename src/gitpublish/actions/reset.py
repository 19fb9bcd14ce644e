"""Prepare the local mirror so it matches the remote publish branch."""

from __future__ import annotations

import os
import shutil
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from gitpublish.core.errors import ConfigurationError
from gitpublish.core.models import Stage, StageOutcome, StageStatus
from gitpublish.git.facade import GitCommandError, GitFacade
from gitpublish.git.uri import same_remote

if TYPE_CHECKING:
    from gitpublish.core.context import PipelineContext
    from gitpublish.core.models import PublishConfig
    from gitpublish.core.patterns import PathPatterns
    from gitpublish.io.logging import StructuredLogger


_ORIGIN = "origin"
_GIT_DIR = ".git"


def reset_repo(context: PipelineContext) -> StageOutcome:
    """Open or recreate the mirror, sync it to the remote branch and purge stale files."""
    config = context.config
    logger = context.logger

    repo = find_existing_repo(config, logger)
    if repo is None:
        repo = fresh_repo(config, logger)
    context.repo = repo

    heads = repo.ls_remote_heads(_ORIGIN, config.remote_ref)
    if config.remote_ref in heads:
        logger.info("remote branch found", branch=config.branch, sha=heads[config.remote_ref])
        _checkout_remote_branch(repo, config)
    else:
        logger.info("remote branch missing; starting orphan branch", branch=config.branch)
        _checkout_orphan_branch(repo, config)

    removed = remove_unpreserved(Path(config.repo_dir), config.preserve)
    # git tracks files only, so emptied directories need no staging of their own
    repo.add(update=True)
    logger.info("removed unpreserved files", count=len(removed))
    return StageOutcome(
        stage=Stage.reset,
        status=StageStatus.done,
        detail=f"removed {len(removed)} file(s)",
    )


def find_existing_repo(config: PublishConfig, logger: StructuredLogger) -> GitFacade | None:
    """Return a handle on a reusable mirror, or ``None`` when it must be rebuilt."""
    repo_dir = Path(config.repo_dir)
    if not repo_dir.is_dir():
        logger.debug("no existing git publish repository", path=str(repo_dir))
        return None

    repo = _open_repo(repo_dir, config, logger)
    try:
        toplevel = repo.toplevel()
        origin = repo.remote_url(_ORIGIN)
        branch = repo.current_branch()
    except (GitCommandError, OSError) as error:
        # missing, invalid or corrupt repository
        logger.debug(
            "failed to open existing git publish repository",
            path=str(repo_dir),
            error=str(error),
        )
        repo.close()
        return None

    valid = (
        toplevel.resolve() == repo_dir.resolve()
        and same_remote(config.repo_uri, origin)
        and branch == config.branch
    )
    if not valid:
        logger.debug(
            "existing git publish repository does not match configuration",
            path=str(repo_dir),
            origin=origin,
            branch=branch,
        )
        repo.close()
        return None

    logger.info("reusing git publish repository", path=str(repo_dir))
    return repo


def fresh_repo(config: PublishConfig, logger: StructuredLogger) -> GitFacade:
    """Delete the mirror directory and initialise an empty repository there."""
    repo_dir = Path(config.repo_dir)
    try:
        if repo_dir.is_symlink() or repo_dir.is_file():
            repo_dir.unlink()
        elif repo_dir.exists():
            shutil.rmtree(repo_dir)
        repo_dir.mkdir(parents=True)
    except OSError as error:
        msg = f"Failed to clean up repo dir: {repo_dir}"
        raise ConfigurationError(msg) from error

    logger.info("initialising git publish repository", path=str(repo_dir))
    repo = _open_repo(repo_dir, config, logger)
    try:
        repo.init()
        repo.remote_add(_ORIGIN, config.repo_uri)
    except BaseException:
        repo.close()
        raise
    return repo


def remove_unpreserved(repo_dir: Path, preserve: PathPatterns) -> list[str]:
    """Delete every file under ``repo_dir`` not selected by ``preserve``.

    Directories are left in place and the top-level ``.git`` is never
    visited. Returns the removed paths relative to ``repo_dir``.
    """
    removed: list[str] = []
    for root, dirnames, filenames in os.walk(repo_dir):
        base = Path(root)
        relative_root = PurePosixPath(base.relative_to(repo_dir).as_posix())
        at_top = base == repo_dir
        if at_top:
            dirnames[:] = [name for name in dirnames if name != _GIT_DIR]

        linked_dirs = [name for name in dirnames if (base / name).is_symlink()]
        dirnames[:] = sorted(name for name in dirnames if name not in linked_dirs)

        for name in sorted([*filenames, *linked_dirs]):
            if at_top and name == _GIT_DIR:
                continue
            relative = relative_root / name
            if preserve.matches(relative):
                continue
            path = base / name
            if path.is_symlink() or path.is_file():
                path.unlink()
                removed.append(relative.as_posix())
    return removed


def _checkout_remote_branch(repo: GitFacade, config: PublishConfig) -> None:
    upstream = f"{_ORIGIN}/{config.branch}"
    repo.fetch(_ORIGIN, [f"+{config.remote_ref}:{config.tracking_ref}"])
    if repo.branch_exists(config.branch):
        repo.branch_set_upstream(config.branch, upstream)
    else:
        repo.branch_add(config.branch, upstream)
    repo.clean(directories=True)
    repo.checkout(config.branch)
    repo.reset_hard(config.tracking_ref)


def _checkout_orphan_branch(repo: GitFacade, config: PublishConfig) -> None:
    if repo.branch_exists(config.branch):
        # the remote branch was deleted after this mirror last published it
        repo.checkout_detach()
        repo.branch_delete(config.branch)
    repo.checkout_orphan(config.branch)


def _open_repo(repo_dir: Path, config: PublishConfig, logger: StructuredLogger) -> GitFacade:
    return GitFacade(repo_dir, logger, network_timeout=config.network_timeout_sec)


__all__ = ["find_existing_repo", "fresh_repo", "remove_unpreserved", "reset_repo"]
