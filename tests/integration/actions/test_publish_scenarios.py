from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import pytest

from gitpublish.core.content import CopyEntry, DirectoryContentSource
from gitpublish.core.models import ContentSpec, PublishConfig, Stage, StageStatus
from gitpublish.core.patterns import PathPatterns
from gitpublish.core.pipeline import PublishPipeline, publish
from gitpublish.git.facade import GitCommandError, GitFacade

if TYPE_CHECKING:
    import io

    from gitpublish.io.logging import StructuredLogger

    from conftest import RemoteRepo


def _write_site(root: Path, files: dict[str, str]) -> Path:
    for name, text in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    return root


def _config(remote: RemoteRepo, tmp_path: Path, site: Path, **extra: Any) -> PublishConfig:
    settings: dict[str, Any] = {
        "repo_uri": remote.uri,
        "repo_dir": tmp_path / "mirror",
        "contents": (ContentSpec(source=site),),
    }
    settings.update(extra)
    return PublishConfig(**settings)


def _mirror_git(mirror: Path, logger: StructuredLogger, *args: str) -> str:
    facade = GitFacade(mirror, logger)
    try:
        return facade.run(["git", *args]).stdout.strip()
    finally:
        facade.close()


@pytest.mark.integration
def test_first_publish_creates_orphan_branch(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """Publishing to a remote without the branch creates it with one commit."""
    site = _write_site(tmp_path / "site", {"index.html": "<h1>hello</h1>\n"})

    result = publish(_config(remote, tmp_path, site), logger)

    assert result.did_work is True
    assert result.pushed is True
    assert result.commit_sha == remote.tip("gh-pages")
    assert remote.files("gh-pages") == {"index.html": "<h1>hello</h1>\n"}
    assert remote.commit_count("gh-pages") == 1


@pytest.mark.integration
def test_publish_replaces_stale_files_and_keeps_preserved(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """Unpreserved files disappear while preserved ones survive the publish."""
    remote.seed("gh-pages", {"keep/a.txt": "keep me\n", "stale.txt": "old\n"})
    site = _write_site(tmp_path / "site", {"new.txt": "fresh\n"})
    config = _config(remote, tmp_path, site, preserve=PathPatterns(include=("keep/**",)))

    result = publish(config, logger)

    assert result.pushed is True
    assert remote.files("gh-pages") == {"keep/a.txt": "keep me\n", "new.txt": "fresh\n"}
    assert remote.commit_count("gh-pages") == 2
    assert not (tmp_path / "mirror" / "stale.txt").exists()


@pytest.mark.integration
def test_republishing_identical_content_skips_push(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """A second run over the same content neither commits nor pushes."""
    site = _write_site(tmp_path / "site", {"index.html": "same\n", "css/site.css": "body {}\n"})
    config = _config(remote, tmp_path, site)
    publish(config, logger)
    tip = remote.tip("gh-pages")

    result = publish(config, logger)

    assert result.did_work is False
    assert result.pushed is False
    assert [outcome.status for outcome in result.outcomes] == [
        StageStatus.done,
        StageStatus.done,
        StageStatus.up_to_date,
        StageStatus.skipped,
    ]
    assert remote.tip("gh-pages") == tip
    assert remote.commit_count("gh-pages") == 1


@pytest.mark.integration
def test_reset_discards_unpushed_local_commits(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """The mirror is hard reset to the remote tip before new content lands."""
    site = _write_site(tmp_path / "site", {"index.html": "v1\n"})
    config = _config(remote, tmp_path, site)
    publish(config, logger)
    mirror = tmp_path / "mirror"
    (mirror / "local.txt").write_text("never pushed\n", encoding="utf-8")
    _mirror_git(mirror, logger, "add", "local.txt")
    _mirror_git(mirror, logger, "commit", "-q", "-m", "local only")

    result = PublishPipeline(config, logger).run(Stage.reset)

    assert [outcome.stage for outcome in result.outcomes] == [Stage.reset]
    assert _mirror_git(mirror, logger, "rev-parse", "HEAD") == remote.tip("gh-pages")
    assert not (mirror / "local.txt").exists()


@pytest.mark.integration
def test_commit_target_does_not_push(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """Stopping at commit leaves the remote untouched."""
    remote.seed("gh-pages", {"index.html": "old\n"})
    tip = remote.tip("gh-pages")
    site = _write_site(tmp_path / "site", {"index.html": "new\n"})

    result = PublishPipeline(_config(remote, tmp_path, site), logger).run(Stage.commit)

    assert result.did_work is True
    assert result.pushed is False
    assert result.commit_sha is not None
    assert remote.tip("gh-pages") == tip


@pytest.mark.integration
def test_rejected_push_fails_and_closes_repo(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger, log_stream: io.StringIO,
) -> None:
    """A branch moved by someone else mid-run rejects the push without forcing."""
    original = remote.seed("gh-pages", {"index.html": "old\n"})
    site = _write_site(tmp_path / "site", {"index.html": "mine\n"})
    config = _config(remote, tmp_path, site)
    directory = DirectoryContentSource(config.contents)

    class RacingSource:
        """Moves the remote branch while the content is being copied."""

        def entries(self) -> list[CopyEntry]:
            remote.seed("gh-pages", {"index.html": "theirs\n"}, message="concurrent")
            return list(directory.entries())

    with pytest.raises(GitCommandError):
        publish(config, logger, content=RacingSource())

    assert remote.tip("gh-pages") != original
    assert remote.files("gh-pages") == {"index.html": "theirs\n"}
    assert "closing git publish repo" in log_stream.getvalue()


@pytest.mark.integration
def test_mirror_is_rebuilt_for_a_different_remote(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """A mirror cloned from another remote is discarded and recreated."""
    site = _write_site(tmp_path / "site", {"index.html": "hello\n"})
    other = tmp_path / "other.git"
    other.mkdir()
    remote.git("init", "--bare", "-q", ".", cwd=other)
    publish(_config(remote, tmp_path, site, repo_uri=str(other)), logger)
    mirror = tmp_path / "mirror"
    (mirror / "untracked.tmp").write_text("leftover", encoding="utf-8")

    result = publish(_config(remote, tmp_path, site), logger)

    assert result.pushed is True
    assert _mirror_git(mirror, logger, "remote", "get-url", "origin") == remote.uri
    assert not (mirror / "untracked.tmp").exists()
    assert remote.files("gh-pages") == {"index.html": "hello\n"}


@pytest.mark.integration
def test_deleted_remote_branch_restarts_history(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """When the remote branch disappears the next publish starts a new root commit."""
    site = _write_site(tmp_path / "site", {"index.html": "v1\n"})
    config = _config(remote, tmp_path, site)
    publish(config, logger)
    remote.git("update-ref", "-d", "refs/heads/gh-pages")
    (site / "index.html").write_text("v2\n", encoding="utf-8")

    result = publish(config, logger)

    assert result.pushed is True
    assert remote.files("gh-pages") == {"index.html": "v2\n"}
    assert remote.commit_count("gh-pages") == 1


@pytest.mark.integration
def test_content_source_can_nest_under_into(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """Custom content sources decide the destination of every file."""
    site = _write_site(tmp_path / "site", {"index.html": "docs\n"})

    class VersionedSource:
        def entries(self) -> list[CopyEntry]:
            return [CopyEntry(site / "index.html", PurePosixPath("v2/index.html"))]

    publish(_config(remote, tmp_path, site, branch="docs"), logger, content=VersionedSource())

    assert remote.files("docs") == {"v2/index.html": "docs\n"}


def _assert_empty_orphan(mirror: Path, logger: StructuredLogger) -> None:
    facade = GitFacade(mirror, logger)
    try:
        assert facade.current_branch() == "gh-pages"
        assert facade.run(["git", "rev-parse", "--verify", "--quiet", "HEAD"], check=False).returncode != 0
        assert facade.run(["git", "ls-files"]).stdout == ""
    finally:
        facade.close()
    remaining = [path for path in mirror.rglob("*") if path.is_file() and ".git" not in path.relative_to(mirror).parts]
    assert remaining == []


@pytest.mark.integration
def test_reset_without_remote_branch_leaves_empty_orphan(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """Reset alone starts a parentless branch with nothing staged or on disk."""
    site = _write_site(tmp_path / "site", {"index.html": "v1\n"})
    mirror = tmp_path / "mirror"

    result = PublishPipeline(_config(remote, tmp_path, site), logger).run(Stage.reset)

    assert [outcome.stage for outcome in result.outcomes] == [Stage.reset]
    _assert_empty_orphan(mirror, logger)


@pytest.mark.integration
def test_reset_after_remote_branch_deleted_drops_old_index(
    remote: RemoteRepo, tmp_path: Path, logger: StructuredLogger,
) -> None:
    """An orphan started from a published mirror keeps none of the old files."""
    site = _write_site(tmp_path / "site", {"index.html": "v1\n", "css/site.css": "body {}\n"})
    config = _config(remote, tmp_path, site)
    publish(config, logger)
    remote.git("update-ref", "-d", "refs/heads/gh-pages")

    PublishPipeline(config, logger).run(Stage.reset)

    _assert_empty_orphan(tmp_path / "mirror", logger)
