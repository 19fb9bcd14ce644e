"""CLI entry point for gitpublish built with Typer."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from pydantic import ValidationError

from gitpublish.cli.runtime import CliOverrides, build_logger, format_result, load_cli_config
from gitpublish.core.errors import ConfigurationError, PublishError
from gitpublish.core.models import Stage
from gitpublish.core.pipeline import PublishPipeline
from gitpublish.git.facade import GitCommandError, RepositoryClosedError

if TYPE_CHECKING:
    from collections.abc import Sequence


app = typer.Typer(add_completion=False, no_args_is_help=True)


ConfigOption = Annotated[Path | None, typer.Option(help="Path to a gitpublish TOML file.")]
RepoUriOption = Annotated[
    str | None,
    typer.Option("--repo-uri", help="Remote to publish to. Defaults to the project's origin."),
]
BranchOption = Annotated[str | None, typer.Option(help="Branch to publish to.")]
RepoDirOption = Annotated[Path | None, typer.Option(help="Directory holding the local mirror.")]
MessageOption = Annotated[str | None, typer.Option("--message", "-m", help="Commit message.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Include debug logs.")]


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False))


def _run_to(
    target: Stage,
    *,
    config: Path | None,
    repo_uri: str | None,
    branch: str | None,
    repo_dir: Path | None,
    message: str | None,
    json_output: bool,
    verbose: bool,
) -> None:
    logger = build_logger(json_logs=json_output, verbose=verbose, silence_logs=json_output and not verbose)
    overrides = CliOverrides(repo_uri=repo_uri, branch=branch, repo_dir=repo_dir, message=message)
    try:
        publish_config = load_cli_config(config, overrides, project_dir=Path.cwd(), logger=logger)
    except FileNotFoundError as exc:
        typer.echo(f"Configuration file not found: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except (ValidationError, ValueError) as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc

    try:
        result = PublishPipeline(publish_config, logger).run(target)
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except (GitCommandError, PublishError, RepositoryClosedError, OSError) as exc:
        typer.echo(f"Publishing failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if json_output:
        _emit_json(result.model_dump(mode="json"))
        return
    typer.echo(format_result(result))


@app.callback()
def cli_root() -> None:
    """Publish generated content to a branch of a git repository."""


@app.command("publish")
def publish_command(
    config: ConfigOption = None,
    repo_uri: RepoUriOption = None,
    branch: BranchOption = None,
    repo_dir: RepoDirOption = None,
    message: MessageOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Reset, copy, commit and push in one go."""
    _run_to(
        Stage.push,
        config=config,
        repo_uri=repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        message=message,
        json_output=json_output,
        verbose=verbose,
    )


@app.command("reset")
def reset_command(
    config: ConfigOption = None,
    repo_uri: RepoUriOption = None,
    branch: BranchOption = None,
    repo_dir: RepoDirOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Prepare the mirror for new content."""
    _run_to(
        Stage.reset,
        config=config,
        repo_uri=repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        message=None,
        json_output=json_output,
        verbose=verbose,
    )


@app.command("copy")
def copy_command(
    config: ConfigOption = None,
    repo_uri: RepoUriOption = None,
    branch: BranchOption = None,
    repo_dir: RepoDirOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Reset the mirror and copy the content into it."""
    _run_to(
        Stage.copy,
        config=config,
        repo_uri=repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        message=None,
        json_output=json_output,
        verbose=verbose,
    )


@app.command("commit")
def commit_command(
    config: ConfigOption = None,
    repo_uri: RepoUriOption = None,
    branch: BranchOption = None,
    repo_dir: RepoDirOption = None,
    message: MessageOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Reset, copy and commit without pushing."""
    _run_to(
        Stage.commit,
        config=config,
        repo_uri=repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        message=message,
        json_output=json_output,
        verbose=verbose,
    )


@app.command("push")
def push_command(
    config: ConfigOption = None,
    repo_uri: RepoUriOption = None,
    branch: BranchOption = None,
    repo_dir: RepoDirOption = None,
    message: MessageOption = None,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Run every stage and push when a commit was made."""
    _run_to(
        Stage.push,
        config=config,
        repo_uri=repo_uri,
        branch=branch,
        repo_dir=repo_dir,
        message=message,
        json_output=json_output,
        verbose=verbose,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the gitpublish CLI and return the exit status.

    ``argv`` defaults to ``sys.argv[1:]``. Usage errors are reported on stderr
    and mapped to their exit code instead of propagating.
    """
    args = sys.argv[1:] if argv is None else list(argv)
    command = typer.main.get_command(app)
    try:
        command.main(args=args, prog_name="gitpublish", standalone_mode=True)
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
