"""Configuration loading utilities for gitpublish."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, cast
from collections.abc import Mapping

from gitpublish.core.models import DEFAULT_REPO_DIR, PublishConfig

_PUBLISH_KEYS = (
    "branch",
    "repo_uri",
    "repo_dir",
    "preserve",
    "commit_message",
    "network_timeout_sec",
    "author_name",
    "author_email",
)


def load_config(
    *,
    path: Path | str | None = None,
    data: str | bytes | None = None,
    overrides: Mapping[str, Any] | None = None,
    base_dir: Path | str | None = None,
) -> PublishConfig:
    """Load and validate configuration from TOML data.

    Exactly one of ``path`` or ``data`` must be provided. ``overrides`` allows
    callers to patch specific sections before validation, which is useful for
    CLI flags or tests. Relative ``repo_dir`` and content sources are resolved
    against ``base_dir``, which defaults to the directory holding ``path`` (or
    the current directory for inline data).
    """
    if (path is None and data is None) or (path is not None and data is not None):
        msg = "Provide exactly one of 'path' or 'data' when loading configuration."
        raise ValueError(msg)

    raw_content: dict[str, Any]
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(path)
        if not path.is_file():
            msg = f"Configuration path is not a file: {path}"
            raise ValueError(msg)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Unable to read configuration file {path}: {exc}"
            raise ValueError(msg) from exc
        raw_content = tomllib.loads(text)
        default_base = path.parent
    else:
        if data is None:
            msg = "Configuration data must be provided when path is omitted."
            raise ValueError(msg)
        text = data if isinstance(data, str) else data.decode()
        raw_content = tomllib.loads(text)
        default_base = Path.cwd()

    if overrides is not None:
        typed_overrides: dict[str, Any] = {str(key): value for key, value in overrides.items()}
        raw_content = _merge_dicts(dict(raw_content), typed_overrides)

    root = Path(base_dir) if base_dir is not None else default_base
    normalised = _normalise(raw_content, root)

    return PublishConfig.model_validate(normalised)


def _merge_dicts(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if (
            key in base
            and isinstance(base[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            nested_base = cast("dict[str, Any]", dict(base[key]))
            nested_updates = cast("Mapping[str, Any]", value)
            base[key] = _merge_dicts(nested_base, nested_updates)
        else:
            base[key] = value
    return base


def _normalise(raw: Mapping[str, Any], base_dir: Path) -> dict[str, Any]:
    publish = cast("Mapping[str, Any]", raw.get("publish", {}))

    config_dict: dict[str, Any] = {}
    for key in _PUBLISH_KEYS:
        if key in publish:
            config_dict[key] = publish[key]
        elif key in raw:
            config_dict[key] = raw[key]

    if "repo_dir" in config_dict:
        config_dict["repo_dir"] = _resolve(config_dict["repo_dir"], base_dir)
    else:
        config_dict["repo_dir"] = _resolve(DEFAULT_REPO_DIR, base_dir)

    contents = raw.get("contents", publish.get("contents", []))
    config_dict["contents"] = [_normalise_content(entry, base_dir) for entry in contents]
    return config_dict


def _normalise_content(entry: Any, base_dir: Path) -> Any:
    if not isinstance(entry, MappingABC):
        return entry
    content = dict(cast("Mapping[str, Any]", entry))
    for key in ("from", "source"):
        if key in content:
            content[key] = _resolve(content[key], base_dir)
    return content


def _resolve(value: Any, base_dir: Path) -> Any:
    if not isinstance(value, (str, Path)):
        return value
    candidate = Path(value).expanduser()
    return candidate if candidate.is_absolute() else base_dir / candidate


__all__ = ["load_config"]
