"""Settings files.

Two optional TOML files, later ones winning key by key inside each table:

    ~/.cloudmachine/defaults.toml    user-wide
    ./cloudmachine.toml              per project

Only the ``[aws]`` table is read today:

    [aws]
    region = "eu-west-1"
    poll_timeout = 900
    concurrency = 4
"""

from __future__ import annotations

import tomllib
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, TypeAlias

from cloudmachine.exceptions import ConfigurationError
from cloudmachine.providers.aws.config import AWS

Settings: TypeAlias = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".cloudmachine" / "defaults.toml"
PROJECT_CONFIG_NAME = "cloudmachine.toml"

# Credentials never come from settings files
_AWS_KEYS = frozenset(f.name for f in fields(AWS)) - {"credentials"}


def _layer(settings: Settings, overlay: Settings) -> Settings:
    """Overlay tables recursively; any other value replaces the one below."""
    layered = dict(settings)
    for key, value in overlay.items():
        below = layered.get(key)
        layered[key] = _layer(below, value) if isinstance(below, dict) and isinstance(value, dict) else value
    return layered


def _load(path: Path) -> Settings:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid settings file {path}: {e}") from e


def load_config(*, project_dir: Path | None = None, global_path: Path | None = None) -> Settings:
    """Merged settings of the global and the project file. Always has an ``aws`` table."""
    files = [global_path or GLOBAL_CONFIG_PATH, (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME]
    settings: Settings = {"aws": {}}
    for path in files:
        settings = _layer(settings, _load(path))
    return settings


def build_aws(table: Settings, **overrides: Any) -> AWS:
    """``AWS`` settings from an ``[aws]`` table; non-None ``overrides`` win."""
    unknown = table.keys() - _AWS_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown [aws] setting(s): {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(sorted(_AWS_KEYS))}"
        )

    values = dict(table)
    if "workdir" in values:
        values["workdir"] = Path(values["workdir"])

    explicit = {k: v for k, v in overrides.items() if v is not None}
    return replace(AWS(**values), **explicit)


def resolve_aws(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    **overrides: Any,
) -> AWS:
    settings = load_config(project_dir=project_dir, global_path=global_path)
    return build_aws(settings["aws"], **overrides)
