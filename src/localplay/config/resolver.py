"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import LocalPlayConfig

ENV_PREFIX = "LOCALPLAY__"


def resolve_with_precedence(
    *,
    defaults: LocalPlayConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> LocalPlayConfig:
    """Merge defaults, file, environment, and CLI overrides in increasing precedence.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values derived from ``LOCALPLAY__`` variables.
        cli_overrides: Values supplied on the command line, dotted keys allowed.

    Returns:
        LocalPlayConfig: Validated configuration.

    Raises:
        ConfigError: If a source is malformed or the merged result is invalid.
    """
    merged = defaults.model_dump(mode="python")
    sources = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for name, source in sources:
        if source is None:
            continue
        merged = deep_merge(merged, expand_dotted(source, source_name=name))

    try:
        return LocalPlayConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def env_to_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Translate ``LOCALPLAY__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML scalars so ``"0.5"`` becomes a float and
    ``"[.mp4, .mkv]"`` becomes a list.
    """
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_path(overrides, segments, value)
    return overrides


def assign_path(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign ``value`` at a nested ``path`` inside ``target``.

    Raises:
        ConfigError: If an intermediate segment already holds a non-mapping value.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign {'.'.join(path)}: '{segment}' is not a mapping.")
        node = child
    node[path[-1]] = value


def expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    """Return ``source`` with dotted keys such as ``probe.timeout_seconds`` nested."""
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, source_name=source_name)
        nested: dict[str, Any] = {}
        assign_path(nested, key.split("."), value)
        result = deep_merge(result, nested)
    return result


def deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overrides`` onto a copy of ``base``."""
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "env_to_overrides",
    "assign_path",
    "expand_dotted",
    "deep_merge",
]
