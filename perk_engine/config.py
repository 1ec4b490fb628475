"""Configuration loading utilities."""

from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from perk_engine import BUILD_SIZE, CONTRACT_VERSION
from perk_engine.contracts import check_contract_version
from perk_engine.core.rules import DEFAULT_MUTEX_TAGS, MutexModel
from perk_engine.core.scorer import ScoringWeights

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "contract_version": CONTRACT_VERSION,
    "build": {"size": BUILD_SIZE},
    "scoring": {},
    "mutex": {role.value: sorted(tags) for role, tags in DEFAULT_MUTEX_TAGS.items()},
}


_ENV_VAR = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def load_config(config_path: str | Path) -> dict[str, Any]:
    """Read an engine YAML file, expanding ``${VAR}`` / ``${VAR:-default}``.

    Raises:
        FileNotFoundError: if ``config_path`` does not exist.
        ValueError: if the document is not a mapping.
        ContractValidationError: if ``contract_version`` is unsupported.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = _substitute_env_vars(path.read_text())
    config = yaml.safe_load(text) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config root must be a mapping, got {type(config).__name__}")

    check_contract_version(str(config.get("contract_version", CONTRACT_VERSION)))
    return config


def _substitute_env_vars(content: str) -> str:
    """Expand env references; unset variables without a default stay verbatim."""

    def expand(match: re.Match) -> str:
        name, default = match.group(1), match.group(2)
        if name in os.environ:
            return os.environ[name]
        return default if default is not None else match.group(0)

    return _ENV_VAR.sub(expand, content)


def merge_config(overrides: dict[str, Any] | None) -> dict[str, Any]:
    """Deep-merge ``overrides`` over :data:`DEFAULT_CONFIG`."""
    merged = copy.deepcopy(DEFAULT_CONFIG)

    def _merge(base: dict, extra: dict) -> None:
        for key, value in extra.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                _merge(base[key], value)
            else:
                base[key] = value

    _merge(merged, overrides or {})
    return merged


@dataclass(frozen=True)
class EngineConfig:
    """Resolved engine settings: build size, scoring weights, mutex model."""

    build_size: int
    weights: ScoringWeights
    mutex: MutexModel

    @classmethod
    def from_dict(cls, config: dict[str, Any] | None = None) -> EngineConfig:
        """Resolve a raw config dict (already merged or partial) into settings.

        Raises:
            ValueError: on out-of-range or malformed values.
        """
        merged = merge_config(config)

        build_size = merged.get("build", {}).get("size", BUILD_SIZE)
        if isinstance(build_size, str) and build_size.strip().isdigit():
            build_size = int(build_size)
        if not isinstance(build_size, int) or isinstance(build_size, bool):
            raise ValueError(f"build.size must be an integer, got {build_size!r}")
        if not 1 <= build_size <= BUILD_SIZE:
            raise ValueError(f"build.size must be 1-{BUILD_SIZE}, got {build_size}")

        weights = ScoringWeights.from_config(merged.get("scoring") or {})
        mutex = MutexModel.from_config(merged.get("mutex") or {})
        return cls(build_size=build_size, weights=weights, mutex=mutex)


def get_project_root() -> Path:
    """Nearest directory at or above the cwd holding ``pyproject.toml``."""
    cwd = Path.cwd()
    return next((d for d in (cwd, *cwd.parents) if (d / "pyproject.toml").exists()), cwd)


def default_config_path() -> Path:
    return get_project_root() / "configs" / "perk_engine.yaml"


def load_raw_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load ``config_path``, else the project's configs/perk_engine.yaml.

    Returns an empty dict (all defaults) when no path is given and the
    project ships no config file.
    """
    if config_path is None:
        config_path = default_config_path()
        if not config_path.exists():
            logger.debug("No %s found, using built-in defaults", config_path)
            return {}
    logger.info("Loading config %s", config_path)
    return load_config(config_path)


def load_engine_config(config_path: str | Path | None = None) -> EngineConfig:
    """Resolve engine settings from ``config_path`` or the project default."""
    return EngineConfig.from_dict(load_raw_config(config_path))
