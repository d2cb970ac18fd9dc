"""Centralized configuration for rexcap.

:func:`get_settings` returns the runtime knobs used by the decoding engine
and the command line (error excerpt length, logging destination, default
shape table). Values can be customized via environment variables or by
pointing ``REXCAP_CONFIG_FILE`` to a TOML/YAML document::

    [decode]
    excerpt_limit = 120

    [logging]
    path = "logs/rexcap.jsonl"
    level = "DEBUG"

    [shapes]
    path = "shapes.yaml"

Environment variables take precedence over the file, which takes precedence
over the built-in defaults.
"""
from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

__all__ = ["DEFAULT_EXCERPT_LIMIT", "Settings", "get_settings", "reset_settings"]

DEFAULT_EXCERPT_LIMIT = 80

_CONFIG_CACHE: Optional["Settings"] = None
_CONFIG_SOURCE: Optional[Path] = None


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration."""

    excerpt_limit: int = DEFAULT_EXCERPT_LIMIT
    log_path: Optional[Path] = None
    log_level: str = "INFO"
    shapes_path: Optional[Path] = None
    config_file: Optional[Path] = None

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    def as_dict(self) -> Dict[str, Any]:
        """Expose the settings as JSON-friendly values (useful for logging)."""

        return {
            "excerpt_limit": self.excerpt_limit,
            "log_path": str(self.log_path) if self.log_path else None,
            "log_level": self.log_level,
            "shapes_path": str(self.shapes_path) if self.shapes_path else None,
            "config_file": str(self.config_file) if self.config_file else None,
        }


def _normalize_path(value: Optional[str | Path], *, base: Optional[Path]) -> Optional[Path]:
    if value is None or value == "":
        return None
    candidate = Path(value).expanduser()
    if not candidate.is_absolute() and base is not None:
        candidate = base / candidate
    return candidate.resolve()


def _load_config_file(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file '{path}' does not exist")
    suffix = path.suffix.lower()
    if suffix == ".toml":
        with path.open("rb") as handle:
            return tomllib.load(handle)
    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as handle:
            try:
                loaded = yaml.safe_load(handle)
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in config file '{path}': {exc}") from exc
            return loaded or {}
    raise ValueError(f"Unsupported config file format: '{suffix}'")


def _coalesce_mapping(source: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not isinstance(source, Mapping):
        return {}
    return source


def _parse_excerpt_limit(value: Any) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"excerpt_limit must be an integer, got {value!r}") from exc
    if limit < 8:
        raise ValueError(f"excerpt_limit must be at least 8, got {limit}")
    return limit


def _parse_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def _build_settings(config_file: Optional[Path]) -> Settings:
    config_data: Mapping[str, Any] = {}
    config_dir: Optional[Path] = None
    if config_file is not None:
        config_file = _normalize_path(config_file, base=Path.cwd())
        if config_file is not None:
            config_data = _load_config_file(config_file)
            config_dir = config_file.parent

    decode_section = _coalesce_mapping(config_data.get("decode"))
    logging_section = _coalesce_mapping(config_data.get("logging"))
    shapes_section = _coalesce_mapping(config_data.get("shapes"))

    env = os.environ

    excerpt_limit = _parse_excerpt_limit(
        env.get("REXCAP_EXCERPT_LIMIT") or decode_section.get("excerpt_limit", DEFAULT_EXCERPT_LIMIT)
    )
    log_level = _parse_log_level(env.get("REXCAP_LOG_LEVEL") or logging_section.get("level", "INFO"))

    # paths coming from the environment are relative to the working directory
    log_path = _normalize_path(env.get("REXCAP_LOG_PATH"), base=Path.cwd()) or _normalize_path(
        logging_section.get("path"), base=config_dir
    )
    shapes_path = _normalize_path(env.get("REXCAP_SHAPES_PATH"), base=Path.cwd()) or _normalize_path(
        shapes_section.get("path"), base=config_dir
    )

    return Settings(
        excerpt_limit=excerpt_limit,
        log_path=log_path,
        log_level=log_level,
        shapes_path=shapes_path,
        config_file=config_file,
    )


def get_settings(*, refresh: bool = False, config_file: str | Path | None = None) -> Settings:
    """Return the cached :class:`Settings` configuration.

    Parameters
    ----------
    refresh:
        When ``True`` the cached configuration is discarded and recomputed.
    config_file:
        Optional explicit path to the configuration document. When provided the
        returned instance is not cached globally, allowing callers (e.g. tests)
        to override settings temporarily.
    """

    global _CONFIG_CACHE, _CONFIG_SOURCE

    explicit_path = Path(config_file).expanduser() if config_file is not None else None

    if explicit_path is not None:
        return _build_settings(explicit_path)

    env_path = os.getenv("REXCAP_CONFIG_FILE")
    source_path = Path(env_path).expanduser() if env_path else None

    if refresh or _CONFIG_CACHE is None or _CONFIG_SOURCE != source_path:
        _CONFIG_CACHE = _build_settings(source_path)
        _CONFIG_SOURCE = source_path

    return _CONFIG_CACHE


def reset_settings() -> None:
    """Clear the cached configuration (mainly useful for tests)."""

    global _CONFIG_CACHE, _CONFIG_SOURCE
    _CONFIG_CACHE = None
    _CONFIG_SOURCE = None
