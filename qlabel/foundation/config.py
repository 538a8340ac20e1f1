from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Iterator, Mapping

import numpy as np
import yaml  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV = "QLABEL_CONFIG_FILE"
CONFIG_FILE_NAMES: tuple[str, ...] = ("qlabel.yml", "qlabel.yaml")
CONFIG_SECTION = "labeling"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class LabelingConfig:
    """Defaults applied by :func:`qlabel.runtime.labeling.resolve`.

    ``entry_basis`` holds an execution-basis name (``"next_open"``,
    ``"current_close"``...) and is parsed by the labeling runtime.
    ``max_workers`` of ``None`` lets the thread pool pick its own size; ``1``
    resolves events sequentially on the calling thread.
    """

    entry_basis: str = field(
        default="next_open", metadata={"env": "QLABEL_ENTRY_BASIS"}
    )
    drop_unresolved: bool = field(
        default=True, metadata={"env": "QLABEL_DROP_UNRESOLVED"}
    )
    max_workers: int | None = field(
        default=1, metadata={"env": "QLABEL_MAX_WORKERS"}
    )
    warn_on_ordering: bool = field(
        default=True, metadata={"env": "QLABEL_WARN_ON_ORDERING"}
    )

    def __post_init__(self) -> None:
        if not isinstance(self.entry_basis, str) or not self.entry_basis:
            raise ValueError("entry_basis must be a non-empty string")
        if self.max_workers is None:
            return
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise ValueError(
                f"max_workers must be an integer, 'auto' or None, got {self.max_workers!r}"
            )
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1 when provided")


def find_config_file(cwd: Path | None = None) -> str | None:
    """Return the configuration file named by the environment or found in ``cwd``."""

    explicit = os.environ.get(CONFIG_FILE_ENV)
    if explicit:
        return explicit

    base = Path.cwd() if cwd is None else cwd
    for name in CONFIG_FILE_NAMES:
        candidate = base / name
        if candidate.is_file():
            return str(candidate)
    return None


def _read_config_mapping(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                logger.error("Failed to parse configuration file %s: %s", path, exc)
                raise ValueError(f"Failed to parse configuration file {path}") from exc
    except (FileNotFoundError, OSError) as exc:
        logger.error("Unable to open configuration file %s: %s", path, exc)
        raise

    if not isinstance(data, dict):
        raise TypeError("Labeling config must be a mapping")
    return data


def config_from_mapping(data: Mapping[str, Any]) -> LabelingConfig:
    """Build a :class:`LabelingConfig` from the ``labeling`` section mapping."""

    known = {f.name for f in fields(LabelingConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown labeling config keys: {unknown}")
    values = dict(data)
    for name in ("drop_unresolved", "warn_on_ordering"):
        if name in values:
            values[name] = parse_bool(name, values[name])
    if isinstance(values.get("max_workers"), str):
        values["max_workers"] = _parse_max_workers(values["max_workers"])
    return LabelingConfig(**values)


def load_config(path: str) -> LabelingConfig:
    """Parse a YAML file and return its :class:`LabelingConfig`."""

    data = _read_config_mapping(path)
    section = data.get(CONFIG_SECTION, {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise TypeError(f"{CONFIG_SECTION} section must be a mapping")
    return config_from_mapping(section)


def parse_bool(name: str, value: Any) -> bool:
    """Return ``value`` as a bool, accepting ``"true"``/``"off"`` style strings."""

    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_max_workers(raw: str) -> int | None:
    value = raw.strip()
    if value.lower() in {"", "none", "auto"}:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"max_workers must be an integer, got {raw!r}") from exc


def _coerce_env_value(name: str, raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return parse_bool(name, raw)
    if name == "max_workers":
        return _parse_max_workers(raw)
    return raw.strip()


def apply_env_overrides(
    config: LabelingConfig, environ: Mapping[str, str] | None = None
) -> LabelingConfig:
    """Return ``config`` with any ``QLABEL_*`` environment overrides applied."""

    env = os.environ if environ is None else environ
    updates: dict[str, Any] = {}
    for f in fields(config):
        env_name = f.metadata.get("env")
        if not env_name or env_name not in env:
            continue
        updates[f.name] = _coerce_env_value(f.name, env[env_name], getattr(config, f.name))
    if not updates:
        return config
    logger.debug("Applying labeling config overrides from environment: %s", sorted(updates))
    return replace(config, **updates)


_CONFIG_OVERRIDE: LabelingConfig | None = None
_CONFIG_CACHE: LabelingConfig | None = None


def reset_labeling_config_cache() -> None:
    """Forget the cached configuration so the next lookup re-reads it."""

    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def set_labeling_config_override(config: LabelingConfig | None) -> None:
    """Set a process-wide override for the labeling configuration."""

    global _CONFIG_OVERRIDE
    _CONFIG_OVERRIDE = config


@contextmanager
def labeling_config_override(config: LabelingConfig | None) -> Iterator[None]:
    """Temporarily override the configuration returned by :func:`get_labeling_config`."""

    previous = _CONFIG_OVERRIDE
    set_labeling_config_override(config)
    try:
        yield
    finally:
        set_labeling_config_override(previous)


def get_labeling_config(path: str | Path | None = None) -> LabelingConfig:
    """Return the active labeling configuration.

    Resolution order: explicit ``path``, process override, cached discovery
    result, then a fresh discovery (``QLABEL_CONFIG_FILE`` or ``qlabel.yml`` in
    the working directory). Environment overrides are applied on top of the
    file values; without a file the dataclass defaults are used.
    """

    if path is not None:
        return apply_env_overrides(load_config(str(path)))

    if _CONFIG_OVERRIDE is not None:
        return _CONFIG_OVERRIDE

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    cfg_path = find_config_file()
    if cfg_path is None:
        logger.debug("No qlabel config file discovered; using defaults")
        base = LabelingConfig()
    else:
        logger.debug("Loading labeling config from %s", cfg_path)
        base = load_config(cfg_path)
    _CONFIG_CACHE = apply_env_overrides(base)
    return _CONFIG_CACHE


__all__ = [
    "CONFIG_FILE_ENV",
    "LabelingConfig",
    "apply_env_overrides",
    "config_from_mapping",
    "find_config_file",
    "get_labeling_config",
    "labeling_config_override",
    "load_config",
    "parse_bool",
    "reset_labeling_config_cache",
    "set_labeling_config_override",
]
