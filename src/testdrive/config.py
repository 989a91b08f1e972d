# config.py
# Project-level settings from .testdrive.yml, overridden by CLI flags.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

CONFIG_FILE = ".testdrive.yml"

PROVIDER_AUTO = "auto"

_LIST_KEYS = ("workflows", "jobs", "only_step", "skip_step", "privileged_command_patterns")
_BOOL_KEYS = ("dry_run", "verbose")
_STR_KEYS = ("provider", "format")


@dataclass
class Config:
    provider: str = PROVIDER_AUTO
    workflows: List[str] = field(default_factory=list)
    jobs: List[str] = field(default_factory=list)
    only_step: List[str] = field(default_factory=list)
    skip_step: List[str] = field(default_factory=list)
    dry_run: bool = False
    verbose: bool = False
    format: str = "pretty"
    privileged_command_patterns: List[str] = field(default_factory=list)


def load_config(root: str | Path) -> Config:
    """
    Read `.testdrive.yml` under `root`.

    A missing file yields the defaults. Unknown keys are ignored.

    Raises:
        ConfigError: the file cannot be read, is not YAML, or a key has the
            wrong type.
    """
    path = Path(root) / CONFIG_FILE
    cfg = Config()
    if not path.exists():
        return cfg

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"read config {str(path)!r}: {e}", details={"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"parse config {str(path)!r}: {e}", details={"path": str(path)}) from e

    if raw is None:
        return cfg
    if not isinstance(raw, dict):
        raise ConfigError(f"parse config {str(path)!r}: top level must be a mapping", details={"path": str(path)})

    for key in _STR_KEYS:
        if key in raw and raw[key] is not None:
            setattr(cfg, key, str(raw[key]).strip() or getattr(Config(), key))
    for key in _BOOL_KEYS:
        if key in raw and raw[key] is not None:
            if not isinstance(raw[key], bool):
                raise ConfigError(f"config {str(path)!r}: {key} must be true or false", details={"key": key})
            setattr(cfg, key, raw[key])
    for key in _LIST_KEYS:
        if key in raw and raw[key] is not None:
            setattr(cfg, key, _string_list(raw[key], key, path))
    return cfg


def _string_list(value: Any, key: str, path: Path) -> List[str]:
    # a lone string is accepted as a one-element list
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"config {str(path)!r}: {key} must be a list of strings", details={"key": key})
    return [str(v) for v in value]


def apply_flags(cfg: Config, flags: Dict[str, Optional[Any]]) -> Config:
    """
    Overlay explicitly given CLI flags onto `cfg`.

    A flag counts as given when it is not None and, for multi-value options,
    not empty.
    """
    names = {f.name for f in fields(Config)}
    for key, value in flags.items():
        if key not in names or value is None:
            continue
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            value = list(value)
        setattr(cfg, key, value)
    return cfg
