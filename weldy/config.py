"""Runtime configuration — adjustment steps, floors and navigation policy."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

ACCEPT_TARGETS = ("start", "setup")

_ENV_PREFIX = "WELDY_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class WeldyConfig:
    voltage_step: float = 2
    voltage_min: float = 12
    wire_speed_step: float = 20  # some shops step by 25
    wire_speed_min: float = 100
    accept_target: str = "start"
    restart_clears_parameters: bool = True
    data_file: Optional[str] = None
    tree_file: Optional[str] = None
    things_tried_file: Optional[str] = None

    def __post_init__(self) -> None:
        if self.accept_target not in ACCEPT_TARGETS:
            raise ValueError(
                f"accept_target must be one of {', '.join(ACCEPT_TARGETS)}, "
                f"got {self.accept_target!r}"
            )
        for name in ("voltage_step", "wire_speed_step"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


def load_config(
    config_file: Optional[str] = None, **overrides: Any
) -> WeldyConfig:
    """Resolve configuration: override → env var → config file → default.

    ``None`` overrides are ignored so CLI options can be passed straight through.
    """
    file_values = _read_config_file(
        config_file or os.environ.get(f"{_ENV_PREFIX}CONFIG")
    )

    values: dict[str, Any] = {}
    for f in fields(WeldyConfig):
        if overrides.get(f.name) is not None:
            raw = overrides[f.name]
        elif os.environ.get(_ENV_PREFIX + f.name.upper()):
            raw = os.environ[_ENV_PREFIX + f.name.upper()]
        elif file_values.get(f.name) is not None:
            raw = file_values[f.name]
        else:
            continue
        values[f.name] = _coerce(f.name, raw, f.default)

    unknown = set(overrides) - {f.name for f in fields(WeldyConfig)}
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    return WeldyConfig(**values)


def _read_config_file(path: Optional[str]) -> dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ValueError(f"Config file not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    logger.debug("Loaded config file %s", config_path)
    # Accept both snake_case and kebab-case keys
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def _coerce(name: str, raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"Invalid boolean for {name}: {raw!r}")
    if isinstance(default, (int, float)):
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid number for {name}: {raw!r}") from None
    return str(raw)
