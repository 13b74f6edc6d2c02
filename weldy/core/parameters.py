"""Parameter state — machine settings and the things-tried checklist."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import replace
from typing import Iterable, Optional

from weldy.core.models import Parameters, ThicknessPreset

logger = logging.getLogger(__name__)

DEFAULT_THICKNESS = "1/8"
DEFAULT_VOLTAGE = 18.0
DEFAULT_WIRE_SPEED = 200.0

# Presentation-layer spellings -> Parameters field
PARAMETER_ALIASES = {
    "metal_thickness": "metal_thickness",
    "metalThickness": "metal_thickness",
    "thickness": "metal_thickness",
    "voltage": "voltage",
    "wire_speed": "wire_speed",
    "wireSpeed": "wire_speed",
    "wire_feed_speed": "wire_speed",
}
NUMERIC_FIELDS = {"voltage", "wire_speed"}
TRIED_ALIASES = ("things_tried", "thingsTried", "triedParameters")

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


class UnknownPresetError(ValueError):
    pass


def parse_number(raw: object) -> Optional[float]:
    """Lenient numeric parse of user input: '18.5V' -> 18.5, '' / 'abc' -> None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _LEADING_NUMBER.match(str(raw).strip())
        if not match:
            return None
        value = float(match.group(0))
    if not math.isfinite(value):
        return None
    return value


def resolve_key(key: str) -> str:
    if key not in PARAMETER_ALIASES:
        raise ValueError(
            f"Unknown parameter: {key!r}. "
            f"Available: {', '.join(sorted(set(PARAMETER_ALIASES.values())))}"
        )
    return PARAMETER_ALIASES[key]


def set_parameter(parameters: Parameters, key: str, raw: object) -> Parameters:
    """Return parameters with ``key`` set from user input.

    Unparseable or empty input keeps the previous value.
    """
    field_name = resolve_key(key)
    if field_name in NUMERIC_FIELDS:
        value = parse_number(raw)
        if value is None:
            logger.debug("Ignoring invalid %s input %r", field_name, raw)
            return parameters
        return replace(parameters, **{field_name: value})

    label = str(raw).strip() if raw is not None else ""
    if not label:
        logger.debug("Ignoring empty %s input", field_name)
        return parameters
    return replace(parameters, metal_thickness=label)


def toggle_tried(parameters: Parameters, thing_id: str) -> Parameters:
    tried = dict(parameters.things_tried)
    tried[thing_id] = not tried.get(thing_id, False)
    return replace(parameters, things_tried=tried)


def tried_ids(parameters: Parameters) -> list[str]:
    """Checked ids, in the order they were first recorded."""
    return [k for k, v in parameters.things_tried.items() if v]


def find_preset(
    presets: Iterable[ThicknessPreset], thickness: str
) -> ThicknessPreset:
    presets = list(presets)
    for preset in presets:
        if preset.thickness == thickness:
            return preset
    available = ", ".join(p.thickness for p in presets) or "(none)"
    raise UnknownPresetError(
        f"Unknown thickness: {thickness!r}. Available: {available}"
    )


def select_thickness(
    parameters: Parameters,
    presets: Iterable[ThicknessPreset],
    thickness: str,
) -> Parameters:
    """Switch thickness; voltage and wire speed are reset to the preset."""
    preset = find_preset(presets, thickness)
    return replace(
        parameters,
        metal_thickness=preset.thickness,
        voltage=preset.voltage,
        wire_speed=preset.wire_speed,
    )


def parameters_from_preset(
    presets: Iterable[ThicknessPreset], thickness: str = DEFAULT_THICKNESS
) -> Parameters:
    preset = find_preset(presets, thickness)
    return Parameters(
        metal_thickness=preset.thickness,
        voltage=preset.voltage,
        wire_speed=preset.wire_speed,
    )


def parameters_from_dict(data: dict) -> Parameters:
    """Build Parameters from a loosely keyed mapping, e.g. a saved form.

    Missing or invalid values fall back to the defaults.
    """
    parameters = default_parameters()
    for key, raw in data.items():
        if key in PARAMETER_ALIASES:
            parameters = set_parameter(parameters, key, raw)
        elif key in TRIED_ALIASES and isinstance(raw, dict):
            tried = dict(parameters.things_tried)
            tried.update((str(k), bool(v)) for k, v in raw.items())
            parameters = replace(parameters, things_tried=tried)
        else:
            logger.debug("Ignoring unknown parameter %r", key)
    return parameters


def default_parameters() -> Parameters:
    return Parameters(
        metal_thickness=DEFAULT_THICKNESS,
        voltage=DEFAULT_VOLTAGE,
        wire_speed=DEFAULT_WIRE_SPEED,
    )
