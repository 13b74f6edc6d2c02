"""Recommendation resolver — turns adjustment directives into concrete settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

from weldy.core.models import (
    AdjustmentKind,
    Direction,
    NextAction,
    Parameters,
    Recommendation,
    RenderedRecommendation,
)

logger = logging.getLogger(__name__)

# directive parameter -> (Parameters field, display name, unit, unit separator)
NUMERIC_PARAMETERS: dict[str, tuple[str, str, str, str]] = {
    "voltage": ("voltage", "voltage", "V", ""),
    "wire_feed_speed": ("wire_speed", "wire speed", "IPM", " "),
}

TECHNIQUE_INSTRUCTIONS = {
    "stick_out": 'Check stick-out distance: maintain 3/8"',
}

NUMERIC_BUTTON = "Done, I changed it"
TECHNIQUE_BUTTON = "Done, I tried this"


@dataclass(frozen=True)
class AdjustmentRules:
    voltage_step: float = 2
    voltage_min: float = 12
    wire_speed_step: float = 20
    wire_speed_min: float = 100

    @classmethod
    def from_config(cls, config: Any) -> "AdjustmentRules":
        return cls(
            voltage_step=config.voltage_step,
            voltage_min=config.voltage_min,
            wire_speed_step=config.wire_speed_step,
            wire_speed_min=config.wire_speed_min,
        )

    def step_for(self, parameter: str) -> tuple[float, float]:
        """Return (step, floor) for a numeric directive parameter."""
        if parameter == "voltage":
            return self.voltage_step, self.voltage_min
        return self.wire_speed_step, self.wire_speed_min


DEFAULT_RULES = AdjustmentRules()


# ---------------------------------------------------------------------------
# Classification (decided when data is loaded, not when it is rendered)
# ---------------------------------------------------------------------------

def detect_direction(adjustment: str) -> Optional[Direction]:
    text = adjustment.lower()
    if "increase" in text:
        return Direction.INCREASE
    if "decrease" in text:
        return Direction.DECREASE
    return None


def classify_recommendation(
    parameter: str,
    adjustment: str,
    details: str = "",
    kind: Optional[str] = None,
    direction: Optional[str] = None,
) -> Recommendation:
    """Build a tagged Recommendation.

    Explicit ``kind``/``direction`` win; otherwise a numeric parameter whose
    text says increase or decrease is numeric and everything else is technique.
    """
    resolved_direction = Direction(direction) if direction else None
    if kind is not None:
        resolved_kind = AdjustmentKind(kind)
    elif parameter in NUMERIC_PARAMETERS:
        resolved_direction = resolved_direction or detect_direction(adjustment)
        resolved_kind = (
            AdjustmentKind.NUMERIC if resolved_direction else AdjustmentKind.TECHNIQUE
        )
    else:
        resolved_kind = AdjustmentKind.TECHNIQUE

    if resolved_kind is AdjustmentKind.NUMERIC:
        if parameter not in NUMERIC_PARAMETERS:
            raise ValueError(
                f"Numeric recommendation for unsupported parameter {parameter!r}"
            )
        resolved_direction = resolved_direction or detect_direction(adjustment)
        if resolved_direction is None:
            raise ValueError(
                f"Numeric recommendation for {parameter!r} needs a direction"
            )
    else:
        resolved_direction = None

    return Recommendation(
        parameter=parameter,
        adjustment=adjustment,
        details=details,
        kind=resolved_kind,
        direction=resolved_direction,
    )


def looks_numeric(text: str) -> bool:
    """Free-text check for adjustment text that carries no tag."""
    return "from" in text and "to" in text


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def target_value(
    rec: Recommendation,
    parameters: Parameters,
    rules: AdjustmentRules = DEFAULT_RULES,
) -> Optional[float]:
    """Return the new setting a numeric recommendation asks for."""
    if rec.kind is not AdjustmentKind.NUMERIC or rec.direction is None:
        return None
    field_name = NUMERIC_PARAMETERS[rec.parameter][0]
    current = getattr(parameters, field_name)
    step, floor = rules.step_for(rec.parameter)
    if rec.direction is Direction.INCREASE:
        return current + step
    return max(current - step, floor)


def _recommendation_text(
    rec: Recommendation, parameters: Parameters, rules: AdjustmentRules
) -> str:
    target = target_value(rec, parameters, rules)
    if target is not None:
        field_name, label, unit, sep = NUMERIC_PARAMETERS[rec.parameter]
        current = getattr(parameters, field_name)
        verb = "Increase" if rec.direction is Direction.INCREASE else "Decrease"
        return (
            f"{verb} {label} from {format_number(current)}{sep}{unit} "
            f"to {format_number(target)}{sep}{unit}"
        )
    if rec.parameter in TECHNIQUE_INSTRUCTIONS:
        return TECHNIQUE_INSTRUCTIONS[rec.parameter]
    return rec.adjustment


def specific_recommendation(
    parameter: str,
    adjustment: str,
    parameters: Parameters,
    rules: AdjustmentRules = DEFAULT_RULES,
) -> str:
    """Concrete guidance for a generic directive, e.g. 'Increase voltage from 18V to 20V'."""
    rec = classify_recommendation(parameter, adjustment)
    return _recommendation_text(rec, parameters, rules)


def render_recommendation(
    rec: Recommendation,
    parameters: Parameters,
    rules: AdjustmentRules = DEFAULT_RULES,
) -> RenderedRecommendation:
    numeric = rec.kind is AdjustmentKind.NUMERIC
    return RenderedRecommendation(
        text=_recommendation_text(rec, parameters, rules),
        numeric=numeric,
        button_label=NUMERIC_BUTTON if numeric else TECHNIQUE_BUTTON,
        parameter_label=rec.parameter.replace("_", " "),
        details=rec.details,
    )


# ---------------------------------------------------------------------------
# Applying
# ---------------------------------------------------------------------------

def apply_recommendation(
    parameters: Parameters,
    rec: Recommendation,
    rules: AdjustmentRules = DEFAULT_RULES,
    tried_id: Optional[str] = None,
) -> Parameters:
    """Return parameters with the adjustment made and the remedy marked tried."""
    tried = dict(parameters.things_tried)
    tried[tried_id or rec.parameter] = True
    updated = replace(parameters, things_tried=tried)

    target = target_value(rec, parameters, rules)
    if target is not None:
        field_name = NUMERIC_PARAMETERS[rec.parameter][0]
        updated = replace(updated, **{field_name: target})
        logger.debug(
            "Applied %s %s: %s -> %s",
            rec.direction.value if rec.direction else "",
            rec.parameter,
            getattr(parameters, field_name),
            target,
        )
    return updated


# ---------------------------------------------------------------------------
# Recommendation cursor
# ---------------------------------------------------------------------------

def next_action(index: int, total: int) -> NextAction:
    if index < total - 1:
        return NextAction.TRY_ANOTHER
    return NextAction.START_OVER


def next_index(index: int, total: int) -> Optional[int]:
    """Index of the following suggestion, or None when it is time to start over."""
    if next_action(index, total) is NextAction.TRY_ANOTHER:
        return index + 1
    return None
