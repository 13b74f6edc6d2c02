"""State stores — where the session's position and settings live between actions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import parse_qs, urlencode

from weldy.core.models import NavigationState, Parameters
from weldy.core.parameters import (
    DEFAULT_THICKNESS,
    DEFAULT_VOLTAGE,
    DEFAULT_WIRE_SPEED,
    parse_number,
)
from weldy.core.recommendations import format_number

logger = logging.getLogger(__name__)


class StateStore(ABC):
    @abstractmethod
    def load(self) -> tuple[Optional[NavigationState], Optional[Parameters]]: ...

    @abstractmethod
    def save(
        self, state: NavigationState, parameters: Optional[Parameters]
    ) -> None: ...


class InMemoryStateStore(StateStore):
    def __init__(self) -> None:
        self._state: Optional[NavigationState] = None
        self._parameters: Optional[Parameters] = None

    def load(self) -> tuple[Optional[NavigationState], Optional[Parameters]]:
        return self._state, self._parameters

    def save(
        self, state: NavigationState, parameters: Optional[Parameters]
    ) -> None:
        self._state = state
        self._parameters = parameters


class QueryStringStateStore(StateStore):
    """Keeps the whole session in a URL query string, like a deep link.

    ``tried`` only lists checked ids; unchecked entries are dropped on save.
    A query without ``voltage`` means setup has not been completed.
    """

    def __init__(self, query: str = "") -> None:
        self.query = query

    def load(self) -> tuple[Optional[NavigationState], Optional[Parameters]]:
        return decode_query(self.query)

    def save(
        self, state: NavigationState, parameters: Optional[Parameters]
    ) -> None:
        self.query = encode_query(state, parameters)


def _encode_number(value: float) -> str:
    # Full precision; format_number rounds to 6 significant digits
    if float(value).is_integer():
        return format_number(value)
    return repr(float(value))


def encode_query(state: NavigationState, parameters: Optional[Parameters]) -> str:
    fields: dict[str, str] = {"path": state.current}
    if state.history:
        fields["history"] = ",".join(state.history)
    if state.recommendation_index:
        fields["index"] = str(state.recommendation_index)
    if parameters is not None:
        fields["voltage"] = _encode_number(parameters.voltage)
        fields["wireSpeed"] = _encode_number(parameters.wire_speed)
        fields["thickness"] = parameters.metal_thickness
        tried = [k for k, v in parameters.things_tried.items() if v]
        if tried:
            fields["tried"] = ",".join(tried)
    return urlencode(fields)


def decode_query(
    query: str,
) -> tuple[Optional[NavigationState], Optional[Parameters]]:
    values = {k: v[-1] for k, v in parse_qs(query.lstrip("?")).items()}

    state = None
    if values.get("path"):
        history = tuple(h for h in values.get("history", "").split(",") if h)
        index = parse_number(values.get("index", "0"))
        state = NavigationState(
            history=history,
            current=values["path"],
            recommendation_index=int(index) if index and index > 0 else 0,
        )

    parameters = None
    if "voltage" in values:
        voltage = parse_number(values["voltage"])
        wire_speed = parse_number(values.get("wireSpeed", ""))
        # Zero falls back to the default too
        parameters = Parameters(
            metal_thickness=values.get("thickness") or DEFAULT_THICKNESS,
            voltage=voltage or DEFAULT_VOLTAGE,
            wire_speed=wire_speed or DEFAULT_WIRE_SPEED,
            things_tried={
                t: True for t in values.get("tried", "").split(",") if t
            },
        )
    return state, parameters
