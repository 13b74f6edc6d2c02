"""Navigation — defect combinations, cause lookup and the history stack."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from weldy.core.models import (
    Cause,
    CauseSelection,
    Defect,
    DefectCombination,
    NavigationState,
)

if TYPE_CHECKING:
    from weldy.data.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "+"
GOOD_WELD_KEY = "good_weld"

GOOD_WELD = DefectCombination(
    key=GOOD_WELD_KEY,
    defect_ids=(),
    label="Good Weld",
    descriptions=(
        "• Consistent bead width and height",
        "• Smooth, even ripples",
        "• Good fusion to base metal on both sides",
        "• Minimal spatter",
        "• No visible defects",
    ),
)


def combination_key(defect_ids: Iterable[str]) -> str:
    return KEY_SEPARATOR.join(sorted(defect_ids))


def parse_combination_key(key: str) -> tuple[str, ...]:
    return tuple(sorted(k for k in key.split(KEY_SEPARATOR) if k))


def combinations_from_causes(
    causes: Iterable[Cause], defects: Iterable[Defect] = ()
) -> list[DefectCombination]:
    """Unique defect combinations in first-seen order, Good Weld first."""
    by_id = {d.id: d for d in defects}
    combos: dict[str, DefectCombination] = {}

    for cause in causes:
        key = combination_key(cause.defect_ids)
        if key in combos:
            continue
        sorted_ids = tuple(sorted(cause.defect_ids))
        known = [by_id[i] for i in sorted_ids if i in by_id]
        combos[key] = DefectCombination(
            key=key,
            defect_ids=sorted_ids,
            label=" + ".join(d.name for d in known),
            descriptions=tuple(f"• {d.name}: {d.how_to_identify}" for d in known),
        )

    return [GOOD_WELD, *combos.values()]


def causes_for_combination(
    causes: Iterable[Cause], defect_ids: Iterable[str]
) -> list[Cause]:
    """Causes whose defect set is exactly ``defect_ids``."""
    key = combination_key(defect_ids)
    return [c for c in causes if combination_key(c.defect_ids) == key]


def combination_label(kb: "KnowledgeBase", defect_ids: Iterable[str]) -> str:
    names = [d.name for d in (kb.get_defect(i) for i in defect_ids) if d]
    return " + ".join(names)


def select_cause(kb: "KnowledgeBase", cause_id: str) -> Optional[CauseSelection]:
    """Resolve a cause and its primary fix (the first listed mistake)."""
    cause = kb.get_cause(cause_id)
    if cause is None or not cause.mistake_ids:
        logger.warning("Cause %r not found or has no fixes", cause_id)
        return None
    mistake = kb.get_mistake(cause.mistake_ids[0])
    if mistake is None:
        logger.warning(
            "Cause %r references missing mistake %r", cause_id, cause.mistake_ids[0]
        )
        return None
    return CauseSelection(cause=cause, mistake=mistake)


# ---------------------------------------------------------------------------
# History stack
# ---------------------------------------------------------------------------

def advance(state: NavigationState, next_node: str) -> NavigationState:
    logger.debug("Advance %s -> %s", state.current, next_node)
    return NavigationState(history=(*state.history, state.current), current=next_node)


def go_back(state: NavigationState) -> NavigationState:
    """Pop the previous node; with an empty history the state is returned unchanged."""
    if not state.history:
        return state
    logger.debug("Back %s -> %s", state.current, state.history[-1])
    return NavigationState(history=state.history[:-1], current=state.history[-1])


def restart(start_node: str) -> NavigationState:
    return NavigationState(history=(), current=start_node)
