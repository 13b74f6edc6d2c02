"""Flows — map a node id to the screen the user should see.

Two content sources share one interface:

* ``KnowledgeBaseFlow`` walks defect combination → cause → fix using
  route-like node ids (``defects``, ``defects/<key>``, ``defects/<key>/<cause>``).
* ``DecisionTreeFlow`` walks the typed node graph in ``decision_tree.json``.

A node id that cannot be resolved produces an ERROR screen instead of raising.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from weldy.core.models import (
    DecisionTree,
    NavigationState,
    NodeType,
    Parameters,
    Recommendation,
    Screen,
    ScreenChoice,
    ScreenKind,
)
from weldy.core.navigation import (
    GOOD_WELD_KEY,
    causes_for_combination,
    combination_key,
    combination_label,
    combinations_from_causes,
    parse_combination_key,
    select_cause,
)
from weldy.core.recommendations import (
    DEFAULT_RULES,
    AdjustmentRules,
    next_action,
    render_recommendation,
)
from weldy.data.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

DEFECTS_NODE = "defects"
GOOD_WELD_NODE = GOOD_WELD_KEY

SUCCESS_TITLE = "Great Job!"
SUCCESS_MESSAGE = "Your weld looks good. Keep practicing to maintain consistency!"


def error_screen(node_id: str, message: str) -> Screen:
    logger.warning("%s", message)
    return Screen(
        kind=ScreenKind.ERROR,
        node_id=node_id,
        title="Something went wrong",
        error=message,
    )


class Flow(ABC):
    name: str = ""

    @property
    @abstractmethod
    def start_node(self) -> str: ...

    @abstractmethod
    def resolve(
        self,
        state: NavigationState,
        parameters: Optional[Parameters],
        rules: AdjustmentRules = DEFAULT_RULES,
    ) -> Screen: ...

    @abstractmethod
    def recommendations(self, node_id: str) -> list[tuple[Recommendation, str]]:
        """(recommendation, tried id) pairs offered at ``node_id``, in order."""

    def checklist_ids(self, tried_id: str) -> tuple[str, ...]:
        """Things-tried catalog ids checked along with ``tried_id``."""
        return ()

    def _recommendation_fields(
        self,
        node_id: str,
        index: int,
        parameters: Optional[Parameters],
        rules: AdjustmentRules,
    ) -> dict:
        recs = self.recommendations(node_id)
        total = len(recs)
        if not total:
            return {"total_recommendations": 0, "next_action": next_action(0, 0)}
        index = min(max(index, 0), total - 1)
        rec, _ = recs[index]
        rendered = (
            render_recommendation(rec, parameters, rules)
            if parameters is not None
            else None
        )
        return {
            "recommendation": rendered,
            "recommendation_index": index,
            "total_recommendations": total,
            "next_action": next_action(index, total),
        }


# ---------------------------------------------------------------------------
# Knowledge base flow
# ---------------------------------------------------------------------------

class KnowledgeBaseFlow(Flow):
    name = "knowledge-base"

    def __init__(self, kb: KnowledgeBase):
        self.kb = kb

    @property
    def start_node(self) -> str:
        return DEFECTS_NODE

    @staticmethod
    def causes_node(defect_ids) -> str:
        return f"{DEFECTS_NODE}/{combination_key(defect_ids)}"

    @staticmethod
    def recommendation_node(defect_ids, cause_id: str) -> str:
        return f"{DEFECTS_NODE}/{combination_key(defect_ids)}/{cause_id}"

    def resolve(
        self,
        state: NavigationState,
        parameters: Optional[Parameters],
        rules: AdjustmentRules = DEFAULT_RULES,
    ) -> Screen:
        node_id = state.current
        if node_id == DEFECTS_NODE:
            screen = self._combinations_screen()
        elif node_id == GOOD_WELD_NODE:
            screen = Screen(
                kind=ScreenKind.SUCCESS,
                node_id=node_id,
                title=SUCCESS_TITLE,
                prompt=SUCCESS_MESSAGE,
            )
        else:
            parts = node_id.split("/")
            if parts[0] != DEFECTS_NODE or len(parts) not in (2, 3) or not parts[1]:
                return error_screen(node_id, f"Node not found: {node_id}")
            defect_ids = parse_combination_key(parts[1])
            if len(parts) == 2:
                screen = self._causes_screen(node_id, defect_ids)
            else:
                screen = self._recommendation_screen(
                    node_id, defect_ids, parts[2], state.recommendation_index,
                    parameters, rules,
                )
        screen.can_go_back = state.can_go_back
        return screen

    def recommendations(self, node_id: str) -> list[tuple[Recommendation, str]]:
        parts = node_id.split("/")
        if len(parts) != 3 or parts[0] != DEFECTS_NODE:
            return []
        cause = self.kb.get_cause(parts[2])
        if cause is None or combination_key(cause.defect_ids) != combination_key(
            parse_combination_key(parts[1])
        ):
            return []
        recs = []
        for mistake_id in cause.mistake_ids:
            mistake = self.kb.get_mistake(mistake_id)
            if mistake is None or mistake.recommendation is None:
                logger.warning(
                    "Skipping missing fix %r for cause %r", mistake_id, cause.id
                )
                continue
            recs.append((mistake.recommendation, mistake.id))
        return recs

    def checklist_ids(self, tried_id: str) -> tuple[str, ...]:
        mistake = self.kb.get_mistake(tried_id)
        return mistake.things_tried if mistake is not None else ()

    def _combinations_screen(self) -> Screen:
        choices = []
        for combo in combinations_from_causes(self.kb.causes, self.kb.defects):
            next_node = (
                GOOD_WELD_NODE if not combo.defect_ids
                else self.causes_node(combo.defect_ids)
            )
            choices.append(
                ScreenChoice(
                    id=combo.key,
                    text=combo.label,
                    next_node=next_node,
                    descriptions=combo.descriptions,
                    image=f"assets/weld-images/{combo.key}.png",
                )
            )
        return Screen(
            kind=ScreenKind.COMBINATIONS,
            node_id=DEFECTS_NODE,
            prompt="What does your weld look like?",
            choices=choices,
        )

    def _causes_screen(self, node_id: str, defect_ids: tuple[str, ...]) -> Screen:
        causes = causes_for_combination(self.kb.causes, defect_ids)
        if not causes:
            return error_screen(
                node_id, f"No causes found for {combination_key(defect_ids)}"
            )
        choices = []
        for cause in causes:
            first = (
                self.kb.get_mistake(cause.mistake_ids[0]) if cause.mistake_ids else None
            )
            choices.append(
                ScreenChoice(
                    id=cause.id,
                    text=cause.name,
                    next_node=self.recommendation_node(defect_ids, cause.id),
                    descriptions=(first.question_to_ask,) if first else (),
                )
            )
        label = combination_label(self.kb, defect_ids)
        return Screen(
            kind=ScreenKind.CAUSES,
            node_id=node_id,
            title=label,
            prompt=f"You selected: {label}. Which of these applies?",
            choices=choices,
        )

    def _recommendation_screen(
        self,
        node_id: str,
        defect_ids: tuple[str, ...],
        cause_id: str,
        index: int,
        parameters: Optional[Parameters],
        rules: AdjustmentRules,
    ) -> Screen:
        selection = select_cause(self.kb, cause_id)
        if selection is None:
            return error_screen(node_id, f"Node not found: {node_id}")
        if combination_key(selection.cause.defect_ids) != combination_key(defect_ids):
            return error_screen(
                node_id,
                f"Cause {cause_id} does not belong to {combination_key(defect_ids)}",
            )

        fields = self._recommendation_fields(node_id, index, parameters, rules)
        mistake = selection.mistake
        recs = self.recommendations(node_id)
        if recs:
            mistake = self.kb.get_mistake(recs[fields["recommendation_index"]][1])
        return Screen(
            kind=ScreenKind.RECOMMENDATION,
            node_id=node_id,
            title=combination_label(self.kb, defect_ids),
            prompt=selection.cause.name,
            cause=selection.cause,
            mistake=mistake,
            **fields,
        )


# ---------------------------------------------------------------------------
# Decision tree flow
# ---------------------------------------------------------------------------

class DecisionTreeFlow(Flow):
    name = "decision-tree"

    def __init__(self, tree: DecisionTree):
        self.tree = tree

    @property
    def start_node(self) -> str:
        return self.tree.start_node

    def resolve(
        self,
        state: NavigationState,
        parameters: Optional[Parameters],
        rules: AdjustmentRules = DEFAULT_RULES,
    ) -> Screen:
        node = self.tree.get(state.current)
        if node is None:
            return error_screen(state.current, f"Node not found: {state.current}")

        if node.type is NodeType.DIAGNOSIS:
            screen = Screen(
                kind=ScreenKind.DIAGNOSIS,
                node_id=node.id,
                title=node.diagnosis,
                prompt=node.description,
                **self._recommendation_fields(
                    node.id, state.recommendation_index, parameters, rules
                ),
            )
        else:
            screen = Screen(
                kind=ScreenKind.QUESTION,
                node_id=node.id,
                prompt=node.question,
                choices=[
                    ScreenChoice(
                        id=c.id,
                        text=c.text,
                        next_node=c.next_node,
                        descriptions=(c.description,) if c.description else (),
                        image=c.image,
                    )
                    for c in node.choices
                ],
            )
        screen.can_go_back = state.can_go_back
        return screen

    def recommendations(self, node_id: str) -> list[tuple[Recommendation, str]]:
        node = self.tree.get(node_id)
        if node is None or node.type is not NodeType.DIAGNOSIS:
            return []
        return [(rec, rec.parameter) for rec in node.recommendations]
