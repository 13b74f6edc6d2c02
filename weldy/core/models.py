"""Core data models for weldy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class AdjustmentKind(Enum):
    NUMERIC = "numeric"
    TECHNIQUE = "technique"


class Direction(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class NodeType(Enum):
    IMAGE_QUESTION = "image-question"
    TEXT_QUESTION = "text-question"
    DIAGNOSIS = "diagnosis"


class ScreenKind(Enum):
    SETUP = "setup"
    COMBINATIONS = "combinations"
    CAUSES = "causes"
    QUESTION = "question"
    RECOMMENDATION = "recommendation"
    DIAGNOSIS = "diagnosis"
    SUCCESS = "success"
    ERROR = "error"


class NextAction(Enum):
    TRY_ANOTHER = "try_another"
    START_OVER = "start_over"


# ---------------------------------------------------------------------------
# Knowledge base records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Defect:
    id: str
    name: str
    how_to_identify: str = ""


@dataclass(frozen=True)
class Cause:
    id: str
    name: str
    description: str = ""
    defect_ids: tuple[str, ...] = ()
    mistake_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    """A single adjustment the welder can make.

    ``kind`` is fixed when the data is loaded: NUMERIC recommendations carry a
    ``direction`` and change a machine setting, TECHNIQUE ones are instructions.
    """

    parameter: str
    adjustment: str
    details: str = ""
    kind: AdjustmentKind = AdjustmentKind.TECHNIQUE
    direction: Optional[Direction] = None


@dataclass(frozen=True)
class Mistake:
    id: str
    question_to_ask: str
    fix: str
    recommendation: Optional[Recommendation] = None
    things_tried: tuple[str, ...] = ()


@dataclass(frozen=True)
class ThicknessPreset:
    thickness: str  # fractional inches, e.g. "1/8"
    voltage: float
    wire_speed: float


@dataclass(frozen=True)
class ThingTried:
    id: str
    name: str
    description: str = ""
    category: str = ""


# ---------------------------------------------------------------------------
# Decision tree
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Choice:
    id: str
    text: str
    next_node: str
    image: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class Node:
    id: str
    type: NodeType
    question: str = ""
    choices: tuple[Choice, ...] = ()
    diagnosis: str = ""
    description: str = ""
    recommendations: tuple[Recommendation, ...] = ()

    @property
    def is_question(self) -> bool:
        return self.type in (NodeType.IMAGE_QUESTION, NodeType.TEXT_QUESTION)


@dataclass(frozen=True)
class DecisionTree:
    start_node: str
    nodes: dict[str, Node]
    metadata: dict[str, Any] = field(default_factory=dict)

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Parameters:
    metal_thickness: str
    voltage: float
    wire_speed: float
    things_tried: dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class NavigationState:
    history: tuple[str, ...]
    current: str
    recommendation_index: int = 0

    @property
    def can_go_back(self) -> bool:
        return len(self.history) > 0


# ---------------------------------------------------------------------------
# Screen descriptors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DefectCombination:
    key: str
    defect_ids: tuple[str, ...]
    label: str
    descriptions: tuple[str, ...] = ()


@dataclass(frozen=True)
class CauseSelection:
    cause: Cause
    mistake: Mistake


@dataclass(frozen=True)
class RenderedRecommendation:
    text: str
    numeric: bool
    button_label: str
    parameter_label: str
    details: str = ""


@dataclass(frozen=True)
class ScreenChoice:
    id: str
    text: str
    next_node: str
    descriptions: tuple[str, ...] = ()
    image: Optional[str] = None


@dataclass
class Screen:
    kind: ScreenKind
    node_id: str
    title: str = ""
    prompt: str = ""
    choices: list[ScreenChoice] = field(default_factory=list)
    cause: Optional[Cause] = None
    mistake: Optional[Mistake] = None
    recommendation: Optional[RenderedRecommendation] = None
    recommendation_index: int = 0
    total_recommendations: int = 0
    next_action: Optional[NextAction] = None
    can_go_back: bool = False
    error: Optional[str] = None
    parameters: Optional[Parameters] = None
    presets: list[ThicknessPreset] = field(default_factory=list)

    def get_choice(self, choice_id: str) -> Optional[ScreenChoice]:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None

    @property
    def counter_label(self) -> str:
        """``Try This (2/3)`` style counter for recommendation screens."""
        if not self.total_recommendations:
            return "Try This"
        return f"Try This ({self.recommendation_index + 1}/{self.total_recommendations})"
