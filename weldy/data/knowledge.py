"""Knowledge base — defects, causes, fixes and thickness presets."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from weldy.core.models import (
    Cause,
    Defect,
    Mistake,
    Recommendation,
    ThicknessPreset,
    ThingTried,
)
from weldy.core.recommendations import classify_recommendation

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent
DEFAULT_DATA_FILE = DATA_DIR / "data.json"
DEFAULT_THINGS_TRIED_FILE = DATA_DIR / "things_tried.yaml"


class KnowledgeBaseError(ValueError):
    """Raised when a data file is missing, unreadable or malformed."""


@dataclass(frozen=True)
class KnowledgeBase:
    defects: tuple[Defect, ...]
    causes: tuple[Cause, ...]
    mistakes: tuple[Mistake, ...]
    thickness_presets: tuple[ThicknessPreset, ...]
    things_tried: tuple[ThingTried, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def get_defect(self, defect_id: str) -> Optional[Defect]:
        return next((d for d in self.defects if d.id == defect_id), None)

    def get_cause(self, cause_id: str) -> Optional[Cause]:
        return next((c for c in self.causes if c.id == cause_id), None)

    def get_mistake(self, mistake_id: str) -> Optional[Mistake]:
        return next((m for m in self.mistakes if m.id == mistake_id), None)

    def get_preset(self, thickness: str) -> Optional[ThicknessPreset]:
        return next(
            (p for p in self.thickness_presets if p.thickness == thickness), None
        )

    def get_thing_tried(self, thing_id: str) -> Optional[ThingTried]:
        return next((t for t in self.things_tried if t.id == thing_id), None)

    @property
    def thickness_options(self) -> list[str]:
        return [p.thickness for p in self.thickness_presets]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_knowledge_base(
    data_file: Optional[str] = None,
    things_tried_file: Optional[str] = None,
) -> KnowledgeBase:
    """Load the knowledge base, defaulting to the bundled data files."""
    data_path = Path(data_file) if data_file else DEFAULT_DATA_FILE
    tried_path = Path(things_tried_file) if things_tried_file else DEFAULT_THINGS_TRIED_FILE

    payload = read_json(data_path)
    catalog = _read_yaml(tried_path)
    kb = parse_knowledge_base(payload, catalog, source=str(data_path))
    logger.debug(
        "Loaded knowledge base from %s: %d defects, %d causes, %d mistakes",
        data_path, len(kb.defects), len(kb.causes), len(kb.mistakes),
    )
    return kb


def read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise KnowledgeBaseError(f"Data file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise KnowledgeBaseError(f"Invalid JSON in {path}: {e}") from None
    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"{path} must contain a JSON object")
    return data


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise KnowledgeBaseError(f"Data file not found: {path}") from None
    except yaml.YAMLError as e:
        raise KnowledgeBaseError(f"Invalid YAML in {path}: {e}") from None


def parse_knowledge_base(
    payload: dict[str, Any],
    things_tried: Any = None,
    source: str = "<data>",
) -> KnowledgeBase:
    try:
        defects = tuple(
            Defect(
                id=d["id"],
                name=d["name"],
                how_to_identify=d.get("how_to_identify", ""),
            )
            for d in payload.get("defects", [])
        )
        causes = tuple(
            Cause(
                id=c["id"],
                name=c["name"],
                description=c.get("description", ""),
                defect_ids=tuple(c.get("defect_ids", [])),
                mistake_ids=tuple(c.get("mistake_ids", [])),
            )
            for c in payload.get("causes", [])
        )
        mistakes = tuple(_parse_mistake(m) for m in payload.get("mistakes", []))
        presets = tuple(
            ThicknessPreset(
                thickness=str(p["thickness"]),
                voltage=float(p["voltage"]),
                wire_speed=float(p["wire_speed"]),
            )
            for p in payload.get("thickness_presets", [])
        )
        catalog = parse_things_tried(things_tried)
    except KeyError as e:
        raise KnowledgeBaseError(f"{source}: missing required field {e}") from None
    except (TypeError, ValueError) as e:
        raise KnowledgeBaseError(f"{source}: {e}") from None

    return KnowledgeBase(
        defects=defects,
        causes=causes,
        mistakes=mistakes,
        thickness_presets=presets,
        things_tried=catalog,
        metadata=dict(payload.get("metadata", {})),
    )


def _parse_mistake(m: dict[str, Any]) -> Mistake:
    adjustment = m.get("adjustment") or {}
    rec: Recommendation = classify_recommendation(
        parameter=adjustment.get("parameter", "technique"),
        adjustment=m["fix"],
        details=m["fix"],
        kind=adjustment.get("kind"),
        direction=adjustment.get("direction"),
    )
    return Mistake(
        id=m["id"],
        question_to_ask=m.get("question_to_ask", ""),
        fix=m["fix"],
        recommendation=rec,
        things_tried=tuple(m.get("things_tried", [])),
    )


def parse_things_tried(catalog: Any) -> tuple[ThingTried, ...]:
    """Accept either ``{category: [entries]}`` or a flat list of entries."""
    if not catalog:
        return ()
    if isinstance(catalog, dict):
        entries = [
            {"category": category, **entry}
            for category, items in catalog.items()
            for entry in (items or [])
        ]
    else:
        entries = list(catalog)
    return tuple(
        ThingTried(
            id=e["id"],
            name=e["name"],
            description=e.get("description", ""),
            category=e.get("category", ""),
        )
        for e in entries
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def thickness_to_inches(label: str) -> float:
    """'3/16' -> 0.1875; plain decimals pass through."""
    parts = label.split("/")
    if len(parts) == 2:
        return float(parts[0]) / float(parts[1])
    return float(label)


def integrity_problems(kb: KnowledgeBase) -> list[str]:
    """Cross-reference checks: every id a cause or fix points at must exist."""
    problems: list[str] = []
    for kind, records in (
        ("defect", kb.defects),
        ("cause", kb.causes),
        ("mistake", kb.mistakes),
    ):
        seen: set[str] = set()
        for r in records:
            if r.id in seen:
                problems.append(f"Duplicate {kind} id: {r.id}")
            seen.add(r.id)

    for cause in kb.causes:
        if not cause.defect_ids:
            problems.append(f"Cause {cause.id} has no defects")
        if not cause.mistake_ids:
            problems.append(f"Cause {cause.id} has no mistakes")
        for defect_id in cause.defect_ids:
            if kb.get_defect(defect_id) is None:
                problems.append(f"Cause {cause.id} references unknown defect {defect_id}")
        for mistake_id in cause.mistake_ids:
            if kb.get_mistake(mistake_id) is None:
                problems.append(f"Cause {cause.id} references unknown mistake {mistake_id}")

    if kb.things_tried:
        for mistake in kb.mistakes:
            for thing_id in mistake.things_tried:
                if kb.get_thing_tried(thing_id) is None:
                    problems.append(
                        f"Mistake {mistake.id} references unknown thing tried {thing_id}"
                    )

    if not kb.thickness_presets:
        problems.append("No thickness presets defined")
    return problems
