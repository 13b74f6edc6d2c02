"""Tests for weldy.data.knowledge — loading and checking the knowledge base."""

from __future__ import annotations

import json

import pytest

from weldy.core.models import AdjustmentKind, Direction
from weldy.data.knowledge import (
    KnowledgeBaseError,
    integrity_problems,
    load_knowledge_base,
    parse_knowledge_base,
    parse_things_tried,
    thickness_to_inches,
)


# ---------------------------------------------------------------------------
# Bundled data
# ---------------------------------------------------------------------------

class TestBundledData:
    def test_has_no_integrity_problems(self, kb):
        assert integrity_problems(kb) == []

    def test_presets(self, kb):
        assert kb.thickness_options == ["1/16", "1/8", "3/16", "1/4"]
        preset = kb.get_preset("1/4")
        assert (preset.voltage, preset.wire_speed) == (22, 300)

    def test_numeric_fixes_tagged_at_load(self, kb):
        rec = kb.get_mistake("voltage_set_too_high").recommendation
        assert rec.kind is AdjustmentKind.NUMERIC
        assert rec.direction is Direction.DECREASE
        assert rec.parameter == "voltage"

    def test_technique_fixes_tagged_at_load(self, kb):
        rec = kb.get_mistake("stick_out_too_long").recommendation
        assert rec.kind is AdjustmentKind.TECHNIQUE
        assert rec.parameter == "stick_out"

    def test_things_tried_catalog(self, kb):
        thing = kb.get_thing_tried("clean_surface_thoroughly")
        assert thing.category == "surface_prep"
        assert thing.name


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParse:
    def test_small_payload(self, small_kb):
        assert [d.id for d in small_kb.defects] == ["porosity", "undercut"]
        assert small_kb.get_cause("hot_dirty").defect_ids == ("undercut", "porosity")
        assert small_kb.get_mistake("low_gas").recommendation.parameter == "technique"

    def test_missing_field_raises(self):
        with pytest.raises(KnowledgeBaseError, match="missing required field 'name'"):
            parse_knowledge_base({"defects": [{"id": "porosity"}]})

    def test_bad_direction_raises(self):
        payload = {
            "mistakes": [
                {
                    "id": "m",
                    "fix": "Do it",
                    "adjustment": {"parameter": "voltage", "direction": "sideways"},
                }
            ]
        }
        with pytest.raises(KnowledgeBaseError):
            parse_knowledge_base(payload)

    def test_things_tried_as_list(self):
        items = parse_things_tried([{"id": "a", "name": "A"}])
        assert items[0].id == "a"
        assert items[0].category == ""

    def test_things_tried_by_category(self):
        items = parse_things_tried({"gas": [{"id": "a", "name": "A"}], "empty": None})
        assert [(t.id, t.category) for t in items] == [("a", "gas")]

    def test_thickness_to_inches(self):
        assert thickness_to_inches("3/16") == 0.1875
        assert thickness_to_inches("0.25") == 0.25


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------

class TestIntegrity:
    def test_dangling_references(self):
        kb = parse_knowledge_base(
            {
                "defects": [{"id": "porosity", "name": "Porosity"}],
                "causes": [
                    {
                        "id": "c",
                        "name": "C",
                        "defect_ids": ["porosity", "ghost"],
                        "mistake_ids": ["missing"],
                    }
                ],
                "thickness_presets": [
                    {"thickness": "1/8", "voltage": 18, "wire_speed": 200}
                ],
            }
        )
        assert integrity_problems(kb) == [
            "Cause c references unknown defect ghost",
            "Cause c references unknown mistake missing",
        ]

    def test_duplicates_and_missing_presets(self):
        kb = parse_knowledge_base(
            {
                "defects": [
                    {"id": "porosity", "name": "Porosity"},
                    {"id": "porosity", "name": "Again"},
                ]
            }
        )
        problems = integrity_problems(kb)
        assert "Duplicate defect id: porosity" in problems
        assert "No thickness presets defined" in problems


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

class TestLoad:
    def test_missing_file(self, tmp_path):
        with pytest.raises(KnowledgeBaseError, match="not found"):
            load_knowledge_base(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json")
        with pytest.raises(KnowledgeBaseError, match="Invalid JSON"):
            load_knowledge_base(str(path))

    def test_top_level_must_be_object(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("[]")
        with pytest.raises(KnowledgeBaseError, match="JSON object"):
            load_knowledge_base(str(path))

    def test_custom_files(self, tmp_path):
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"defects": [{"id": "d", "name": "D"}]}))
        tried = tmp_path / "tried.yaml"
        tried.write_text("misc:\n  - id: t\n    name: Thing\n")
        kb = load_knowledge_base(str(data), str(tried))
        assert kb.get_defect("d").name == "D"
        assert kb.get_thing_tried("t").category == "misc"

    def test_invalid_yaml(self, tmp_path):
        data = tmp_path / "data.json"
        data.write_text("{}")
        tried = tmp_path / "tried.yaml"
        tried.write_text("misc: [unclosed\n")
        with pytest.raises(KnowledgeBaseError, match="Invalid YAML"):
            load_knowledge_base(str(data), str(tried))
