"""Tests for weldy.core.flows — mapping node ids to screens."""

from __future__ import annotations

from weldy.core.flows import (
    DEFECTS_NODE,
    GOOD_WELD_NODE,
    SUCCESS_MESSAGE,
    SUCCESS_TITLE,
    DecisionTreeFlow,
    KnowledgeBaseFlow,
)
from weldy.core.models import NavigationState, NextAction, ScreenKind
from weldy.core.navigation import restart


def _at(node_id, index=0, history=()):
    return NavigationState(history=history, current=node_id, recommendation_index=index)


# ---------------------------------------------------------------------------
# Knowledge base flow
# ---------------------------------------------------------------------------

class TestKnowledgeBaseFlow:
    def test_start_node(self, small_kb):
        assert KnowledgeBaseFlow(small_kb).start_node == DEFECTS_NODE

    def test_combinations_screen(self, small_kb, params):
        screen = KnowledgeBaseFlow(small_kb).resolve(restart(DEFECTS_NODE), params)
        assert screen.kind is ScreenKind.COMBINATIONS
        assert screen.prompt == "What does your weld look like?"
        assert [c.id for c in screen.choices] == [
            "good_weld", "porosity", "porosity+undercut",
        ]
        assert screen.choices[0].next_node == GOOD_WELD_NODE
        assert screen.choices[1].next_node == "defects/porosity"
        assert screen.choices[2].image == "assets/weld-images/porosity+undercut.png"
        assert screen.can_go_back is False

    def test_good_weld_is_success(self, small_kb, params):
        screen = KnowledgeBaseFlow(small_kb).resolve(_at(GOOD_WELD_NODE), params)
        assert screen.kind is ScreenKind.SUCCESS
        assert screen.title == SUCCESS_TITLE == "Great Job!"
        assert screen.prompt == SUCCESS_MESSAGE

    def test_causes_screen(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity", history=("defects",)), params)
        assert screen.kind is ScreenKind.CAUSES
        assert screen.prompt == "You selected: Porosity. Which of these applies?"
        assert [c.id for c in screen.choices] == ["gas"]
        assert screen.choices[0].next_node == "defects/porosity/gas"
        assert screen.choices[0].descriptions == ("Is the flow low?",)
        assert screen.can_go_back is True

    def test_causes_exact_match(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity+undercut"), params)
        assert [c.id for c in screen.choices] == ["hot_dirty"]

    def test_recommendation_screen(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity/gas"), params)
        assert screen.kind is ScreenKind.RECOMMENDATION
        assert screen.cause.id == "gas"
        assert screen.mistake.id == "low_gas"
        assert screen.recommendation.text == "Set gas flow to 15-20 CFH."
        assert screen.recommendation.button_label == "Done, I tried this"
        assert screen.total_recommendations == 3
        assert screen.counter_label == "Try This (1/3)"
        assert screen.next_action is NextAction.TRY_ANOTHER

    def test_recommendation_cursor_moves_mistake(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity/gas", index=2), params)
        assert screen.mistake.id == "too_hot"
        assert screen.recommendation.text == "Decrease voltage from 18V to 16V"
        assert screen.recommendation.button_label == "Done, I changed it"
        assert screen.counter_label == "Try This (3/3)"
        assert screen.next_action is NextAction.START_OVER

    def test_index_past_end_is_clamped(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity/gas", index=9), params)
        assert screen.recommendation_index == 2

    def test_recommendations_carry_mistake_ids(self, small_kb):
        recs = KnowledgeBaseFlow(small_kb).recommendations("defects/porosity/gas")
        assert [tried for _, tried in recs] == ["low_gas", "long_stick_out", "too_hot"]

    def test_cause_from_other_combination_has_no_recommendations(self, small_kb):
        assert KnowledgeBaseFlow(small_kb).recommendations("defects/undercut/gas") == []

    def test_checklist_ids_follow_mistake(self, kb, tree):
        assert KnowledgeBaseFlow(kb).checklist_ids("gas_flow_too_low") == (
            "set_gas_flow_15_20",
            "check_gas_cylinder_pressure",
        )
        assert KnowledgeBaseFlow(kb).checklist_ids("nope") == ()
        assert DecisionTreeFlow(tree).checklist_ids("voltage") == ()

    def test_cause_from_other_combination_is_error(self, small_kb, params):
        flow = KnowledgeBaseFlow(small_kb)
        screen = flow.resolve(_at("defects/porosity/hot_dirty"), params)
        assert screen.kind is ScreenKind.ERROR

    def test_unknown_cause_is_error(self, small_kb, params):
        screen = KnowledgeBaseFlow(small_kb).resolve(
            _at("defects/porosity/nope"), params
        )
        assert screen.kind is ScreenKind.ERROR
        assert screen.error == "Node not found: defects/porosity/nope"

    def test_unknown_combination_is_error(self, small_kb, params):
        screen = KnowledgeBaseFlow(small_kb).resolve(_at("defects/cracking"), params)
        assert screen.kind is ScreenKind.ERROR
        assert screen.error == "No causes found for cracking"

    def test_garbage_node_is_error(self, small_kb, params):
        screen = KnowledgeBaseFlow(small_kb).resolve(_at("elsewhere"), params)
        assert screen.kind is ScreenKind.ERROR

    def test_no_parameters_renders_nothing(self, small_kb):
        screen = KnowledgeBaseFlow(small_kb).resolve(_at("defects/porosity/gas"), None)
        assert screen.recommendation is None
        assert screen.total_recommendations == 3

    def test_bundled_hot_and_unshielded(self, kb, params):
        flow = KnowledgeBaseFlow(kb)
        node = KnowledgeBaseFlow.recommendation_node(
            ["undercut", "porosity"], "hot_and_unshielded"
        )
        assert node == "defects/porosity+undercut/hot_and_unshielded"
        screen = flow.resolve(_at(node), params)
        assert screen.title == "Porosity + Undercut"
        assert screen.recommendation.text == "Decrease voltage from 18V to 16V"


# ---------------------------------------------------------------------------
# Decision tree flow
# ---------------------------------------------------------------------------

class TestDecisionTreeFlow:
    def test_start_question(self, tree, params):
        flow = DecisionTreeFlow(tree)
        screen = flow.resolve(restart(flow.start_node), params)
        assert screen.kind is ScreenKind.QUESTION
        assert screen.node_id == "weld_appearance"
        assert len(screen.choices) == 5
        assert screen.choices[0].image == "assets/weld-images/porosity.png"

    def test_diagnosis(self, tree, params):
        screen = DecisionTreeFlow(tree).resolve(_at("cold_lap"), params)
        assert screen.kind is ScreenKind.DIAGNOSIS
        assert screen.title == "Cold Lap"
        assert screen.recommendation.text == "Increase voltage from 18V to 20V"
        assert screen.counter_label == "Try This (1/3)"

    def test_last_recommendation_offers_start_over(self, tree, params):
        screen = DecisionTreeFlow(tree).resolve(_at("cold_lap", index=2), params)
        assert screen.recommendation.text == "Decrease wire speed from 200 IPM to 180 IPM"
        assert screen.next_action is NextAction.START_OVER

    def test_stick_out_instruction(self, tree, params):
        screen = DecisionTreeFlow(tree).resolve(_at("porosity_gas", index=1), params)
        assert screen.recommendation.text == 'Check stick-out distance: maintain 3/8"'

    def test_recommendations_keyed_by_parameter(self, tree):
        recs = DecisionTreeFlow(tree).recommendations("burn_through")
        assert [tried for _, tried in recs] == [
            "voltage", "wire_feed_speed", "travel_speed",
        ]

    def test_question_has_no_recommendations(self, tree):
        assert DecisionTreeFlow(tree).recommendations("weld_appearance") == []

    def test_missing_node_is_error(self, tree, params):
        screen = DecisionTreeFlow(tree).resolve(_at("nowhere"), params)
        assert screen.kind is ScreenKind.ERROR
        assert screen.error == "Node not found: nowhere"
