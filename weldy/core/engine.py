"""Wizard engine — the one place presentation code talks to.

Every action computes the next (NavigationState, Parameters) pair and writes
both to the state store in a single ``save`` call.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from weldy.config import WeldyConfig
from weldy.core import navigation
from weldy.core import parameters as params
from weldy.core.flows import Flow
from weldy.core.models import (
    NavigationState,
    NextAction,
    Parameters,
    Screen,
    ScreenKind,
)
from weldy.core.recommendations import (
    AdjustmentRules,
    apply_recommendation,
    next_index,
)
from weldy.core.state_store import InMemoryStateStore, StateStore
from weldy.data.knowledge import KnowledgeBase

logger = logging.getLogger(__name__)

SETUP_NODE = "setup"
RECOMMENDATION_KINDS = (ScreenKind.RECOMMENDATION, ScreenKind.DIAGNOSIS)


class WizardEngine:
    """Drives a Flow, keeping position and settings in a StateStore."""

    def __init__(
        self,
        flow: Flow,
        kb: KnowledgeBase,
        store: Optional[StateStore] = None,
        config: Optional[WeldyConfig] = None,
    ):
        self.flow = flow
        self.kb = kb
        self.store = store or InMemoryStateStore()
        self.config = config or WeldyConfig()
        self.rules = AdjustmentRules.from_config(self.config)

        state, parameters = self.store.load()
        if state is None:
            self.store.save(navigation.restart(SETUP_NODE), parameters)

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        state, _ = self.store.load()
        return state or navigation.restart(SETUP_NODE)

    @property
    def parameters(self) -> Optional[Parameters]:
        return self.store.load()[1]

    def _commit(
        self, state: NavigationState, parameters: Optional[Parameters]
    ) -> Screen:
        self.store.save(state, parameters)
        return self.screen()

    # -- screens -------------------------------------------------------------

    def screen(self) -> Screen:
        state, parameters = self.store.load()
        if state is None or parameters is None or state.current == SETUP_NODE:
            return Screen(
                kind=ScreenKind.SETUP,
                node_id=SETUP_NODE,
                title="Setup Your Weld Parameters"
                if parameters is None else "Update Your Settings",
                parameters=parameters,
                presets=list(self.kb.thickness_presets),
            )
        screen = self.flow.resolve(state, parameters, self.rules)
        screen.parameters = parameters
        return screen

    # -- navigation ----------------------------------------------------------

    def complete_setup(self, parameters: Parameters) -> Screen:
        """Accept the setup form and go to the first question."""
        current = self.parameters
        if current is not None and not parameters.things_tried:
            # Updating settings keeps the checklist
            parameters = replace(parameters, things_tried=dict(current.things_tried))
        logger.info(
            "Setup: %s\" %sV %s IPM",
            parameters.metal_thickness, parameters.voltage, parameters.wire_speed,
        )
        return self._commit(navigation.restart(self.flow.start_node), parameters)

    def select(self, choice_id: str) -> Screen:
        """Pick one of the current screen's choices."""
        screen = self.screen()
        choice = screen.get_choice(choice_id)
        if choice is None:
            available = ", ".join(c.id for c in screen.choices) or "(none)"
            raise ValueError(
                f"Unknown choice: {choice_id!r}. Available: {available}"
            )
        return self.advance(choice.next_node)

    def advance(self, next_node: str) -> Screen:
        return self._commit(
            navigation.advance(self.state, next_node), self.parameters
        )

    def go_back(self) -> Screen:
        return self._commit(navigation.go_back(self.state), self.parameters)

    def restart(self) -> Screen:
        """Start again; optionally forget settings and the tried checklist."""
        if self.config.restart_clears_parameters:
            logger.info("Restart: clearing settings")
            return self._commit(navigation.restart(SETUP_NODE), None)
        return self._commit(
            navigation.restart(self.flow.start_node), self.parameters
        )

    # -- recommendations -----------------------------------------------------

    def _recommendation_screen(self) -> Screen:
        screen = self.screen()
        if screen.kind not in RECOMMENDATION_KINDS:
            raise ValueError(f"No recommendation is shown at {screen.node_id!r}")
        return screen

    def _current_recommendation(self):
        screen = self._recommendation_screen()
        recs = self.flow.recommendations(screen.node_id)
        if not recs:
            raise ValueError(f"No recommendation is shown at {screen.node_id!r}")
        return recs[screen.recommendation_index]

    def accept(self) -> Screen:
        """Apply the shown recommendation and loop back for another look."""
        rec, tried_id = self._current_recommendation()
        updated = apply_recommendation(self.parameters, rec, self.rules, tried_id)
        linked = self.flow.checklist_ids(tried_id)
        if linked:
            tried = dict(updated.things_tried)
            tried.update((thing_id, True) for thing_id in linked)
            updated = replace(updated, things_tried=tried)
        logger.info("Accepted %s (%s)", tried_id, rec.adjustment)
        target = (
            SETUP_NODE if self.config.accept_target == "setup"
            else self.flow.start_node
        )
        return self._commit(navigation.restart(target), updated)

    def try_another(self) -> Screen:
        """Show the next suggestion, or start over after the last one."""
        screen = self._recommendation_screen()
        state = self.state
        following = next_index(
            screen.recommendation_index, screen.total_recommendations
        )
        if following is None:
            return self.restart()
        return self._commit(
            replace(state, recommendation_index=following), self.parameters
        )

    def next_action(self) -> Optional[NextAction]:
        return self.screen().next_action

    # -- parameters ----------------------------------------------------------

    def _require_parameters(self) -> Parameters:
        if self.parameters is None:
            raise ValueError("Settings have not been entered yet")
        return self.parameters

    def update_parameter(self, key: str, raw: object) -> Screen:
        """Manual edit; a thickness edit switches to that thickness's preset."""
        if params.resolve_key(key) == "metal_thickness":
            thickness = str(raw).strip() if raw is not None else ""
            if not thickness:
                return self.screen()
            return self.select_thickness(thickness)
        return self._commit(
            self.state, params.set_parameter(self._require_parameters(), key, raw)
        )

    def toggle_tried(self, thing_id: str) -> Screen:
        return self._commit(
            self.state, params.toggle_tried(self._require_parameters(), thing_id)
        )

    def select_thickness(self, thickness: str) -> Screen:
        return self._commit(
            self.state,
            params.select_thickness(
                self._require_parameters(), self.kb.thickness_presets, thickness
            ),
        )
