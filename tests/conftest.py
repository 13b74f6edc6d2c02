"""Shared test fixtures for weldy tests."""

from __future__ import annotations

import os
from typing import Any

import pytest

from weldy.config import WeldyConfig
from weldy.core.engine import WizardEngine
from weldy.core.flows import DecisionTreeFlow, KnowledgeBaseFlow
from weldy.core.models import Parameters
from weldy.data.knowledge import (
    KnowledgeBase,
    load_knowledge_base,
    parse_knowledge_base,
)
from weldy.data.tree import load_tree


SMALL_PAYLOAD: dict[str, Any] = {
    "defects": [
        {"id": "porosity", "name": "Porosity", "how_to_identify": "Holes"},
        {"id": "undercut", "name": "Undercut", "how_to_identify": "Groove"},
    ],
    "causes": [
        {
            "id": "gas",
            "name": "Poor gas coverage",
            "defect_ids": ["porosity"],
            "mistake_ids": ["low_gas", "long_stick_out", "too_hot"],
        },
        {
            "id": "hot_dirty",
            "name": "Hot and dirty",
            "defect_ids": ["undercut", "porosity"],
            "mistake_ids": ["too_hot"],
        },
    ],
    "mistakes": [
        {
            "id": "low_gas",
            "question_to_ask": "Is the flow low?",
            "fix": "Set gas flow to 15-20 CFH.",
        },
        {
            "id": "long_stick_out",
            "question_to_ask": "Is the wire long?",
            "fix": "Shorten stick-out.",
            "adjustment": {"parameter": "stick_out"},
        },
        {
            "id": "too_hot",
            "question_to_ask": "Is the arc loud?",
            "fix": "Turn the voltage down.",
            "adjustment": {"parameter": "voltage", "direction": "decrease"},
        },
    ],
    "thickness_presets": [
        {"thickness": "1/8", "voltage": 18, "wire_speed": 200},
        {"thickness": "1/4", "voltage": 22, "wire_speed": 300},
    ],
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep WELDY_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("WELDY_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session")
def kb() -> KnowledgeBase:
    """The bundled knowledge base."""
    return load_knowledge_base()


@pytest.fixture(scope="session")
def tree():
    """The bundled decision tree."""
    return load_tree()


@pytest.fixture
def small_kb() -> KnowledgeBase:
    """Two defects, two causes, three fixes."""
    return parse_knowledge_base(SMALL_PAYLOAD)


@pytest.fixture
def params() -> Parameters:
    return Parameters(metal_thickness="1/8", voltage=18, wire_speed=200)


@pytest.fixture
def kb_engine(kb) -> WizardEngine:
    return WizardEngine(KnowledgeBaseFlow(kb), kb)


@pytest.fixture
def tree_engine(kb, tree) -> WizardEngine:
    return WizardEngine(DecisionTreeFlow(tree), kb)


@pytest.fixture
def small_engine(small_kb, params) -> WizardEngine:
    """Engine over the small knowledge base, past the setup screen."""
    engine = WizardEngine(KnowledgeBaseFlow(small_kb), small_kb, config=WeldyConfig())
    engine.complete_setup(params)
    return engine
