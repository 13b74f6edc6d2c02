"""Decision tree — the rooted graph of questions and diagnoses."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from weldy.core.models import Choice, DecisionTree, Node, NodeType
from weldy.core.recommendations import classify_recommendation
from weldy.data.knowledge import DATA_DIR, KnowledgeBaseError, read_json

logger = logging.getLogger(__name__)

DEFAULT_TREE_FILE = DATA_DIR / "decision_tree.json"


def load_tree(tree_file: Optional[str] = None, strict: bool = True) -> DecisionTree:
    """Load the decision tree; with ``strict`` any integrity problem is fatal."""
    path = Path(tree_file) if tree_file else DEFAULT_TREE_FILE
    tree = parse_tree(read_json(path), source=str(path))
    if strict:
        problems = validate_tree(tree)
        if problems:
            raise KnowledgeBaseError(
                f"{path}: invalid decision tree:\n  " + "\n  ".join(problems)
            )
    logger.debug("Loaded decision tree from %s (%d nodes)", path, len(tree.nodes))
    return tree


def parse_tree(payload: dict[str, Any], source: str = "<tree>") -> DecisionTree:
    start = payload.get("startNode") or payload.get("start_node")
    if not start:
        raise KnowledgeBaseError(f"{source}: missing startNode")
    raw_nodes = payload.get("nodes")
    if not isinstance(raw_nodes, dict):
        raise KnowledgeBaseError(f"{source}: nodes must be an object")

    nodes: dict[str, Node] = {}
    for node_id, raw in raw_nodes.items():
        try:
            nodes[node_id] = _parse_node(node_id, raw)
        except KeyError as e:
            raise KnowledgeBaseError(
                f"{source}: node {node_id!r} missing required field {e}"
            ) from None
        except (TypeError, ValueError) as e:
            raise KnowledgeBaseError(f"{source}: node {node_id!r}: {e}") from None

    return DecisionTree(
        start_node=start,
        nodes=nodes,
        metadata=dict(payload.get("metadata", {})),
    )


def _parse_node(node_id: str, raw: dict[str, Any]) -> Node:
    node_type = NodeType(raw["type"])
    if node_type is NodeType.DIAGNOSIS:
        return Node(
            id=node_id,
            type=node_type,
            diagnosis=raw["diagnosis"],
            description=raw.get("description", ""),
            recommendations=tuple(
                classify_recommendation(
                    parameter=r["parameter"],
                    adjustment=r["adjustment"],
                    details=r.get("details", ""),
                    kind=r.get("kind"),
                    direction=r.get("direction"),
                )
                for r in raw.get("recommendations", [])
            ),
        )
    return Node(
        id=node_id,
        type=node_type,
        question=raw["question"],
        choices=tuple(
            Choice(
                id=c["id"],
                text=c["text"],
                next_node=c.get("nextNode") or c["next_node"],
                image=c.get("image"),
                description=c.get("description"),
            )
            for c in raw.get("choices", [])
        ),
    )


def validate_tree(tree: DecisionTree) -> list[str]:
    """Return every integrity problem found; an empty list means the tree is sound."""
    problems: list[str] = []

    start = tree.get(tree.start_node)
    if start is None:
        problems.append(f"Start node {tree.start_node!r} does not exist")
    elif not start.is_question:
        problems.append(f"Start node {tree.start_node!r} is not a question")

    for node_id, node in tree.nodes.items():
        if node.is_question:
            if not node.choices:
                problems.append(f"Node {node_id!r} has no choices")
            for choice in node.choices:
                if choice.next_node == node_id:
                    problems.append(
                        f"Choice {choice.id!r} in {node_id!r} points back to its own node"
                    )
                elif choice.next_node not in tree.nodes:
                    problems.append(
                        f"Choice {choice.id!r} in {node_id!r} points to "
                        f"missing node {choice.next_node!r}"
                    )
                if node.type is NodeType.IMAGE_QUESTION and not choice.image:
                    problems.append(
                        f"Image choice {choice.id!r} in {node_id!r} has no image"
                    )
        elif not node.recommendations:
            problems.append(f"Diagnosis {node_id!r} has no recommendations")

    if start is not None and not _reaches_diagnosis(tree):
        problems.append("No diagnosis is reachable from the start node")
    return problems


def _reaches_diagnosis(tree: DecisionTree) -> bool:
    visited: set[str] = set()
    stack = [tree.start_node]
    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)
        node = tree.get(node_id)
        if node is None:
            continue
        if node.type is NodeType.DIAGNOSIS:
            return True
        stack.extend(c.next_node for c in node.choices)
    return False
