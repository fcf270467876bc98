import os
import sys
import pytest

# Ensure passivetree can be imported without installing
sys.path.append(os.getcwd())


def make_tree(nodes, edges=None, points=24):
    """Tree document with a start node granting `points`, plus the given nodes."""
    start = {
        "id": "start",
        "name": "Origin",
        "type": "start",
        "effects": [{"stat": "points", "op": "add", "value": points}],
    }
    return {"nodes": [start] + list(nodes), "edges": [list(e) for e in (edges or [])]}


def node(node_id, effects=(), requires=(), node_type="small", **extra):
    """Node dict in the unified shape; `requires` lists prerequisite ids."""
    data = {
        "id": node_id,
        "name": node_id.replace("_", " ").title(),
        "type": node_type,
        "effects": [
            {"stat": stat, "op": op, "value": value}
            for stat, op, value in effects
        ],
        "requirements": [{"type": "node", "value": r} for r in requires],
    }
    data.update(extra)
    return data


@pytest.fixture
def tree_factory():
    """Build a NodeGraph from node dicts."""
    from passivetree.resources.loader import load

    def build(nodes, edges=None, points=24):
        return load(make_tree(nodes, edges, points))
    return build


@pytest.fixture
def scenario_graph(tree_factory):
    """start(+24) -> str_1 (+5 str) -> str_notable (+15 str, +30 hp, +12% melee)."""
    return tree_factory(
        [
            node("str_1", [("str", "add", 5)], requires=["start"]),
            node(
                "str_notable",
                [("str", "add", 15), ("hp_flat", "add", 30), ("melee_pct", "add", 12)],
                requires=["str_1"],
                node_type="notable",
            ),
        ],
        edges=[("start", "str_1"), ("str_1", "str_notable")],
    )


@pytest.fixture
def sample_graph():
    """The bundled data/skill_tree.json."""
    from pathlib import Path
    from passivetree.resources.loader import load

    return load(Path(__file__).parent.parent / "data" / "skill_tree.json")


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from passivetree.core.events import EventBus
    return EventBus()


@pytest.fixture
def session(scenario_graph):
    """Fresh session on the scenario tree."""
    from passivetree.progression.session import SkillTreeSession
    return SkillTreeSession(scenario_graph)


@pytest.fixture
def make_node():
    """The node() helper, for tests that build their own trees."""
    return node


@pytest.fixture
def make_document():
    """The make_tree() helper, for loader tests that need the raw document."""
    return make_tree
