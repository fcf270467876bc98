import pytest

from passivetree.progression.graph import NodeGraph
from passivetree.progression.nodes import Effect, Node, NodeType, Requirement, adapt_legacy_node


def test_dependents_index(scenario_graph):
    assert scenario_graph.get_dependents("start") == {"str_1"}
    assert scenario_graph.get_dependents("str_1") == {"str_notable"}
    assert scenario_graph.get_dependents("str_notable") == frozenset()
    assert scenario_graph.get_dependents("missing") == frozenset()

def test_iteration_keeps_load_order(scenario_graph):
    assert [n.id for n in scenario_graph] == ["start", "str_1", "str_notable"]

def test_neighbors_follow_edges(scenario_graph):
    assert scenario_graph.neighbors("str_1") == {"start", "str_notable"}
    assert scenario_graph.neighbors("start") == {"str_1"}

def test_nodes_are_read_only(scenario_graph):
    with pytest.raises(TypeError):
        scenario_graph.nodes["intruder"] = scenario_graph.start_node

    node = scenario_graph.get_node("str_1")
    with pytest.raises(Exception):
        node.name = "Changed"

def test_keystone_ids(sample_graph):
    ids = ["start", "str_1", "unbreakable", "phantom_strike", "ghost"]
    assert sample_graph.keystone_ids(ids) == ["unbreakable", "phantom_strike"]

def test_get_nodes_by_type(sample_graph):
    notables = [n.id for n in sample_graph.get_nodes_by_type(NodeType.NOTABLE)]
    assert notables == ["str_notable", "dex_notable", "int_notable"]

def test_starting_points_without_grant():
    graph = NodeGraph([Node(id="start", name="Origin", type=NodeType.START)], [])
    assert graph.starting_points == 0

def test_node_helpers():
    node = Node(
        id="hybrid",
        name="Hybrid",
        effects=(
            Effect(stat="str", value=5),
            Effect(stat="str", op="MUL", value=10),
            Effect(stat="str", op="add", value=3),
        ),
        requirements=(
            Requirement(kind="node", value="str_1"),
            Requirement(kind="level", value=5),
        ),
    )

    assert node.granted("str") == 8
    assert node.effects[1].op == "mul"
    assert node.prerequisite_ids == ["str_1"]
    assert not node.is_keystone

def test_unknown_effect_op_kept():
    effect = Effect(stat="str", op="explode", value=1)
    assert effect.known_op is None

def test_adapt_legacy_node_leaves_unified_nodes_alone():
    data = {"id": "a", "name": "A", "effects": []}
    assert adapt_legacy_node(data) is data

def test_adapt_legacy_node_merges_both_shapes():
    data = {
        "id": "mixed",
        "name": "Mixed",
        "effects": [{"stat": "dex", "op": "mul", "value": 10}],
        "grants": [{"stat": "dex", "value": 5}],
        "requires": ["dex_1"],
    }

    adapted = adapt_legacy_node(data)

    assert "grants" not in adapted and "requires" not in adapted
    assert adapted["effects"] == [
        {"stat": "dex", "op": "mul", "value": 10},
        {"stat": "dex", "op": "add", "value": 5},
    ]
    assert adapted["requirements"] == [{"type": "node", "value": "dex_1"}]
