from passivetree.progression.graph import NodeGraph
from passivetree.progression.nodes import Node, NodeType, Requirement
from passivetree.progression.validation import validate_structure


def bare_node(node_id, *requires, node_type=NodeType.SMALL):
    return Node(
        id=node_id,
        name=node_id,
        type=node_type,
        requirements=tuple(Requirement(kind="node", value=r) for r in requires),
    )


def test_bundled_tree_is_valid(sample_graph):
    report = validate_structure(sample_graph)

    assert report.is_valid, report.issues
    assert report.total_nodes == 16
    assert report.keystones == ["unbreakable", "phantom_strike", "arcane_dominion", "ascendant_power"]
    assert report.type_distribution == {
        "start": 1,
        "small": 5,
        "notable": 3,
        "major": 2,
        "keystone": 4,
        "mastery": 1,
    }

def test_orphans_and_invalid_edges():
    graph = NodeGraph(
        [bare_node("start", node_type=NodeType.START), bare_node("a", "start"), bare_node("lonely", "start")],
        [("start", "a"), ("a", "ghost")],
    )

    report = validate_structure(graph)

    assert report.orphaned == ["lonely"]
    assert report.invalid_edges == [("a", "ghost")]
    assert report.unreachable == ["lonely"]
    assert not report.is_valid
    assert "1 orphaned nodes" in report.issues

def test_dangling_requirements():
    graph = NodeGraph(
        [bare_node("start", node_type=NodeType.START), bare_node("a", "missing")],
        [("start", "a")],
    )

    report = validate_structure(graph)

    assert report.dangling_requirements == [("a", "missing")]

def test_prerequisite_cycle():
    graph = NodeGraph(
        [bare_node("start", node_type=NodeType.START), bare_node("a", "b"), bare_node("b", "a")],
        [("start", "a"), ("a", "b")],
    )

    report = validate_structure(graph)

    assert report.cycles == [["a", "b", "a"]]
    assert "1 prerequisite cycles" in report.issues

def test_unreachable_island():
    graph = NodeGraph(
        [bare_node("start", node_type=NodeType.START), bare_node("x"), bare_node("y", "x")],
        [("x", "y")],
    )

    report = validate_structure(graph)

    assert report.orphaned == []
    assert report.unreachable == ["x", "y"]
