import pytest

from passivetree.progression.allocation import AllocationController
from passivetree.progression.requirements import CharacterContext
from passivetree.progression.state import TreeState


@pytest.fixture
def controller(scenario_graph):
    return AllocationController(scenario_graph)

@pytest.fixture
def context():
    return CharacterContext()


def test_fresh_state(controller):
    assert controller.state.allocated == {"start"}
    assert controller.state.available_points == 24
    assert controller.state.spent == 0

def test_allocate_follows_prerequisites(controller, context):
    assert not controller.can_allocate("str_notable", context)
    assert not controller.allocate("str_notable", context)

    assert controller.allocate("str_1", context)
    assert controller.allocate("str_notable", context)

    assert controller.state.allocated == {"start", "str_1", "str_notable"}
    assert controller.state.available_points == 22
    assert controller.state.spent == 2

def test_allocate_unknown_or_twice(controller, context):
    assert not controller.allocate("ghost", context)
    assert controller.allocate("str_1", context)
    assert not controller.allocate("str_1", context)
    assert controller.state.available_points == 23

def test_failed_allocation_leaves_state_untouched(controller, context):
    before = controller.state.snapshot()
    controller.allocate("str_notable", context)
    assert controller.state.snapshot() == before

def test_allocate_then_refund_restores_state(controller, context):
    before = controller.state.snapshot()

    assert controller.allocate("str_1", context)
    assert controller.refund("str_1")

    assert controller.state.snapshot() == before

def test_refund_order(controller, context):
    controller.allocate("str_1", context)
    controller.allocate("str_notable", context)

    # str_1 is still required by str_notable
    assert not controller.can_refund("str_1")
    assert not controller.refund("str_1")

    assert controller.refund("str_notable")
    assert controller.refund("str_1")
    assert controller.state.available_points == 24
    assert controller.state.spent == 0

def test_can_refund_iff_no_allocated_dependent(controller, context):
    controller.allocate("str_1", context)
    assert controller.can_refund("str_1")

    controller.allocate("str_notable", context)
    for node_id in controller.state.allocated - {"start"}:
        dependents = controller.graph.get_dependents(node_id)
        assert controller.can_refund(node_id) == dependents.isdisjoint(controller.state.allocated)

def test_start_and_unallocated_are_never_refundable(controller):
    assert not controller.can_refund("start")
    assert not controller.can_refund("str_1")
    assert not controller.can_refund("ghost")

def test_edges_do_not_gate_refund(tree_factory, make_node, context):
    # Edge from a to b, but b has no node requirement on a
    graph = tree_factory(
        [make_node("a", requires=["start"]), make_node("b", requires=["start"])],
        edges=[("start", "a"), ("a", "b")],
    )
    controller = AllocationController(graph)
    controller.allocate("a", context)
    controller.allocate("b", context)

    assert controller.can_refund("a")

def test_budget_exhaustion(tree_factory, make_node, context):
    graph = tree_factory(
        [make_node("a", requires=["start"]), make_node("b", requires=["start"])],
        points=1,
    )
    controller = AllocationController(graph)

    assert controller.allocate("a", context)
    assert not controller.can_allocate("b", context)
    assert controller.state.available_points == 0

def test_reset(controller, context):
    controller.allocate("str_1", context)
    controller.allocate("str_notable", context)

    returned = controller.reset()

    assert returned == 2
    assert controller.state.snapshot() == TreeState.fresh(24).snapshot()

def test_keystones_follow_allocation(sample_graph, context):
    controller = AllocationController(sample_graph)
    for node_id in ("str_1", "str_2", "str_notable", "unbreakable"):
        assert controller.allocate(node_id, context)

    assert controller.state.active_keystones == {"unbreakable"}

    controller.refund("unbreakable")
    assert controller.state.active_keystones == set()

    controller.allocate("unbreakable", context)
    controller.reset()
    assert controller.state.active_keystones == set()

def test_level_gated_keystone(sample_graph):
    controller = AllocationController(sample_graph)
    for node_id in ("dex_1", "dex_2", "dex_notable"):
        controller.allocate(node_id, CharacterContext(level=1))

    assert not controller.allocate("phantom_strike", CharacterContext(level=9))
    assert controller.allocate("phantom_strike", CharacterContext(level=10))
    assert "phantom_strike" in controller.state.active_keystones

def test_state_is_replaced_not_mutated(controller, context):
    original = controller.state
    controller.allocate("str_1", context)

    assert original.allocated == {"start"}
    assert controller.state is not original
