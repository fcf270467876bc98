import pytest

from passivetree.progression.keystones import (
    BUILTIN_KEYSTONES,
    KeystoneEffect,
    KeystoneOpKind,
    KeystoneOperation,
    KeystoneRegistry,
    default_registry,
)
from passivetree.progression.stat_vector import StatVector


@pytest.fixture
def registry():
    return default_registry()


def test_builtin_registration_order(registry):
    assert list(registry) == [
        "unbreakable",
        "phantom_strike",
        "arcane_dominion",
        "ascendant_power",
        "iron_reflexes",
        "blood_magic",
        "precise_technique",
    ]
    assert len(registry) == len(BUILTIN_KEYSTONES)

def test_get_keystone_effect(registry):
    effect = registry.get_keystone_effect("unbreakable")

    assert effect.name == "Unbreakable"
    assert registry.get_keystone_effect("missing") is None
    assert "unbreakable" in registry
    assert "missing" not in registry

def test_unbreakable(registry):
    stats = registry.apply_all(StatVector(armor=100), ["unbreakable"], ["start", "unbreakable"])

    assert stats.str == 35
    assert stats.hp_flat == 160
    assert stats.armor == pytest.approx(120)

def test_apply_is_pure():
    effect = BUILTIN_KEYSTONES["unbreakable"]
    before = StatVector()

    after = effect.apply(before, ["start", "unbreakable"])

    assert before == StatVector()
    assert after is not before

def test_transfer():
    stats = BUILTIN_KEYSTONES["iron_reflexes"].apply(StatVector(evasion=200, armor=50), [])

    assert stats.evasion == 0
    assert stats.armor == 250

def test_transfer_then_lock():
    stats = BUILTIN_KEYSTONES["blood_magic"].apply(StatVector(hp_flat=100, mp_flat=80), [])

    assert stats.hp_flat == 180
    assert stats.mp_flat == 0

def test_lock():
    stats = BUILTIN_KEYSTONES["precise_technique"].apply(StatVector(crit_chance=40), [])

    assert stats.crit_chance == 0
    assert stats.attack_speed == pytest.approx(110)

def test_per_node_ignores_start():
    allocated = ["start", "a", "b", "c", "ascendant_power"]
    stats = BUILTIN_KEYSTONES["ascendant_power"].apply(StatVector(), allocated)

    # 100 + 50 flat + 2 per allocated passive (4)
    assert stats.hp_flat == 158
    assert stats.str == 30

def test_registration_order_not_activation_order():
    log = []

    double = KeystoneEffect("Double", "", (KeystoneOperation(KeystoneOpKind.SCALE, "armor", 2),))
    plus = KeystoneEffect("Plus", "", (KeystoneOperation(KeystoneOpKind.FLAT, "armor", 10),))
    registry = KeystoneRegistry({"double": double, "plus": plus})

    # (0 * 2) + 10, regardless of how the active ids are listed
    for active in (["double", "plus"], ["plus", "double"]):
        log.append(registry.apply_all(StatVector(armor=0), active, active).armor)

    assert log == [10, 10]

def test_compounding_scale():
    armor_up = KeystoneEffect("Armor Up", "", (KeystoneOperation(KeystoneOpKind.SCALE, "armor", 1.2),))
    registry = KeystoneRegistry({"a": armor_up, "b": armor_up})

    stats = registry.apply_all(StatVector(armor=100), ["a", "b"], ["start", "a", "b"])

    assert stats.armor == pytest.approx(144)

def test_unregistered_keystone_logged(registry, caplog):
    with caplog.at_level("WARNING"):
        stats = registry.apply_all(StatVector(), ["mystery"], ["start", "mystery"])

    assert stats == StatVector()
    assert "mystery" in caplog.text

def test_results_stay_bounded():
    boom = KeystoneEffect("Boom", "", (KeystoneOperation(KeystoneOpKind.SCALE, "armor", 1e300),))
    registry = KeystoneRegistry({"boom": boom}, magnitude_limit=1e6)

    stats = registry.apply_all(StatVector(armor=1e5), ["boom"], ["boom"])

    assert stats.armor == 1e6

def test_register_keeps_position():
    first = KeystoneEffect("First", "")
    second = KeystoneEffect("Second", "")
    registry = KeystoneRegistry({"a": first, "b": second})

    registry.register("a", KeystoneEffect("First v2", ""))

    assert list(registry) == ["a", "b"]
    assert registry.get_keystone_effect("a").name == "First v2"

@pytest.mark.parametrize("kwargs", [
    {"kind": KeystoneOpKind.FLAT, "stat": "luck", "value": 1},
    {"kind": KeystoneOpKind.FLAT, "stat": "str", "value": float("nan")},
    {"kind": KeystoneOpKind.SCALE, "stat": "armor", "value": float("inf")},
    {"kind": KeystoneOpKind.TRANSFER, "stat": "evasion", "value": 50},
    {"kind": KeystoneOpKind.TRANSFER, "stat": "evasion", "value": 50, "target": "luck"},
])
def test_invalid_operations(kwargs):
    with pytest.raises(ValueError):
        KeystoneOperation(**kwargs)
