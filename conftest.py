"""Shared fixtures and builders for the mod optimizer tests."""

import random

import pytest

from models import Character, Mod, ModStat, SetType, SlotType, StatKind, create_plan


def make_mod(mod_id, slot, set_type=SetType.HEALTH, owner=None, locked=False, tier=5, **stats):
    """
    Build a mod from keyword stats, e.g. make_mod('m1', SlotType.SQUARE, speed=10).

    The first stat is the primary, the rest are secondaries. A mod without
    stats gets a zero protection primary.
    """
    rolled = [ModStat(StatKind[name.upper()], float(value)) for name, value in stats.items()]
    if not rolled:
        rolled = [ModStat(StatKind.PROTECTION, 0.0)]
    return Mod(
        id=mod_id,
        slot=slot,
        set_type=set_type,
        primary=rolled[0],
        secondaries=tuple(rolled[1:]),
        tier=tier,
        owner=owner,
        locked=locked,
    )


def full_set(prefix, set_type=SetType.HEALTH, owner=None, **stats):
    """One mod per slot, all with the same stats."""
    return [
        make_mod(f"{prefix}-{slot.name.lower()}", slot, set_type, owner=owner, **stats)
        for slot in SlotType
    ]


def random_inventory(seed, per_slot=6):
    """A reproducible pool with mixed sets and stats, nothing equipped."""
    rng = random.Random(seed)
    mods = []
    for slot in SlotType:
        for i in range(per_slot):
            mods.append(make_mod(
                f"r{seed}-{slot.name.lower()}-{i}",
                slot,
                rng.choice(list(SetType)),
                speed=rng.randint(0, 20),
                crit_chance_percent=round(rng.uniform(0, 5), 2),
                offense=rng.randint(0, 60),
                potency_percent=round(rng.uniform(0, 4), 2),
            ))
    return mods


@pytest.fixture
def speed_plan():
    return create_plan('Speed', speed=1, advanced=True)


@pytest.fixture
def potency_plan():
    return create_plan('Potency', potency=1, advanced=True)


@pytest.fixture
def health_plan():
    return create_plan('Health', health=1, advanced=True)


@pytest.fixture
def mixed_plan():
    return create_plan('Mixed', speed=1, crit_chance=2, physical_damage=0.2, potency=1,
                       advanced=True)


@pytest.fixture
def three_characters(speed_plan, potency_plan, health_plan):
    """
    Characters whose plans care about disjoint stats, each already wearing a
    full set.

    A (speed) can gain 50%, B (potency) 10%, C (health) already wears the
    best mods.
    """
    mods = []
    mods += full_set('spd-lo', owner='A', speed=10)
    mods += full_set('spd-hi', speed=15)
    mods += full_set('pot-lo', owner='B', potency_percent=10)
    mods += full_set('pot-hi', potency_percent=11)
    mods += full_set('hp', owner='C', health=100)

    characters = [
        Character('A', speed_plan),
        Character('B', potency_plan),
        Character('C', health_plan),
    ]
    return characters, mods
