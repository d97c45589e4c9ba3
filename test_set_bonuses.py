"""Tests for the set bonus catalog."""

import pytest

from models import ModStat, SetBonusRule, SetType, SlotType, StatKind
from set_bonuses import (
    SET_BONUSES, bonus_values, build_catalog, realized_bonuses, required_counts,
    with_required_count,
)
from conftest import make_mod


def mods_of_set(set_type, count):
    return [make_mod(f"{set_type.name}-{i}", list(SlotType)[i], set_type) for i in range(count)]


class TestCatalog:

    def test_every_set_has_one_rule(self):
        assert set(SET_BONUSES) == set(SetType)
        for set_type, rule in SET_BONUSES.items():
            assert rule.set_type == set_type
            assert rule.required_count in (2, 4)

    def test_game_required_counts(self):
        counts = required_counts()
        assert counts[SetType.SPEED] == 4
        assert counts[SetType.OFFENSE] == 4
        assert counts[SetType.CRIT_DAMAGE] == 4
        assert counts[SetType.HEALTH] == 2
        assert counts[SetType.POTENCY] == 2

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            SET_BONUSES[SetType.SPEED] = SET_BONUSES[SetType.HEALTH]

    def test_rejects_invalid_required_count(self):
        rules = [rule for rule in SET_BONUSES.values() if rule.set_type != SetType.SPEED]
        rules.append(SetBonusRule(SetType.SPEED, 3, ModStat(StatKind.SPEED_PERCENT, 10)))
        with pytest.raises(ValueError):
            build_catalog(rules)

    def test_rejects_missing_and_duplicate_rules(self):
        rules = list(SET_BONUSES.values())
        with pytest.raises(ValueError):
            build_catalog(rules[1:])
        with pytest.raises(ValueError):
            build_catalog(rules + [rules[0]])

    def test_with_required_count_leaves_default_untouched(self):
        catalog = with_required_count(SetType.SPEED, 2)
        assert catalog[SetType.SPEED].required_count == 2
        assert catalog[SetType.SPEED].bonus == SET_BONUSES[SetType.SPEED].bonus
        assert SET_BONUSES[SetType.SPEED].required_count == 4


class TestRealizedBonuses:

    def test_below_required_count_gives_nothing(self):
        assert realized_bonuses(mods_of_set(SetType.SPEED, 3)) == []

    def test_bonus_counted_once_above_required_count(self):
        bonuses = realized_bonuses(mods_of_set(SetType.SPEED, 6))
        assert [rule.set_type for rule in bonuses] == [SetType.SPEED]

    def test_several_sets(self):
        mods = mods_of_set(SetType.HEALTH, 2) + [
            make_mod(f"p{i}", list(SlotType)[i + 2], SetType.POTENCY) for i in range(4)
        ]
        assert [rule.set_type for rule in realized_bonuses(mods)] == [SetType.HEALTH, SetType.POTENCY]

    def test_respects_catalog(self):
        catalog = with_required_count(SetType.SPEED, 2)
        assert [rule.set_type for rule in realized_bonuses(mods_of_set(SetType.SPEED, 2), catalog)] \
            == [SetType.SPEED]


class TestBonusValues:

    def test_values_follow_plan(self, speed_plan):
        values = bonus_values(speed_plan)
        # +10% of 140 base speed
        assert values[SetType.SPEED] == pytest.approx(14.0)
        assert values[SetType.HEALTH] == 0.0
        assert values[SetType.POTENCY] == 0.0
