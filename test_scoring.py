"""Tests for mod scoring."""

import numpy as np
import pytest

from models import DamageType, ModStat, SlotType, StatKind, TargetStat, create_plan
from scoring import (
    STAT_NORMALIZATION, mods_to_matrix, score_mod, score_mods, score_stats, weight_vector,
)
from conftest import make_mod


class TestScoreMod:

    def test_flat_stat_in_advanced_mode(self, speed_plan):
        mod = make_mod('m', SlotType.SQUARE, speed=12)
        assert score_mod(mod, speed_plan) == pytest.approx(12.0)

    def test_irrelevant_stats_score_zero(self, speed_plan):
        mod = make_mod('m', SlotType.SQUARE, health=500, potency_percent=3)
        assert score_mod(mod, speed_plan) == 0.0

    def test_primary_and_secondaries_add_up(self, mixed_plan):
        mod = make_mod('m', SlotType.ARROW, speed=10, crit_chance_percent=2, potency_percent=1)
        # 10 * 1 + 2 * 2 + 1 * 1
        assert score_mod(mod, mixed_plan) == pytest.approx(15.0)

    def test_deterministic(self, mixed_plan):
        mod = make_mod('m', SlotType.CROSS, speed=7, offense=33, potency_percent=1.5)
        assert score_mod(mod, mixed_plan) == score_mod(mod, mixed_plan)

    def test_negative_weights(self):
        plan = create_plan('Slow', speed=-1, advanced=True)
        mod = make_mod('m', SlotType.SQUARE, speed=5)
        assert score_mod(mod, plan) == pytest.approx(-5.0)


class TestNormalization:

    def test_basic_mode_values_speed_like_200_protection(self):
        plan = create_plan('Balanced', speed=100, protection=100)
        one_speed = score_stats([ModStat(StatKind.SPEED, 1)], plan)
        protection = score_stats([ModStat(StatKind.PROTECTION, 200)], plan)
        assert one_speed == pytest.approx(protection)

    def test_basic_mode_divides_by_typical_roll(self):
        plan = create_plan('Speed', speed=100)
        per_point = score_stats([ModStat(StatKind.SPEED, 1)], plan)
        assert per_point == pytest.approx(100 / STAT_NORMALIZATION[TargetStat.SPEED])

    def test_advanced_mode_uses_weights_as_given(self):
        plan = create_plan('Speed', speed=3, advanced=True)
        assert score_stats([ModStat(StatKind.SPEED, 1)], plan) == pytest.approx(3.0)


class TestPercentStats:

    def test_percent_uses_default_base_stats(self, health_plan):
        # 10% of 30000 base health
        assert score_stats([ModStat(StatKind.HEALTH_PERCENT, 10)], health_plan) == pytest.approx(3000.0)

    def test_percent_uses_character_base_stats(self, health_plan):
        base = {StatKind.HEALTH: 10000.0}
        assert score_stats([ModStat(StatKind.HEALTH_PERCENT, 10)], health_plan, base) == pytest.approx(1000.0)

    def test_speed_percent(self, speed_plan):
        # 10% of 140 base speed
        assert score_stats([ModStat(StatKind.SPEED_PERCENT, 10)], speed_plan) == pytest.approx(14.0)

    def test_defense_feeds_armor_and_resistance(self):
        plan = create_plan('Tank', armor=1, resistance=1, advanced=True)
        assert score_stats([ModStat(StatKind.DEFENSE, 10)], plan) == pytest.approx(20.0)


class TestDamageAffinity:

    @pytest.mark.parametrize('damage_type, expected', [
        (DamageType.PHYSICAL, 100.0),
        (DamageType.SPECIAL, 200.0),
        (DamageType.MIXED, 150.0),
    ])
    def test_offense_follows_damage_type(self, damage_type, expected):
        plan = create_plan('Dps', physical_damage=1, special_damage=2, advanced=True,
                           damage_type=damage_type)
        assert score_stats([ModStat(StatKind.OFFENSE, 100)], plan) == pytest.approx(expected)

    def test_unspecified_damage_type_is_physical(self):
        plan = create_plan('Dps', physical_damage=1, special_damage=2, advanced=True)
        assert score_stats([ModStat(StatKind.OFFENSE, 100)], plan) == pytest.approx(100.0)

    @pytest.mark.parametrize('damage_type', list(DamageType))
    def test_crit_damage_ignores_damage_type(self, damage_type):
        plan = create_plan('Crit', crit_damage=1, advanced=True, damage_type=damage_type)
        assert score_stats([ModStat(StatKind.CRIT_DAMAGE_PERCENT, 30)], plan) == pytest.approx(30.0)


class TestBatchScoring:

    def test_matrix_scoring_matches_single_scores(self, mixed_plan):
        mods = [
            make_mod('a', SlotType.SQUARE, speed=4, offense=20),
            make_mod('b', SlotType.ARROW, crit_chance_percent=3),
            make_mod('c', SlotType.CIRCLE, health=300),
        ]
        batch = score_mods(mods, weight_vector(mixed_plan))
        singles = np.array([score_mod(m, mixed_plan) for m in mods])
        np.testing.assert_allclose(batch, singles)

    def test_empty_batch(self, speed_plan):
        assert score_mods([], weight_vector(speed_plan)).shape == (0,)
        assert mods_to_matrix([]).shape[0] == 0
