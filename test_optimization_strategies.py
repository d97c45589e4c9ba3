"""Tests for strategy templates and character settings."""

import pytest

from models import DamageType, TargetStat, create_plan
from optimization_strategies import (
    CHARACTER_SETTINGS, STRATEGIES, CharacterSettings, build_settings_table,
    character_from_settings, plan_from_strategy,
)


class TestStrategies:

    def test_templates_present(self):
        for name in ('Speed', 'Speed, Crit, and Physical Damage', 'Speedy Chex Mix',
                     'Speedy debuffer', 'Speed with survivability'):
            assert name in STRATEGIES

    def test_rename_keeps_weights(self):
        template = STRATEGIES['Speedy Chex Mix']
        plan = plan_from_strategy('Speedy Chex Mix', rename='Chex Mix')
        assert plan.name == 'Chex Mix'
        assert dict(plan.weights) == dict(template.weights)
        assert STRATEGIES['Speedy Chex Mix'].name == 'Speedy Chex Mix'

    def test_damage_type_override(self):
        plan = plan_from_strategy('Speed', damage_type=DamageType.MIXED)
        assert plan.damage_type == DamageType.MIXED

    def test_unknown_strategy(self):
        with pytest.raises(KeyError):
            plan_from_strategy('Nope')

    def test_plans_are_immutable(self):
        with pytest.raises(TypeError):
            STRATEGIES['Speed'].weights[TargetStat.SPEED] = 0


class TestCharacterSettings:

    def test_default_plan_gets_damage_type(self):
        plan = CHARACTER_SETTINGS['BASTILASHAN'].default_plan
        assert plan.name == 'Leader'
        assert plan.effective_damage_type == DamageType.SPECIAL

    def test_named_plan(self):
        plan = CHARACTER_SETTINGS['BASTILASHAN'].plan_named('Non-leader')
        assert plan.weight(TargetStat.SPECIAL_DAMAGE) > 0
        assert CHARACTER_SETTINGS['BASTILASHAN'].plan_named('Missing') is None

    def test_filter_matches_name_and_tags(self):
        settings = CHARACTER_SETTINGS['ADMIRALACKBAR']
        assert settings.matches_filter('snack', 'ADMIRALACKBAR')
        assert settings.matches_filter('admiral', 'ADMIRALACKBAR')
        assert settings.matches_filter('', 'ADMIRALACKBAR')
        assert not settings.matches_filter('jedi', 'ADMIRALACKBAR')

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CHARACTER_SETTINGS['NEW'] = CharacterSettings([])

    def test_duplicate_entries_rejected(self):
        settings = CharacterSettings([create_plan('PvP', speed=100)])
        with pytest.raises(ValueError):
            build_settings_table([('A', settings), ('A', settings)])

    def test_character_from_settings(self):
        character = character_from_settings('DEATHTROOPER')
        assert character.plan.name == 'Chex Mix'
        assert character_from_settings('UNKNOWN').plan is None
