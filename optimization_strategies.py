"""
Optimization strategies and per-character settings

Strategies are reusable weight templates. A character's settings list the
plans that make sense for it (the first one is the default), a few search
tags, and the kind of damage it deals.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from models import Character, DamageType, OptimizationPlan, create_plan


# =============================================================================
# Strategy templates
# =============================================================================

STRATEGIES: Mapping[str, OptimizationPlan] = MappingProxyType({
    plan.name: plan for plan in (
        create_plan('Speed', speed=100),
        create_plan('Speed, Crit, and Physical Damage',
                    speed=100, crit_damage=50, physical_damage=25, crit_chance=50),
        create_plan('Speed, Crit, Physical Damage, Potency',
                    speed=100, crit_damage=50, potency=25, physical_damage=25, crit_chance=50),
        create_plan('Slow Crit, Physical Damage, Potency',
                    crit_damage=100, potency=25, physical_damage=50, crit_chance=50),
        create_plan('Special Damage with Potency',
                    speed=100, potency=50, special_damage=25,
                    damage_type=DamageType.SPECIAL),
        create_plan('Speed with survivability',
                    health=25, protection=25, speed=100, tenacity=10, armor=5, resistance=5),
        create_plan('Speedy Chex Mix',
                    speed=50, physical_damage=100, crit_chance=25),
        create_plan('Speedy debuffer',
                    speed=100, potency=50, accuracy=10),
    )
})


def plan_from_strategy(name: str, rename: Optional[str] = None,
                       damage_type: Optional[DamageType] = None) -> OptimizationPlan:
    """
    Instantiate a strategy template.

    Args:
        name: Strategy name (a key of STRATEGIES)
        rename: Display name for the new plan (e.g. "PvP")
        damage_type: Override the template's damage type

    Raises:
        KeyError: if the strategy does not exist
    """
    if name not in STRATEGIES:
        raise KeyError(f"Unknown strategy '{name}'. Available: {', '.join(STRATEGIES)}")

    plan = STRATEGIES[name]
    plan = plan.rename(rename or plan.name)
    if damage_type is not None:
        plan = plan.with_damage_type(damage_type)
    return plan


# =============================================================================
# Character settings
# =============================================================================

@dataclass(frozen=True)
class CharacterSettings:
    """Default plans, tags and damage type for one character."""
    plans: Tuple[OptimizationPlan, ...]
    tags: Tuple[str, ...] = ()
    damage_type: DamageType = DamageType.PHYSICAL

    def __post_init__(self):
        object.__setattr__(self, 'plans', tuple(self.plans))
        object.__setattr__(self, 'tags', tuple(self.tags))

    @property
    def default_plan(self) -> Optional[OptimizationPlan]:
        """First plan, with the character's damage type applied."""
        if not self.plans:
            return None
        plan = self.plans[0]
        if plan.damage_type is None:
            plan = plan.with_damage_type(self.damage_type)
        return plan

    def plan_named(self, name: str) -> Optional[OptimizationPlan]:
        for plan in self.plans:
            if plan.name == name:
                if plan.damage_type is None:
                    return plan.with_damage_type(self.damage_type)
                return plan
        return None

    def matches_filter(self, text: str, name: str = '') -> bool:
        """Case-insensitive match of `text` against the character name or any tag."""
        needle = text.strip().lower()
        if not needle:
            return True
        return needle in name.lower() or any(needle in tag.lower() for tag in self.tags)


def build_settings_table(entries: Iterable[Tuple[str, CharacterSettings]]
                         ) -> Mapping[str, CharacterSettings]:
    """Build a read-only character settings table keyed by base id."""
    table = {}
    for base_id, settings in entries:
        if base_id in table:
            raise ValueError(f"Duplicate settings for '{base_id}'")
        table[base_id] = settings
    return MappingProxyType(table)


CHARACTER_SETTINGS = build_settings_table([
    ('AHSOKATANO', CharacterSettings(
        [plan_from_strategy('Speed, Crit, and Physical Damage', rename='PvP')],
        ['Snips'],
    )),
    ('AMILYNHOLDO', CharacterSettings(
        [create_plan('PvP', health=20, protection=10, speed=100, potency=50,
                     tenacity=25, armor=5, resistance=5)],
        ['Hodor'],
        DamageType.MIXED,
    )),
    ('ADMIRALACKBAR', CharacterSettings(
        [create_plan('Survivability', health=20, protection=20, speed=100, tenacity=25)],
        ['AA', 'Snackbar', 'ABC'],
    )),
    ('BASTILASHAN', CharacterSettings(
        [
            create_plan('Leader', health=10, speed=100, potency=50, special_damage=25),
            plan_from_strategy('Special Damage with Potency', rename='Non-leader'),
        ],
        [],
        DamageType.SPECIAL,
    )),
    ('BAZEMALBUS', CharacterSettings(
        [create_plan('Slow Tank', health=50, protection=50, potency=10, tenacity=25,
                     armor=12.5, resistance=12.5)],
        ['Rogue 1', 'Chaze', 'Chiggs'],
    )),
    ('DEATHTROOPER', CharacterSettings(
        [plan_from_strategy('Speedy Chex Mix', rename='Chex Mix')],
    )),
    ('GRANDADMIRALTHRAWN', CharacterSettings(
        [plan_from_strategy('Speedy debuffer', rename='Speed')],
        ['GAT'],
        DamageType.SPECIAL,
    )),
    ('JEDIKNIGHTREVAN', CharacterSettings(
        [create_plan('PvP', speed=100, crit_damage=50, physical_damage=25, crit_chance=25)],
        ['JKR'],
    )),
])


def character_from_settings(base_id: str,
                            plan_name: Optional[str] = None,
                            table: Mapping[str, CharacterSettings] = CHARACTER_SETTINGS,
                            **kwargs) -> Character:
    """
    Build a Character using its default (or a named) plan from the settings
    table. Characters without settings get no plan.
    """
    settings = table.get(base_id)
    plan = None
    if settings is not None:
        plan = settings.plan_named(plan_name) if plan_name else settings.default_plan
    return Character(base_id=base_id, plan=plan, **kwargs)
