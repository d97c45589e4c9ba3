"""
Data models for the Mod Optimizer

Defines the core data structures for mods, stats, optimization plans and
characters.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from types import MappingProxyType
from typing import Optional, Dict, List, Tuple, Mapping, FrozenSet, Sequence


class SlotType(IntEnum):
    """Mod slot positions. Every character has exactly one of each."""
    SQUARE = 0
    ARROW = 1
    DIAMOND = 2
    TRIANGLE = 3
    CIRCLE = 4
    CROSS = 5


class SetType(IntEnum):
    """Mod set types."""
    HEALTH = 0
    DEFENSE = 1
    CRIT_DAMAGE = 2
    CRIT_CHANCE = 3
    TENACITY = 4
    OFFENSE = 5
    POTENCY = 6
    SPEED = 7


class StatKind(IntEnum):
    """Every stat that can appear on a mod or come from a set bonus."""
    HEALTH = 0
    HEALTH_PERCENT = 1
    PROTECTION = 2
    PROTECTION_PERCENT = 3
    SPEED = 4
    SPEED_PERCENT = 5
    OFFENSE = 6
    OFFENSE_PERCENT = 7
    DEFENSE = 8
    DEFENSE_PERCENT = 9
    CRIT_CHANCE_PERCENT = 10
    CRIT_DAMAGE_PERCENT = 11
    POTENCY_PERCENT = 12
    TENACITY_PERCENT = 13
    ACCURACY_PERCENT = 14
    CRIT_AVOIDANCE_PERCENT = 15


class TargetStat(IntEnum):
    """The weight slots of an optimization plan."""
    HEALTH = 0
    PROTECTION = 1
    SPEED = 2
    CRIT_DAMAGE = 3
    POTENCY = 4
    TENACITY = 5
    PHYSICAL_DAMAGE = 6
    SPECIAL_DAMAGE = 7
    CRIT_CHANCE = 8
    ARMOR = 9
    RESISTANCE = 10
    ACCURACY = 11
    CRIT_AVOIDANCE = 12


class DamageType(IntEnum):
    """Which kind of damage a character deals."""
    PHYSICAL = 0
    SPECIAL = 1
    MIXED = 2


N_SLOTS = len(SlotType)
N_SETS = len(SetType)
N_STAT_KINDS = len(StatKind)

# Display names used by loaders and the API
SLOT_NAMES = {slot: slot.name.lower() for slot in SlotType}
SET_NAMES = {set_type: set_type.name.lower() for set_type in SetType}
STAT_NAMES = {kind: kind.name.lower() for kind in StatKind}
TARGET_NAMES = {target: target.name.lower() for target in TargetStat}

# Unmodded flat stats used to turn percentage stats into flat points when the
# character does not supply its own.
DEFAULT_BASE_STATS = MappingProxyType({
    StatKind.HEALTH: 30000.0,
    StatKind.PROTECTION: 35000.0,
    StatKind.SPEED: 140.0,
    StatKind.OFFENSE: 2500.0,
    StatKind.DEFENSE: 250.0,
})

MAX_SECONDARIES = 4
MIN_TIER, MAX_TIER = 1, 6
MIN_LEVEL, MAX_LEVEL = 1, 15


@dataclass(frozen=True)
class ModStat:
    """A single stat roll on a mod."""
    kind: StatKind
    value: float
    rolls: int = 1


@dataclass(frozen=True)
class Mod:
    """
    A single mod from the player's inventory.

    Mods are immutable. The allocator reports ownership changes by producing
    new Mod values with with_owner() rather than mutating the inventory.
    """
    id: str
    slot: SlotType
    set_type: SetType
    primary: ModStat
    secondaries: Tuple[ModStat, ...] = ()
    tier: int = 5
    level: int = 15
    locked: bool = False
    owner: Optional[str] = None

    @property
    def stats(self) -> Tuple[ModStat, ...]:
        """Primary stat followed by all secondaries."""
        return (self.primary,) + tuple(self.secondaries)

    def with_owner(self, owner: Optional[str]) -> 'Mod':
        if owner == self.owner:
            return self
        return replace(self, owner=owner)


@dataclass(frozen=True)
class SetBonusRule:
    """How many mods of a set are needed, and what they grant."""
    set_type: SetType
    required_count: int
    bonus: ModStat


def _freeze_weights(weights: Optional[Mapping[TargetStat, float]]) -> Mapping[TargetStat, float]:
    """Build an exhaustive, read-only weight table keyed by TargetStat."""
    table = {target: 0.0 for target in TargetStat}
    for target, weight in (weights or {}).items():
        table[TargetStat(target)] = float(weight)
    return MappingProxyType(table)


@dataclass(frozen=True)
class OptimizationPlan:
    """
    A named, weighted scoring target for a character.

    Supports two weighting modes:
    1. Basic (default): weights are roughly -100..100 and get normalized
       against the typical maximum roll of each stat
    2. Advanced: weights are the value of a single point of the stat
    """
    name: str
    weights: Mapping[TargetStat, float] = field(default_factory=dict)
    advanced: bool = False
    damage_type: Optional[DamageType] = None

    def __post_init__(self):
        object.__setattr__(self, 'weights', _freeze_weights(self.weights))

    def weight(self, target: TargetStat) -> float:
        return self.weights[target]

    def rename(self, name: str) -> 'OptimizationPlan':
        """Copy of this plan under a different display name."""
        return replace(self, name=name, weights=dict(self.weights))

    def with_damage_type(self, damage_type: Optional[DamageType]) -> 'OptimizationPlan':
        return replace(self, damage_type=damage_type, weights=dict(self.weights))

    @property
    def effective_damage_type(self) -> DamageType:
        return self.damage_type if self.damage_type is not None else DamageType.PHYSICAL


def create_plan(name: str,
                health: float = 0,
                protection: float = 0,
                speed: float = 0,
                crit_damage: float = 0,
                potency: float = 0,
                tenacity: float = 0,
                physical_damage: float = 0,
                special_damage: float = 0,
                crit_chance: float = 0,
                armor: float = 0,
                resistance: float = 0,
                accuracy: float = 0,
                crit_avoidance: float = 0,
                advanced: bool = False,
                damage_type: Optional[DamageType] = None) -> OptimizationPlan:
    """
    Create an optimization plan from named stat weights.

    Args:
        name: Display name of the plan (e.g. "PvP", "Raid Phase 1")
        health ... crit_avoidance: Weight for each stat
        advanced: Treat weights as value per point instead of basic weights
        damage_type: Damage affinity of the character (None = physical)

    Returns:
        A new immutable OptimizationPlan
    """
    return OptimizationPlan(
        name=name,
        weights={
            TargetStat.HEALTH: health,
            TargetStat.PROTECTION: protection,
            TargetStat.SPEED: speed,
            TargetStat.CRIT_DAMAGE: crit_damage,
            TargetStat.POTENCY: potency,
            TargetStat.TENACITY: tenacity,
            TargetStat.PHYSICAL_DAMAGE: physical_damage,
            TargetStat.SPECIAL_DAMAGE: special_damage,
            TargetStat.CRIT_CHANCE: crit_chance,
            TargetStat.ARMOR: armor,
            TargetStat.RESISTANCE: resistance,
            TargetStat.ACCURACY: accuracy,
            TargetStat.CRIT_AVOIDANCE: crit_avoidance,
        },
        advanced=advanced,
        damage_type=damage_type,
    )


@dataclass(frozen=True)
class Character:
    """
    A character to optimize.

    The mods a character currently wears are the inventory mods whose owner
    is this character's base_id.
    """
    base_id: str
    plan: Optional[OptimizationPlan] = None
    locked: bool = False
    # Unmodded flat stats (health, protection, speed, offense, defense)
    base_stats: Optional[Mapping[StatKind, float]] = None


@dataclass(frozen=True)
class RunInput:
    """Everything a single optimizer run consumes."""
    characters: Sequence[Character]
    mods: Sequence[Mod]
    threshold: int = 0
    locked_characters: FrozenSet[str] = frozenset()
    locked_mods: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if not 0 <= self.threshold <= 100:
            raise ValueError(f"threshold must be between 0 and 100, got {self.threshold}")
        object.__setattr__(self, 'characters', tuple(self.characters))
        object.__setattr__(self, 'mods', tuple(self.mods))
        object.__setattr__(self, 'locked_characters', frozenset(self.locked_characters))
        object.__setattr__(self, 'locked_mods', frozenset(self.locked_mods))

    def is_mod_locked(self, mod: Mod) -> bool:
        return mod.locked or mod.id in self.locked_mods

    def equipped_mods(self, character_id: str) -> Dict[SlotType, Mod]:
        """Mods currently worn by a character, keyed by slot."""
        return {mod.slot: mod for mod in self.mods if mod.owner == character_id}

    def locked_character_ids(self) -> FrozenSet[str]:
        ids = {c.base_id for c in self.characters if c.locked}
        return frozenset(ids) | self.locked_characters


def mods_by_slot(mods: Sequence[Mod]) -> Dict[SlotType, List[Mod]]:
    """Group mods by slot type."""
    grouped: Dict[SlotType, List[Mod]] = {slot: [] for slot in SlotType}
    for mod in mods:
        grouped[mod.slot].append(mod)
    return grouped
