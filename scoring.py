"""
Mod Scoring

Turns a mod (or any bag of stats) plus a character's optimization plan into a
single number. Scoring is pure and deterministic.

The workflow:
1. Each mod stat is converted to flat points of one or more plan targets
   (percent stats use the character's base stats)
2. Target weights are normalized (basic mode) or used as-is (advanced mode)
3. The damage-type affinity decides how offense feeds physical/special damage
4. The per-unit weights are folded into a vector indexed by StatKind, so a
   whole pool is scored with one matrix product
"""

from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from models import (
    Mod, ModStat, OptimizationPlan, StatKind, TargetStat, DamageType,
    DEFAULT_BASE_STATS, N_STAT_KINDS,
)


# =============================================================================
# CONSTANT TABLES
# =============================================================================

# Typical maximum roll of each target stat, in flat points. In basic mode a
# weight of 100 makes one maximum roll worth 100 points, so equal weights on
# speed and protection value 1 speed like 200 protection.
STAT_NORMALIZATION = MappingProxyType({
    TargetStat.HEALTH: 2000.0,
    TargetStat.PROTECTION: 4000.0,
    TargetStat.SPEED: 20.0,
    TargetStat.CRIT_DAMAGE: 36.0,
    TargetStat.POTENCY: 15.0,
    TargetStat.TENACITY: 15.0,
    TargetStat.PHYSICAL_DAMAGE: 225.0,
    TargetStat.SPECIAL_DAMAGE: 225.0,
    TargetStat.CRIT_CHANCE: 10.0,
    TargetStat.ARMOR: 33.0,
    TargetStat.RESISTANCE: 33.0,
    TargetStat.ACCURACY: 12.0,
    TargetStat.CRIT_AVOIDANCE: 24.0,
})

# StatKind -> (targets it feeds, base stat for percent conversion or None)
STAT_CONTRIBUTIONS: Mapping[StatKind, Tuple[Tuple[TargetStat, ...], Optional[StatKind]]] = MappingProxyType({
    StatKind.HEALTH: ((TargetStat.HEALTH,), None),
    StatKind.HEALTH_PERCENT: ((TargetStat.HEALTH,), StatKind.HEALTH),
    StatKind.PROTECTION: ((TargetStat.PROTECTION,), None),
    StatKind.PROTECTION_PERCENT: ((TargetStat.PROTECTION,), StatKind.PROTECTION),
    StatKind.SPEED: ((TargetStat.SPEED,), None),
    StatKind.SPEED_PERCENT: ((TargetStat.SPEED,), StatKind.SPEED),
    StatKind.OFFENSE: ((TargetStat.PHYSICAL_DAMAGE, TargetStat.SPECIAL_DAMAGE), None),
    StatKind.OFFENSE_PERCENT: ((TargetStat.PHYSICAL_DAMAGE, TargetStat.SPECIAL_DAMAGE), StatKind.OFFENSE),
    StatKind.DEFENSE: ((TargetStat.ARMOR, TargetStat.RESISTANCE), None),
    StatKind.DEFENSE_PERCENT: ((TargetStat.ARMOR, TargetStat.RESISTANCE), StatKind.DEFENSE),
    StatKind.CRIT_CHANCE_PERCENT: ((TargetStat.CRIT_CHANCE,), None),
    StatKind.CRIT_DAMAGE_PERCENT: ((TargetStat.CRIT_DAMAGE,), None),
    StatKind.POTENCY_PERCENT: ((TargetStat.POTENCY,), None),
    StatKind.TENACITY_PERCENT: ((TargetStat.TENACITY,), None),
    StatKind.ACCURACY_PERCENT: ((TargetStat.ACCURACY,), None),
    StatKind.CRIT_AVOIDANCE_PERCENT: ((TargetStat.CRIT_AVOIDANCE,), None),
})

# Share of the physical/special damage weights that offense picks up
AFFINITY_FACTORS = MappingProxyType({
    DamageType.PHYSICAL: {TargetStat.PHYSICAL_DAMAGE: 1.0, TargetStat.SPECIAL_DAMAGE: 0.0},
    DamageType.SPECIAL: {TargetStat.PHYSICAL_DAMAGE: 0.0, TargetStat.SPECIAL_DAMAGE: 1.0},
    DamageType.MIXED: {TargetStat.PHYSICAL_DAMAGE: 0.5, TargetStat.SPECIAL_DAMAGE: 0.5},
})


# =============================================================================
# WEIGHT RESOLUTION
# =============================================================================

def target_weights(plan: OptimizationPlan) -> Dict[TargetStat, float]:
    """
    Resolve a plan into the value of one flat point of each target stat.

    Basic mode divides each weight by the stat's typical maximum roll;
    advanced mode keeps the weights as given. The damage-type affinity is
    applied on top.
    """
    factors = AFFINITY_FACTORS[plan.effective_damage_type]
    resolved = {}
    for target in TargetStat:
        weight = plan.weight(target)
        if not plan.advanced:
            weight = weight / STAT_NORMALIZATION[target]
        resolved[target] = weight * factors.get(target, 1.0)
    return resolved


def weight_vector(plan: OptimizationPlan,
                  base_stats: Optional[Mapping[StatKind, float]] = None) -> np.ndarray:
    """
    Build the per-unit weight of every StatKind under a plan.

    Args:
        plan: Optimization plan
        base_stats: Character's unmodded stats (defaults to DEFAULT_BASE_STATS)

    Returns:
        (N_STAT_KINDS,) float64 array
    """
    base = DEFAULT_BASE_STATS if base_stats is None else base_stats
    per_target = target_weights(plan)
    vector = np.zeros(N_STAT_KINDS, dtype=np.float64)

    for kind, (targets, base_kind) in STAT_CONTRIBUTIONS.items():
        unit = 1.0
        if base_kind is not None:
            unit = base.get(base_kind, DEFAULT_BASE_STATS[base_kind]) / 100.0
        vector[kind] = sum(per_target[t] for t in targets) * unit

    return vector


# =============================================================================
# SCORING
# =============================================================================

def stats_to_array(stats: Iterable[ModStat]) -> np.ndarray:
    """Sum a bag of stats into an array indexed by StatKind."""
    arr = np.zeros(N_STAT_KINDS, dtype=np.float64)
    for stat in stats:
        arr[stat.kind] += stat.value
    return arr


def mods_to_matrix(mods: Sequence[Mod]) -> np.ndarray:
    """Stack the stat arrays of many mods into an (n_mods, N_STAT_KINDS) matrix."""
    if not mods:
        return np.zeros((0, N_STAT_KINDS), dtype=np.float64)
    return np.array([stats_to_array(mod.stats) for mod in mods], dtype=np.float64)


def score_mods(mods: Sequence[Mod], weights: np.ndarray,
               matrix: Optional[np.ndarray] = None) -> np.ndarray:
    """Score a batch of mods against a weight vector."""
    if matrix is None:
        matrix = mods_to_matrix(mods)
    if len(matrix) == 0:
        return np.zeros(0, dtype=np.float64)
    return matrix @ weights


def score_stats(stats: Iterable[ModStat], plan: OptimizationPlan,
                base_stats: Optional[Mapping[StatKind, float]] = None) -> float:
    """Score an arbitrary bag of stats (a mod, a set bonus, ...)."""
    return float(np.dot(stats_to_array(stats), weight_vector(plan, base_stats)))


def score_mod(mod: Mod, plan: OptimizationPlan,
              base_stats: Optional[Mapping[StatKind, float]] = None) -> float:
    """
    Score a single mod for a plan.

    A mod with no stat the plan cares about scores exactly 0.
    """
    return score_stats(mod.stats, plan, base_stats)
