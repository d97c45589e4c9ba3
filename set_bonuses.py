"""
Set Bonus Catalog

Static table of mod sets: how many mods of a set a character needs, and the
bonus it then receives. A bonus is either present or absent; wearing more
mods of a set than required never grants a second instance.
"""

from collections import Counter
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from models import Mod, ModStat, OptimizationPlan, SetBonusRule, SetType, StatKind
from scoring import stats_to_array, weight_vector


SET_BONUSES: Mapping[SetType, SetBonusRule] = MappingProxyType({
    SetType.HEALTH: SetBonusRule(SetType.HEALTH, 2, ModStat(StatKind.HEALTH_PERCENT, 10.0)),
    SetType.DEFENSE: SetBonusRule(SetType.DEFENSE, 2, ModStat(StatKind.DEFENSE_PERCENT, 25.0)),
    SetType.CRIT_DAMAGE: SetBonusRule(SetType.CRIT_DAMAGE, 4, ModStat(StatKind.CRIT_DAMAGE_PERCENT, 30.0)),
    SetType.CRIT_CHANCE: SetBonusRule(SetType.CRIT_CHANCE, 2, ModStat(StatKind.CRIT_CHANCE_PERCENT, 8.0)),
    SetType.TENACITY: SetBonusRule(SetType.TENACITY, 2, ModStat(StatKind.TENACITY_PERCENT, 20.0)),
    SetType.OFFENSE: SetBonusRule(SetType.OFFENSE, 4, ModStat(StatKind.OFFENSE_PERCENT, 15.0)),
    SetType.POTENCY: SetBonusRule(SetType.POTENCY, 2, ModStat(StatKind.POTENCY_PERCENT, 15.0)),
    SetType.SPEED: SetBonusRule(SetType.SPEED, 4, ModStat(StatKind.SPEED_PERCENT, 10.0)),
})

VALID_REQUIRED_COUNTS = (2, 4)


def build_catalog(rules: Iterable[SetBonusRule]) -> Mapping[SetType, SetBonusRule]:
    """
    Build a read-only catalog from a list of rules.

    Every set type must appear exactly once and require 2 or 4 mods.
    """
    catalog: Dict[SetType, SetBonusRule] = {}
    for rule in rules:
        if rule.required_count not in VALID_REQUIRED_COUNTS:
            raise ValueError(f"{rule.set_type.name}: required count must be 2 or 4, "
                             f"got {rule.required_count}")
        if rule.set_type in catalog:
            raise ValueError(f"Duplicate rule for {rule.set_type.name}")
        catalog[rule.set_type] = rule

    missing = set(SetType) - set(catalog)
    if missing:
        raise ValueError(f"Missing rules for: {', '.join(sorted(s.name for s in missing))}")

    return MappingProxyType({set_type: catalog[set_type] for set_type in SetType})


def with_required_count(set_type: SetType, required_count: int,
                        catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES
                        ) -> Mapping[SetType, SetBonusRule]:
    """Copy of a catalog with one set's required count changed."""
    rules = [rule for rule in catalog.values() if rule.set_type != set_type]
    original = catalog[set_type]
    rules.append(SetBonusRule(set_type, required_count, original.bonus))
    return build_catalog(rules)


def realized_bonuses(mods: Iterable[Mod],
                     catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES) -> List[SetBonusRule]:
    """
    Bonuses active for a group of assigned mods.

    Returns:
        One rule per set type whose mod count reaches its required count,
        in SetType order
    """
    counts = Counter(mod.set_type for mod in mods)
    return [
        catalog[set_type] for set_type in SetType
        if counts.get(set_type, 0) >= catalog[set_type].required_count
    ]


def bonus_values(plan: OptimizationPlan,
                 base_stats: Optional[Mapping[StatKind, float]] = None,
                 catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES,
                 weights: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Score of every set's bonus under a plan.

    Returns:
        (N_SETS,) float64 array indexed by SetType
    """
    if weights is None:
        weights = weight_vector(plan, base_stats)
    return np.array(
        [float(np.dot(stats_to_array([catalog[s].bonus]), weights)) for s in SetType],
        dtype=np.float64,
    )


def required_counts(catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES) -> Dict[SetType, int]:
    return {set_type: catalog[set_type].required_count for set_type in SetType}
