"""
Inventory Loader

Loads mod inventories from CSV exports and whole optimizer runs from JSON
run files.

CSV columns:
    id, slot, set, primary, secondaries, tier, level, locked, owner

Stats are written as "name:value" or "name:value:rolls", secondaries
separated by ';' (e.g. "speed:12:3;offense_percent:1.5").
"""

import csv
import json
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from models import (
    Character, DamageType, Mod, ModStat, OptimizationPlan, RunInput, SetType, SlotType,
    StatKind, TargetStat,
)
from errors import InventoryIntegrityViolation
from optimization_strategies import plan_from_strategy


TRUE_VALUES = {'1', 'true', 'yes', 'y'}


# =============================================================================
# Name lookups
# =============================================================================

def _lookup(enum_cls, name: Any, what: str, context: str = ''):
    """Resolve an enum member from its (case-insensitive) name."""
    if isinstance(name, enum_cls):
        return name
    key = str(name).strip().upper().replace(' ', '_').replace('-', '_')
    try:
        return enum_cls[key]
    except KeyError:
        where = f" on mod '{context}'" if context else ''
        raise InventoryIntegrityViolation(f"Unknown {what} '{name}'{where}") from None


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def parse_stat(value: Any, context: str = '') -> ModStat:
    """
    Parse a stat from "name:value[:rolls]" or {"stat", "value", "rolls"}.
    """
    if isinstance(value, ModStat):
        return value
    if isinstance(value, Mapping):
        name = value.get('stat', value.get('kind'))
        amount = value.get('value')
        rolls = value.get('rolls', 1)
    else:
        parts = str(value).split(':')
        if len(parts) not in (2, 3):
            raise InventoryIntegrityViolation(f"Malformed stat '{value}' on mod '{context}'")
        name, amount = parts[0], parts[1]
        rolls = parts[2] if len(parts) == 3 else 1

    kind = _lookup(StatKind, name, 'stat', context)
    try:
        return ModStat(kind, float(amount), int(rolls))
    except (TypeError, ValueError):
        raise InventoryIntegrityViolation(
            f"Bad value for {kind.name} on mod '{context}': {amount!r}") from None


def _parse_secondaries(value: Any, context: str) -> List[ModStat]:
    if value is None or value == '':
        return []
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(';')]
        return [parse_stat(part, context) for part in parts if part]
    return [parse_stat(part, context) for part in value]


def parse_mod(record: Mapping[str, Any]) -> Mod:
    """
    Turn a CSV row or JSON object into a Mod.

    Raises:
        InventoryIntegrityViolation: on unknown slot/set/stat names or
            malformed values
    """
    try:
        mod_id = str(record['id']).strip()
        slot_name = record['slot']
        set_name = record['set']
        primary = record['primary']
    except KeyError as e:
        raise InventoryIntegrityViolation(f"Mod record is missing field {e}: {dict(record)}") from None

    if not mod_id:
        raise InventoryIntegrityViolation(f"Mod record has an empty id: {dict(record)}")

    try:
        tier = int(record.get('tier') or 5)
        level = int(record.get('level') or 15)
    except (TypeError, ValueError):
        raise InventoryIntegrityViolation(f"Bad tier/level on mod '{mod_id}'") from None

    owner = record.get('owner') or None

    return Mod(
        id=mod_id,
        slot=_lookup(SlotType, slot_name, 'slot', mod_id),
        set_type=_lookup(SetType, set_name, 'set', mod_id),
        primary=parse_stat(primary, mod_id),
        secondaries=tuple(_parse_secondaries(record.get('secondaries'), mod_id)),
        tier=tier,
        level=level,
        locked=_to_bool(record.get('locked', False)),
        owner=str(owner).strip() if owner else None,
    )


# =============================================================================
# Inventory
# =============================================================================

@dataclass
class InventoryStats:
    """Summary statistics for a loaded inventory."""
    total_mods: int = 0
    equipped_mods: int = 0
    mods_by_slot: Dict[SlotType, int] = field(default_factory=dict)
    mods_by_set: Dict[SetType, int] = field(default_factory=dict)


class Inventory:
    """
    A player's mods, in file order.
    """

    def __init__(self, mods: Optional[Iterable[Mod]] = None):
        self.mods: List[Mod] = []
        self.mods_by_id: Dict[str, Mod] = {}
        self.stats = InventoryStats()
        if mods is not None:
            for mod in mods:
                self._add_mod(mod)
            self._calculate_stats()

    def load_from_csv(self, csv_path):
        """Load mods from a CSV export, replacing anything already loaded."""
        self.mods.clear()
        self.mods_by_id.clear()

        with open(csv_path, 'r', encoding='utf-8', newline='') as f:
            reader = csv.DictReader(f)
            for row in reader:
                self._add_mod(parse_mod(row))

        self._calculate_stats()
        return self

    def _add_mod(self, mod: Mod):
        if mod.id in self.mods_by_id:
            raise InventoryIntegrityViolation(f"Duplicate mod id '{mod.id}'")
        self.mods.append(mod)
        self.mods_by_id[mod.id] = mod

    def _calculate_stats(self):
        self.stats = InventoryStats(
            total_mods=len(self.mods),
            equipped_mods=sum(1 for mod in self.mods if mod.owner is not None),
            mods_by_slot=dict(Counter(mod.slot for mod in self.mods)),
            mods_by_set=dict(Counter(mod.set_type for mod in self.mods)),
        )

    def get_mod(self, mod_id: str) -> Optional[Mod]:
        return self.mods_by_id.get(mod_id)

    def equipped_by(self, character_id: str) -> List[Mod]:
        return [mod for mod in self.mods if mod.owner == character_id]


def load_mods_csv(csv_path) -> List[Mod]:
    """Load every mod from a CSV export."""
    return Inventory().load_from_csv(csv_path).mods


def write_mods_csv(csv_path, mods: Sequence[Mod]):
    """Write mods in the format load_mods_csv() reads."""
    def fmt(stat: ModStat) -> str:
        return f"{stat.kind.name.lower()}:{stat.value:g}:{stat.rolls}"

    with open(csv_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=[
            'id', 'slot', 'set', 'primary', 'secondaries', 'tier', 'level', 'locked', 'owner',
        ])
        writer.writeheader()
        for mod in mods:
            writer.writerow({
                'id': mod.id,
                'slot': mod.slot.name.lower(),
                'set': mod.set_type.name.lower(),
                'primary': fmt(mod.primary),
                'secondaries': ';'.join(fmt(s) for s in mod.secondaries),
                'tier': mod.tier,
                'level': mod.level,
                'locked': 'true' if mod.locked else '',
                'owner': mod.owner or '',
            })


# =============================================================================
# Run files
# =============================================================================

def parse_plan(record: Mapping[str, Any], default_name: str = 'Custom') -> Optional[OptimizationPlan]:
    """
    Build a plan from a character record.

    Either "strategy" (a template name) or "weights" (target name -> weight)
    may be given; neither means the character has no plan.
    """
    damage_type = record.get('damage_type')
    if damage_type is not None:
        damage_type = _lookup(DamageType, damage_type, 'damage type')

    if record.get('strategy'):
        try:
            return plan_from_strategy(record['strategy'],
                                      rename=record.get('plan_name'),
                                      damage_type=damage_type)
        except KeyError as e:
            raise ValueError(e.args[0]) from None

    weights = record.get('weights')
    if weights is None:
        return None

    return OptimizationPlan(
        name=record.get('plan_name') or default_name,
        weights={_lookup(TargetStat, name, 'plan target'): float(value)
                 for name, value in weights.items()},
        advanced=_to_bool(record.get('advanced', False)),
        damage_type=damage_type,
    )


def parse_character(record: Mapping[str, Any]) -> Character:
    base_id = str(record['base_id'])
    base_stats = record.get('base_stats')
    if base_stats is not None:
        base_stats = {_lookup(StatKind, name, 'base stat'): float(value)
                      for name, value in base_stats.items()}
    return Character(
        base_id=base_id,
        plan=parse_plan(record),
        locked=_to_bool(record.get('locked', False)),
        base_stats=base_stats,
    )


def parse_run(data: Mapping[str, Any], base_dir: Optional[Path] = None) -> RunInput:
    """
    Build a RunInput from a decoded run description.

    Mods come from an inline "mods" list or a "mods_csv" path (relative to
    base_dir).
    """
    if 'mods' in data:
        mods = [parse_mod(record) for record in data['mods']]
    elif 'mods_csv' in data:
        csv_path = Path(data['mods_csv'])
        if base_dir is not None and not csv_path.is_absolute():
            csv_path = base_dir / csv_path
        mods = load_mods_csv(csv_path)
    else:
        mods = []

    return RunInput(
        characters=[parse_character(record) for record in data.get('characters', [])],
        mods=mods,
        threshold=int(data.get('threshold', 0)),
        locked_characters=frozenset(data.get('locked_characters', [])),
        locked_mods=frozenset(data.get('locked_mods', [])),
    )


def load_run_file(path) -> RunInput:
    """Load a JSON run description."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return parse_run(data, base_dir=path.parent)
