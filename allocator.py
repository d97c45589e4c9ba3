"""
Sequential Allocator

Drives a full optimizer run:

  Init -> for each character {Solve -> Filter -> Commit} -> Done

Characters are processed strictly in the order given. Each character gets
first claim on whatever is left in the shared pool, and whatever it ends up
with (new mods or the ones it already wore) leaves the pool before the next
character is solved. Put the character that needs the best mods first.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set, Tuple

from models import (
    Character, Mod, ModStat, RunInput, SetBonusRule, SetType, SlotType, StatKind,
    MAX_SECONDARIES, MIN_TIER, MAX_TIER, MIN_LEVEL, MAX_LEVEL, SLOT_NAMES, SET_NAMES,
)
from errors import (
    Cancelled, InsufficientPool, InventoryIntegrityViolation, MissingPlan, OptimizerError,
)
from change_threshold import improvement_percent, should_replace
from set_bonuses import SET_BONUSES
from slot_assigner import SlotAssigner, SlotAssignment, score_assignment


class AssignmentStatus(Enum):
    CHANGED = 'changed'
    UNCHANGED = 'unchanged'
    LOCKED = 'locked'
    SKIPPED = 'skipped'


@dataclass
class CharacterResult:
    """What the run decided for one character."""
    character_id: str
    status: AssignmentStatus
    assignment: Dict[SlotType, str] = field(default_factory=dict)
    score: float = 0.0
    previous_score: float = 0.0
    active_sets: Tuple[SetType, ...] = ()
    error: Optional[OptimizerError] = None

    @property
    def changed(self) -> bool:
        return self.status == AssignmentStatus.CHANGED

    @property
    def improvement(self) -> float:
        """Relative improvement over the previous assignment, in percent."""
        return improvement_percent(self.previous_score, self.score)


@dataclass
class RunResult:
    """Outcome of a whole run."""
    results: List[CharacterResult] = field(default_factory=list)
    leftover: List[Mod] = field(default_factory=list)
    errors: List[OptimizerError] = field(default_factory=list)
    ownership: Dict[str, Optional[str]] = field(default_factory=dict)
    cancelled: bool = False

    def result_for(self, character_id: str) -> Optional[CharacterResult]:
        for result in self.results:
            if result.character_id == character_id:
                return result
        return None

    def updated_mods(self, mods: List[Mod]) -> List[Mod]:
        """The inventory with each mod's owner set to its owner after the run."""
        return [mod.with_owner(self.ownership.get(mod.id, mod.owner)) for mod in mods]

    def moved_mod_count(self, mods: List[Mod]) -> int:
        """How many mods end the run on a different character."""
        return sum(1 for mod in mods if self.ownership.get(mod.id, mod.owner) != mod.owner)

    def summary(self) -> str:
        lines = []
        for result in self.results:
            if result.status == AssignmentStatus.SKIPPED:
                lines.append(f"  ⚠ {result.character_id:24s} skipped: {result.error.message}")
                continue
            marker = "✓" if result.changed else "-"
            lines.append(
                f"  {marker} {result.character_id:24s} {result.status.value:9s} "
                f"{result.previous_score:8.1f} -> {result.score:8.1f}"
            )
        lines.append(f"  Leftover mods: {len(self.leftover)}")
        if self.cancelled:
            lines.append("  Run was cancelled")
        return "\n".join(lines)


# =============================================================================
# INVENTORY INTEGRITY
# =============================================================================

def _check_stat(mod: Mod, stat: ModStat):
    if not isinstance(stat, ModStat) or not isinstance(stat.kind, StatKind):
        raise InventoryIntegrityViolation(f"Mod '{mod.id}' has an invalid stat: {stat!r}")


def validate_inventory(run_input: RunInput):
    """
    Refuse inventories the optimizer cannot safely work on.

    Raises:
        InventoryIntegrityViolation: on duplicate mod ids, invalid slots, sets,
            stats, tiers or levels, more than four secondaries, two mods held
            by one character in the same slot, or a character listed twice
    """
    seen_ids: Set[str] = set()
    held: Dict[Tuple[str, SlotType], str] = {}

    for mod in run_input.mods:
        if not isinstance(mod, Mod):
            raise InventoryIntegrityViolation(f"Not a mod record: {mod!r}")
        if mod.id in seen_ids:
            raise InventoryIntegrityViolation(f"Duplicate mod id '{mod.id}'")
        seen_ids.add(mod.id)

        if not isinstance(mod.slot, SlotType):
            raise InventoryIntegrityViolation(f"Mod '{mod.id}' has an invalid slot: {mod.slot!r}")
        if not isinstance(mod.set_type, SetType):
            raise InventoryIntegrityViolation(f"Mod '{mod.id}' has an invalid set: {mod.set_type!r}")
        if not MIN_TIER <= mod.tier <= MAX_TIER or not MIN_LEVEL <= mod.level <= MAX_LEVEL:
            raise InventoryIntegrityViolation(
                f"Mod '{mod.id}' has tier {mod.tier} / level {mod.level} out of range")

        _check_stat(mod, mod.primary)
        if len(mod.secondaries) > MAX_SECONDARIES:
            raise InventoryIntegrityViolation(
                f"Mod '{mod.id}' has {len(mod.secondaries)} secondaries (max {MAX_SECONDARIES})")
        kinds = set()
        for stat in mod.secondaries:
            _check_stat(mod, stat)
            if stat.kind in kinds:
                raise InventoryIntegrityViolation(
                    f"Mod '{mod.id}' rolls {stat.kind.name} twice as a secondary")
            kinds.add(stat.kind)

        if mod.owner is not None:
            key = (mod.owner, mod.slot)
            if key in held:
                raise InventoryIntegrityViolation(
                    f"'{mod.owner}' holds two {SLOT_NAMES[mod.slot]} mods: "
                    f"'{held[key]}' and '{mod.id}'",
                    mod.owner,
                )
            held[key] = mod.id

    seen_characters: Set[str] = set()
    for character in run_input.characters:
        if character.base_id in seen_characters:
            raise InventoryIntegrityViolation(
                f"Character '{character.base_id}' is listed twice", character.base_id)
        seen_characters.add(character.base_id)


# =============================================================================
# SEQUENTIAL ALLOCATOR
# =============================================================================

class SequentialAllocator:
    """
    Assigns mods to characters one by one, in priority order.

    Usage:
        allocator = SequentialAllocator()
        result = allocator.run(run_input)
    """

    def __init__(self, catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES,
                 verbose: bool = True):
        self.catalog = catalog
        self.verbose = verbose
        self.assigner = SlotAssigner(catalog=catalog, verbose=verbose)

    def log(self, message: str):
        if self.verbose:
            print(message)

    def run(self, run_input: RunInput,
            cancel_event: Optional[threading.Event] = None) -> RunResult:
        """
        Run the optimizer.

        Args:
            run_input: Characters (in priority order), inventory, threshold
                and locks
            cancel_event: Set it from another thread to stop before the next
                character is committed

        Returns:
            RunResult with one entry per processed character

        Raises:
            InventoryIntegrityViolation: before anything is committed
        """
        # --- Init ---
        validate_inventory(run_input)

        locked_characters = run_input.locked_character_ids()
        ownership: Dict[str, Optional[str]] = {mod.id: mod.owner for mod in run_input.mods}

        pool: Dict[str, Mod] = {}
        reserved = 0
        for mod in run_input.mods:
            if run_input.is_mod_locked(mod) or mod.owner in locked_characters:
                reserved += 1
                continue
            pool[mod.id] = mod

        self.log("\n" + "=" * 70)
        self.log(f"Optimizing {len(run_input.characters)} characters "
                 f"(threshold {run_input.threshold}%)")
        self.log("=" * 70)
        self.log(f"  Pool: {len(pool)} mods available, {reserved} reserved")

        result = RunResult(ownership=ownership)

        # --- For each character ---
        for character in run_input.characters:
            if cancel_event is not None and cancel_event.is_set():
                self._cancel(result, character.base_id)
                break

            if character.base_id in locked_characters:
                result.results.append(self._locked_result(character, run_input))
                self.log(f"  - {character.base_id}: locked")
                continue

            if character.plan is None:
                error = MissingPlan(character.base_id)
                result.errors.append(error)
                result.results.append(CharacterResult(
                    character_id=character.base_id,
                    status=AssignmentStatus.SKIPPED,
                    error=error,
                ))
                self.log(f"  ⚠ {error}")
                continue

            try:
                committed, current = self._solve(character, run_input, pool)
            except InsufficientPool as error:
                result.errors.append(error)
                result.results.append(CharacterResult(
                    character_id=character.base_id,
                    status=AssignmentStatus.SKIPPED,
                    error=error,
                ))
                self.log(f"  ⚠ {error}")
                continue

            if cancel_event is not None and cancel_event.is_set():
                self._cancel(result, character.base_id)
                break

            result.results.append(self._commit(character, run_input, committed, current,
                                               pool, ownership))

        # --- Done ---
        result.leftover = [mod.with_owner(ownership[mod.id]) for mod in pool.values()]

        self.log("-" * 70)
        self.log(result.summary())
        return result

    def _solve(self, character: Character, run_input: RunInput,
               pool: Dict[str, Mod]) -> Tuple[SlotAssignment, SlotAssignment]:
        """Find the candidate assignment and decide whether it replaces current gear."""
        plan = character.plan
        equipped = run_input.equipped_mods(character.base_id)
        pinned = {slot: mod for slot, mod in equipped.items() if run_input.is_mod_locked(mod)}
        available = {
            slot: mod for slot, mod in equipped.items()
            if mod.id in pool or slot in pinned
        }

        candidate = self.assigner.assign(
            list(pool.values()),
            plan,
            base_stats=character.base_stats,
            equipped_ids=frozenset(mod.id for mod in equipped.values()),
            pinned=pinned,
            character_id=character.base_id,
        )
        current = score_assignment(available, plan, character.base_stats, self.catalog)

        if current.is_complete and not should_replace(current.score, candidate.score,
                                                      run_input.threshold):
            return current, current
        return candidate, current

    def _commit(self, character: Character, run_input: RunInput,
                committed: SlotAssignment, current: SlotAssignment,
                pool: Dict[str, Mod], ownership: Dict[str, Optional[str]]) -> CharacterResult:
        """Give the committed mods to the character and take them out of the pool."""
        character_id = character.base_id
        previous_ids = {mod.id for mod in run_input.equipped_mods(character_id).values()}
        committed_ids = {mod.id for mod in committed.slots.values()}

        for mod_id in previous_ids - committed_ids:
            if ownership[mod_id] == character_id:
                ownership[mod_id] = None
        for mod_id in committed_ids:
            ownership[mod_id] = character_id
            pool.pop(mod_id, None)

        status = (AssignmentStatus.UNCHANGED if committed_ids == previous_ids
                  else AssignmentStatus.CHANGED)

        marker = "✓" if status == AssignmentStatus.CHANGED else "-"
        sets = ', '.join(SET_NAMES[s] for s in committed.active_sets) or 'no sets'
        self.log(f"  {marker} {character_id}: {status.value} "
                 f"({current.score:.1f} -> {committed.score:.1f}, {sets})")

        return CharacterResult(
            character_id=character_id,
            status=status,
            assignment=committed.mod_ids(),
            score=committed.score,
            previous_score=current.score,
            active_sets=committed.active_sets,
        )

    def _locked_result(self, character: Character, run_input: RunInput) -> CharacterResult:
        equipped = run_input.equipped_mods(character.base_id)
        score = 0.0
        active_sets: Tuple[SetType, ...] = ()
        if character.plan is not None:
            scored = score_assignment(equipped, character.plan, character.base_stats, self.catalog)
            score = scored.score
            active_sets = scored.active_sets
        return CharacterResult(
            character_id=character.base_id,
            status=AssignmentStatus.LOCKED,
            assignment={slot: mod.id for slot, mod in equipped.items()},
            score=score,
            previous_score=score,
            active_sets=active_sets,
        )

    def _cancel(self, result: RunResult, character_id: str):
        result.cancelled = True
        result.errors.append(Cancelled(character_id))
        self.log(f"  ⚠ Cancelled before {character_id}")


# =============================================================================
# Convenience Functions
# =============================================================================

def optimize(run_input: RunInput,
             catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES,
             verbose: bool = True,
             cancel_event: Optional[threading.Event] = None) -> RunResult:
    """Run the optimizer once with a fresh allocator."""
    return SequentialAllocator(catalog=catalog, verbose=verbose).run(run_input, cancel_event)


def run_in_background(run_input: RunInput,
                      executor: Optional[ThreadPoolExecutor] = None,
                      cancel_event: Optional[threading.Event] = None,
                      **kwargs) -> Future:
    """
    Run the optimizer on a worker thread.

    Args:
        run_input: Run description
        executor: Executor to submit to (a single-use one is created if None)
        cancel_event: Event the caller can set to cancel the run
        **kwargs: Passed to optimize()

    Returns:
        Future resolving to a RunResult
    """
    if executor is not None:
        return executor.submit(optimize, run_input, cancel_event=cancel_event, **kwargs)

    own_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='mod-optimizer')
    future = own_executor.submit(optimize, run_input, cancel_event=cancel_event, **kwargs)
    own_executor.shutdown(wait=False)
    return future
