"""
Slot Assigner

Finds the best six-mod assignment for one character from a pool of mods,
taking set bonuses into account.

Picking the best mod per slot independently ignores set bonuses, and trying
every six-mod combination from a pool of hundreds of mods is far too slow.
Set bonus eligibility only depends on how the six slots are split between set
types, so instead:

1. Enumerate every "composition": a labelling of the six slots with a set
   type or FREE, where each used set labels exactly its required count of
   slots. This is a fixed, small list that does not depend on the pool.
2. Score the pool once and sort it into (slot, set) shortlists. Only the top
   entry of each shortlist can ever be picked.
3. Evaluate every composition in a JIT-compiled parallel kernel: per-slot
   best scores plus the bonus of every set the picked mods complete.
4. Rebuild the concrete assignment for the winning composition.

A FREE slot takes the best mod among sets whose bonus is worth something
(or nothing) to the plan, or the best mod of one set whose bonus is worth
less than nothing. The kernel tries each of these options for every FREE
slot, which keeps the search exact when plan weights are negative.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from itertools import combinations
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import numba

from models import (
    Mod, OptimizationPlan, SetBonusRule, SetType, SlotType, StatKind,
    N_SETS, N_SLOTS, SLOT_NAMES, SET_NAMES,
)
from errors import InsufficientPool
from scoring import mods_to_matrix, score_mods, weight_vector
from set_bonuses import SET_BONUSES, bonus_values, realized_bonuses, required_counts


# Label for a slot that may hold a mod of any set
FREE = N_SETS

TIE_TOLERANCE = 1e-9


# =============================================================================
# COMPOSITIONS
# =============================================================================

@lru_cache(maxsize=16)
def _compositions_for(counts: Tuple[int, ...]) -> Tuple[np.ndarray, np.ndarray]:
    """Enumerate compositions for a tuple of required counts (indexed by SetType)."""
    found: List[Tuple[int, ...]] = []
    labels = [FREE] * N_SLOTS

    def place(set_idx: int):
        if set_idx == len(counts):
            found.append(tuple(labels))
            return

        # Set not used
        place(set_idx + 1)

        need = counts[set_idx]
        free_slots = [s for s in range(N_SLOTS) if labels[s] == FREE]
        if need > len(free_slots):
            return

        for chosen in combinations(free_slots, need):
            for s in chosen:
                labels[s] = set_idx
            place(set_idx + 1)
            for s in chosen:
                labels[s] = FREE

    place(0)

    label_matrix = np.array(found, dtype=np.int64)
    active = np.zeros((len(found), len(counts)), dtype=np.bool_)
    for c, row in enumerate(found):
        for label in row:
            if label != FREE:
                active[c, label] = True

    label_matrix.setflags(write=False)
    active.setflags(write=False)
    return label_matrix, active


def enumerate_compositions(catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES
                           ) -> Tuple[np.ndarray, np.ndarray]:
    """
    All set compositions for a catalog.

    Returns:
        labels: (n_compositions, N_SLOTS) int64, set index per slot or FREE
        active: (n_compositions, N_SETS) bool, which set bonuses a composition
                requires
    """
    counts = required_counts(catalog)
    return _compositions_for(tuple(counts[set_type] for set_type in SetType))


# =============================================================================
# NUMBA KERNEL
# =============================================================================

@numba.jit(nopython=True, cache=True, parallel=True)
def _evaluate_compositions_kernel(
    labels,          # (n_comp, n_slots) int64 - set index per slot, FREE = n_sets
    best_scores,     # (n_slots, n_sets) float64 - top shortlist score per (slot, set)
    available,       # (n_slots, n_sets) bool - shortlist non-empty
    free_scores,     # (n_slots, n_opts) float64 - top score per free-slot option
    free_available,  # (n_slots, n_opts) bool - option has a candidate
    free_sets,       # (n_slots, n_opts) int64 - set of the mod an option picks
    required,        # (n_sets,) int64 - mods needed for each set bonus
    set_bonus,       # (n_sets,) float64 - bonus value per set
    out_totals,      # (n_comp,) float64 - output, -inf when infeasible
    out_choices,     # (n_comp,) int64 - output, free-slot options (base n_opts, slot order)
):
    """
    Score every composition. Each composition only reads shared inputs.

    Bonuses are counted from the sets of the mods actually picked, so a free
    slot that completes a set nobody labelled is charged for it.
    """
    n_comp = labels.shape[0]
    n_slots = labels.shape[1]
    n_sets = set_bonus.shape[0]
    n_opts = free_scores.shape[1]

    for c in numba.prange(n_comp):
        counts = np.zeros(n_sets, dtype=np.int64)
        pick_counts = np.zeros(n_sets, dtype=np.int64)
        base = 0.0
        n_free = 0
        feasible = True
        for s in range(n_slots):
            label = labels[c, s]
            if label == n_sets:
                n_free += 1
            elif available[s, label]:
                base += best_scores[s, label]
                counts[label] += 1
            else:
                feasible = False
                break

        best_total = -np.inf
        best_code = -1
        if feasible:
            n_codes = 1
            for _ in range(n_free):
                n_codes *= n_opts

            for code in range(n_codes):
                total = base
                pick_counts[:] = counts
                rest = code
                ok = True
                for s in range(n_slots):
                    if labels[c, s] == n_sets:
                        o = rest % n_opts
                        rest //= n_opts
                        if not free_available[s, o]:
                            ok = False
                            break
                        total += free_scores[s, o]
                        pick_counts[free_sets[s, o]] += 1
                if not ok:
                    continue

                for t in range(n_sets):
                    if pick_counts[t] >= required[t]:
                        total += set_bonus[t]
                if total > best_total:
                    best_total = total
                    best_code = code

        out_totals[c] = best_total
        out_choices[c] = best_code


# =============================================================================
# SHORTLISTS
# =============================================================================

class Shortlists:
    """
    The pool partitioned by (slot, set), each list sorted best first.

    Ordering: higher score, then mods this character already wears, then
    higher tier, then lowest id.
    """

    def __init__(self, mods: Sequence[Mod], scores: np.ndarray,
                 equipped_ids: FrozenSet[str] = frozenset()):
        self.mods = list(mods)
        self.scores = scores

        order = sorted(
            range(len(self.mods)),
            key=lambda i: (-scores[i],
                           0 if self.mods[i].id in equipped_ids else 1,
                           -self.mods[i].tier,
                           self.mods[i].id),
        )

        self.by_slot_set: Dict[Tuple[SlotType, SetType], List[int]] = {}
        self.by_slot: Dict[SlotType, List[int]] = {slot: [] for slot in SlotType}
        for i in order:
            mod = self.mods[i]
            self.by_slot_set.setdefault((mod.slot, mod.set_type), []).append(i)
            self.by_slot[mod.slot].append(i)

    def top(self, slot: SlotType, set_type: Optional[SetType] = None) -> Optional[int]:
        """Index of the best mod for a slot (optionally restricted to one set)."""
        if set_type is None:
            entries = self.by_slot[slot]
        else:
            entries = self.by_slot_set.get((slot, set_type), [])
        return entries[0] if entries else None

    def top_excluding(self, slot: SlotType, excluded: FrozenSet[SetType]) -> Optional[int]:
        """Index of the best mod for a slot whose set is not excluded."""
        for i in self.by_slot[slot]:
            if self.mods[i].set_type not in excluded:
                return i
        return None

    def empty_slots(self) -> List[SlotType]:
        """Slots with no candidate at all."""
        return [slot for slot in SlotType if not self.by_slot[slot]]

    def best_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Top entry of every (slot, set) shortlist as kernel inputs.

        Returns:
            best_scores: (N_SLOTS, N_SETS) float64
            available: (N_SLOTS, N_SETS) bool
            best_index: (N_SLOTS, N_SETS) int64, -1 when empty
        """
        best_scores = np.zeros((N_SLOTS, N_SETS), dtype=np.float64)
        available = np.zeros((N_SLOTS, N_SETS), dtype=np.bool_)
        best_index = np.full((N_SLOTS, N_SETS), -1, dtype=np.int64)

        for slot in SlotType:
            for set_type in SetType:
                idx = self.top(slot, set_type)
                if idx is not None:
                    best_scores[slot, set_type] = self.scores[idx]
                    available[slot, set_type] = True
                    best_index[slot, set_type] = idx

        return best_scores, available, best_index

    def free_arrays(self, negative_sets: Sequence[SetType]
                    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Options for a FREE slot as kernel inputs.

        Option 0 is the best mod outside negative_sets; option j + 1 is the
        best mod of negative_sets[j].

        Returns:
            free_scores: (N_SLOTS, n_opts) float64
            free_available: (N_SLOTS, n_opts) bool
            free_sets: (N_SLOTS, n_opts) int64, set of the picked mod
            free_index: (N_SLOTS, n_opts) int64, -1 when empty
        """
        n_opts = 1 + len(negative_sets)
        free_scores = np.zeros((N_SLOTS, n_opts), dtype=np.float64)
        free_available = np.zeros((N_SLOTS, n_opts), dtype=np.bool_)
        free_sets = np.zeros((N_SLOTS, n_opts), dtype=np.int64)
        free_index = np.full((N_SLOTS, n_opts), -1, dtype=np.int64)

        excluded = frozenset(negative_sets)
        for slot in SlotType:
            picks = [self.top_excluding(slot, excluded)]
            picks += [self.top(slot, set_type) for set_type in negative_sets]
            for o, idx in enumerate(picks):
                if idx is not None:
                    free_scores[slot, o] = self.scores[idx]
                    free_available[slot, o] = True
                    free_sets[slot, o] = self.mods[idx].set_type
                    free_index[slot, o] = idx

        return free_scores, free_available, free_sets, free_index


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class SlotAssignment:
    """A complete (or, for current gear, partial) slot -> mod assignment."""
    slots: Dict[SlotType, Mod] = field(default_factory=dict)
    score: float = 0.0
    stat_score: float = 0.0
    bonus_score: float = 0.0
    active_sets: Tuple[SetType, ...] = ()

    @property
    def is_complete(self) -> bool:
        return len(self.slots) == N_SLOTS

    def mod_ids(self) -> Dict[SlotType, str]:
        return {slot: self.slots[slot].id for slot in SlotType if slot in self.slots}


def score_assignment(slots: Mapping[SlotType, Mod], plan: OptimizationPlan,
                     base_stats: Optional[Mapping[StatKind, float]] = None,
                     catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES,
                     weights: Optional[np.ndarray] = None) -> SlotAssignment:
    """
    Score a concrete assignment: every mod's own score plus each realized
    set bonus once.
    """
    if weights is None:
        weights = weight_vector(plan, base_stats)

    mods = [slots[slot] for slot in SlotType if slot in slots]
    stat_score = float(np.sum(score_mods(mods, weights))) if mods else 0.0

    bonuses = realized_bonuses(mods, catalog)
    values = bonus_values(plan, base_stats, catalog, weights=weights)
    bonus_score = float(sum(values[rule.set_type] for rule in bonuses))

    return SlotAssignment(
        slots={slot: slots[slot] for slot in SlotType if slot in slots},
        score=stat_score + bonus_score,
        stat_score=stat_score,
        bonus_score=bonus_score,
        active_sets=tuple(rule.set_type for rule in bonuses),
    )


# =============================================================================
# SLOT ASSIGNER
# =============================================================================

class SlotAssigner:
    """
    Solves the best six-slot assignment for one character.

    The composition list depends only on the catalog, so one assigner can be
    reused for every character of a run.
    """

    def __init__(self, catalog: Mapping[SetType, SetBonusRule] = SET_BONUSES,
                 verbose: bool = False):
        self.catalog = catalog
        self.verbose = verbose
        self._labels, self._active = enumerate_compositions(catalog)
        counts = required_counts(catalog)
        self._required = np.array([counts[s] for s in SetType], dtype=np.int64)

    @property
    def composition_count(self) -> int:
        return len(self._labels)

    def evaluate(self, best_scores: np.ndarray, available: np.ndarray,
                 free_scores: np.ndarray, free_available: np.ndarray,
                 free_sets: np.ndarray, set_bonus: np.ndarray
                 ) -> Tuple[np.ndarray, np.ndarray]:
        """Totals (-inf when infeasible) and free-slot choices for every composition."""
        out_totals = np.empty(len(self._labels), dtype=np.float64)
        out_choices = np.empty(len(self._labels), dtype=np.int64)
        _evaluate_compositions_kernel(
            self._labels,
            best_scores, available,
            free_scores, free_available, free_sets,
            self._required, set_bonus,
            out_totals, out_choices,
        )
        return out_totals, out_choices

    def assign(
        self,
        pool: Sequence[Mod],
        plan: OptimizationPlan,
        base_stats: Optional[Mapping[StatKind, float]] = None,
        equipped_ids: FrozenSet[str] = frozenset(),
        pinned: Optional[Mapping[SlotType, Mod]] = None,
        character_id: Optional[str] = None,
    ) -> SlotAssignment:
        """
        Find the value-maximizing assignment.

        Args:
            pool: Mods available to this character
            plan: Optimization plan to score against
            base_stats: Character's unmodded stats for percent conversion
            equipped_ids: Ids of mods the character wears now (tie-break)
            pinned: Slots that must keep a specific mod (player-locked mods)
            character_id: Used in error messages

        Returns:
            SlotAssignment with all six slots filled

        Raises:
            InsufficientPool: if some slot has no candidate at all
        """
        pinned = dict(pinned or {})
        candidates = [mod for mod in pool if mod.slot not in pinned]
        candidates.extend(pinned[slot] for slot in SlotType if slot in pinned)

        weights = weight_vector(plan, base_stats)
        scores = score_mods(candidates, weights, mods_to_matrix(candidates))
        shortlists = Shortlists(candidates, scores, equipped_ids)

        empty = shortlists.empty_slots()
        if empty:
            raise InsufficientPool(
                f"No available mod for slot(s): {', '.join(SLOT_NAMES[s] for s in empty)}",
                character_id,
            )

        set_bonus = bonus_values(plan, base_stats, self.catalog, weights=weights)
        negative_sets = [set_type for set_type in SetType if set_bonus[set_type] < 0]

        best_scores, available, best_index = shortlists.best_arrays()
        free_scores, free_available, free_sets, free_index = shortlists.free_arrays(negative_sets)
        totals, choices = self.evaluate(best_scores, available,
                                        free_scores, free_available, free_sets, set_bonus)

        picks = {
            c: self._picks(c, int(choices[c]), best_index, free_index)
            for c in np.flatnonzero(np.isfinite(totals)).tolist()
        }
        winner = self._pick_winner(totals, picks, candidates, equipped_ids)

        slots = {slot: candidates[idx] for slot, idx in picks[winner].items()}
        result = score_assignment(slots, plan, base_stats, self.catalog, weights=weights)

        if self.verbose:
            label_names = [
                'free' if label == FREE else SET_NAMES[SetType(label)]
                for label in self._labels[winner]
            ]
            print(f"  {character_id or plan.name}: {len(candidates)} candidates, "
                  f"{len(picks)}/{len(totals)} feasible compositions")
            print(f"    Winner: {'/'.join(label_names)}  Score: {result.score:.1f}")

        return result

    def _picks(self, c: int, code: int, best_index: np.ndarray,
               free_index: np.ndarray) -> Dict[SlotType, int]:
        """Candidate index per slot for composition c, decoding the kernel's free-slot choice."""
        n_opts = free_index.shape[1]
        picks = {}
        for slot in SlotType:
            label = self._labels[c, slot]
            if label == FREE:
                picks[slot] = int(free_index[slot, code % n_opts])
                code //= n_opts
            else:
                picks[slot] = int(best_index[slot, label])
        return picks

    def _pick_winner(self, totals: np.ndarray, picks: Mapping[int, Mapping[SlotType, int]],
                     candidates: Sequence[Mod], equipped_ids: FrozenSet[str]) -> int:
        """Highest total; ties keep the most equipped mods, then enumeration order."""
        best = float(np.max(totals))
        tolerance = TIE_TOLERANCE * max(1.0, abs(best))
        tied = np.flatnonzero(totals >= best - tolerance).tolist()
        if len(tied) == 1 or not equipped_ids:
            return int(tied[0])

        def kept(c: int) -> int:
            return sum(1 for idx in picks[c].values() if candidates[idx].id in equipped_ids)

        return int(max(tied, key=lambda c: (kept(c), -c)))
