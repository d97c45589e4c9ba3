#!/usr/bin/env python3
"""
Mod Optimizer - FastAPI Backend

REST endpoints for running the mod optimizer, synchronously or as
cancellable background runs.
"""

import threading
import traceback
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from models import SET_NAMES, SLOT_NAMES, STAT_NAMES, TARGET_NAMES, TargetStat
from errors import InventoryIntegrityViolation
from allocator import RunResult, optimize, run_in_background
from inventory_loader import parse_run
from optimization_strategies import STRATEGIES
from set_bonuses import SET_BONUSES
from slot_assigner import enumerate_compositions


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="Mod Optimizer",
    description="Assigns mods to characters in priority order, exploiting set bonuses",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =============================================================================
# Global State
# =============================================================================

class BackgroundRun:
    """A run submitted to the worker pool."""
    def __init__(self, run_id: str, future: Future, cancel_event: threading.Event):
        self.run_id = run_id
        self.future = future
        self.cancel_event = cancel_event


class AppState:
    """Global application state."""
    def __init__(self):
        self.executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='mod-optimizer')
        self.runs: Dict[str, BackgroundRun] = {}
        self.verbose: bool = True

state = AppState()

# =============================================================================
# Pydantic Models for API
# =============================================================================

class StatusResponse(BaseModel):
    status: str
    composition_count: int
    set_count: int
    strategy_count: int
    active_runs: int

class StatModel(BaseModel):
    stat: str
    value: float
    rolls: int = 1

class ModModel(BaseModel):
    id: str
    slot: str
    set: str
    primary: StatModel
    secondaries: List[StatModel] = []
    tier: int = 5
    level: int = 15
    locked: bool = False
    owner: Optional[str] = None

class CharacterModel(BaseModel):
    base_id: str
    strategy: Optional[str] = None
    plan_name: Optional[str] = None
    weights: Optional[Dict[str, float]] = None
    advanced: bool = False
    damage_type: Optional[str] = None
    locked: bool = False
    base_stats: Optional[Dict[str, float]] = None

class OptimizeRequest(BaseModel):
    characters: List[CharacterModel]
    mods: List[ModModel]
    threshold: int = 0
    locked_characters: List[str] = []
    locked_mods: List[str] = []

class CharacterResultModel(BaseModel):
    character_id: str
    status: str
    assignment: Dict[str, str]
    score: float
    previous_score: float
    active_sets: List[str]
    error: Optional[Dict[str, Any]] = None

class OptimizeResponse(BaseModel):
    success: bool
    results: List[CharacterResultModel] = []
    leftover: List[str] = []
    errors: List[Dict[str, Any]] = []
    ownership: Dict[str, Optional[str]] = {}
    cancelled: bool = False
    error: Optional[str] = None

class RunCreatedResponse(BaseModel):
    run_id: str

class RunStatusResponse(BaseModel):
    run_id: str
    state: str
    result: Optional[OptimizeResponse] = None


# =============================================================================
# Helpers
# =============================================================================

def build_run_input(request: OptimizeRequest):
    """Validate a request into a RunInput (422 on bad inventories, 400 on bad plans)."""
    try:
        return parse_run(request.model_dump())
    except InventoryIntegrityViolation as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def format_result(result: RunResult) -> OptimizeResponse:
    return OptimizeResponse(
        success=not result.cancelled,
        results=[
            CharacterResultModel(
                character_id=r.character_id,
                status=r.status.value,
                assignment={SLOT_NAMES[slot]: mod_id for slot, mod_id in r.assignment.items()},
                score=r.score,
                previous_score=r.previous_score,
                active_sets=[SET_NAMES[s] for s in r.active_sets],
                error=r.error.to_dict() if r.error else None,
            )
            for r in result.results
        ],
        leftover=[mod.id for mod in result.leftover],
        errors=[e.to_dict() for e in result.errors],
        ownership=result.ownership,
        cancelled=result.cancelled,
    )


# =============================================================================
# API Endpoints
# =============================================================================

@app.get("/api/status", response_model=StatusResponse)
async def get_status():
    """Get the current application status."""
    labels, _ = enumerate_compositions(SET_BONUSES)
    active = sum(1 for run in state.runs.values() if not run.future.done())
    return StatusResponse(
        status="ready",
        composition_count=len(labels),
        set_count=len(SET_BONUSES),
        strategy_count=len(STRATEGIES),
        active_runs=active,
    )


@app.get("/api/set-bonuses")
async def get_set_bonuses():
    """The set bonus catalog."""
    return {
        "sets": [
            {
                "set": SET_NAMES[rule.set_type],
                "required_count": rule.required_count,
                "bonus": {"stat": STAT_NAMES[rule.bonus.kind], "value": rule.bonus.value},
            }
            for rule in SET_BONUSES.values()
        ]
    }


@app.get("/api/strategies")
async def get_strategies():
    """Available plan templates."""
    return {
        "strategies": [
            {
                "name": name,
                "weights": {TARGET_NAMES[t]: plan.weight(t) for t in TargetStat if plan.weight(t)},
                "damage_type": plan.damage_type.name.lower() if plan.damage_type is not None else None,
            }
            for name, plan in STRATEGIES.items()
        ]
    }


@app.post("/api/optimize", response_model=OptimizeResponse)
async def run_optimization(request: OptimizeRequest):
    """Run the optimizer and wait for the result."""
    run_input = build_run_input(request)
    try:
        result = optimize(run_input, verbose=state.verbose)
    except InventoryIntegrityViolation as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
    return format_result(result)


@app.post("/api/runs", response_model=RunCreatedResponse)
async def start_run(request: OptimizeRequest):
    """Start a background run."""
    run_input = build_run_input(request)
    cancel_event = threading.Event()
    future = run_in_background(run_input, executor=state.executor,
                               cancel_event=cancel_event, verbose=state.verbose)
    run_id = uuid.uuid4().hex
    state.runs[run_id] = BackgroundRun(run_id, future, cancel_event)
    return RunCreatedResponse(run_id=run_id)


def _get_run(run_id: str) -> BackgroundRun:
    run = state.runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown run: {run_id}")
    return run


@app.get("/api/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(run_id: str):
    """
    Status of a background run, with its result once finished.

    A finished run is forgotten once its result has been returned.
    """
    run = _get_run(run_id)
    if not run.future.done():
        return RunStatusResponse(run_id=run_id, state="running")

    state.runs.pop(run_id, None)

    error = run.future.exception()
    if error is not None:
        if isinstance(error, InventoryIntegrityViolation):
            detail = error.message
        else:
            print(f"Run {run_id} failed:")
            traceback.print_exception(type(error), error, error.__traceback__)
            detail = str(error)
        return RunStatusResponse(
            run_id=run_id,
            state="failed",
            result=OptimizeResponse(success=False, error=detail),
        )

    result = run.future.result()
    return RunStatusResponse(
        run_id=run_id,
        state="cancelled" if result.cancelled else "done",
        result=format_result(result),
    )


@app.post("/api/runs/{run_id}/cancel", response_model=RunStatusResponse)
async def cancel_run(run_id: str):
    """Ask a background run to stop before its next character."""
    run = _get_run(run_id)
    run.cancel_event.set()
    return RunStatusResponse(
        run_id=run_id,
        state="running" if not run.future.done() else "finished",
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    print("=" * 60)
    print("Mod Optimizer - Web Server")
    print("=" * 60)
    print("Starting server at http://localhost:8000")
    print("API docs available at http://localhost:8000/docs")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=8000)
