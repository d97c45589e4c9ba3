"""
Optimizer error kinds

Per-character errors (MissingPlan, InsufficientPool) are collected in the run
result and the run continues. InventoryIntegrityViolation aborts the whole run
before anything is committed. Cancelled marks a run stopped by its caller.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(Enum):
    MISSING_PLAN = 'missing_plan'
    INSUFFICIENT_POOL = 'insufficient_pool'
    INVENTORY_INTEGRITY_VIOLATION = 'inventory_integrity_violation'
    CANCELLED = 'cancelled'


class OptimizerError(Exception):
    """Base class for every error the optimizer reports."""
    kind: ErrorKind = ErrorKind.INVENTORY_INTEGRITY_VIOLATION

    def __init__(self, message: str, character_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.character_id = character_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'character_id': self.character_id,
            'message': self.message,
        }

    def __str__(self) -> str:
        if self.character_id:
            return f"[{self.character_id}] {self.message}"
        return self.message


class MissingPlan(OptimizerError):
    kind = ErrorKind.MISSING_PLAN

    def __init__(self, character_id: str):
        super().__init__("No optimization plan is bound to this character", character_id)


class InsufficientPool(OptimizerError):
    kind = ErrorKind.INSUFFICIENT_POOL


class InventoryIntegrityViolation(OptimizerError):
    kind = ErrorKind.INVENTORY_INTEGRITY_VIOLATION


class Cancelled(OptimizerError):
    kind = ErrorKind.CANCELLED

    def __init__(self, character_id: Optional[str] = None):
        message = "Optimization was cancelled"
        if character_id:
            message += f" before '{character_id}' was committed"
        super().__init__(message, character_id)
