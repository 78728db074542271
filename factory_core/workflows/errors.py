# factory_core/workflows/errors.py

"""
Workflow error taxonomy.

Every failure the engine can report is a WorkflowError subclass carrying a
stable ``code`` and a ``details`` dict, so an API layer can map it to a
response without parsing messages.

Retry semantics:
- ConcurrentModificationError is transient; callers retry once
  (see engine.retry_on_conflict) and then surface it.
- Everything else is final for the given input.
"""

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class IllegalTransitionError(WorkflowError):
    """Operation is not valid for the record's current state."""

    code = "ILLEGAL_TRANSITION"


class InvalidStateError(WorkflowError):
    """Queue precondition failed (programmer error)."""

    code = "INVALID_STATE"


class InvalidWeightError(WorkflowError):
    code = "INVALID_WEIGHT"


class InvalidArgumentError(WorkflowError, ValueError):
    code = "INVALID_ARGUMENT"


class WorkerUnavailableError(WorkflowError):
    code = "WORKER_UNAVAILABLE"


class AlreadyAssignedError(WorkflowError):
    code = "ALREADY_ASSIGNED"


class DepartmentMismatchError(WorkflowError):
    code = "WORKER_WRONG_DEPARTMENT"


class ConcurrentModificationError(WorkflowError):
    code = "CONCURRENT_MODIFICATION"


class InvariantViolationError(WorkflowError):
    """Persisted state contradicts a workflow invariant. Never worked around."""

    code = "INVARIANT_VIOLATION"


class UnknownDepartmentError(WorkflowError, LookupError):
    code = "INVALID_DEPARTMENT"


class RecordNotFoundError(WorkflowError, LookupError):
    code = "NOT_FOUND"


__all__ = [
    "WorkflowError",
    "IllegalTransitionError",
    "InvalidStateError",
    "InvalidArgumentError",
    "InvalidWeightError",
    "WorkerUnavailableError",
    "AlreadyAssignedError",
    "DepartmentMismatchError",
    "ConcurrentModificationError",
    "InvariantViolationError",
    "UnknownDepartmentError",
    "RecordNotFoundError",
]
