# factory_core/workflows/__init__.py
from __future__ import annotations

from typing import Any, Dict, List, Set

from factory_core.workflows.errors import IllegalTransitionError


# ===============================================================
# Canonical workflow definitions
# ===============================================================

NOT_STARTED = "NOT_STARTED"
PENDING_ASSIGNMENT = "PENDING_ASSIGNMENT"
IN_PROGRESS = "IN_PROGRESS"
ON_HOLD = "ON_HOLD"
COMPLETED = "COMPLETED"

TRACKING_STATES: Set[str] = {
    NOT_STARTED,
    PENDING_ASSIGNMENT,
    IN_PROGRESS,
    ON_HOLD,
    COMPLETED,
}

# PENDING_ASSIGNMENT -> PENDING_ASSIGNMENT covers unassigning a worker who
# was assigned but never started.
TRACKING_TRANSITIONS: Dict[str, Set[str]] = {
    NOT_STARTED: {PENDING_ASSIGNMENT},
    PENDING_ASSIGNMENT: {IN_PROGRESS, PENDING_ASSIGNMENT},
    IN_PROGRESS: {COMPLETED, ON_HOLD, PENDING_ASSIGNMENT},
    ON_HOLD: {IN_PROGRESS, PENDING_ASSIGNMENT},
    COMPLETED: set(),
}

ORDER_DRAFT = "DRAFT"
ORDER_IN_FACTORY = "IN_FACTORY"
ORDER_COMPLETED = "COMPLETED"

ORDER_STATES: Set[str] = {ORDER_DRAFT, ORDER_IN_FACTORY, ORDER_COMPLETED}

ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    ORDER_DRAFT: {ORDER_IN_FACTORY},
    ORDER_IN_FACTORY: {ORDER_COMPLETED},
    ORDER_COMPLETED: set(),
}


def normalize_state(value: str) -> str:
    return str(value or "").strip().upper()


def _transitions_for_kind(kind: str) -> Dict[str, Set[str]]:
    k = normalize_state(kind)
    if k == "TRACKING":
        return TRACKING_TRANSITIONS
    if k == "ORDER":
        return ORDER_TRANSITIONS
    return {}


def _states_for_kind(kind: str) -> Set[str]:
    k = normalize_state(kind)
    if k == "TRACKING":
        return TRACKING_STATES
    if k == "ORDER":
        return ORDER_STATES
    return set()


# ===============================================================
# Public workflow API
# ===============================================================

def validate_transition(kind: str, current: str, target: str) -> None:
    """
    Raises IllegalTransitionError if current -> target is not part of the
    canonical workflow for kind ("tracking" or "order").
    """
    k = normalize_state(kind)
    cur = normalize_state(current)
    tgt = normalize_state(target)

    states = _states_for_kind(k)
    trans = _transitions_for_kind(k)

    if not states or not trans:
        raise ValueError(f"Unknown workflow kind: {kind}")

    if cur not in states:
        raise IllegalTransitionError(f"Unknown {k.lower()} state: {cur}", details={"state": cur})

    if tgt not in states:
        raise IllegalTransitionError(f"Unknown {k.lower()} state: {tgt}", details={"state": tgt})

    if tgt not in trans.get(cur, set()):
        raise IllegalTransitionError(
            f"Invalid {k.lower()} transition: {cur} -> {tgt}",
            details={"from": cur, "to": tgt},
        )


def allowed_next_states(kind: str, current: str) -> List[str]:
    trans = _transitions_for_kind(kind)
    if not trans:
        return []
    return sorted(trans.get(normalize_state(current), set()))


def is_terminal(kind: str, current: str) -> bool:
    return not allowed_next_states(kind, current)


def workflow_definition(kind: str | None = None) -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for diagnostics.
    """
    def _one(k: str) -> Dict[str, Any]:
        kk = normalize_state(k)
        if kk not in {"TRACKING", "ORDER"}:
            raise ValueError(f"Unsupported workflow kind: {k}")
        return {
            "kind": kk.lower(),
            "states": sorted(_states_for_kind(kk)),
            "transitions": {
                state: sorted(nxt) for state, nxt in _transitions_for_kind(kk).items()
            },
        }

    if kind is None:
        return {"tracking": _one("tracking"), "order": _one("order")}
    return _one(kind)


__all__ = [
    "NOT_STARTED",
    "PENDING_ASSIGNMENT",
    "IN_PROGRESS",
    "ON_HOLD",
    "COMPLETED",
    "TRACKING_STATES",
    "TRACKING_TRANSITIONS",
    "ORDER_DRAFT",
    "ORDER_IN_FACTORY",
    "ORDER_COMPLETED",
    "ORDER_STATES",
    "ORDER_TRANSITIONS",
    "normalize_state",
    "validate_transition",
    "allowed_next_states",
    "is_terminal",
    "workflow_definition",
]
