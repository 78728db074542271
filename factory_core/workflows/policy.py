# factory_core/workflows/policy.py
from __future__ import annotations

"""
Cross-department assignment policy.

    strict   : worker.department must equal the record's department
    override : mismatch allowed only when the caller passes override=True;
               the assignment is logged at WARNING and audited
    open     : any department may take any record (still logged)
"""

STRICT = "strict"
OVERRIDE = "override"
OPEN = "open"

POLICIES = {STRICT, OVERRIDE, OPEN}


def normalize_policy(value: str) -> str:
    policy = str(value or "").strip().lower()
    if policy not in POLICIES:
        raise ValueError(
            f"Unknown cross-department policy: {value!r}. "
            f"Use one of: {', '.join(sorted(POLICIES))}"
        )
    return policy


def configured_policy() -> str:
    from django.conf import settings

    workflow = getattr(settings, "FACTORY_WORKFLOW", {}) or {}
    return normalize_policy(workflow.get("CROSS_DEPARTMENT_POLICY") or OVERRIDE)


def cross_department_allowed(policy: str, *, override: bool) -> bool:
    policy = normalize_policy(policy)
    if policy == OPEN:
        return True
    if policy == OVERRIDE:
        return bool(override)
    return False
