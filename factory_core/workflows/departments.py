# factory_core/workflows/departments.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from factory_core.workflows.errors import UnknownDepartmentError

"""
Authoritative department pipeline.

This module is PURE LOGIC + DATA.
- No Django imports at module level
- Built once at process start and passed into the engine
- Sequence indexes are 1-based and contiguous
"""

# ===============================================================
# DEFAULT PIPELINE
# ===============================================================

DEFAULT_DEPARTMENTS: List[str] = [
    "CAD",
    "PRINT",
    "CASTING",
    "FILLING",
    "MEENA",
    "POLISH_1",
    "SETTING",
    "POLISH_2",
    "ADDITIONAL",
]

DISPLAY_NAMES: Dict[str, str] = {
    "CAD": "CAD Design",
    "PRINT": "3D Printing",
    "CASTING": "Casting",
    "FILLING": "Filling",
    "MEENA": "Meena Work",
    "POLISH_1": "First Polish",
    "SETTING": "Stone Setting",
    "POLISH_2": "Final Polish",
    "ADDITIONAL": "Additional Work",
}


def normalize_department(value: str) -> str:
    return str(value or "").strip().upper()


@dataclass(frozen=True)
class Department:
    code: str
    sequence_index: int
    display_name: str

    def __str__(self) -> str:
        return self.code


class DepartmentCatalog:
    """
    Immutable ordered list of departments.

    Unknown department codes are programmer errors and raise
    UnknownDepartmentError.
    """

    def __init__(self, codes: Iterable[str]):
        normalized = [normalize_department(c) for c in codes]
        normalized = [c for c in normalized if c]

        if not normalized:
            raise ValueError("Department catalog cannot be empty")

        duplicates = sorted({c for c in normalized if normalized.count(c) > 1})
        if duplicates:
            raise ValueError(f"Duplicate departments in catalog: {', '.join(duplicates)}")

        self._departments = tuple(
            Department(
                code=code,
                sequence_index=index,
                display_name=DISPLAY_NAMES.get(code, code.replace("_", " ").title()),
            )
            for index, code in enumerate(normalized, start=1)
        )
        self._by_code = {d.code: d for d in self._departments}

    def __len__(self) -> int:
        return len(self._departments)

    def __contains__(self, code: object) -> bool:
        return normalize_department(str(code)) in self._by_code

    def departments(self) -> List[Department]:
        return list(self._departments)

    def codes(self) -> List[str]:
        return [d.code for d in self._departments]

    def get(self, code: str) -> Department:
        key = normalize_department(code)
        try:
            return self._by_code[key]
        except KeyError:
            raise UnknownDepartmentError(
                f"Unknown department: {key or code!r}",
                details={"department": key},
            ) from None

    def first(self) -> Department:
        return self._departments[0]

    def next(self, code: str) -> Optional[Department]:
        dept = self.get(code)
        if dept.sequence_index >= len(self._departments):
            return None
        return self._departments[dept.sequence_index]

    def previous(self, code: str) -> Optional[Department]:
        dept = self.get(code)
        if dept.sequence_index <= 1:
            return None
        return self._departments[dept.sequence_index - 2]

    def is_last(self, code: str) -> bool:
        return self.get(code).sequence_index == len(self._departments)

    def choices(self) -> List[tuple]:
        return [(d.code, d.display_name) for d in self._departments]


# ===============================================================
# PROCESS-WIDE CATALOG
# ===============================================================

_catalog: Optional[DepartmentCatalog] = None


def get_catalog() -> DepartmentCatalog:
    """
    Return the catalog built from settings.FACTORY_WORKFLOW["DEPARTMENTS"].

    Built on first use and reused afterwards. Tests that need another
    pipeline construct their own DepartmentCatalog and inject it.
    """
    global _catalog
    if _catalog is None:
        from django.conf import settings

        workflow = getattr(settings, "FACTORY_WORKFLOW", {}) or {}
        _catalog = DepartmentCatalog(workflow.get("DEPARTMENTS") or DEFAULT_DEPARTMENTS)
    return _catalog


__all__ = [
    "DEFAULT_DEPARTMENTS",
    "DISPLAY_NAMES",
    "Department",
    "DepartmentCatalog",
    "normalize_department",
    "get_catalog",
]
