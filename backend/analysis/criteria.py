"""Validation of caller-supplied search criteria."""
from __future__ import annotations

import re
from typing import Dict, List, Optional

from backend.reference.store import ReferenceStore

_PSC = re.compile(r"^[A-Z0-9]{1,4}$")


class InvalidSearchCriteria(ValueError):
    """Raised when a caller supplies a filter value that can never match."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, object]:
        return {"success": False, "error": self.code, "message": self.message}


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9()]+", "-", value.strip().lower()).strip("-")


def _resolve_label(value: Optional[str], table, error_code: str, kind: str) -> Optional[str]:
    if value is None or not value.strip():
        return None
    wanted = value.strip()
    for label, entry in table.items():
        if wanted.lower() == label.lower():
            return label
        aliases = {a.lower() for a in entry.get("aliases", ())}
        if wanted.lower() in aliases or _slug(wanted) in aliases:
            return label
    known = ", ".join(table.keys())
    raise InvalidSearchCriteria(error_code, f"Unknown {kind} '{wanted}'. Expected one of: {known}.")


def resolve_business_type(value: Optional[str], store: ReferenceStore) -> Optional[str]:
    """Map a business type label or alias to its canonical label."""
    return _resolve_label(value, store.set_asides["business_types"], "unknown_business_type", "business type")


def resolve_veteran_status(value: Optional[str], store: ReferenceStore) -> Optional[str]:
    return _resolve_label(value, store.set_asides["veteran_statuses"], "unknown_veteran_status", "veteran status")


def set_aside_codes(
    business_type: Optional[str],
    veteran_status: Optional[str],
    store: ReferenceStore,
) -> List[str]:
    """Combined USAspending set-aside type codes for the business and veteran labels."""
    codes: List[str] = []
    if business_type:
        codes.extend(store.set_asides["business_types"][business_type]["codes"])
    if veteran_status:
        codes.extend(store.set_asides["veteran_statuses"][veteran_status]["codes"])
    # duplicates collapse while keeping order
    return list(dict.fromkeys(codes))


def is_set_aside_marker(value: Optional[str], store: ReferenceStore) -> bool:
    """True when a record's set-aside field names an actual set-aside."""
    if value is None:
        return False
    return str(value).strip() not in store.set_asides["empty_markers"]


def validate_psc(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    code = value.strip().upper()
    if not _PSC.match(code):
        raise InvalidSearchCriteria("invalid_psc", f"PSC code '{value.strip()}' must be 1-4 letters or digits.")
    return code


__all__ = [
    "InvalidSearchCriteria",
    "is_set_aside_marker",
    "resolve_business_type",
    "resolve_veteran_status",
    "set_aside_codes",
    "validate_psc",
]
