"""ZIP code to state resolution and bordering-state expansion."""
from __future__ import annotations

import re
from typing import Dict, List, Optional

from backend.analysis.criteria import InvalidSearchCriteria
from backend.reference.store import ReferenceStore

_ZIP = re.compile(r"^(\d{5})(?:-\d{4})?$")


def validate_zip(zip_code: Optional[str]) -> Optional[str]:
    """Return the 5-digit ZIP, ``None`` for blank input."""
    if zip_code is None or not zip_code.strip():
        return None
    match = _ZIP.match(zip_code.strip())
    if not match:
        raise InvalidSearchCriteria("invalid_zip", f"ZIP code '{zip_code.strip()}' must be 5 digits (or ZIP+4).")
    return match.group(1)


def state_from_zip(zip_code: Optional[str], store: ReferenceStore) -> Optional[str]:
    five = validate_zip(zip_code)
    if five is None:
        return None
    number = int(five)
    for state, ranges in store.locations["zip_ranges"].items():
        for low, high in ranges:
            if low <= number <= high:
                return state
    return None


def bordering_states(state: str, store: ReferenceStore) -> List[str]:
    return list(store.locations["borders"].get(state, ()))


def location_filter(zip_code: Optional[str], store: ReferenceStore) -> Optional[List[Dict[str, str]]]:
    """Place-of-performance filter for the ZIP's state plus its neighbours."""
    state = state_from_zip(zip_code, store)
    if state is None:
        return None
    states = [state] + [s for s in bordering_states(state, store) if s != state]
    return [{"country": "USA", "state": s} for s in states]


__all__ = ["bordering_states", "location_filter", "state_from_zip", "validate_zip"]
