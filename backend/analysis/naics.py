"""NAICS code validation, trailing-zero correction and prefix expansion."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from backend.analysis.criteria import InvalidSearchCriteria
from backend.reference.store import ReferenceStore

_DIGITS = re.compile(r"^\d{2,6}$")


@dataclass(frozen=True)
class NaicsFilter:
    original: str
    normalized: str
    codes: Tuple[str, ...]
    message: Optional[str] = None


def industry_name(code: str, store: ReferenceStore) -> Optional[str]:
    return store.naics["industry_names"].get(code)


def _sector_label(code: str, store: ReferenceStore) -> str:
    return industry_name(code, store) or f"Sector {code}"


def _subsector_label(code: str, store: ReferenceStore) -> str:
    return industry_name(code, store) or f"{code}xx industry"


def _correct_trailing_zeros(code: str, store: ReferenceStore) -> Tuple[str, Optional[str]]:
    """Collapse placeholder codes such as 810000 or 8110 to their sector/subsector."""
    length = len(code)
    if (length == 6 and code.endswith("0000")) or (length == 5 and code.endswith("000")) or (
        length == 4 and code.endswith("00")
    ):
        sector = code[:2]
        return sector, f"NAICS {code} was expanded to search all codes in the {_sector_label(sector, store)} sector."
    if length == 6 and code.endswith("000"):
        prefix = code[:3]
        return prefix, (
            f"NAICS {code} was expanded to search all {prefix}xx codes in the "
            f"{_subsector_label(prefix, store)} sector."
        )
    if (length == 5 and code.endswith("00")) or (length == 4 and code.endswith("0")):
        prefix = code[:3]
        return prefix, f"NAICS {code} was expanded to search all {prefix}xx codes."
    return code, None


def resolve_naics_filter(raw_code: Optional[str], store: ReferenceStore) -> Optional[NaicsFilter]:
    """Validate a NAICS code and expand it into the list of codes to query.

    Returns ``None`` for a blank input and raises :class:`InvalidSearchCriteria`
    when the value is not a 2 to 6 digit code.
    """
    if raw_code is None or not raw_code.strip():
        return None
    original = raw_code.strip()
    if not _DIGITS.match(original):
        raise InvalidSearchCriteria(
            "invalid_naics",
            f'The NAICS code "{original}" does not exist. NAICS codes are 2 to 6 digits.',
        )

    expansion = store.naics["expansion"]
    code, message = _correct_trailing_zeros(original, store)

    if len(code) == 2:
        codes = expansion.get(code) or (code,)
        return NaicsFilter(original, code, tuple(codes), message)

    if len(code) in (3, 4, 5):
        prefix = code[:3]
        codes = expansion.get(prefix)
        if codes:
            if len(code) > 3 and message is None:
                message = (
                    f"NAICS {code} expanded to search all {prefix}xx codes in the "
                    f"{_subsector_label(prefix, store)} subsector."
                )
            return NaicsFilter(original, code, tuple(codes), message)
        sector = code[:2]
        codes = expansion.get(sector)
        if codes:
            if len(code) == 3:
                message = (
                    f"NAICS {code} is not a standard code. Expanded to search all codes in the "
                    f"{_sector_label(sector, store)} sector."
                )
            else:
                message = f"NAICS {code} expanded to search all codes in the {_sector_label(sector, store)} sector."
            return NaicsFilter(original, code, tuple(codes), message)
        return NaicsFilter(original, code, (code,), message)

    return NaicsFilter(original, code, (code,), message)


@dataclass(frozen=True)
class NaicsCodes:
    """A NAICS code with the related codes it should match against rosters."""

    original: str
    codes: Tuple[str, ...]
    prefix: str
    sector: str


def normalize_naics(code: Optional[str]) -> Optional[NaicsCodes]:
    cleaned = re.sub(r"\D", "", code or "")
    if len(cleaned) < 2:
        return None
    prefix, sector = cleaned[:3], cleaned[:2]
    if len(cleaned) == 6 and cleaned.endswith("0000"):
        codes: Tuple[str, ...] = (sector,)
        prefix = sector
    elif len(cleaned) == 6 and cleaned.endswith("000"):
        codes = (prefix, sector)
    elif len(cleaned) <= 3:
        codes = (cleaned, sector) if len(cleaned) == 3 else (cleaned,)
    else:
        codes = (cleaned, prefix, sector)
    return NaicsCodes(cleaned, codes, prefix, sector)


def naics_matches(candidate: str, wanted: NaicsCodes) -> bool:
    """Roster NAICS ``candidate`` matches by equality, prefix either way, or sector."""
    candidate = candidate.strip()
    if not candidate:
        return False
    for code in wanted.codes:
        if candidate == code or candidate.startswith(code) or code.startswith(candidate):
            return True
    return candidate.startswith(wanted.sector)


def naics_prefix(code: Optional[str]) -> Optional[str]:
    """Three-digit prefix used when broadening a NAICS search."""
    if not code:
        return None
    code = code.strip()
    return code[:3] if len(code) >= 4 else None


__all__ = [
    "NaicsCodes",
    "NaicsFilter",
    "industry_name",
    "naics_matches",
    "naics_prefix",
    "normalize_naics",
    "resolve_naics_filter",
]
