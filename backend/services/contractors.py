"""Prime and tier-2 contractor suggestion with name-based deduplication."""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from backend.analysis.naics import naics_matches, normalize_naics
from backend.reference.store import ReferenceStore, thaw

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 25

_PUNCTUATION = re.compile(r"[,.'\"\-]")
_SUFFIX = re.compile(r"\s+(LLC|INC|CORP|CORPORATION|COMPANY|CO|LTD|LP|LLP)\.?$", re.IGNORECASE)
_SPACES = re.compile(r"\s+")


class PrimeContractor(BaseModel):
    name: str
    sblo_name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    naics_categories: List[str] = Field(default_factory=list)
    agencies: List[str] = Field(default_factory=list)
    contract_count: Optional[int] = None
    total_contract_value: Optional[float] = None
    has_subcontract_plan: Optional[bool] = None
    supplier_portal: Optional[str] = None
    # derived by enrich_prime
    specialties: Optional[List[str]] = None
    small_business_level: Optional[str] = None
    contact_strategy: Optional[str] = None
    opportunities: Optional[str] = None
    industries: Optional[List[str]] = None


class Tier2Contractor(BaseModel):
    name: str
    sblo_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    naics_categories: List[str] = Field(default_factory=list)
    tier_classification: Optional[str] = None
    works_with_primes: List[str] = Field(default_factory=list)
    agencies: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)


Contractor = Union[PrimeContractor, Tier2Contractor]


def normalize_company_name(name: str) -> str:
    """Identity key: "Atlas Federal Engineering, LLC" and "... LLC" collapse together."""
    cleaned = _PUNCTUATION.sub("", (name or "").upper())
    cleaned = _SUFFIX.sub("", cleaned)
    return _SPACES.sub(" ", cleaned).strip()


def contact_score(contractor: Contractor) -> int:
    score = 0
    if contractor.email:
        score += 3
    if contractor.phone:
        score += 2
    if contractor.sblo_name:
        score += 1
    if isinstance(contractor, PrimeContractor) and contractor.supplier_portal:
        score += 2
    return score


def rank_by_contact(contractors: Iterable[Contractor], limit: int = MAX_SUGGESTIONS) -> List[Contractor]:
    """Stable sort by contact completeness, best first."""
    return sorted(contractors, key=contact_score, reverse=True)[:limit]


def dedupe(contractors: Iterable[Contractor]) -> List[Contractor]:
    seen: Dict[str, Contractor] = {}
    for contractor in contractors:
        seen.setdefault(normalize_company_name(contractor.name), contractor)
    return list(seen.values())


def all_primes(store: ReferenceStore) -> List[PrimeContractor]:
    return [PrimeContractor(**thaw(p)) for p in store.contractors["primes"]]


def all_tier2(store: ReferenceStore) -> List[Tier2Contractor]:
    return [Tier2Contractor(**thaw(t)) for t in store.contractors["tier2"]]


def _by_naics(contractors: Sequence[Contractor], naics_code: str) -> List[Contractor]:
    wanted = normalize_naics(naics_code)
    if wanted is None:
        return []
    return [c for c in contractors if any(naics_matches(code, wanted) for code in c.naics_categories)]


def primes_by_naics(store: ReferenceStore, naics_code: str) -> List[PrimeContractor]:
    return _by_naics(all_primes(store), naics_code)


def tier2_by_naics(store: ReferenceStore, naics_code: str) -> List[Tier2Contractor]:
    return rank_by_contact(_by_naics(all_tier2(store), naics_code), limit=len(store.contractors["tier2"]))


def primes_by_agency(store: ReferenceStore, agency_name: str) -> List[PrimeContractor]:
    wanted = (agency_name or "").strip().lower()
    if not wanted:
        return []
    return [
        p for p in all_primes(store) if any(wanted in a.lower() or a.lower() in wanted for a in p.agencies)
    ]


def find_prime_by_name(store: ReferenceStore, name: str) -> Optional[PrimeContractor]:
    wanted = (name or "").strip().lower()
    if not wanted:
        return None
    for prime in all_primes(store):
        candidate = prime.name.lower()
        if wanted in candidate or candidate in wanted:
            return prime
    return None


def psc_to_naics(store: ReferenceStore, psc_code: Optional[str]) -> List[str]:
    """NAICS codes related to a PSC: two-character key first, then the first character."""
    code = (psc_code or "").strip().upper()
    if not code:
        return []
    table = store.contractors["psc_to_naics"]
    return list(table.get(code[:2]) or table.get(code[:1]) or ())


def primes_by_psc(store: ReferenceStore, psc_code: str) -> List[PrimeContractor]:
    related = psc_to_naics(store, psc_code)
    if not related:
        return rank_by_contact(dedupe(all_primes(store)))
    matching = [
        p
        for p in all_primes(store)
        if any(code.startswith(n[:3]) or n.startswith(code[:3]) for code in p.naics_categories for n in related)
    ]
    return rank_by_contact(dedupe(matching))


def _specialties(store: ReferenceStore, codes: Iterable[str]) -> List[str]:
    table = store.contractors["specialties"]
    found: List[str] = []
    for code in codes:
        label = table.get(code) or table.get(code[:3])
        if label and label not in found:
            found.append(label)
    return found


def _industries(store: ReferenceStore, codes: Iterable[str]) -> List[str]:
    table = store.contractors["industries"]
    found: List[str] = []
    for code in codes:
        label = table.get(code[:3])
        if label and label not in found:
            found.append(label)
    return found


def small_business_level(contract_count: Optional[int], total_value: Optional[float]) -> str:
    if not contract_count and not total_value:
        return "medium"
    if (contract_count and contract_count > 100) or (total_value and total_value > 10_000_000_000):
        return "high"
    if (not contract_count or contract_count < 10) and (not total_value or total_value < 100_000_000):
        return "low"
    return "medium"


def enrich_prime(store: ReferenceStore, prime: PrimeContractor) -> PrimeContractor:
    specialties = _specialties(store, prime.naics_categories)
    if prime.supplier_portal:
        strategy = f"Register in {prime.name} supplier portal at {prime.supplier_portal}"
    else:
        strategy = f"Contact {prime.sblo_name or 'SBLO'} at {prime.name}"
    return prime.copy(
        update={
            "specialties": specialties,
            "small_business_level": small_business_level(prime.contract_count, prime.total_contract_value),
            "contact_strategy": strategy,
            "opportunities": ", ".join(specialties),
            "industries": _industries(store, prime.naics_categories),
        }
    )


def _pain_point_primes(store: ReferenceStore, pain_points: Sequence[str]) -> List[PrimeContractor]:
    text = " ".join(pain_points).lower()
    codes: List[str] = []
    for keyword, mapped in store.contractors["pain_point_keywords"].items():
        if keyword in text:
            codes.extend(mapped)
    if not codes:
        return []
    return [p for p in all_primes(store) if any(c.startswith(m) for c in p.naics_categories for m in codes)]


def suggest_contractors(
    store: ReferenceStore,
    naics_code: Optional[str] = None,
    psc_code: Optional[str] = None,
    agencies: Sequence[str] = (),
    pain_points: Sequence[str] = (),
) -> List[PrimeContractor]:
    """Suggest up to 25 primes, deduplicated by normalized name.

    NAICS matches (or PSC-derived matches when no NAICS is given) fill the
    result first; agency matches and pain-point keyword matches only add new
    names. The result is ranked by contact completeness, then enriched.
    """
    suggestions: Dict[str, PrimeContractor] = {}

    def add(candidates: Iterable[PrimeContractor]) -> None:
        for prime in candidates:
            suggestions.setdefault(normalize_company_name(prime.name), prime)

    if naics_code and naics_code.strip():
        add(primes_by_naics(store, naics_code))
    elif psc_code and psc_code.strip():
        add(primes_by_psc(store, psc_code))

    for agency in agencies:
        add(primes_by_agency(store, agency))

    if pain_points:
        add(_pain_point_primes(store, pain_points))

    ranked = rank_by_contact(suggestions.values())
    logger.debug("Suggested %d primes (naics=%s psc=%s)", len(ranked), naics_code, psc_code)
    return [enrich_prime(store, p) for p in ranked]


def suggest_tier2(
    store: ReferenceStore,
    naics_code: Optional[str] = None,
    psc_code: Optional[str] = None,
) -> List[Tier2Contractor]:
    """Tier-2 suggestions by NAICS, else PSC-derived NAICS, else the whole roster."""
    suggestions: Dict[str, Tier2Contractor] = {}

    def add(candidates: Iterable[Tier2Contractor]) -> None:
        for tier2 in candidates:
            suggestions.setdefault(normalize_company_name(tier2.name), tier2)

    if naics_code and naics_code.strip():
        add(tier2_by_naics(store, naics_code))
    elif psc_code and psc_code.strip():
        for related in psc_to_naics(store, psc_code):
            add(tier2_by_naics(store, related))

    if not suggestions:
        return rank_by_contact(dedupe(all_tier2(store)))
    return rank_by_contact(suggestions.values())


__all__ = [
    "MAX_SUGGESTIONS",
    "PrimeContractor",
    "Tier2Contractor",
    "all_primes",
    "all_tier2",
    "contact_score",
    "dedupe",
    "enrich_prime",
    "find_prime_by_name",
    "normalize_company_name",
    "primes_by_agency",
    "primes_by_naics",
    "primes_by_psc",
    "psc_to_naics",
    "rank_by_contact",
    "small_business_level",
    "suggest_contractors",
    "suggest_tier2",
]
