"""Alternative, looser searches offered when a search comes back sparse."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import requests
from pydantic import BaseModel

from backend.analysis.naics import industry_name, naics_prefix
from backend.connectors.usaspending import PAGE_LIMIT, probe_award_count
from backend.reference.store import ReferenceStore
from backend.services.query import SearchCriteria, compile_query
from backend.settings import Settings

logger = logging.getLogger("agencyscope.search")

SPARSE_OFFICE_COUNT = 10
FULL_PAGE_ESTIMATE = 1000
PARTIAL_PAGE_MULTIPLIER = 5
LOCATION_MIN_GAIN = 1.5
MAX_SET_ASIDE_ALTERNATIVES = 3


class AlternativeSearchOption(BaseModel):
    type: str
    label: str
    value: str
    estimated_contracts: int
    description: str
    criteria: SearchCriteria


class _Candidate(BaseModel):
    type: str
    label: str
    value: str
    description: str  # formatted with the estimate
    criteria: SearchCriteria
    min_gain: float = 1.0


def estimate_from_probe(count: Optional[int]) -> Optional[int]:
    """A full first page suggests many more rows; a partial page is scaled up."""
    if count is None:
        return None
    if count >= PAGE_LIMIT:
        return FULL_PAGE_ESTIMATE
    return count * PARTIAL_PAGE_MULTIPLIER


def should_broaden(criteria: SearchCriteria, office_count: int, auto_adjusted: bool) -> bool:
    return (office_count < SPARSE_OFFICE_COUNT or auto_adjusted) and criteria.has_filters()


def build_candidates(criteria: SearchCriteria, store: ReferenceStore, state: Optional[str]) -> List[_Candidate]:
    """Relaxed criteria, least aggressive first."""
    naics = (criteria.naics_code or "").strip() or None
    business = criteria.business_type
    set_aside = bool(business or criteria.veteran_status)
    candidates: List[_Candidate] = []

    if business:
        others = [label for label in store.set_asides["business_types"] if label != business]
        for label in others[:MAX_SET_ASIDE_ALTERNATIVES]:
            candidates.append(
                _Candidate(
                    type="set-aside",
                    label=label,
                    value=label,
                    description="~{n} contracts available for " + label + " businesses",
                    criteria=criteria.copy(update={"business_type": label}),
                )
            )

    if criteria.zip_code and state:
        candidates.append(
            _Candidate(
                type="location",
                label="Nationwide Search",
                value="nationwide",
                description="~{n} contracts available nationwide (currently searching in "
                + state
                + " and bordering states)",
                criteria=criteria.copy(update={"zip_code": None}),
                min_gain=LOCATION_MIN_GAIN,
            )
        )

    prefix = naics_prefix(naics)
    if prefix and prefix in store.naics["expansion"]:
        industry = industry_name(prefix, store) or f"NAICS {prefix}"
        candidates.append(
            _Candidate(
                type="naics-prefix",
                label=f"All {industry} (NAICS {prefix}xx)",
                value=f"naics-prefix:{prefix}",
                description="~{n} contracts in the " + industry + f" industry (all {prefix}xx codes)",
                criteria=criteria.copy(update={"naics_code": prefix}),
            )
        )
    else:
        prefix = None

    if set_aside:
        candidates.append(
            _Candidate(
                type="remove-set-aside",
                label="Remove Business Type Filter",
                value="no-set-aside",
                description="~{n} contracts across all business types with your other filters",
                criteria=criteria.copy(update={"business_type": None, "veteran_status": None}),
            )
        )

    if naics and criteria.zip_code and set_aside:
        candidates.append(
            _Candidate(
                type="naics-only",
                label="Keep NAICS Only",
                value=f"naics-only:{naics}",
                description=f"~{{n}} contracts for NAICS {naics} with no location or business type filter",
                criteria=SearchCriteria(naics_code=naics, goods_or_services=criteria.goods_or_services),
            )
        )

    if prefix and criteria.zip_code:
        candidates.append(
            _Candidate(
                type="naics-prefix-nationwide",
                label=f"Expand to {prefix}xx Industry, All Locations",
                value=f"naics-prefix-nationwide:{prefix}",
                description=f"~{{n}} contracts in all {prefix}xx codes across all locations",
                criteria=criteria.copy(update={"naics_code": prefix, "zip_code": None}),
            )
        )

    if naics and criteria.zip_code and set_aside:
        candidates.append(
            _Candidate(
                type="set-aside-only",
                label="Keep Business Type Only",
                value="set-aside-only",
                description="~{n} contracts for your business type with no NAICS or location filter",
                criteria=criteria.copy(update={"naics_code": None, "zip_code": None}),
            )
        )

    if criteria.has_filters():
        candidates.append(
            _Candidate(
                type="no-filters",
                label="Remove All Filters",
                value="all",
                description="~{n} contracts with no filters applied",
                criteria=SearchCriteria(goods_or_services=criteria.goods_or_services),
            )
        )

    return candidates


def _probe(
    candidate: _Candidate,
    store: ReferenceStore,
    settings: Settings,
    session: requests.Session,
) -> Optional[int]:
    filters = compile_query(candidate.criteria, store, settings).filters
    count = probe_award_count(
        filters,
        session=session,
        url=settings.usaspending_url,
        timeout=settings.probe_timeout_seconds,
    )
    return estimate_from_probe(count)


def broaden(
    criteria: SearchCriteria,
    current_result_count: int,
    current_office_count: int,
    auto_adjusted: bool,
    store: ReferenceStore,
    settings: Settings,
    session: requests.Session,
) -> List[AlternativeSearchOption]:
    """Probe each relaxed search concurrently and keep the ones that would find more.

    Probes that fail are dropped. Options keep candidate order.
    """
    if not should_broaden(criteria, current_office_count, auto_adjusted):
        return []

    state = compile_query(criteria, store, settings).state
    candidates = build_candidates(criteria, store, state)
    if not candidates:
        return []

    with ThreadPoolExecutor(max_workers=settings.probe_workers) as pool:
        estimates = list(pool.map(lambda c: _probe(c, store, settings, session), candidates))

    options: List[AlternativeSearchOption] = []
    probed: List[Tuple[str, Optional[int]]] = []
    for candidate, estimate in zip(candidates, estimates):
        probed.append((candidate.type, estimate))
        if estimate is None or estimate <= current_result_count:
            continue
        if estimate < current_result_count * candidate.min_gain:
            continue
        options.append(
            AlternativeSearchOption(
                type=candidate.type,
                label=candidate.label,
                value=candidate.value,
                estimated_contracts=estimate,
                description=candidate.description.format(n=f"{estimate:,}"),
                criteria=candidate.criteria,
            )
        )

    logger.info("Probed %d alternatives, %d surfaced: %s", len(candidates), len(options), probed)
    return options


__all__ = [
    "AlternativeSearchOption",
    "build_candidates",
    "broaden",
    "estimate_from_probe",
    "should_broaden",
]
