"""Government contract search: fetch, fall back, aggregate, rank and suggest."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field

from backend.analysis.aggregate import aggregate_awards, apply_display_names, rank_offices
from backend.analysis.normalizer import normalizer_for
from backend.connectors.http import build_retrying_session
from backend.connectors.usaspending import FALLBACK_MAX_PAGES, adapt_award_records, fetch_award_pages
from backend.reference.store import ReferenceStore
from backend.services.broaden import AlternativeSearchOption, broaden, should_broaden
from backend.services.query import CompiledQuery, SearchCriteria, compile_query
from backend.settings import Settings

logger = logging.getLogger("agencyscope.search")


class SearchSummary(BaseModel):
    total_awards: int = 0
    total_agencies: int = 0
    total_spending: float = 0.0


class SearchResponse(BaseModel):
    success: bool = True
    search_criteria: SearchCriteria
    summary: SearchSummary = Field(default_factory=SearchSummary)
    agencies: List[Dict[str, Any]] = Field(default_factory=list)
    suggestions: List[AlternativeSearchOption] = Field(default_factory=list)
    suggestion_message: Optional[str] = None
    naics_correction_message: Optional[str] = None
    was_auto_adjusted: bool = False


def suggestion_message(result_count: int, office_count: int) -> str:
    noun = "agency" if office_count == 1 else "agencies"
    return f"Found {result_count} contracts from {office_count} {noun}. Here are some ways to expand your search:"


def _fetch(query_filters, max_pages: int, settings: Settings, session: requests.Session) -> List[Dict[str, Any]]:
    return fetch_award_pages(
        query_filters,
        max_pages,
        session=session,
        url=settings.usaspending_url,
        page_delay=settings.page_delay_seconds,
        timeout=settings.page_timeout_seconds,
    )


def _fallback(query: CompiledQuery):
    """Filters and message for the single zero-result retry, or ``(None, None)``."""
    criteria = query.criteria
    if criteria.zip_code and query.location_applied:
        return (
            query.filters.without("place_of_performance_locations"),
            f"No contracts found in {query.state} area. Showing nationwide results.",
        )
    if criteria.business_type and query.naics is not None:
        return (
            query.filters.without("set_aside_type_codes"),
            f"No {criteria.business_type} contracts found in NAICS {criteria.naics_code}. "
            "Showing all contracts in this industry.",
        )
    return None, None


def _join_messages(first: Optional[str], second: Optional[str]) -> Optional[str]:
    if first and second:
        return f"{first}\n\n{second}"
    return first or second


def search_government_contracts(
    criteria: SearchCriteria,
    store: ReferenceStore,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> SearchResponse:
    """Run a contract search and return ranked contracting offices.

    Raises :class:`InvalidSearchCriteria` before any network call when the
    criteria cannot match. Upstream failures never raise; they yield fewer rows.
    """
    query = compile_query(criteria, store, settings)
    sess = session or build_retrying_session(settings.http_user_agent)
    resolved = query.criteria
    message = query.naics.message if query.naics else None

    logger.info(
        "Contract search naics=%s set_aside=%s state=%s max_pages=%d",
        resolved.naics_code,
        query.set_aside_codes,
        query.state,
        query.max_pages,
    )
    rows = _fetch(query.filters, query.max_pages, settings, sess)
    logger.info("Retrieved %d contracts from USAspending", len(rows))

    auto_adjusted = False
    set_aside_filtered = bool(query.set_aside_codes)
    if not rows:
        fallback_filters, fallback_message = _fallback(query)
        if fallback_filters is not None:
            logger.info("No contracts found, retrying: %s", fallback_message)
            rows = _fetch(fallback_filters, FALLBACK_MAX_PAGES, settings, sess)
            if rows:
                auto_adjusted = True
                set_aside_filtered = fallback_filters.set_aside_type_codes is not None
                message = _join_messages(message, fallback_message)

    if not rows:
        suggestions = broaden(resolved, 0, 0, False, store, settings, sess)
        return SearchResponse(
            search_criteria=resolved,
            suggestions=suggestions,
            suggestion_message=suggestion_message(0, 0) if suggestions else None,
            naics_correction_message=message,
        )

    normalizer = normalizer_for(store)
    records = adapt_award_records(rows)
    buckets = aggregate_awards(records, set_aside_filtered, normalizer, store)
    offices = apply_display_names(rank_offices(buckets.values()), normalizer)

    suggestions: List[AlternativeSearchOption] = []
    if should_broaden(resolved, len(offices), auto_adjusted):
        suggestions = broaden(resolved, len(records), len(offices), auto_adjusted, store, settings, sess)

    return SearchResponse(
        search_criteria=resolved,
        summary=SearchSummary(
            total_awards=len(records),
            total_agencies=len(offices),
            total_spending=sum(o.total_spending for o in offices),
        ),
        agencies=[o.to_output() for o in offices],
        suggestions=suggestions,
        suggestion_message=suggestion_message(len(records), len(offices)) if suggestions else None,
        naics_correction_message=message,
        was_auto_adjusted=auto_adjusted,
    )


__all__ = ["SearchResponse", "SearchSummary", "search_government_contracts", "suggestion_message"]
