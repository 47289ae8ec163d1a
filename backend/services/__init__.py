"""Service layer helpers for AgencyScope."""

from .contractors import suggest_contractors, suggest_tier2  # noqa: F401
from .resolver import resolve_agency_enrichment  # noqa: F401
from .search import search_government_contracts  # noqa: F401

__all__ = [
    "resolve_agency_enrichment",
    "search_government_contracts",
    "suggest_contractors",
    "suggest_tier2",
]
