from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
from fastapi import APIRouter, Depends, HTTPException, Query

from backend.analysis.criteria import validate_psc
from backend.analysis.naics import resolve_naics_filter
from backend.analysis.normalizer import normalizer_for
from backend.api.deps import get_http_session, get_settings, get_store
from backend.reference.store import ReferenceStore
from backend.services.budget import build_budget_checkup, get_budget_for_agency, winners_and_losers
from backend.services.contractors import suggest_contractors, suggest_tier2
from backend.services.forecasts import forecast_statistics, forecasts_for_agencies
from backend.services.pain_points import (
    categorize_pain_points,
    find_agencies_by_pain_point,
    get_pain_points_for_agency,
    ndaa_pain_points,
    similar_agencies,
)
from backend.services.query import SearchCriteria
from backend.services.resolver import resolve_agency_enrichment
from backend.services.search import search_government_contracts
from backend.settings import Settings

router = APIRouter(prefix="/api", tags=["core"])


@router.get("/ping")
def ping():
    return {"message": "pong"}


@router.post("/government-contracts/search")
def search_contracts(
    criteria: SearchCriteria,
    store: ReferenceStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    session: requests.Session = Depends(get_http_session),
) -> Dict[str, Any]:
    return search_government_contracts(criteria, store, settings, session).dict()


@router.get("/agencies/enrichment")
def agency_enrichment(
    office_name: Optional[str] = Query(None, description="Awarding office name"),
    sub_agency: Optional[str] = Query(None, description="Awarding sub-agency name"),
    parent_agency: Optional[str] = Query(None, description="Top-tier awarding agency"),
    command: Optional[str] = Query(None, description="Command key or abbreviation, e.g. NAVFAC"),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    return resolve_agency_enrichment(store, office_name, sub_agency, parent_agency, command).dict()


@router.get("/agencies/pain-points")
def agency_pain_points(
    agency: Optional[str] = Query(None),
    command: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None, description="Find agencies whose pain points mention this keyword"),
    action: Optional[str] = Query(None, description="similar | ndaa | categorize"),
    limit: int = Query(5, ge=1, le=50),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    if keyword:
        matches = find_agencies_by_pain_point(store, keyword)
        return {"keyword": keyword, "agencies": [m.dict() for m in matches]}
    if not agency and not command:
        raise HTTPException(status_code=400, detail="agency, command or keyword is required")

    name = agency or ""
    if action == "similar":
        return {"agency": name, "similar_agencies": [s.dict() for s in similar_agencies(store, name, limit)]}
    if action == "ndaa":
        return {"agency": name, "pain_points": ndaa_pain_points(store, name)}

    points = get_pain_points_for_agency(store, name, command)
    body: Dict[str, Any] = {"agency": name, "command": command, "pain_points": points, "count": len(points)}
    if action == "categorize":
        body["categories"] = categorize_pain_points(points)
    return body


@router.get("/agencies/budget")
def agency_budget(
    agency: List[str] = Query(default=[], description="Repeat for several agencies"),
    limit: int = Query(10, ge=1, le=50),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    if not agency:
        ranked = winners_and_losers(store, limit)
        return {
            "winners": [b.dict() for b in ranked["winners"]],
            "losers": [b.dict() for b in ranked["losers"]],
        }
    if len(agency) == 1:
        budget = get_budget_for_agency(store, agency[0])
        if budget is None:
            raise HTTPException(status_code=404, detail=f"No budget data for {agency[0]}")
        return budget.dict()
    checkup = build_budget_checkup(store, agency)
    if checkup is None:
        raise HTTPException(status_code=404, detail="No budget data for the requested agencies")
    return checkup.dict()


@router.get("/forecasts")
def list_forecasts(
    agency: List[str] = Query(default=[]),
    naics: Optional[str] = Query(None),
    set_aside: Optional[str] = Query(None),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    forecasts = forecasts_for_agencies(store, agency, naics, set_aside)
    return {
        "forecasts": [f.dict() for f in forecasts],
        "statistics": forecast_statistics(forecasts).dict(),
    }


@router.get("/contractors/primes")
def prime_contractors(
    naics: Optional[str] = Query(None),
    psc: Optional[str] = Query(None),
    agency: List[str] = Query(default=[]),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    naics_filter = resolve_naics_filter(naics, store)
    primes = suggest_contractors(
        store,
        naics_code=naics_filter.original if naics_filter else None,
        psc_code=validate_psc(psc),
        agencies=agency,
    )
    return {"total": len(primes), "items": [p.dict() for p in primes]}


@router.get("/contractors/tier2")
def tier2_contractors(
    naics: Optional[str] = Query(None),
    psc: Optional[str] = Query(None),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    naics_filter = resolve_naics_filter(naics, store)
    tier2 = suggest_tier2(
        store,
        naics_code=naics_filter.original if naics_filter else None,
        psc_code=validate_psc(psc),
    )
    return {"total": len(tier2), "items": [t.dict() for t in tier2]}


@router.get("/offices/normalize")
def normalize_office(
    name: str = Query(..., min_length=1),
    office_code: Optional[str] = Query(None),
    store: ReferenceStore = Depends(get_store),
) -> Dict[str, Any]:
    normalizer = normalizer_for(store)
    canonical = normalizer.normalize(name, office_code)
    return {
        "raw": name,
        "office_code": office_code,
        "normalized": canonical,
        "command": normalizer.detect_command(canonical) or normalizer.detect_command(name),
        "description": normalizer.describe_office(canonical),
    }
