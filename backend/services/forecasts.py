"""Agency procurement forecast lookups."""
from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from backend.reference.store import ReferenceStore, thaw


class Forecast(BaseModel):
    id: str
    agency: str
    title: str
    description: Optional[str] = None
    naics_code: str
    estimated_value: float = 0.0
    solicitation_date: Optional[date] = None
    award_date: Optional[date] = None
    quarter: Optional[str] = None
    contract_type: Optional[str] = None
    set_aside: str = ""
    performance_period: Optional[str] = None
    point_of_contact: Optional[str] = None


class ForecastStatistics(BaseModel):
    total_value: float
    total_forecasts: int
    average_value: float
    agency_counts: Dict[str, int]
    naics_counts: Dict[str, int]
    set_aside_counts: Dict[str, int]


def all_forecasts(store: ReferenceStore) -> List[Forecast]:
    return [Forecast(**thaw(f)) for f in store.forecasts["forecasts"]]


def forecasts_by_agency(store: ReferenceStore, agency_name: str) -> List[Forecast]:
    wanted = (agency_name or "").strip().lower()
    if not wanted:
        return []
    return [f for f in all_forecasts(store) if wanted in f.agency.lower() or f.agency.lower() in wanted]


def forecasts_by_naics(store: ReferenceStore, naics_code: str) -> List[Forecast]:
    """Exact code, then the 5-digit prefix of a 6-digit code, then the 3-digit prefix."""
    code = (naics_code or "").strip()
    if not code:
        return []
    forecasts = all_forecasts(store)
    matches = [f for f in forecasts if f.naics_code == code]
    if not matches and len(code) == 6:
        matches = [f for f in forecasts if f.naics_code.startswith(code[:5])]
    if not matches and len(code) >= 5:
        matches = [f for f in forecasts if f.naics_code.startswith(code[:3])]
    return matches


def forecasts_by_set_aside(store: ReferenceStore, set_aside: str) -> List[Forecast]:
    wanted = (set_aside or "").strip().lower()
    return [f for f in all_forecasts(store) if wanted in f.set_aside.lower()]


def forecasts_for_agencies(
    store: ReferenceStore,
    agency_names: Iterable[str],
    naics_code: Optional[str] = None,
    set_aside: Optional[str] = None,
) -> List[Forecast]:
    """Forecasts for the selected agencies, narrowed by NAICS and set-aside.

    When the NAICS filter removes every agency forecast, NAICS matches from
    other agencies are returned instead. The set-aside filter only applies
    when it leaves something behind.
    """
    results: Dict[str, Forecast] = {}
    for name in agency_names:
        for forecast in forecasts_by_agency(store, name):
            results.setdefault(forecast.id, forecast)
    selected = list(results.values())

    if naics_code and naics_code.strip():
        naics_matches = forecasts_by_naics(store, naics_code)
        ids = {f.id for f in naics_matches}
        selected = [f for f in selected if f.id in ids] or naics_matches

    if set_aside and set_aside.strip():
        wanted = set_aside.strip().lower()
        narrowed = [f for f in selected if wanted in f.set_aside.lower()]
        if narrowed:
            selected = narrowed

    return sorted(selected, key=lambda f: f.estimated_value, reverse=True)


def forecast_statistics(forecasts: List[Forecast]) -> ForecastStatistics:
    total = sum(f.estimated_value for f in forecasts)
    count = len(forecasts)
    return ForecastStatistics(
        total_value=total,
        total_forecasts=count,
        average_value=total / count if count else 0.0,
        agency_counts=dict(Counter(f.agency for f in forecasts)),
        naics_counts=dict(Counter(f.naics_code for f in forecasts)),
        set_aside_counts=dict(Counter(f.set_aside for f in forecasts)),
    )


def upcoming_forecasts(forecasts: List[Forecast], limit: int = 10, today: Optional[date] = None) -> List[Forecast]:
    cutoff = today or date.today()
    dated = [f for f in forecasts if f.solicitation_date is not None and f.solicitation_date >= cutoff]
    return sorted(dated, key=lambda f: f.solicitation_date)[:limit]


__all__ = [
    "Forecast",
    "ForecastStatistics",
    "all_forecasts",
    "forecast_statistics",
    "forecasts_by_agency",
    "forecasts_by_naics",
    "forecasts_by_set_aside",
    "forecasts_for_agencies",
    "upcoming_forecasts",
]
