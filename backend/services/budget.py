"""Budget-authority snapshots, trend classification and the budget checkup report."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from backend.reference.store import ReferenceStore, thaw

STANDARD_RECOMMENDATIONS = (
    "Agencies with growing budgets are more likely to release new solicitations",
    'Focus capability statements on agencies with "surging" or "growing" budgets',
    "For agencies with declining budgets, emphasize cost-savings and efficiency in proposals",
    'Monitor agencies with "stable" budgets: they still have active procurement cycles',
)

_PARENTHETICAL = re.compile(r"\s*\(.*?\)\s*")


class FiscalYearBudget(BaseModel):
    budget_authority: float
    obligated: Optional[float] = None
    outlays: Optional[float] = None


class BudgetChange(BaseModel):
    amount: float
    percent: float  # FY2026 / FY2025 ratio
    trend: str


class AgencyBudget(BaseModel):
    agency: str
    toptier_code: Optional[str] = None
    fy2025: FiscalYearBudget
    fy2026: FiscalYearBudget
    change: BudgetChange


class CheckupSummary(BaseModel):
    total_fy2025: float
    total_fy2026: float
    overall_change: float
    agencies_growing: int
    agencies_declining: int
    biggest_winner: str
    biggest_loser: str


class BudgetCheckup(BaseModel):
    agency_budgets: List[AgencyBudget]
    winners: List[AgencyBudget]
    losers: List[AgencyBudget]
    summary: CheckupSummary
    recommendations: List[str] = Field(default_factory=list)


def classify_trend(ratio: float) -> str:
    """Bucket a FY26/FY25 ratio: 1.20 is a 20% increase, 0.80 a 20% cut."""
    delta = (ratio - 1) * 100
    if delta >= 20:
        return "surging"
    if delta >= 5:
        return "growing"
    if delta > -5:
        return "stable"
    if delta > -20:
        return "declining"
    return "cut"


def normalize_agency_name(name: str) -> str:
    lowered = re.sub(r"\s+", " ", name.lower())
    lowered = re.sub(r"^the\s+", "", lowered)
    return _PARENTHETICAL.sub("", lowered).strip()


def _entry(store: ReferenceStore, key: str) -> AgencyBudget:
    return AgencyBudget(agency=key, **thaw(store.budget["agencies"][key]))


def get_budget_for_agency(store: ReferenceStore, agency_name: Optional[str]) -> Optional[AgencyBudget]:
    """Exact key, then normalized equality, then normalized substring either way."""
    name = (agency_name or "").strip()
    if not name:
        return None
    agencies = store.budget["agencies"]
    if name in agencies:
        return _entry(store, name)

    wanted = normalize_agency_name(name)
    if not wanted:
        return None
    for key in agencies:
        if normalize_agency_name(key) == wanted:
            return _entry(store, key)
    for key in agencies:
        candidate = normalize_agency_name(key)
        if wanted in candidate or candidate in wanted:
            return _entry(store, key)
    return None


def budgets_for_agencies(store: ReferenceStore, agency_names: Iterable[str]) -> List[AgencyBudget]:
    found = (get_budget_for_agency(store, name) for name in agency_names)
    return [b for b in found if b is not None]


def all_budgets(store: ReferenceStore) -> List[AgencyBudget]:
    return [_entry(store, key) for key in store.budget["agencies"]]


def winners_and_losers(store: ReferenceStore, limit: int = 10):
    """Agencies with the largest budget increases and the deepest cuts."""
    ranked = sorted(all_budgets(store), key=lambda b: b.change.percent, reverse=True)
    winners = [b for b in ranked if b.change.percent > 1][:limit]
    losers = sorted((b for b in ranked if b.change.percent < 1), key=lambda b: b.change.percent)[:limit]
    return {"winners": winners, "losers": losers}


def _recommendations(winners: List[AgencyBudget], losers: List[AgencyBudget]) -> List[str]:
    lines: List[str] = []
    if winners:
        top = winners[0]
        verb = "surged" if top.change.trend == "surging" else "grew"
        lines.append(f"{top.agency} budget {verb} +{(top.change.percent - 1) * 100:.1f}%: prioritize outreach")
    if losers:
        worst = losers[0]
        verb = "cut" if worst.change.trend == "cut" else "declined"
        lines.append(
            f"{worst.agency} budget {verb} -{(1 - worst.change.percent) * 100:.1f}%: "
            "expect fewer new contracts, focus on recompetes"
        )
    lines.extend(STANDARD_RECOMMENDATIONS)
    return lines


def build_checkup(budgets: List[AgencyBudget]) -> BudgetCheckup:
    ranked = sorted(budgets, key=lambda b: b.change.percent, reverse=True)
    winners = [b for b in ranked if b.change.percent > 1]
    losers = [b for b in ranked if b.change.percent < 1][::-1]

    total_fy2025 = sum(b.fy2025.budget_authority for b in budgets)
    total_fy2026 = sum(b.fy2026.budget_authority for b in budgets)

    return BudgetCheckup(
        agency_budgets=list(budgets),
        winners=winners[:10],
        losers=losers[:10],
        summary=CheckupSummary(
            total_fy2025=total_fy2025,
            total_fy2026=total_fy2026,
            overall_change=total_fy2026 / total_fy2025 if total_fy2025 > 0 else 1,
            agencies_growing=len(winners),
            agencies_declining=len(losers),
            biggest_winner=winners[0].agency if winners else "N/A",
            biggest_loser=losers[0].agency if losers else "N/A",
        ),
        recommendations=_recommendations(winners, losers),
    )


def build_budget_checkup(store: ReferenceStore, agency_names: Iterable[str]) -> Optional[BudgetCheckup]:
    """Checkup for the given agencies, or ``None`` when none have budget data."""
    budgets = budgets_for_agencies(store, agency_names)
    if not budgets:
        return None
    return build_checkup(budgets)


__all__ = [
    "AgencyBudget",
    "BudgetChange",
    "BudgetCheckup",
    "CheckupSummary",
    "FiscalYearBudget",
    "all_budgets",
    "budgets_for_agencies",
    "build_budget_checkup",
    "build_checkup",
    "classify_trend",
    "get_budget_for_agency",
    "normalize_agency_name",
    "winners_and_losers",
]
