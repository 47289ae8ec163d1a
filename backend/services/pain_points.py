"""Agency pain-point corpus lookups and capability matching."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from backend.analysis.naics import normalize_naics
from backend.analysis.normalizer import normalizer_for
from backend.reference.store import ReferenceStore

GENERAL_CAPABILITY = "General capabilities align with agency needs"
MAX_NEEDS = 40

CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("cybersecurity", ("cyber", "security", "zero trust")),
    ("infrastructure", ("infrastructure", "facility", "building")),
    ("modernization", ("moderniz", "cloud", "digital")),
    ("compliance", ("compliance", "ndaa", "regulation")),
)


class SimilarAgency(BaseModel):
    agency: str
    similarity: float
    shared_pain_points: List[str]


class AgencyMatch(BaseModel):
    agency: str
    matching_pain_points: List[str]


class AgencyNeed(BaseModel):
    agency: str
    command: Optional[str] = None
    requirement: str
    capability_match: str
    positioning: str
    pain_point_source: str


class SelectedAgency(BaseModel):
    """An office picked from search results, as handed to needs generation."""

    name: str
    contracting_office: str = ""
    sub_agency: str = ""
    parent_agency: str = ""
    command: Optional[str] = None


def _points(store: ReferenceStore, key: str) -> List[str]:
    return list(store.pain_points["agencies"][key])


def _partial(store: ReferenceStore, name: str) -> Optional[List[str]]:
    for key, points in store.pain_points["agencies"].items():
        if key in name or name in key:
            return list(points)
    return None


def get_pain_points_for_agency(
    store: ReferenceStore,
    agency_name: Optional[str],
    command: Optional[str] = None,
) -> List[str]:
    """Pain points for an agency, preferring command-level entries when given."""
    agencies = store.pain_points["agencies"]
    command = (command or "").strip()
    if command:
        if command in agencies:
            return _points(store, command)
        found = _partial(store, command)
        if found is not None:
            return found

    name = (agency_name or "").strip()
    if not name:
        return []
    if name in agencies:
        return _points(store, name)

    parent = store.pain_points["component_agencies"].get(name)
    if parent and parent in agencies:
        return _points(store, parent)

    found = _partial(store, name)
    if found is not None:
        return found

    if "Army" in name and "Engineer" in name:
        return list(store.pain_points["usace_offices"].get(name, ()))
    return []


def get_pain_points_for_command(
    store: ReferenceStore,
    contracting_office: Optional[str],
    sub_agency: Optional[str],
    parent_agency: Optional[str],
    command: Optional[str] = None,
) -> Tuple[List[str], str]:
    """Walk explicit command, detected command, sub-agency, then parent agency.

    Returns ``(pain_points, source)``; ``source`` is ``""`` only when nothing matched.
    """
    detected = normalizer_for(store).detect_command(contracting_office)
    for candidate in (command, detected, sub_agency, parent_agency):
        if not candidate or not candidate.strip():
            continue
        points = get_pain_points_for_agency(store, candidate)
        if points:
            return points, candidate
    return [], ""


def all_agencies_with_pain_points(store: ReferenceStore) -> List[Dict[str, object]]:
    return [
        {"agency": agency, "pain_points": list(points), "pain_point_count": len(points)}
        for agency, points in store.pain_points["agencies"].items()
    ]


def find_agencies_by_pain_point(store: ReferenceStore, keyword: str) -> List[AgencyMatch]:
    wanted = (keyword or "").strip().lower()
    if not wanted:
        return []
    results: List[AgencyMatch] = []
    for agency, points in store.pain_points["agencies"].items():
        matching = [p for p in points if wanted in p.lower()]
        if matching:
            results.append(AgencyMatch(agency=agency, matching_pain_points=matching))
    return results


def _lead_words(text: str) -> str:
    return " ".join(text.lower().split(" ")[:3])


def similar_agencies(store: ReferenceStore, agency_name: str, limit: int = 5) -> List[SimilarAgency]:
    """Agencies sharing pain points whose first three words overlap with the target's."""
    target = get_pain_points_for_agency(store, agency_name)
    if not target:
        return []

    results: List[SimilarAgency] = []
    for other, points in store.pain_points["agencies"].items():
        if other == agency_name:
            continue
        shared = [
            p
            for p in points
            if any(_lead_words(t) in p.lower() or _lead_words(p) in t.lower() for t in target)
        ]
        if shared:
            similarity = len(shared) / max(len(target), len(points))
            results.append(SimilarAgency(agency=other, similarity=similarity, shared_pain_points=shared))

    results.sort(key=lambda s: s.similarity, reverse=True)
    return results[:limit]


def parent_agency_of(store: ReferenceStore, component: str) -> Optional[str]:
    return store.pain_points["component_agencies"].get(component)


def component_agencies_of(store: ReferenceStore, parent: str) -> List[str]:
    return [c for c, p in store.pain_points["component_agencies"].items() if p == parent]


def ndaa_pain_points(store: ReferenceStore, agency_name: str) -> List[str]:
    marker = store.pain_points["ndaa_marker"]
    return [p for p in get_pain_points_for_agency(store, agency_name) if marker in p]


def categorize_pain_points(pain_points: Iterable[str]) -> Dict[str, List[str]]:
    categories: Dict[str, List[str]] = {name: [] for name, _ in CATEGORY_KEYWORDS}
    categories["other"] = []
    for point in pain_points:
        lower = point.lower()
        for name, keywords in CATEGORY_KEYWORDS:
            if any(k in lower for k in keywords):
                categories[name].append(point)
                break
        else:
            categories["other"].append(point)
    return categories


def _user_capabilities(store: ReferenceStore, naics_code: Optional[str], business_type: Optional[str]):
    table = store.pain_points["naics_capabilities"]
    capabilities: List[str] = []
    normalized = normalize_naics(naics_code) if naics_code else None
    prefix = sector = ""
    if normalized is not None:
        prefix, sector = normalized.prefix, normalized.sector
        for code in normalized.codes:
            capabilities.extend(table.get(code, ()))
        capabilities.extend(table.get(sector, ()))
        if prefix != sector:
            capabilities.extend(table.get(prefix, ()))
    if business_type:
        capabilities.append(f"{business_type.lower()} business")
    return capabilities, prefix, sector


def _capability_for(store: ReferenceStore, lower_point: str, prefix: str, sector: str) -> Optional[str]:
    for rule in store.pain_points["pain_point_capabilities"]:
        if not re.search(r"\b" + re.escape(rule["keyword"]), lower_point):
            continue
        prefixes = rule["naics_prefixes"]
        if not sector or sector in prefixes or prefix in prefixes:
            return rule["capability"]
    return None


def _need_score(need: AgencyNeed) -> int:
    score = 10 if "ndaa" in need.requirement.lower() else 0
    if need.capability_match != GENERAL_CAPABILITY:
        score += 5
    if need.command:
        score += 2
    return score


def generate_agency_needs(
    store: ReferenceStore,
    agencies: Sequence[SelectedAgency],
    naics_code: Optional[str] = None,
    business_type: Optional[str] = None,
) -> List[AgencyNeed]:
    """Match each agency's pain points against the caller's NAICS capabilities.

    A pain point is kept when it matches a capability, mentions the NDAA, or is
    flagged critical. Results are ordered NDAA first, then capability matches,
    then command-level sources, and capped at 40.
    """
    capabilities, prefix, sector = _user_capabilities(store, naics_code, business_type)
    needs: List[AgencyNeed] = []

    for agency in agencies:
        points, source = get_pain_points_for_command(
            store, agency.contracting_office, agency.sub_agency, agency.parent_agency, agency.command
        )
        for point in points:
            lower = point.lower()
            strength = sum(1 for c in capabilities if c.lower() in lower or lower in c.lower())
            capability = _capability_for(store, lower, prefix, sector)
            if capability:
                strength += 1
            is_ndaa = "ndaa" in lower

            if is_ndaa:
                positioning = (
                    "Strategic priority: Address this FY2026 NDAA requirement to gain "
                    f"competitive advantage with {source}"
                )
            elif strength > 0:
                positioning = f"Strong capability match: Leverage your {naics_code or 'industry'} expertise for {source}"
            else:
                positioning = f"Identify how your capabilities can address this {source} requirement"

            if strength > 0 or is_ndaa or "critical" in lower:
                needs.append(
                    AgencyNeed(
                        agency=agency.name,
                        command=agency.command or None,
                        requirement=point,
                        capability_match=capability or GENERAL_CAPABILITY,
                        positioning=positioning,
                        pain_point_source=source,
                    )
                )

    needs.sort(key=_need_score, reverse=True)
    return needs[:MAX_NEEDS]


__all__ = [
    "AgencyMatch",
    "AgencyNeed",
    "GENERAL_CAPABILITY",
    "SelectedAgency",
    "SimilarAgency",
    "all_agencies_with_pain_points",
    "categorize_pain_points",
    "component_agencies_of",
    "find_agencies_by_pain_point",
    "generate_agency_needs",
    "get_pain_points_for_agency",
    "get_pain_points_for_command",
    "ndaa_pain_points",
    "parent_agency_of",
    "similar_agencies",
]
