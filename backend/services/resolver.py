"""Hierarchical enrichment of a contracting office.

Contacts and URLs come from the first tier that knows the office:

1. an explicit command key
2. a command named in the office name
3. the sub-agency table, then a command named in the sub-agency
4. the Army/Navy/Air Force/DoD service branch
5. a civilian department matched on the parent agency
6. the OSBP directory, else the SBA placeholder contact

Pain points follow their own chain (see ``get_pain_points_for_command``).
Nothing here raises for missing data; unknown offices get the placeholder.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from backend.analysis.normalizer import normalizer_for
from backend.reference.store import ReferenceStore, thaw
from backend.services.budget import get_budget_for_agency
from backend.services.commands import (
    CommandInfo,
    ContactOffice,
    find_command_in_text,
    get_agency_info_by_parent_agency,
    get_command_info,
    get_service_branch_info,
    is_dod_agency,
    sam_search_url,
)
from backend.services.pain_points import get_pain_points_for_command

logger = logging.getLogger(__name__)


class EnrichmentResult(BaseModel):
    command: Optional[str] = None
    pain_points: List[str] = Field(default_factory=list)
    source: str = ""
    small_business_contact: ContactOffice
    forecast_url: Optional[str] = None
    sam_forecast_url: Optional[str] = None
    website: Optional[str] = None
    contact_source: str
    budget: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class _Office:
    office_name: str
    sub_agency: str
    parent_agency: str
    command: str


@dataclass(frozen=True)
class _Contact:
    tier: str
    contact: ContactOffice
    command: Optional[str] = None
    website: Optional[str] = None
    forecast_url: Optional[str] = None
    sam_forecast_url: Optional[str] = None


def _from_command(tier: str, info: CommandInfo) -> _Contact:
    return _Contact(
        tier=tier,
        contact=info.small_business_office,
        command=info.key,
        website=info.website,
        forecast_url=info.forecast_url,
        sam_forecast_url=info.sam_forecast_url,
    )


def _explicit_command(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    info = get_command_info(store, office.command)
    return _from_command("command", info) if info else None


def _office_name_command(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    info = find_command_in_text(store, office.office_name)
    if info is None:
        detected = normalizer_for(store).detect_command(office.office_name)
        info = get_command_info(store, detected)
    return _from_command("office_name", info) if info else None


def _sub_agency_command(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    table = store.commands["sub_agency_abbreviations"]
    for name in (office.office_name, office.sub_agency):
        key = table.get(name.upper()) if name else None
        if key:
            info = get_command_info(store, key)
            if info:
                return _from_command("sub_agency", info)
    info = find_command_in_text(store, office.sub_agency)
    return _from_command("sub_agency", info) if info else None


def _service_branch(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    matched = office.parent_agency
    branch = get_service_branch_info(store, matched)
    if branch is None:
        matched = office.sub_agency
        branch = get_service_branch_info(store, matched)
    if branch is None:
        return None
    return _Contact(
        tier="service_branch",
        contact=branch.small_business_office.copy(update={"website": branch.small_business_website}),
        website=branch.website,
        forecast_url=branch.small_business_website,
        sam_forecast_url=sam_search_url(store, matched),
    )


def _civilian_agency(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    info = get_agency_info_by_parent_agency(store, office.parent_agency)
    if info is None or is_dod_agency(store, info.parent_agency):
        return None
    return _from_command("civilian_agency", info)


def _osbp_directory(store: ReferenceStore, office: _Office) -> Optional[_Contact]:
    parent = office.parent_agency.lower()
    if not parent:
        return None
    for fragment, entry in store.osbp["directory"].items():
        if fragment in parent:
            contact = ContactOffice(**thaw(entry))
            return _Contact(
                tier="osbp_directory",
                contact=contact,
                website=contact.website,
                sam_forecast_url=sam_search_url(store, office.parent_agency),
            )
    return None


def _placeholder(store: ReferenceStore, office: _Office) -> _Contact:
    contact = ContactOffice(**thaw(store.osbp["placeholder"]))
    return _Contact(
        tier="placeholder",
        contact=contact,
        website=contact.website,
        sam_forecast_url=store.commands["sam_default_url"],
    )


CONTACT_TIERS: Tuple[Callable[[ReferenceStore, _Office], Optional[_Contact]], ...] = (
    _explicit_command,
    _office_name_command,
    _sub_agency_command,
    _service_branch,
    _civilian_agency,
    _osbp_directory,
)


def resolve_contact(store: ReferenceStore, office: _Office) -> _Contact:
    for tier in CONTACT_TIERS:
        found = tier(store, office)
        if found is not None:
            return found
    return _placeholder(store, office)


def _pain_point_command(store: ReferenceStore, command: str) -> str:
    """Command name as keyed in the pain-point corpus ("ACC" -> "Army Contracting Command")."""
    if not command or command in store.pain_points["agencies"]:
        return command
    info = get_command_info(store, command)
    if info and info.full_name in store.pain_points["agencies"]:
        return info.full_name
    return command


def resolve_agency_enrichment(
    store: ReferenceStore,
    office_name: Optional[str],
    sub_agency: Optional[str],
    parent_agency: Optional[str],
    command: Optional[str] = None,
) -> EnrichmentResult:
    office = _Office(
        office_name=(office_name or "").strip(),
        sub_agency=(sub_agency or "").strip(),
        parent_agency=(parent_agency or "").strip(),
        command=(command or "").strip(),
    )
    contact = resolve_contact(store, office)
    points, source = get_pain_points_for_command(
        store,
        office.office_name,
        office.sub_agency,
        office.parent_agency,
        _pain_point_command(store, office.command) or None,
    )
    budget = get_budget_for_agency(store, office.parent_agency) or get_budget_for_agency(store, office.sub_agency)

    logger.debug(
        "Resolved %r / %r / %r via %s (pain points from %r)",
        office.office_name,
        office.sub_agency,
        office.parent_agency,
        contact.tier,
        source,
    )
    return EnrichmentResult(
        command=contact.command,
        pain_points=points,
        source=source,
        small_business_contact=contact.contact,
        forecast_url=contact.forecast_url,
        sam_forecast_url=contact.sam_forecast_url,
        website=contact.website,
        contact_source=contact.tier,
        budget=budget.dict() if budget else None,
    )


__all__ = ["CONTACT_TIERS", "EnrichmentResult", "resolve_agency_enrichment", "resolve_contact"]
