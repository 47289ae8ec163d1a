"""Command, service-branch and civilian agency directory lookups."""
from __future__ import annotations

from typing import Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from backend.analysis.normalizer import token_pattern
from backend.reference.store import ReferenceStore, thaw


class ContactOffice(BaseModel):
    name: str
    director: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None


class AcquisitionOffice(BaseModel):
    name: str
    website: Optional[str] = None


class CommandInfo(BaseModel):
    key: str
    full_name: str
    abbreviation: str
    parent_agency: str
    website: Optional[str] = None
    forecast_url: Optional[str] = None
    sam_forecast_url: Optional[str] = None
    small_business_office: ContactOffice
    acquisition_office: Optional[AcquisitionOffice] = None
    key_capabilities: List[str] = Field(default_factory=list)


class ServiceBranchInfo(BaseModel):
    branch: str
    aliases: List[str] = Field(default_factory=list)
    website: Optional[str] = None
    small_business_website: Optional[str] = None
    small_business_office: ContactOffice


def _command(store: ReferenceStore, key: str) -> CommandInfo:
    return CommandInfo(key=key, **thaw(store.commands["commands"][key]))


def get_command_info(store: ReferenceStore, command: Optional[str]) -> Optional[CommandInfo]:
    """Direct key, then abbreviation, then partial match on key or full name."""
    wanted = (command or "").strip()
    if not wanted:
        return None
    commands = store.commands["commands"]
    if wanted in commands:
        return _command(store, wanted)

    upper = wanted.upper()
    for key, info in commands.items():
        if key.upper() == upper or info["abbreviation"].upper() == upper:
            return _command(store, key)

    for key, info in commands.items():
        full_upper = info["full_name"].upper()
        # a key inside the wanted text must be a whole word so "VA" skips "NAVAL"
        if upper in key.upper() or upper in full_upper or full_upper in upper or token_pattern(key).search(wanted):
            return _command(store, key)
    return None


def find_command_in_text(store: ReferenceStore, text: Optional[str]) -> Optional[CommandInfo]:
    """Command whose abbreviation or full name appears as whole words in ``text``."""
    if not text:
        return None
    for key, info in store.commands["commands"].items():
        if token_pattern(info["full_name"]).search(text):
            return _command(store, key)
        abbreviation = info["abbreviation"]
        # mixed-case abbreviations ("State", "Treasury") are ordinary words in office names
        if abbreviation.isupper() and token_pattern(abbreviation, flags=0).search(text):
            return _command(store, key)
    return None


def get_service_branch_info(store: ReferenceStore, agency: Optional[str]) -> Optional[ServiceBranchInfo]:
    """Service branch by exact alias, then by alias contained in the agency name."""
    upper = (agency or "").strip().upper()
    if not upper:
        return None
    branches = store.commands["service_branches"]
    for branch, info in branches.items():
        if upper == branch.upper() or upper in info["aliases"]:
            return ServiceBranchInfo(branch=branch, **thaw(info))
    for branch, info in branches.items():
        if any(token_pattern(alias).search(upper) for alias in info["aliases"]):
            return ServiceBranchInfo(branch=branch, **thaw(info))
    return None


def is_dod_agency(store: ReferenceStore, agency: Optional[str]) -> bool:
    upper = (agency or "").upper()
    if not upper:
        return False
    return any(dod.upper() in upper for dod in store.commands["dod_agencies"])


def get_agency_info_by_parent_agency(store: ReferenceStore, parent_agency: Optional[str]) -> Optional[CommandInfo]:
    """Exact parent-agency match, then keyword table, then substring either way."""
    parent_upper = (parent_agency or "").strip().upper()
    if not parent_upper:
        return None
    commands = store.commands["commands"]

    for key, info in commands.items():
        if info["parent_agency"].upper() == parent_upper:
            return _command(store, key)

    for key, keywords in store.commands["civilian_abbreviations"].items():
        if key in commands and any(keyword in parent_upper for keyword in keywords):
            return _command(store, key)

    for key, info in commands.items():
        other = info["parent_agency"].upper()
        if other in parent_upper or parent_upper in other:
            return _command(store, key)
    return None


def commands_by_parent(store: ReferenceStore) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for key, info in store.commands["commands"].items():
        grouped.setdefault(info["parent_agency"], []).append(key)
    return grouped


def sam_search_url(store: ReferenceStore, keyword: Optional[str]) -> str:
    if not keyword or not keyword.strip():
        return store.commands["sam_default_url"]
    quoted = quote(f'"{keyword.strip()}"', safe="")
    return store.commands["sam_search_url"].replace("{keyword}", quoted)


def get_forecast_url(store: ReferenceStore, command: Optional[str]) -> Optional[str]:
    info = get_command_info(store, command)
    if info is None:
        return None
    return info.forecast_url or info.sam_forecast_url


__all__ = [
    "AcquisitionOffice",
    "CommandInfo",
    "ContactOffice",
    "ServiceBranchInfo",
    "commands_by_parent",
    "find_command_in_text",
    "get_agency_info_by_parent_agency",
    "get_command_info",
    "get_forecast_url",
    "get_service_branch_info",
    "is_dod_agency",
    "sam_search_url",
]
