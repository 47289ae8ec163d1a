"""Load-once reference tables backing resolution and ranking.

Every JSON asset under ``backend/reference/data`` is read, validated and then
frozen: dictionaries become read-only ``MappingProxyType`` views and lists
become tuples. The resulting :class:`ReferenceStore` is built once per process
and handed to the components that need it.
"""
from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from backend.runtime import REFERENCE_DIR

logger = logging.getLogger(__name__)


class ReferenceDataError(RuntimeError):
    """Raised when the bundled reference assets are missing or malformed."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        preview = "; ".join(self.errors[:5])
        more = f" (+{len(self.errors) - 5} more)" if len(self.errors) > 5 else ""
        super().__init__(f"Invalid reference data: {preview}{more}")


# table name -> (file name, required section -> expected type)
TABLES: Dict[str, Tuple[str, Dict[str, type]]] = {
    "commands": (
        "commands.json",
        {
            "sam_search_url": str,
            "sam_default_url": str,
            "dod_agencies": list,
            "commands": dict,
            "service_branches": dict,
            "civilian_abbreviations": dict,
            "sub_agency_abbreviations": dict,
        },
    ),
    "office_names": (
        "office_names.json",
        {
            "state_abbreviations": dict,
            "office_codes": dict,
            "office_ids": dict,
            "office_enhancements": dict,
            "word_expansions": dict,
            "generic_replacements": list,
            "acronyms": dict,
            "preserve_acronyms": list,
            "abbreviation_expansions": dict,
            "usace_districts": dict,
            "command_keywords": list,
            "office_descriptions": list,
            "default_office_description": str,
        },
    ),
    "naics": ("naics.json", {"expansion": dict, "industry_names": dict}),
    "set_asides": (
        "set_asides.json",
        {"business_types": dict, "veteran_statuses": dict, "empty_markers": list},
    ),
    "locations": ("locations.json", {"zip_ranges": dict, "borders": dict, "state_names": dict}),
    "pain_points": (
        "pain_points.json",
        {
            "agencies": dict,
            "component_agencies": dict,
            "usace_offices": dict,
            "naics_capabilities": dict,
            "pain_point_capabilities": list,
            "ndaa_marker": str,
        },
    ),
    "contractors": (
        "contractors.json",
        {
            "primes": list,
            "tier2": list,
            "psc_to_naics": dict,
            "specialties": dict,
            "industries": dict,
            "pain_point_keywords": dict,
        },
    ),
    "budget": ("budget.json", {"agencies": dict}),
    "forecasts": ("forecasts.json", {"forecasts": list}),
    "osbp": ("osbp.json", {"directory": dict, "placeholder": dict}),
}

_COMMAND_FIELDS = ("full_name", "abbreviation", "parent_agency", "small_business_office")
_CONTACT_FIELDS = ("name", "phone", "email")


def freeze(value: Any) -> Any:
    """Recursively convert dicts to read-only mappings and lists to tuples."""
    if isinstance(value, dict):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain JSON-serialisable containers."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True, eq=False)
class ReferenceStore:
    commands: Mapping[str, Any]
    office_names: Mapping[str, Any]
    naics: Mapping[str, Any]
    set_asides: Mapping[str, Any]
    locations: Mapping[str, Any]
    pain_points: Mapping[str, Any]
    contractors: Mapping[str, Any]
    budget: Mapping[str, Any]
    forecasts: Mapping[str, Any]
    osbp: Mapping[str, Any]
    digest: str
    source_dir: Optional[Path] = None


def load_reference_data(directory: Optional[Path] = None) -> Dict[str, Any]:
    """Read the raw JSON tables from ``directory`` without validating them."""
    base = Path(directory) if directory is not None else REFERENCE_DIR
    raw: Dict[str, Any] = {}
    for table, (filename, _sections) in TABLES.items():
        path = base / filename
        if not path.exists():
            raise ReferenceDataError([f"{table}: missing file {path}"])
        try:
            raw[table] = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ReferenceDataError([f"{table}: invalid JSON in {path.name}: {exc}"]) from exc
    return raw


def reference_sha256(raw: Dict[str, Any]) -> str:
    canonical = json.dumps(raw, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _check_patterns(table: str, section: str, entries: Any, key: str, errors: List[str]) -> None:
    if not isinstance(entries, list):
        return
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            errors.append(f"{table}.{section}[{i}] must be an object")
            continue
        value = entry.get(key)
        if key == "patterns":
            if not isinstance(value, list) or not value or not all(isinstance(p, str) and p for p in value):
                errors.append(f"{table}.{section}[{i}].patterns must be a non-empty list of strings")
            continue
        if not isinstance(value, str) or not value:
            errors.append(f"{table}.{section}[{i}].{key} must be a non-empty string")
            continue
        # regex compile check
        try:
            re.compile(value)
        except re.error as e:
            errors.append(f"{table}.{section}[{i}].{key} regex compile error: {e}")


def _section(obj: Any, name: str, expected: type) -> Any:
    value = obj.get(name) if isinstance(obj, dict) else None
    return value if isinstance(value, expected) else expected()


def validate_reference_data(raw: Dict[str, Any]) -> List[str]:
    errors: List[str] = []

    for table, (_filename, sections) in TABLES.items():
        obj = raw.get(table)
        if not isinstance(obj, dict):
            errors.append(f"{table} root must be a JSON object")
            continue
        if not isinstance(obj.get("version"), str):
            errors.append(f"{table}.version must be a string")
        for section, expected in sections.items():
            if not isinstance(obj.get(section), expected):
                errors.append(f"{table}.{section} must be a {expected.__name__}")

    commands = _section(raw, "commands", dict)
    for key, info in _section(commands, "commands", dict).items():
        if not isinstance(info, dict):
            errors.append(f"commands.commands.{key} must be an object")
            continue
        for field in _COMMAND_FIELDS:
            if not info.get(field):
                errors.append(f"commands.commands.{key}.{field} is required")
    sam_url = commands.get("sam_search_url")
    if isinstance(sam_url, str) and "{keyword}" not in sam_url:
        errors.append("commands.sam_search_url must contain a {keyword} placeholder")

    offices = _section(raw, "office_names", dict)
    _check_patterns("office_names", "generic_replacements", offices.get("generic_replacements"), "pattern", errors)
    _check_patterns("office_names", "command_keywords", offices.get("command_keywords"), "patterns", errors)
    _check_patterns("office_names", "office_descriptions", offices.get("office_descriptions"), "patterns", errors)

    locations = _section(raw, "locations", dict)
    for state, ranges in _section(locations, "zip_ranges", dict).items():
        if not isinstance(ranges, list) or not all(
            isinstance(r, list) and len(r) == 2 and all(isinstance(n, int) for n in r) and r[0] <= r[1]
            for r in ranges
        ):
            errors.append(f"locations.zip_ranges.{state} must be a list of [low, high] integer pairs")

    osbp = _section(raw, "osbp", dict)
    placeholder = osbp.get("placeholder")
    if isinstance(placeholder, dict):
        for field in _CONTACT_FIELDS:
            if not placeholder.get(field):
                errors.append(f"osbp.placeholder.{field} is required")

    contractors = _section(raw, "contractors", dict)
    for roster in ("primes", "tier2"):
        for i, record in enumerate(_section(contractors, roster, list)):
            if not isinstance(record, dict) or not isinstance(record.get("name"), str) or not record.get("name"):
                errors.append(f"contractors.{roster}[{i}].name must be a non-empty string")

    budget = _section(raw, "budget", dict)
    for name, snapshot in _section(budget, "agencies", dict).items():
        if not isinstance(snapshot, dict):
            errors.append(f"budget.agencies.{name} must be an object")
            continue
        for fy in ("fy2025", "fy2026"):
            if not isinstance(_section(snapshot, fy, dict).get("budget_authority"), (int, float)):
                errors.append(f"budget.agencies.{name}.{fy}.budget_authority must be a number")

    forecast_ids = set()
    forecasts = _section(raw, "forecasts", dict)
    for i, forecast in enumerate(_section(forecasts, "forecasts", list)):
        fid = forecast.get("id") if isinstance(forecast, dict) else None
        if not isinstance(fid, str) or not fid:
            errors.append(f"forecasts.forecasts[{i}].id must be a non-empty string")
        elif fid in forecast_ids:
            errors.append(f"duplicate forecast id: {fid}")
        else:
            forecast_ids.add(fid)

    return errors


def build_reference_store(raw: Dict[str, Any], source_dir: Optional[Path] = None) -> ReferenceStore:
    errors = validate_reference_data(raw)
    if errors:
        raise ReferenceDataError(errors)
    return ReferenceStore(
        **{table: freeze(raw[table]) for table in TABLES},
        digest=reference_sha256(raw),
        source_dir=source_dir,
    )


def load_reference_store(directory: Optional[Path] = None) -> ReferenceStore:
    """Read, validate and freeze every reference table."""
    base = Path(directory) if directory is not None else REFERENCE_DIR
    raw = load_reference_data(base)
    store = build_reference_store(raw, source_dir=base)
    logger.info("Loaded reference data from %s (sha256=%s)", base, store.digest[:12])
    return store


def summarize_reference_store(store: ReferenceStore) -> Dict[str, Any]:
    return {
        "versions": {table: getattr(store, table).get("version") for table in TABLES},
        "commands": len(store.commands["commands"]),
        "service_branches": len(store.commands["service_branches"]),
        "office_codes": len(store.office_names["office_codes"]) + len(store.office_names["office_ids"]),
        "pain_point_agencies": len(store.pain_points["agencies"]),
        "primes": len(store.contractors["primes"]),
        "tier2": len(store.contractors["tier2"]),
        "budget_agencies": len(store.budget["agencies"]),
        "forecasts": len(store.forecasts["forecasts"]),
        "osbp_offices": len(store.osbp["directory"]),
        "hash": store.digest,
    }


__all__ = [
    "ReferenceDataError",
    "ReferenceStore",
    "TABLES",
    "build_reference_store",
    "freeze",
    "load_reference_data",
    "load_reference_store",
    "reference_sha256",
    "summarize_reference_store",
    "thaw",
    "validate_reference_data",
]
