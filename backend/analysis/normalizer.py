"""Canonicalisation of federal office and agency names.

Raw awarding-office strings arrive in every shape imaginable: all-caps codes
("802 CONS"), hyphenated command shorthand ("ACC-APG Natick"), or plain office
ids. :class:`NameNormalizer` folds them into one readable canonical form.
Running ``normalize`` on its own output returns the same string.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Tuple

from backend.reference.store import ReferenceStore

CONNECTOR_WORDS = {"of", "and", "the", "for", "in", "at"}

_USPFO_STATE = re.compile(r"\buspfo\s+(?:activity\s+)?([a-z]{2})\s+arng\b", re.IGNORECASE)
_USPFO_FOR = re.compile(r"\buspfo\s+for\s+(.+)$", re.IGNORECASE)
_SQUADRON = re.compile(
    r"(?:\bfa\d+\s+)?\b(\d+)(?:st|nd|rd|th)?\s*(?:contracting\s+squadron|cons)\b(.*)$",
    re.IGNORECASE,
)
_MICC = re.compile(r"\bmicc\b[-\s]*(.*)$", re.IGNORECASE)
_DOTTED = re.compile(r"^(?:[A-Za-z]\.)+[A-Za-z]?\.?$")
_WORD_SPLIT = re.compile(r"^([^A-Za-z0-9]*)(.*?)([,;:)\]]*)$")
_SPACES = re.compile(r"\s+")


def token_pattern(text: str, flags: int = re.IGNORECASE) -> Pattern[str]:
    """Regex matching ``text`` only when it is not glued to other letters or digits."""
    body = re.escape(text)
    if text[:1].isalnum():
        body = r"(?<![A-Za-z0-9])" + body
    if text[-1:].isalnum():
        body = body + r"(?![A-Za-z0-9])"
    return re.compile(body, flags)


def ordinal(number: int) -> str:
    if 11 <= number % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _is_all_caps(text: str) -> bool:
    return any(ch.isalpha() for ch in text) and text == text.upper()


def _capitalize(part: str) -> str:
    return part[:1].upper() + part[1:]


@dataclass(frozen=True)
class _KeywordRule:
    patterns: Tuple[Pattern[str], ...]
    value: str

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


class NameNormalizer:
    """Office-name canonicaliser compiled from the reference store."""

    def __init__(self, store: ReferenceStore):
        tables = store.office_names
        self._states: Dict[str, str] = dict(tables["state_abbreviations"])
        self._office_codes: Dict[str, str] = {k.upper(): v for k, v in tables["office_codes"].items()}
        self._office_ids: Dict[str, str] = {k.upper(): v for k, v in tables["office_ids"].items()}

        enhancements = tables["office_enhancements"]
        self._enhancements_direct: Dict[str, str] = {k.lower(): v for k, v in enhancements.items()}
        # longest key first so "ACC-APG Natick" wins over "ACC-APG"
        self._enhancements_partial: List[Tuple[Pattern[str], str]] = [
            (token_pattern(k), enhancements[k]) for k in sorted(enhancements, key=len, reverse=True)
        ]
        self._word_expansions: List[Tuple[Pattern[str], str]] = [
            (token_pattern(k), v) for k, v in tables["word_expansions"].items()
        ]
        self._replacements: List[Tuple[Pattern[str], str]] = [
            (re.compile(rule["pattern"], re.IGNORECASE), rule["replacement"])
            for rule in tables["generic_replacements"]
        ]
        self._acronyms: Dict[str, str] = dict(tables["acronyms"])
        self._preserve = frozenset(a.upper() for a in tables["preserve_acronyms"])
        self._expansions: List[Tuple[Pattern[str], str]] = [
            (token_pattern(k, flags=0), v) for k, v in tables["abbreviation_expansions"].items()
        ]
        self._usace_districts: Tuple[Tuple[str, str], ...] = tuple(tables["usace_districts"].items())
        self._command_rules: Tuple[_KeywordRule, ...] = tuple(
            _KeywordRule(tuple(token_pattern(p) for p in rule["patterns"]), rule["command"])
            for rule in tables["command_keywords"]
        )
        self._description_rules: Tuple[_KeywordRule, ...] = tuple(
            _KeywordRule(tuple(token_pattern(p) for p in rule["patterns"]), rule["description"])
            for rule in tables["office_descriptions"]
        )
        self._default_description: str = tables["default_office_description"]

    # -- lookups -----------------------------------------------------------

    def office_code_name(self, office_code: Optional[str]) -> Optional[str]:
        code = (office_code or "").strip().upper()
        if not code or code == "N/A":
            return None
        for candidate in (code, code[:6], code[:5], code[:4]):
            if candidate in self._office_codes:
                return self._office_codes[candidate]
        return self._office_ids.get(code)

    def _match_enhancement(self, name: str) -> Optional[str]:
        direct = self._enhancements_direct.get(name.lower())
        if direct:
            return direct
        for pattern, full_name in self._enhancements_partial:
            if pattern.search(name):
                return full_name
        return None

    def enhance_office_name(self, name: Optional[str]) -> str:
        if not name:
            return name or ""
        return self._match_enhancement(name) or name

    def expand_office_name(self, name: Optional[str]) -> str:
        if not name:
            return name or ""
        expanded = name
        for pattern, full_name in self._expansions:
            expanded = pattern.sub(full_name, expanded)
        return _SPACES.sub(" ", expanded).strip()

    def lookup_office_name(self, office_id: Optional[str], current_name: str = "") -> Optional[str]:
        oid = (office_id or "").strip()
        if not oid or oid.upper() == "N/A":
            return None
        known = self._office_ids.get(oid.upper())
        if known:
            return known
        if current_name:
            return self.expand_office_name(current_name)
        return None

    def usace_district_name(self, name: Optional[str], city: Optional[str]) -> Optional[str]:
        upper = (name or "").upper()
        city_upper = (city or "").strip().upper()
        if not city_upper:
            return None
        if not any(marker in upper for marker in ("USACE", "ARMY CORPS OF ENGINEERS", "U.S. ARMY ENGINEER")):
            return None
        for location, district in self._usace_districts:
            if location in city_upper or city_upper in location:
                return f"USACE - {district}"
        return None

    def detect_command(self, name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        for rule in self._command_rules:
            if rule.matches(name):
                return rule.value
        return None

    def describe_office(self, name: Optional[str]) -> str:
        if name:
            for rule in self._description_rules:
                if rule.matches(name):
                    return rule.value
        return self._default_description

    # -- casing ------------------------------------------------------------

    def _case_word(self, core: str, index: int, all_caps: bool) -> str:
        if not core:
            return core
        if core.upper() in self._preserve:
            return core.upper()
        if _DOTTED.match(core):
            return core.upper()
        if not all_caps and _is_all_caps(core):
            return core
        lowered = core.lower()
        if index > 0 and lowered in CONNECTOR_WORDS:
            return lowered
        source = lowered if all_caps else core
        return "-".join(_capitalize(part) for part in source.split("-"))

    def _is_expandable(self, core: str) -> bool:
        return core in self._acronyms and core not in self._preserve and core.isupper() and core.isalnum()

    def _compose(self, text: str, all_caps: bool, expand_acronyms: bool) -> str:
        words: List[str] = []
        for word in text.split(" "):
            lead, core, trail = _WORD_SPLIT.match(word).groups()
            if expand_acronyms and self._is_expandable(core):
                expansion = self._acronyms[core].split(" ")
                for offset, part in enumerate(expansion):
                    cased = self._case_word(part, len(words), all_caps=False)
                    if offset == 0:
                        cased = lead + cased
                    if offset == len(expansion) - 1:
                        cased = cased + trail
                    words.append(cased)
                continue
            words.append(lead + self._case_word(core, len(words), all_caps) + trail)
        return " ".join(words)

    def to_title_case(self, text: Optional[str]) -> str:
        """Title-case ``text`` keeping preserved acronyms and dotted abbreviations.

        Fully upper-case input is lowered first; mixed-case input keeps any
        token that is already upper-case. Connector words stay lower-case
        except at the start.
        """
        cleaned = _SPACES.sub(" ", text or "").strip()
        if not cleaned:
            return ""
        return self._compose(cleaned, _is_all_caps(cleaned), expand_acronyms=False)

    # -- pipeline ----------------------------------------------------------

    def _rewrite(self, name: str) -> str:
        for pattern, replacement in self._replacements:
            name = pattern.sub(replacement, name)
        for pattern, replacement in self._word_expansions:
            name = pattern.sub(replacement, name)

        match = _USPFO_STATE.search(name)
        if match:
            code = match.group(1).upper()
            state = self._states.get(code, code)
            return f"U.S. Property and Fiscal Office - {state} Army National Guard"

        match = _USPFO_FOR.search(name)
        if match:
            return f"U.S. Property and Fiscal Office for {match.group(1).strip()}"

        match = _SQUADRON.search(name)
        if match:
            squadron = f"{ordinal(int(match.group(1)))} Contracting Squadron"
            remainder = match.group(2).strip().lstrip("-, ").strip()
            return f"{squadron} - {remainder}" if remainder else squadron

        match = _MICC.search(name)
        if match:
            location = match.group(1).strip().lstrip("-, ").strip()
            base = "Mission and Installation Contracting Command"
            return f"{base} - {location}" if location else base

        return name

    def normalize(self, raw_name: Optional[str], office_code: Optional[str] = None) -> str:
        """Return the canonical display name for an office."""
        by_code = self.office_code_name(office_code)
        if by_code:
            return by_code

        name = _SPACES.sub(" ", raw_name or "").strip()
        if not name:
            return ""

        enhanced = self._match_enhancement(name)
        if enhanced:
            return self.to_title_case(enhanced)

        # casing mode is decided on the raw input, before rewrites add mixed case
        all_caps = _is_all_caps(name)
        rewritten = _SPACES.sub(" ", self._rewrite(name)).strip()
        return self._compose(rewritten, all_caps, expand_acronyms=True)


@lru_cache(maxsize=8)
def normalizer_for(store: ReferenceStore) -> NameNormalizer:
    """Shared compiled normalizer for a given store instance."""
    return NameNormalizer(store)


__all__ = ["NameNormalizer", "CONNECTOR_WORDS", "normalizer_for", "ordinal", "token_pattern"]
