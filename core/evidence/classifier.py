"""
Permit Relevance Classifier

Decides whether a permit is evidence of work on a given home system.

Each system has an inclusion pattern set and shares one hard exclusion
set. Exclusion is evaluated FIRST and is absolute: a permit matching any
exclusion is never evidence for any system, whatever else it mentions.
Generic permit text is noisy ("misc: paver + shutter install") and a
false positive here drives every downstream age prediction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Optional, Pattern

from core.models import SystemType
from .permits import PermitRecord


class InstallKind(Enum):
    """What a matching permit says happened to the system."""
    REPLACEMENT = "permit_replacement"
    NEW_INSTALL = "permit_install"
    UNCLASSIFIED = "unclassified"


def _compile(*patterns: str) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# =============================================================================
# Pattern Sets
# =============================================================================

EXCLUSION_PATTERNS: Final[tuple[Pattern[str], ...]] = _compile(
    r"\bhurricane\s+(shutter|panel|protection)",
    r"\bshutters?\b",
    r"\bpavers?\b",
    r"\b(swimming\s+)?pools?\b",
    r"\bspas?\b",
    r"\bhot\s+tub",
    # Outdoor decks only; "decking" is roof sheathing
    r"(?<!roof )\bdecks?\b",
    r"\bfences?\b|\bfencing\b",
    r"\bscreen(ed)?\s+(enclosure|room|porch)",
    r"\bmisc(ellaneous)?\b.*\b(paver|shutter|pool|deck|fence|screen)",
)

INCLUSION_PATTERNS: Final[dict[SystemType, tuple[Pattern[str], ...]]] = {
    SystemType.HVAC: _compile(
        r"\bhvac\b",
        r"\bair[\s-]*condition",
        r"\ba/c\b",
        r"\bac\s+(unit|system|change|replace)",
        r"\bheat\s*pump\b(?!\s+water)",
        r"\b(split|packaged?)\s+(system|unit)",
        r"\bmini[\s-]?split",
        r"\bductless\b",
        r"\b\d+(\.\d+)?\s*-?\s*tons?\b",
        r"\bcondenser\b",
        r"\bcondensing\s+unit",
        r"\bair\s+handl(er|ing)",
        r"\bfurnace\b",
        r"(?<!water )\b(cooling|heating)\s+(system|unit|equipment)\b",
        r"\b(change[\s-]?out|replace\w*)\b.*\bac\b",
        r"\bac\b.*\b(change[\s-]?out|replace\w*)\b",
    ),
    SystemType.ROOF: _compile(
        r"\bre-?roof",
        r"\broof(s|ing)?\b",
        r"\bshingles?\b",
        r"\btear[\s-]?off\b",
        r"\b(roof\s+)?sheathing\b",
    ),
    SystemType.WATER_HEATER: _compile(
        r"\bwater\s+heat(er|ing)?\b",
        r"\bhot\s+water\b",
        r"\btankless\b",
        r"\btank\s+water\b",
        r"\bheat\s*pump\s+water\b",
    ),
}

# Permit types that count as evidence on their own
PERMIT_TYPE_PATTERNS: Final[dict[SystemType, tuple[Pattern[str], ...]]] = {
    SystemType.HVAC: _compile(r"\bmech(anical)?\b"),
    SystemType.ROOF: _compile(r"\broof(ing)?\b"),
    SystemType.WATER_HEATER: (),
}

REPLACEMENT_PATTERNS: Final[dict[SystemType, tuple[Pattern[str], ...]]] = {
    SystemType.HVAC: _compile(
        r"\breplac", r"\bchange[\s-]?out", r"\bupgrade", r"\bnew\s+unit",
    ),
    SystemType.ROOF: _compile(
        r"\bre-?roof", r"\btear[\s-]?off", r"\breplac", r"\bnew\s+roof",
    ),
    SystemType.WATER_HEATER: _compile(
        r"\breplac", r"\bchange[\s-]?out", r"\bupgrade", r"\bconversion",
    ),
}

INSTALL_PATTERNS: Final[dict[SystemType, tuple[Pattern[str], ...]]] = {
    SystemType.HVAC: _compile(r"\binstall", r"\bnew\s+system", r"\bconversion"),
    SystemType.ROOF: _compile(r"\bnew\s+roof", r"\binstall"),
    SystemType.WATER_HEATER: _compile(r"\binstall", r"\bnew\b"),
}


def _any_match(patterns: Iterable[Pattern[str]], text: str) -> bool:
    return any(p.search(text) for p in patterns)


# =============================================================================
# Classification
# =============================================================================

def is_excluded(text: str) -> bool:
    """True if the text matches any hard exclusion pattern."""
    return bool(text) and _any_match(EXCLUSION_PATTERNS, text)


def matches_system(system_type: SystemType, text: str, permit_type: Optional[str] = None) -> bool:
    """
    Classify free text (and optional permit type) for one system.

    Exclusion is checked first and wins unconditionally.
    """
    combined = " ".join(t for t in (text, permit_type) if t)
    if not combined or is_excluded(combined):
        return False
    if _any_match(INCLUSION_PATTERNS[system_type], combined):
        return True
    return bool(permit_type) and _any_match(PERMIT_TYPE_PATTERNS[system_type], permit_type)


def is_system_permit(system_type: SystemType, permit: PermitRecord) -> bool:
    """Whether a permit is evidence of work on the given system."""
    text = " ".join(t for t in (permit.description, permit.work_class) if t)
    return matches_system(system_type, text, permit.permit_type)


def classify_install(system_type: SystemType, permit: PermitRecord) -> InstallKind:
    """Replacement wins over new install when a description says both."""
    description = (permit.description or "").lower()
    if _any_match(REPLACEMENT_PATTERNS[system_type], description):
        return InstallKind.REPLACEMENT
    if _any_match(INSTALL_PATTERNS[system_type], description):
        return InstallKind.NEW_INSTALL
    return InstallKind.UNCLASSIFIED


@dataclass(frozen=True)
class SystemPermit:
    """A permit accepted as evidence for one system."""
    permit: PermitRecord
    system_type: SystemType
    install_kind: InstallKind

    @property
    def observed_on(self):
        return self.permit.observed_date


def relevant_permits(
    system_type: SystemType,
    permits: Iterable[PermitRecord],
) -> list[SystemPermit]:
    """
    Permits relevant to a system, most recent first.

    Permits without any usable date are ignored. Ties on date keep the
    input order.
    """
    matched = [
        SystemPermit(p, system_type, classify_install(system_type, p))
        for p in permits
        if p.observed_date is not None and is_system_permit(system_type, p)
    ]
    matched.sort(key=lambda sp: sp.observed_on, reverse=True)
    return matched
