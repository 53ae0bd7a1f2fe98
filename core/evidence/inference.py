"""
Material / Type Inferencers

Map declared assessor values and free permit text to the subtype names
used by the lifespan table, plus the climate-conditioned statistical
defaults used when nothing is declared.
"""

from __future__ import annotations

import re
from typing import Callable, Final, Optional, Pattern

from core.models import SystemType
from core.reference.climate_zones import DESERT_SOUTHWEST, FLORIDA, FREEZE_THAW


# =============================================================================
# Subtypes
# =============================================================================

ROOF_SHINGLE: Final[str] = "shingle"
ROOF_TILE: Final[str] = "tile"
ROOF_METAL: Final[str] = "metal"
ROOF_FLAT: Final[str] = "flat"

HVAC_SPLIT_SYSTEM: Final[str] = "split_system"
HVAC_HEAT_PUMP: Final[str] = "heat_pump"
HVAC_PACKAGE_UNIT: Final[str] = "package_unit"
HVAC_MINI_SPLIT: Final[str] = "mini_split"
HVAC_FURNACE: Final[str] = "furnace"

WH_GAS_TANK: Final[str] = "gas_tank"
WH_ELECTRIC_TANK: Final[str] = "electric_tank"
WH_TANKLESS: Final[str] = "tankless"
WH_HEAT_PUMP: Final[str] = "heat_pump"


def _compile(*patterns: str) -> Pattern[str]:
    return re.compile("|".join(patterns), re.IGNORECASE)


# Ordered: the first subtype whose pattern matches wins
SUBTYPE_PATTERNS: Final[dict[SystemType, tuple[tuple[str, Pattern[str]], ...]]] = {
    SystemType.ROOF: (
        (ROOF_TILE, _compile(r"\btile\b", r"\bclay\b", r"\bbarrel\b")),
        (ROOF_METAL, _compile(r"\bmetal\b", r"\bsteel\b", r"\balumin(i)?um\b", r"standing\s+seam", r"\btin\b")),
        (ROOF_FLAT, _compile(
            r"\bflat\b", r"built[\s-]?up", r"\bmembrane\b", r"\btpo\b", r"\bepdm\b",
            r"modified\s+bitumen", r"\btar\b", r"\bgravel\b", r"\broll(ed)?\s+roof",
        )),
        (ROOF_SHINGLE, _compile(r"\bshingles?\b", r"\basphalt\b", r"\bcomposition\b", r"\bcomp\b")),
    ),
    SystemType.HVAC: (
        (HVAC_MINI_SPLIT, _compile(r"\bmini[\s-]?split", r"\bductless\b")),
        (HVAC_HEAT_PUMP, _compile(r"\bheat\s*pump\b(?!\s+water)")),
        (HVAC_PACKAGE_UNIT, _compile(
            r"\bpackaged?\s+(unit|system)", r"\brooftop\s+unit", r"\brtu\b",
        )),
        (HVAC_SPLIT_SYSTEM, _compile(
            r"\bsplit\s+system", r"\bsplit\b", r"\bcentral\b", r"\bcondenser\b", r"\bair\s+handler",
        )),
        (HVAC_FURNACE, _compile(r"\bfurnace\b", r"\bforced\s+air\b", r"\bboiler\b")),
    ),
    SystemType.WATER_HEATER: (
        (WH_TANKLESS, _compile(r"\btankless\b", r"\bon[\s-]demand\b", r"\binstantaneous\b")),
        (WH_HEAT_PUMP, _compile(r"\bheat\s*pump\b", r"\bhybrid\b")),
        (WH_ELECTRIC_TANK, _compile(r"\belectric(ity|al)?\b")),
        (WH_GAS_TANK, _compile(r"\bgas\b", r"\bpropane\b", r"\blp\b", r"\bnatural\s+gas\b", r"\boil\b")),
    ),
}


def infer_subtype(system_type: SystemType, text: Optional[str]) -> Optional[str]:
    """
    Infer a system subtype from a declared value or free text.

    Returns:
        Subtype name, or None when nothing recognisable is present
    """
    if not text:
        return None
    for subtype, pattern in SUBTYPE_PATTERNS[system_type]:
        if pattern.search(text):
            return subtype
    return None


_NONE_DECLARED = re.compile(r"^(none|no|n/?a|not\s+present|0)$", re.IGNORECASE)


def infer_presence(*declarations: Optional[str]) -> Optional[bool]:
    """
    Whether declared cooling/heating values indicate an HVAC system.

    Any declared value other than an explicit "none" means present; all
    declarations explicitly "none" means absent; nothing declared is None.
    """
    declared = [d.strip() for d in declarations if d and d.strip()]
    if not declared:
        return None
    return not all(_NONE_DECLARED.match(d) for d in declared)


# =============================================================================
# Climate Defaults
# =============================================================================

def default_roof_material(climate_zone: str) -> str:
    """Most common roof covering for the zone."""
    return ROOF_TILE if climate_zone == DESERT_SOUTHWEST else ROOF_SHINGLE


def default_hvac_type(climate_zone: str) -> str:
    """Most common HVAC configuration for the zone."""
    return HVAC_FURNACE if climate_zone == FREEZE_THAW else HVAC_SPLIT_SYSTEM


def default_water_heater_type(climate_zone: str) -> str:
    """Most common water heater for the zone."""
    return WH_ELECTRIC_TANK if climate_zone == FLORIDA else WH_GAS_TANK


def default_hvac_present(climate_zone: str) -> bool:
    # Central conditioning is the norm in every mapped zone
    return True


CLIMATE_DEFAULTS: Final[dict[SystemType, Callable[[str], str]]] = {
    SystemType.ROOF: default_roof_material,
    SystemType.HVAC: default_hvac_type,
    SystemType.WATER_HEATER: default_water_heater_type,
}


def default_subtype(system_type: SystemType, climate_zone: str) -> str:
    """Climate-conditioned statistical default subtype for a system."""
    return CLIMATE_DEFAULTS[system_type](climate_zone)
