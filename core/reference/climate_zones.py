"""
Climate Zone Resolver

Maps standardized address components to a named climate zone used to
condition lifespan figures and confidence. Unmapped regions degrade to
the "default" zone rather than failing.
"""

from typing import Final, Optional


DEFAULT_ZONE: Final[str] = "default"

FLORIDA: Final[str] = "florida"
GULF_COAST: Final[str] = "gulf_coast"
DESERT_SOUTHWEST: Final[str] = "desert_southwest"
FREEZE_THAW: Final[str] = "freeze_thaw"

CLIMATE_ZONES: Final[tuple[str, ...]] = (
    FLORIDA,
    GULF_COAST,
    DESERT_SOUTHWEST,
    FREEZE_THAW,
    DEFAULT_ZONE,
)

# Two-letter region code -> zone
REGION_ZONE_MAP: Final[dict[str, str]] = {
    # High heat & humidity
    "FL": FLORIDA,
    # Gulf coast humidity
    "TX": GULF_COAST,
    "LA": GULF_COAST,
    "MS": GULF_COAST,
    "AL": GULF_COAST,
    # Hot, dry, high UV
    "AZ": DESERT_SOUTHWEST,
    "NV": DESERT_SOUTHWEST,
    "NM": DESERT_SOUTHWEST,
    # Northern freeze-thaw
    "MN": FREEZE_THAW,
    "WI": FREEZE_THAW,
    "MI": FREEZE_THAW,
    "ND": FREEZE_THAW,
    "SD": FREEZE_THAW,
    "MT": FREEZE_THAW,
    "WY": FREEZE_THAW,
    "VT": FREEZE_THAW,
    "NH": FREEZE_THAW,
    "ME": FREEZE_THAW,
}

STATE_NAME_CODES: Final[dict[str, str]] = {
    "florida": "FL",
    "texas": "TX",
    "louisiana": "LA",
    "mississippi": "MS",
    "alabama": "AL",
    "arizona": "AZ",
    "nevada": "NV",
    "new mexico": "NM",
    "minnesota": "MN",
    "wisconsin": "WI",
    "michigan": "MI",
    "north dakota": "ND",
    "south dakota": "SD",
    "montana": "MT",
    "wyoming": "WY",
    "vermont": "VT",
    "new hampshire": "NH",
    "maine": "ME",
}


def normalise_region_code(region: Optional[str]) -> Optional[str]:
    """
    Normalise a region code or state name to a two-letter code.

    Returns None for empty input. Unknown full names are returned
    uppercased so callers still see what was provided.
    """
    if not region:
        return None
    cleaned = " ".join(region.strip().split())
    if not cleaned:
        return None
    if len(cleaned) == 2:
        return cleaned.upper()
    return STATE_NAME_CODES.get(cleaned.lower(), cleaned.upper())


def resolve_climate_zone(region: Optional[str]) -> str:
    """
    Resolve a region/state code to a climate zone.

    Pure function with no error cases: anything unmapped resolves
    to DEFAULT_ZONE.
    """
    code = normalise_region_code(region)
    if code is None:
        return DEFAULT_ZONE
    return REGION_ZONE_MAP.get(code, DEFAULT_ZONE)
