"""
Lifespan Reference Table

Expected service life per (system type, subtype, climate zone).

Lookup precedence:
1. Exact (type, subtype, zone) row
2. (type, subtype, "default") row
3. The calling rule's own hard-coded fallback range

Climate factors are applied on levels 2 and 3 only. Zone-specific rows
are already climate conditioned and are returned as stored.
"""

from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType
from typing import Final, Iterable, Mapping, Optional

from core.models import SystemType
from .climate_factors import ClimateFactorTable
from .climate_zones import DEFAULT_ZONE


# Legacy subtype names found in hosted reference rows
SUBTYPE_ALIASES: Final[dict[str, str]] = {
    "central_air": "split_system",
    "packaged_unit": "package_unit",
    "gas": "gas_tank",
    "electric": "electric_tank",
}


class LookupLevel(Enum):
    """Which precedence level answered a lifespan lookup."""
    EXACT = "exact"
    DEFAULT_ZONE = "default_zone"
    RULE_FALLBACK = "rule_fallback"


@dataclass(frozen=True)
class LifespanReferenceEntry:
    """Static reference row. Looked up, never mutated by the engine."""
    system_type: SystemType
    subtype: str
    climate_zone: str
    min_years: float
    typical_years: float
    max_years: float
    quality_tier: str = "standard"

    def __post_init__(self):
        if not (0 < self.min_years <= self.typical_years <= self.max_years):
            raise ValueError(
                "lifespan must satisfy 0 < min <= typical <= max: "
                f"{self.system_type.value}/{self.subtype}/{self.climate_zone}"
            )

    @property
    def key(self) -> tuple[SystemType, str, str]:
        return (self.system_type, self.subtype, self.climate_zone)

    @classmethod
    def from_dict(cls, data: dict) -> "LifespanReferenceEntry":
        """Build from a row; accepts the hosted table's column and subtype names."""
        subtype = data.get("subtype") or data["system_subtype"]
        return cls(
            system_type=SystemType(data["system_type"]),
            subtype=SUBTYPE_ALIASES.get(subtype, subtype),
            climate_zone=data.get("climate_zone") or DEFAULT_ZONE,
            min_years=float(data["min_years"]),
            typical_years=float(data["typical_years"]),
            max_years=float(data["max_years"]),
            quality_tier=data.get("quality_tier") or "standard",
        )

    def to_dict(self) -> dict:
        return {
            "system_type": self.system_type.value,
            "subtype": self.subtype,
            "climate_zone": self.climate_zone,
            "min_years": self.min_years,
            "typical_years": self.typical_years,
            "max_years": self.max_years,
            "quality_tier": self.quality_tier,
        }


@dataclass(frozen=True)
class LifespanRange:
    """
    Resolved lifespan used by a field rule.

    Carries the lookup level and any climate multiplier so provenance
    can explain where the figures came from.
    """
    system_type: SystemType
    subtype: str
    climate_zone: str
    min_years: float
    typical_years: float
    max_years: float
    level: LookupLevel
    climate_multiplier: float = 1.0

    def scaled(self, multiplier: float) -> "LifespanRange":
        """Apply a climate multiplier to all three figures."""
        return replace(
            self,
            min_years=round(self.min_years * multiplier, 1),
            typical_years=round(self.typical_years * multiplier, 1),
            max_years=round(self.max_years * multiplier, 1),
            climate_multiplier=round(self.climate_multiplier * multiplier, 4),
        )

    def to_dict(self) -> dict:
        return {
            "system_type": self.system_type.value,
            "subtype": self.subtype,
            "climate_zone": self.climate_zone,
            "min_years": self.min_years,
            "typical_years": self.typical_years,
            "max_years": self.max_years,
            "level": self.level.value,
            "climate_multiplier": self.climate_multiplier,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LifespanRange":
        return cls(
            system_type=SystemType(data["system_type"]),
            subtype=data["subtype"],
            climate_zone=data["climate_zone"],
            min_years=float(data["min_years"]),
            typical_years=float(data["typical_years"]),
            max_years=float(data["max_years"]),
            level=LookupLevel(data["level"]),
            climate_multiplier=float(data.get("climate_multiplier", 1.0)),
        )


class LifespanTable:
    """
    Immutable, in-memory lifespan lookup.

    Built once per run and injected into every field rule. Identical
    lookups always return identical ranges.
    """

    def __init__(self, entries: Iterable[LifespanReferenceEntry] = ()):
        index: dict[tuple[SystemType, str, str], LifespanReferenceEntry] = {}
        for entry in entries:
            if entry.key in index:
                system_type, subtype, zone = entry.key
                raise ValueError(
                    f"Duplicate lifespan row: {system_type.value}/{subtype}/{zone}"
                )
            index[entry.key] = entry
        self._index: Mapping[tuple[SystemType, str, str], LifespanReferenceEntry] = (
            MappingProxyType(index)
        )

    def __len__(self) -> int:
        return len(self._index)

    def get(
        self,
        system_type: SystemType,
        subtype: str,
        climate_zone: str,
    ) -> Optional[LifespanReferenceEntry]:
        """Exact row only."""
        return self._index.get((system_type, subtype, climate_zone))

    def lookup(
        self,
        system_type: SystemType,
        subtype: str,
        climate_zone: str,
    ) -> Optional[LifespanRange]:
        """
        Two-level lookup: exact zone, then the zone-agnostic default row.

        Returns None when neither exists; the caller supplies its own
        fallback range.
        """
        entry = self.get(system_type, subtype, climate_zone)
        level = LookupLevel.EXACT
        if entry is None and climate_zone != DEFAULT_ZONE:
            entry = self.get(system_type, subtype, DEFAULT_ZONE)
            level = LookupLevel.DEFAULT_ZONE
        if entry is None:
            return None
        return LifespanRange(
            system_type=system_type,
            subtype=subtype,
            climate_zone=entry.climate_zone,
            min_years=entry.min_years,
            typical_years=entry.typical_years,
            max_years=entry.max_years,
            level=level,
        )


def resolve_lifespan(
    table: LifespanTable,
    climate_factors: ClimateFactorTable,
    system_type: SystemType,
    subtype: str,
    climate_zone: str,
    fallback: tuple[float, float, float],
) -> LifespanRange:
    """
    Resolve the lifespan a rule should use, never failing.

    Args:
        table: Lifespan reference table
        climate_factors: Climate factor table
        system_type: System being predicted
        subtype: Material / equipment subtype
        climate_zone: Resolved climate zone
        fallback: (min, typical, max) used when the table has no row

    Returns:
        LifespanRange, climate-adjusted unless it came from an exact row
    """
    resolved = table.lookup(system_type, subtype, climate_zone)
    if resolved is None:
        min_years, typical_years, max_years = fallback
        resolved = LifespanRange(
            system_type=system_type,
            subtype=subtype,
            climate_zone=DEFAULT_ZONE,
            min_years=float(min_years),
            typical_years=float(typical_years),
            max_years=float(max_years),
            level=LookupLevel.RULE_FALLBACK,
        )

    if resolved.level is not LookupLevel.EXACT and climate_zone != DEFAULT_ZONE:
        multiplier = climate_factors.combined_multiplier(climate_zone, system_type)
        if multiplier != 1.0:
            resolved = resolved.scaled(multiplier)

    return resolved


# =============================================================================
# Seed Data
# =============================================================================

def _row(system_type, subtype, zone, min_years, typical_years, max_years, tier="standard"):
    return LifespanReferenceEntry(
        system_type, subtype, zone, min_years, typical_years, max_years, tier
    )


_ROOF = SystemType.ROOF
_HVAC = SystemType.HVAC
_WH = SystemType.WATER_HEATER

DEFAULT_LIFESPAN_ENTRIES: Final[tuple[LifespanReferenceEntry, ...]] = (
    # Roof
    _row(_ROOF, "shingle", "default", 18, 22, 26),
    _row(_ROOF, "shingle", "florida", 12, 15, 20),
    _row(_ROOF, "shingle", "gulf_coast", 14, 17, 22),
    _row(_ROOF, "shingle", "desert_southwest", 15, 19, 24),
    _row(_ROOF, "shingle", "freeze_thaw", 16, 20, 25),
    _row(_ROOF, "tile", "default", 35, 45, 50, "premium"),
    _row(_ROOF, "tile", "florida", 25, 30, 40, "premium"),
    _row(_ROOF, "metal", "default", 40, 50, 70, "premium"),
    _row(_ROOF, "metal", "florida", 35, 45, 60, "premium"),
    _row(_ROOF, "flat", "default", 10, 15, 20, "economy"),
    _row(_ROOF, "flat", "florida", 8, 12, 16, "economy"),
    # HVAC
    _row(_HVAC, "split_system", "default", 13, 16, 20),
    _row(_HVAC, "split_system", "florida", 10, 12, 15),
    _row(_HVAC, "split_system", "gulf_coast", 11, 13, 17),
    _row(_HVAC, "split_system", "desert_southwest", 10, 12, 15),
    _row(_HVAC, "heat_pump", "default", 12, 15, 18),
    _row(_HVAC, "heat_pump", "florida", 9, 11, 14),
    _row(_HVAC, "package_unit", "default", 12, 15, 18),
    _row(_HVAC, "package_unit", "florida", 9, 12, 15),
    _row(_HVAC, "mini_split", "default", 15, 20, 22),
    _row(_HVAC, "furnace", "default", 15, 20, 25),
    _row(_HVAC, "furnace", "freeze_thaw", 15, 18, 22),
    # Water heater
    _row(_WH, "gas_tank", "default", 8, 10, 12),
    _row(_WH, "gas_tank", "florida", 7, 9, 11),
    _row(_WH, "electric_tank", "default", 10, 12, 15),
    _row(_WH, "electric_tank", "florida", 8, 10, 13),
    _row(_WH, "tankless", "default", 15, 20, 25, "premium"),
    _row(_WH, "heat_pump", "default", 10, 13, 15),
)
