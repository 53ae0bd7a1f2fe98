"""
Climate Factor Table

Multiplicative lifespan adjustments per (climate zone, factor type).
Multiple factors for the same zone compose multiplicatively; only the
factor types relevant to a system are applied to that system.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Iterable, Mapping, Optional

from core.models import SystemType


# Factor types that wear each system
SYSTEM_FACTOR_TYPES: Final[Mapping[SystemType, tuple[str, ...]]] = MappingProxyType({
    SystemType.ROOF: ("uv_exposure", "hurricane_wind", "freeze_thaw"),
    SystemType.HVAC: ("humidity", "heat", "salt_air"),
    SystemType.WATER_HEATER: ("humidity", "hard_water"),
})

FACTOR_TYPE_ALIASES: Final[dict[str, str]] = {
    "uv_index": "uv_exposure",
    "wind_hail": "hurricane_wind",
}


@dataclass(frozen=True)
class ClimateFactorEntry:
    """(climate zone, factor type) -> multiplier applied to lifespan years."""
    climate_zone: str
    factor_type: str
    multiplier: float

    def __post_init__(self):
        if not self.climate_zone or not self.factor_type:
            raise ValueError("climate_zone and factor_type are required")
        if not 0 < self.multiplier <= 2:
            raise ValueError(
                f"multiplier must be in (0, 2]: {self.climate_zone}/{self.factor_type}"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "ClimateFactorEntry":
        """Build from a row; legacy factor type names are mapped."""
        factor_type = data["factor_type"]
        return cls(
            climate_zone=data["climate_zone"],
            factor_type=FACTOR_TYPE_ALIASES.get(factor_type, factor_type),
            multiplier=float(data["multiplier"]),
        )

    def to_dict(self) -> dict:
        return {
            "climate_zone": self.climate_zone,
            "factor_type": self.factor_type,
            "multiplier": self.multiplier,
        }


class ClimateFactorTable:
    """
    Immutable lookup of climate factors.

    Built once per run from reference rows and passed read-only into
    every field rule.
    """

    def __init__(self, entries: Iterable[ClimateFactorEntry] = ()):
        index: dict[tuple[str, str], float] = {}
        for entry in entries:
            key = (entry.climate_zone, entry.factor_type)
            if key in index:
                raise ValueError(f"Duplicate climate factor: {key[0]}/{key[1]}")
            index[key] = entry.multiplier
        self._index: Mapping[tuple[str, str], float] = MappingProxyType(index)

    def __len__(self) -> int:
        return len(self._index)

    def get(self, climate_zone: str, factor_type: str) -> Optional[float]:
        return self._index.get((climate_zone, factor_type))

    def factors_for(self, climate_zone: str, system_type: SystemType) -> dict[str, float]:
        """Factors of this zone that apply to the given system."""
        result = {}
        for factor_type in SYSTEM_FACTOR_TYPES[system_type]:
            multiplier = self.get(climate_zone, factor_type)
            if multiplier is not None:
                result[factor_type] = multiplier
        return result

    def combined_multiplier(self, climate_zone: str, system_type: SystemType) -> float:
        """Product of all factors relevant to the system (1.0 if none)."""
        combined = 1.0
        for multiplier in self.factors_for(climate_zone, system_type).values():
            combined *= multiplier
        return round(combined, 4)


# =============================================================================
# Seed Data
# =============================================================================

DEFAULT_CLIMATE_FACTORS: Final[tuple[ClimateFactorEntry, ...]] = (
    ClimateFactorEntry("florida", "humidity", 0.90),
    ClimateFactorEntry("florida", "uv_exposure", 0.90),
    ClimateFactorEntry("florida", "hurricane_wind", 0.92),
    ClimateFactorEntry("florida", "salt_air", 0.95),
    ClimateFactorEntry("florida", "hard_water", 0.92),
    ClimateFactorEntry("gulf_coast", "humidity", 0.92),
    ClimateFactorEntry("gulf_coast", "heat", 0.95),
    ClimateFactorEntry("gulf_coast", "hurricane_wind", 0.95),
    ClimateFactorEntry("desert_southwest", "uv_exposure", 0.85),
    ClimateFactorEntry("desert_southwest", "heat", 0.88),
    ClimateFactorEntry("desert_southwest", "hard_water", 0.85),
    ClimateFactorEntry("freeze_thaw", "freeze_thaw", 0.90),
)
