"""
Reference data for the prediction engine.

Climate zones, lifespan figures and climate factors. All lookups are
immutable once built and are injected into field rules explicitly.
"""

from .climate_zones import (
    DEFAULT_ZONE,
    CLIMATE_ZONES,
    normalise_region_code,
    resolve_climate_zone,
)
from .climate_factors import (
    ClimateFactorEntry,
    ClimateFactorTable,
    DEFAULT_CLIMATE_FACTORS,
    SYSTEM_FACTOR_TYPES,
)
from .lifespan import (
    LifespanReferenceEntry,
    LifespanRange,
    LifespanTable,
    LookupLevel,
    DEFAULT_LIFESPAN_ENTRIES,
    resolve_lifespan,
)

__all__ = [
    # Climate zones
    "DEFAULT_ZONE",
    "CLIMATE_ZONES",
    "normalise_region_code",
    "resolve_climate_zone",
    # Climate factors
    "ClimateFactorEntry",
    "ClimateFactorTable",
    "DEFAULT_CLIMATE_FACTORS",
    "SYSTEM_FACTOR_TYPES",
    # Lifespan
    "LifespanReferenceEntry",
    "LifespanRange",
    "LifespanTable",
    "LookupLevel",
    "DEFAULT_LIFESPAN_ENTRIES",
    "resolve_lifespan",
]
