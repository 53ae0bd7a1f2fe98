"""
Assessor Normaliser

Interprets ATTOM-style property detail payloads. This is the only place
raw assessor fields are read; rules see an AssessorProfile.

Accepted shapes:
- the API response envelope: {"property": [{...}, ...]}
- a single property object with building/utilities/location sections
- a flat object with snake_case keys (year_built, roof_cover, ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .parsing import EvidenceParseError, clean_text, to_float, to_int


@dataclass(frozen=True)
class AssessorProfile:
    """Structured declarations from the assessor record."""
    provider_name: str
    year_built: Optional[int] = None
    effective_year_built: Optional[int] = None
    roof_cover: Optional[str] = None
    heating_type: Optional[str] = None
    cooling_type: Optional[str] = None
    heating_fuel: Optional[str] = None
    water_heater: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def best_year_built(self) -> Optional[int]:
        """Effective year built (renovation-adjusted) when declared."""
        return self.effective_year_built or self.year_built

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            "provider_name": self.provider_name,
            "year_built": self.year_built,
            "effective_year_built": self.effective_year_built,
            "roof_cover": self.roof_cover,
            "heating_type": self.heating_type,
            "cooling_type": self.cooling_type,
            "heating_fuel": self.heating_fuel,
            "water_heater": self.water_heater,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def normalize_attom(provider_name: str, payload: Any) -> AssessorProfile:
    """
    Normalise an assessor payload into an AssessorProfile.

    Raises:
        EvidenceParseError: If the payload is not an object or the
            envelope holds no property record
    """
    if not isinstance(payload, dict):
        raise EvidenceParseError(
            f"{provider_name} payload must be an object, got {type(payload).__name__}"
        )

    record = payload
    if "property" in payload:
        properties = payload["property"]
        if isinstance(properties, list):
            if not properties or not isinstance(properties[0], dict):
                raise EvidenceParseError(f"{provider_name} response holds no property record")
            record = properties[0]
        elif isinstance(properties, dict):
            record = properties
        else:
            raise EvidenceParseError(f"{provider_name} property must be a list or object")

    building = _section(record, "building")
    summary = _section(building, "summary")
    construction = _section(building, "construction")
    utilities = _section(record, "utilities")
    location = _section(record, "location")

    year_built = (
        to_int(summary.get("yearBuilt"))
        or to_int(_section(record, "summary").get("yearbuilt"))
        or to_int(record.get("year_built"))
    )
    effective_year_built = (
        to_int(summary.get("yearBuiltEffective"))
        or to_int(record.get("effective_year_built"))
    )

    return AssessorProfile(
        provider_name=provider_name,
        year_built=year_built,
        effective_year_built=effective_year_built,
        roof_cover=clean_text(construction.get("roofCover") or record.get("roof_cover")),
        heating_type=clean_text(utilities.get("heatingType") or record.get("heating_type")),
        cooling_type=clean_text(utilities.get("coolingType") or record.get("cooling_type")),
        heating_fuel=clean_text(utilities.get("heatingFuel") or record.get("heating_fuel")),
        water_heater=clean_text(utilities.get("waterHeater") or record.get("water_heater")),
        latitude=to_float(location.get("latitude") or record.get("latitude")),
        longitude=to_float(location.get("longitude") or record.get("longitude")),
    )
