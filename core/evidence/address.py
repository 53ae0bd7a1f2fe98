"""
Address Standardizer Normaliser

Smarty-style street address payloads: standardized components, geocode
metadata and (when the property enrichment add-on is present) declared
property attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .parsing import EvidenceParseError, clean_text, to_float, to_int


@dataclass(frozen=True)
class AddressProfile:
    """Standardized address and cross-reference attributes."""
    provider_name: str
    region_code: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    year_built: Optional[int] = None
    roof_cover: Optional[str] = None
    cooling: Optional[str] = None
    heating: Optional[str] = None
    heating_fuel: Optional[str] = None
    water_heater: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return {
            "provider_name": self.provider_name,
            "region_code": self.region_code,
            "city": self.city,
            "postal_code": self.postal_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "year_built": self.year_built,
            "roof_cover": self.roof_cover,
            "cooling": self.cooling,
            "heating": self.heating,
            "heating_fuel": self.heating_fuel,
            "water_heater": self.water_heater,
        }


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def normalize_smarty(provider_name: str, payload: Any) -> AddressProfile:
    """
    Normalise an address standardizer payload.

    A list payload is the raw candidate list; the first candidate is used.

    Raises:
        EvidenceParseError: If the payload is neither an object nor a
            non-empty candidate list
    """
    candidate = payload
    if isinstance(payload, list):
        if not payload:
            raise EvidenceParseError(f"{provider_name} returned no address candidates")
        candidate = payload[0]
    if not isinstance(candidate, dict):
        raise EvidenceParseError(
            f"{provider_name} payload must be an object, got {type(candidate).__name__}"
        )

    components = _section(candidate, "components")
    metadata = _section(candidate, "metadata")
    attributes = _section(candidate, "attributes")

    return AddressProfile(
        provider_name=provider_name,
        region_code=clean_text(
            components.get("state_abbreviation") or candidate.get("state")
        ),
        city=clean_text(components.get("city_name") or candidate.get("city")),
        postal_code=clean_text(components.get("zipcode") or candidate.get("zip_code")),
        latitude=to_float(metadata.get("latitude") or candidate.get("latitude")),
        longitude=to_float(metadata.get("longitude") or candidate.get("longitude")),
        year_built=to_int(attributes.get("year_built")),
        roof_cover=clean_text(attributes.get("roof_cover")),
        cooling=clean_text(attributes.get("air_conditioner") or attributes.get("cooling")),
        heating=clean_text(attributes.get("heat") or attributes.get("heating")),
        heating_fuel=clean_text(attributes.get("fuel") or attributes.get("heating_fuel")),
        water_heater=clean_text(attributes.get("water_heater")),
    )
