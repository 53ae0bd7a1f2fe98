"""
Data models for the home systems engine.

Inputs handed to the engine by upstream collaborators. Both are treated
as read-only for the duration of a prediction run.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class SystemType(Enum):
    """Home systems the engine predicts for."""
    ROOF = "roof"
    HVAC = "hvac"
    WATER_HEATER = "water_heater"


class PredictionField(Enum):
    """
    Output fields, one rule each.

    Values are the field names persisted on prediction rows.
    """
    ROOF_AGE_BUCKET = "roof_age_bucket"
    HVAC_PRESENT = "hvac_present"
    HVAC_SYSTEM_TYPE = "hvac_system_type"
    HVAC_AGE_BUCKET = "hvac_age_bucket"
    WATER_HEATER_TYPE = "water_heater_type"
    WATER_HEATER_AGE_BUCKET = "water_heater_age_bucket"


@dataclass(frozen=True)
class PropertyRecord:
    """
    Property identity record.

    Created once at intake. Coordinates may be back-filled later from
    an evidence source; use with_coordinates() to get the updated copy.
    """
    address_id: str
    year_built: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    standardized_region_code: Optional[str] = None

    # Display-only address components
    street_address: str = ""
    city: str = ""
    postal_code: str = ""

    def __post_init__(self):
        if not self.address_id:
            raise ValueError("address_id is required")

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def with_coordinates(self, latitude: float, longitude: float) -> "PropertyRecord":
        """Return a copy with back-filled coordinates."""
        return replace(self, latitude=latitude, longitude=longitude)

    @classmethod
    def from_dict(cls, data: dict) -> "PropertyRecord":
        """Build from a storage row. Unknown keys are ignored."""
        year_built = data.get("year_built")
        return cls(
            address_id=str(data["address_id"]),
            year_built=int(year_built) if year_built else None,
            latitude=_optional_float(_first(data, "latitude", "lat")),
            longitude=_optional_float(_first(data, "longitude", "lon")),
            standardized_region_code=(
                data.get("standardized_region_code") or data.get("state") or None
            ),
            street_address=data.get("street_address") or "",
            city=data.get("city") or "",
            postal_code=(
                data.get("postal_code") or data.get("zip") or data.get("zip_code") or ""
            ),
        )

    def to_dict(self) -> dict:
        return {
            "address_id": self.address_id,
            "year_built": self.year_built,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "standardized_region_code": self.standardized_region_code,
            "street_address": self.street_address,
            "city": self.city,
            "postal_code": self.postal_code,
        }


@dataclass(frozen=True)
class EvidenceSnapshot:
    """One retrieved payload from one named provider for one property."""
    provider_name: str
    payload: Any
    retrieved_at: datetime
    address_id: str = ""
    snapshot_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "EvidenceSnapshot":
        """Build from a storage row (accepts the hosted table's column names)."""
        retrieved_at = data.get("retrieved_at") or data.get("created_at")
        if isinstance(retrieved_at, str):
            retrieved_at = datetime.fromisoformat(retrieved_at.replace("Z", "+00:00"))
        if retrieved_at is None:
            raise ValueError("snapshot is missing retrieved_at")
        return cls(
            provider_name=data.get("provider_name") or data.get("provider") or "",
            payload=data.get("payload"),
            retrieved_at=retrieved_at,
            address_id=str(data.get("address_id") or ""),
            snapshot_id=str(data.get("id") or data.get("snapshot_id") or ""),
        )

    @property
    def retrieved_at_utc(self) -> datetime:
        """Retrieval time as an aware datetime (naive values are taken as UTC)."""
        if self.retrieved_at.tzinfo is None:
            return self.retrieved_at.replace(tzinfo=timezone.utc)
        return self.retrieved_at

    def to_dict(self) -> dict:
        return {
            "snapshot_id": self.snapshot_id,
            "address_id": self.address_id,
            "provider_name": self.provider_name,
            "payload": self.payload,
            "retrieved_at": self.retrieved_at.isoformat(),
        }


def latest_by_provider(snapshots: list[EvidenceSnapshot]) -> dict[str, EvidenceSnapshot]:
    """
    Select the most recent snapshot for each provider.

    Snapshots are append-only, so older payloads from the same provider
    are superseded rather than merged.
    """
    latest: dict[str, EvidenceSnapshot] = {}
    for snapshot in snapshots:
        name = snapshot.provider_name.lower().strip()
        current = latest.get(name)
        if current is None or snapshot.retrieved_at_utc > current.retrieved_at_utc:
            latest[name] = snapshot
    return latest


def _first(data: dict, *keys: str):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)
