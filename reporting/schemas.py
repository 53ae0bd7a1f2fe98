"""
Report schemas for the Home Systems Report.

Holds the data a report is rendered from: the property, one run's
predictions in display order, and report metadata.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from core.models import PredictionField, PropertyRecord
from core.prediction_engine.models import Prediction
from core.store.base import PredictionStore


# Display order of the fields in the report
FIELD_ORDER = [
    PredictionField.ROOF_AGE_BUCKET,
    PredictionField.HVAC_PRESENT,
    PredictionField.HVAC_SYSTEM_TYPE,
    PredictionField.HVAC_AGE_BUCKET,
    PredictionField.WATER_HEATER_TYPE,
    PredictionField.WATER_HEATER_AGE_BUCKET,
]


@dataclass
class HomeSystemsReportData:
    """Everything needed to render one Home Systems Report."""
    property: PropertyRecord
    run_id: str
    predictions: List[Prediction]
    generated_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )
    report_version: str = "1.0"

    def __post_init__(self):
        order = {f: i for i, f in enumerate(FIELD_ORDER)}
        self.predictions = sorted(self.predictions, key=lambda p: order.get(p.field, len(order)))

    @property
    def model_version(self) -> str:
        return self.predictions[0].model_version if self.predictions else ""

    @property
    def climate_zone(self) -> str:
        return self.predictions[0].provenance.climate_zone if self.predictions else ""

    @property
    def replacement_flags(self) -> List[Prediction]:
        """Age predictions whose system is likely past its lifespan."""
        return [p for p in self.predictions if p.provenance.replacement_likely]

    @property
    def display_address(self) -> str:
        parts = [
            self.property.street_address,
            self.property.city,
            " ".join(
                part for part in (
                    self.property.standardized_region_code or "",
                    self.property.postal_code,
                ) if part
            ),
        ]
        address = ", ".join(part for part in parts if part)
        return address or self.property.address_id


def load_report_data(
    store: PredictionStore,
    address_id: str,
    run_id: Optional[str] = None,
) -> Optional[HomeSystemsReportData]:
    """
    Load report data for a property.

    Args:
        store: Prediction store
        address_id: Property to report on
        run_id: Run to report (default: latest run)

    Returns:
        HomeSystemsReportData, or None if the property has no predictions

    Raises:
        PropertyNotFoundError: If the property does not exist
        StoreError: If the store cannot be read
    """
    record = store.load_property(address_id)
    predictions = store.list_predictions(address_id, run_id=run_id)
    if not predictions:
        return None
    return HomeSystemsReportData(
        property=record,
        run_id=predictions[0].run_id,
        predictions=predictions,
    )
