"""
Prediction Store Interface

The storage boundary for the prediction engine: one-shot bulk loads of a
property's inputs and one batch write of a run's predictions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from core.models import EvidenceSnapshot, PropertyRecord
from core.reference import ClimateFactorEntry, LifespanReferenceEntry

if TYPE_CHECKING:
    from core.prediction_engine.models import Prediction


class StoreError(Exception):
    """Storage unreachable or a request against it failed."""


class PropertyNotFoundError(StoreError):
    """No property record exists for the address id."""

    def __init__(self, address_id: str):
        super().__init__(f"Property not found: {address_id}")
        self.address_id = address_id


class PredictionStore(ABC):
    """
    Abstract storage for properties, snapshots, reference rows and predictions.

    Implementations must make insert_predictions all-or-nothing: either
    every row of the batch is stored or none is.
    """

    # =========================================================================
    # Loads
    # =========================================================================

    @abstractmethod
    def load_property(self, address_id: str) -> PropertyRecord:
        """
        Raises:
            PropertyNotFoundError: If no record exists
            StoreError: If the store cannot be read
        """
        ...

    @abstractmethod
    def load_snapshots(self, address_id: str) -> list[EvidenceSnapshot]:
        """All snapshots for the property (any order, possibly empty)."""
        ...

    @abstractmethod
    def load_lifespan_entries(self) -> list[LifespanReferenceEntry]:
        ...

    @abstractmethod
    def load_climate_factors(self) -> list[ClimateFactorEntry]:
        ...

    # =========================================================================
    # Writes
    # =========================================================================

    @abstractmethod
    def insert_predictions(self, predictions: list[Prediction]) -> None:
        """Insert one run's predictions as a single batch."""
        ...

    @abstractmethod
    def backfill_coordinates(self, address_id: str, latitude: float, longitude: float) -> None:
        """Set coordinates on a property that has none."""
        ...

    # =========================================================================
    # Queries
    # =========================================================================

    @abstractmethod
    def list_predictions(self, address_id: str, run_id: Optional[str] = None) -> list[Prediction]:
        """
        Predictions for a property.

        Args:
            address_id: Property id
            run_id: Specific run; defaults to the latest run

        Returns:
            Predictions of that run (empty if there are none)
        """
        ...

    @abstractmethod
    def list_run_ids(self, address_id: str) -> list[str]:
        """Run ids for a property, newest first."""
        ...

    def latest_run_id(self, address_id: str) -> Optional[str]:
        run_ids = self.list_run_ids(address_id)
        return run_ids[0] if run_ids else None
