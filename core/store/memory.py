"""
In-Memory Prediction Store

Development and test storage with optional JSON file persistence.
Reference tables are seeded from the built-in defaults unless rows are
supplied explicitly.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from core.models import EvidenceSnapshot, PropertyRecord
from core.prediction_engine.models import Prediction
from core.reference import (
    DEFAULT_CLIMATE_FACTORS,
    DEFAULT_LIFESPAN_ENTRIES,
    ClimateFactorEntry,
    LifespanReferenceEntry,
)
from .base import PredictionStore, PropertyNotFoundError, StoreError


logger = logging.getLogger(__name__)


class InMemoryPredictionStore(PredictionStore):
    """
    Dict-backed store.

    Predictions are kept in insertion order; a run's rows are appended
    together so run order is insertion order.
    """

    def __init__(
        self,
        persist_path: Optional[str] = None,
        lifespan_entries: Optional[Iterable[LifespanReferenceEntry]] = None,
        climate_factors: Optional[Iterable[ClimateFactorEntry]] = None,
    ):
        """
        Initialise store.

        Args:
            persist_path: Optional path of a JSON file to persist to
            lifespan_entries: Reference rows (default: built-in seed table)
            climate_factors: Factor rows (default: built-in seed table)
        """
        self._properties: dict[str, PropertyRecord] = {}
        self._snapshots: dict[str, list[EvidenceSnapshot]] = {}
        self._predictions: list[Prediction] = []
        self._lifespans = list(
            DEFAULT_LIFESPAN_ENTRIES if lifespan_entries is None else lifespan_entries
        )
        self._factors = list(
            DEFAULT_CLIMATE_FACTORS if climate_factors is None else climate_factors
        )
        self._lock = threading.Lock()
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _save_to_file(self) -> None:
        if not self._persist_path:
            return

        data = {
            "properties": [p.to_dict() for p in self._properties.values()],
            "snapshots": [
                s.to_dict() for snaps in self._snapshots.values() for s in snaps
            ],
            "predictions": [p.to_dict() for p in self._predictions],
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._persist_path.parent.mkdir(parents=True, exist_ok=True)
            self._persist_path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise StoreError(f"Could not write {self._persist_path}: {e}") from e

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._persist_path.read_text())
            for row in data.get("properties", []):
                record = PropertyRecord.from_dict(row)
                self._properties[record.address_id] = record
            for row in data.get("snapshots", []):
                snapshot = EvidenceSnapshot.from_dict(row)
                self._snapshots.setdefault(snapshot.address_id, []).append(snapshot)
            for row in data.get("predictions", []):
                self._predictions.append(Prediction.from_dict(row))
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            # Start fresh rather than refuse to boot
            logger.warning("Could not load store data from %s: %s", self._persist_path, e)

    # =========================================================================
    # Seeding
    # =========================================================================

    def add_property(self, record: PropertyRecord) -> None:
        with self._lock:
            self._properties[record.address_id] = record
            self._save_to_file()

    def add_snapshot(self, snapshot: EvidenceSnapshot) -> None:
        if not snapshot.address_id:
            raise ValueError("snapshot address_id is required")
        with self._lock:
            self._snapshots.setdefault(snapshot.address_id, []).append(snapshot)
            self._save_to_file()

    # =========================================================================
    # PredictionStore
    # =========================================================================

    def load_property(self, address_id: str) -> PropertyRecord:
        record = self._properties.get(address_id)
        if record is None:
            raise PropertyNotFoundError(address_id)
        return record

    def load_snapshots(self, address_id: str) -> list[EvidenceSnapshot]:
        return list(self._snapshots.get(address_id, []))

    def load_lifespan_entries(self) -> list[LifespanReferenceEntry]:
        return list(self._lifespans)

    def load_climate_factors(self) -> list[ClimateFactorEntry]:
        return list(self._factors)

    def insert_predictions(self, predictions: list[Prediction]) -> None:
        with self._lock:
            before = len(self._predictions)
            self._predictions.extend(predictions)
            try:
                self._save_to_file()
            except StoreError:
                del self._predictions[before:]
                raise

    def backfill_coordinates(self, address_id: str, latitude: float, longitude: float) -> None:
        with self._lock:
            record = self._properties.get(address_id)
            if record is None:
                raise PropertyNotFoundError(address_id)
            if record.has_coordinates:
                return
            self._properties[address_id] = record.with_coordinates(latitude, longitude)
            self._save_to_file()

    def list_predictions(self, address_id: str, run_id: Optional[str] = None) -> list[Prediction]:
        run_id = run_id or self.latest_run_id(address_id)
        if run_id is None:
            return []
        return [
            p for p in self._predictions
            if p.address_id == address_id and p.run_id == run_id
        ]

    def list_run_ids(self, address_id: str) -> list[str]:
        run_ids: list[str] = []
        for prediction in reversed(self._predictions):
            if prediction.address_id == address_id and prediction.run_id not in run_ids:
                run_ids.append(prediction.run_id)
        return run_ids
