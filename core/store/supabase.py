"""
Supabase Prediction Store

Reads and writes the hosted tables through the PostgREST API:

- properties_sample: property identity records
- enrichment_snapshots: raw provider payloads (append-only)
- lifespan_reference: lifespan reference rows
- climate_factors: climate multipliers
- predictions: one row per field per run (append-only)

A multi-row POST is a single statement on the server, so a run's batch
is stored entirely or not at all.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Optional

import requests

from core.models import EvidenceSnapshot, PropertyRecord
from core.prediction_engine.models import Prediction
from core.reference import ClimateFactorEntry, LifespanReferenceEntry
from .base import PredictionStore, PropertyNotFoundError, StoreError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

PROPERTIES_TABLE: Final[str] = "properties_sample"
SNAPSHOTS_TABLE: Final[str] = "enrichment_snapshots"
LIFESPAN_TABLE: Final[str] = "lifespan_reference"
CLIMATE_FACTORS_TABLE: Final[str] = "climate_factors"
PREDICTIONS_TABLE: Final[str] = "predictions"

DEFAULT_TIMEOUT_SECONDS: Final[float] = 15.0


class SupabasePredictionStore(PredictionStore):
    """PostgREST-backed store using a service role key."""

    def __init__(
        self,
        url: str,
        service_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialise store.

        Args:
            url: Project URL (https://<ref>.supabase.co)
            service_key: Service role key
            timeout: Per-request timeout in seconds
            session: Optional pre-built session
        """
        if not url or not service_key:
            raise ValueError("Supabase url and service key are required")
        self._base_url = f"{url.rstrip('/')}/rest/v1"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    # =========================================================================
    # HTTP
    # =========================================================================

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict] = None,
        json: Any = None,
        headers: Optional[dict] = None,
    ) -> Any:
        url = f"{self._base_url}/{table}"
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, table, e)
            raise StoreError(f"{method} {table} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(f"{method} {table} returned invalid JSON") from e

    def _select(self, table: str, params: dict) -> list[dict]:
        rows = self._request("GET", table, params={"select": "*", **params})
        if not isinstance(rows, list):
            raise StoreError(f"Unexpected response from {table}")
        return rows

    # =========================================================================
    # Loads
    # =========================================================================

    def load_property(self, address_id: str) -> PropertyRecord:
        rows = self._select(PROPERTIES_TABLE, {"address_id": f"eq.{address_id}", "limit": "1"})
        if not rows:
            raise PropertyNotFoundError(address_id)
        try:
            return PropertyRecord.from_dict(rows[0])
        except (KeyError, ValueError) as e:
            raise StoreError(f"Unreadable property record {address_id}: {e}") from e

    def load_snapshots(self, address_id: str) -> list[EvidenceSnapshot]:
        rows = self._select(
            SNAPSHOTS_TABLE,
            {"address_id": f"eq.{address_id}", "order": "retrieved_at.desc"},
        )
        snapshots = []
        for row in rows:
            try:
                snapshots.append(EvidenceSnapshot.from_dict(row))
            except ValueError as e:
                # The collector cannot see a row that failed here
                logger.warning("Skipping snapshot row for %s: %s", address_id, e)
        return snapshots

    def load_lifespan_entries(self) -> list[LifespanReferenceEntry]:
        rows = self._select(LIFESPAN_TABLE, {})
        try:
            return [LifespanReferenceEntry.from_dict(row) for row in rows]
        except (KeyError, ValueError) as e:
            raise StoreError(f"Invalid lifespan reference row: {e}") from e

    def load_climate_factors(self) -> list[ClimateFactorEntry]:
        rows = self._select(CLIMATE_FACTORS_TABLE, {})
        try:
            return [ClimateFactorEntry.from_dict(row) for row in rows]
        except (KeyError, ValueError) as e:
            raise StoreError(f"Invalid climate factor row: {e}") from e

    # =========================================================================
    # Writes
    # =========================================================================

    def insert_predictions(self, predictions: list[Prediction]) -> None:
        if not predictions:
            return
        self._request(
            "POST",
            PREDICTIONS_TABLE,
            json=[p.to_row() for p in predictions],
            headers={"Prefer": "return=minimal"},
        )

    def backfill_coordinates(self, address_id: str, latitude: float, longitude: float) -> None:
        # Only rows still missing coordinates are touched
        self._request(
            "PATCH",
            PROPERTIES_TABLE,
            params={"address_id": f"eq.{address_id}", "lat": "is.null"},
            json={"lat": latitude, "lon": longitude},
            headers={"Prefer": "return=minimal"},
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def list_predictions(self, address_id: str, run_id: Optional[str] = None) -> list[Prediction]:
        run_id = run_id or self.latest_run_id(address_id)
        if run_id is None:
            return []
        rows = self._select(
            PREDICTIONS_TABLE,
            {
                "address_id": f"eq.{address_id}",
                "prediction_run_id": f"eq.{run_id}",
                "order": "field.asc",
            },
        )
        try:
            return [Prediction.from_dict(row) for row in rows]
        except (KeyError, ValueError) as e:
            raise StoreError(f"Invalid prediction row: {e}") from e

    def list_run_ids(self, address_id: str) -> list[str]:
        rows = self._request(
            "GET",
            PREDICTIONS_TABLE,
            params={
                "select": "prediction_run_id,predicted_at",
                "address_id": f"eq.{address_id}",
                "order": "predicted_at.desc",
            },
        ) or []
        run_ids: list[str] = []
        for row in rows:
            run_id = row.get("prediction_run_id")
            if run_id and run_id not in run_ids:
                run_ids.append(run_id)
        return run_ids
