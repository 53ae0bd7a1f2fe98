"""
Prediction Routes - Web API for home system predictions

Start prediction runs (the retry trigger), read the latest or a given
run, list runs, and download the Home Systems Report PDF.

Failures never leak stack traces: unknown properties are 404, any other
whole-run or storage fault is 503.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from core.prediction_engine import Prediction, PredictionRunOrchestrator, RunResult
from core.store import PredictionStore, PropertyNotFoundError, StoreError, create_store
from reporting.pdf_generator import ReportGenerator
from reporting.schemas import load_report_data
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/properties", tags=["predictions"])


# =============================================================================
# Dependencies
# =============================================================================

_store_instance: Optional[PredictionStore] = None
_orchestrator_instance: Optional[PredictionRunOrchestrator] = None
_instance_lock = threading.Lock()


def get_store() -> PredictionStore:
    """Get the configured store singleton."""
    global _store_instance
    with _instance_lock:
        if _store_instance is None:
            _store_instance = create_store(Config.load())
        return _store_instance


def get_orchestrator() -> PredictionRunOrchestrator:
    """
    Get the orchestrator singleton.

    One instance per process so per-property write serialisation holds
    across requests.
    """
    global _orchestrator_instance
    store = get_store()
    with _instance_lock:
        if _orchestrator_instance is None:
            config = Config.load()
            _orchestrator_instance = PredictionRunOrchestrator(
                store,
                model_version=config.model_version,
                max_workers=config.rule_workers,
            )
        return _orchestrator_instance


# =============================================================================
# Response Models
# =============================================================================

class PredictionOut(BaseModel):
    field: str
    predicted_value: str
    confidence: float
    provenance: dict
    model_version: str
    run_id: str
    created_at: str

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "PredictionOut":
        data = prediction.to_dict()
        return cls(
            field=data["field"],
            predicted_value=data["predicted_value"],
            confidence=data["confidence"],
            provenance=data["provenance"],
            model_version=data["model_version"],
            run_id=data["run_id"],
            created_at=data["created_at"],
        )


class RunOut(BaseModel):
    run_id: str
    address_id: str
    state: str
    model_version: str
    climate_zone: Optional[str] = None
    coordinates_backfilled: bool = False
    failed_fields: Dict[str, str] = {}
    predictions: List[PredictionOut] = []

    @classmethod
    def from_result(cls, result: RunResult) -> "RunOut":
        return cls(
            run_id=result.run_id,
            address_id=result.address_id,
            state=result.state.value,
            model_version=result.model_version,
            climate_zone=result.climate_zone,
            coordinates_backfilled=result.coordinates_backfilled,
            failed_fields=dict(result.failed_fields),
            predictions=[PredictionOut.from_prediction(p) for p in result.predictions],
        )


class PredictionListOut(BaseModel):
    address_id: str
    run_id: Optional[str] = None
    predictions: List[PredictionOut] = []


class RunListOut(BaseModel):
    address_id: str
    run_ids: List[str]


# =============================================================================
# Routes
# =============================================================================

@router.post("/{address_id}/prediction-runs", response_model=RunOut, status_code=201)
def start_prediction_run(
    address_id: str,
    orchestrator: PredictionRunOrchestrator = Depends(get_orchestrator),
):
    """
    Start a new prediction run for a property.

    Each call produces a new run id; earlier runs are kept.
    """
    result = orchestrator.run(address_id)

    if result.property_missing:
        raise HTTPException(status_code=404, detail=f"Property not found: {address_id}")
    if not result.succeeded:
        raise HTTPException(
            status_code=503,
            detail=f"Prediction run {result.run_id} failed; try again later",
        )
    return RunOut.from_result(result)


@router.get("/{address_id}/predictions", response_model=PredictionListOut)
def list_predictions(
    address_id: str,
    run_id: Optional[str] = Query(None, description="Run to read (default: latest)"),
    store: PredictionStore = Depends(get_store),
):
    """Predictions for one run of a property (latest run by default)."""
    try:
        predictions = store.list_predictions(address_id, run_id=run_id)
    except StoreError as e:
        logger.error("Could not read predictions for %s: %s", address_id, e)
        raise HTTPException(status_code=503, detail="Prediction store unavailable")

    return PredictionListOut(
        address_id=address_id,
        run_id=predictions[0].run_id if predictions else run_id,
        predictions=[PredictionOut.from_prediction(p) for p in predictions],
    )


@router.get("/{address_id}/prediction-runs", response_model=RunListOut)
def list_prediction_runs(
    address_id: str,
    store: PredictionStore = Depends(get_store),
):
    """Run ids for a property, newest first."""
    try:
        run_ids = store.list_run_ids(address_id)
    except StoreError as e:
        logger.error("Could not list runs for %s: %s", address_id, e)
        raise HTTPException(status_code=503, detail="Prediction store unavailable")
    return RunListOut(address_id=address_id, run_ids=run_ids)


@router.get("/{address_id}/report.pdf")
def download_report(
    address_id: str,
    run_id: Optional[str] = Query(None, description="Run to report (default: latest)"),
    store: PredictionStore = Depends(get_store),
):
    """Home Systems Report PDF for a run."""
    try:
        data = load_report_data(store, address_id, run_id=run_id)
    except PropertyNotFoundError:
        raise HTTPException(status_code=404, detail=f"Property not found: {address_id}")
    except StoreError as e:
        logger.error("Could not load report data for %s: %s", address_id, e)
        raise HTTPException(status_code=503, detail="Prediction store unavailable")

    if data is None:
        raise HTTPException(status_code=404, detail=f"No predictions for {address_id}")

    pdf_bytes = ReportGenerator().generate_to_buffer(data)
    filename = f"home-systems-{address_id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
