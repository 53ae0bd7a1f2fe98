"""
Home Systems Engine - Core Logic

This package provides the home systems prediction pipeline:
1. Reference data (climate zones, lifespan table, climate factors)
2. Evidence extraction (permits, assessor records, address metadata)
3. Field prediction rules (precedence chains per field)
4. Confidence composition (base rate + bounded modifiers)
5. Run orchestration and persistence (append-only runs)
"""

from .models import (
    EvidenceSnapshot,
    PredictionField,
    PropertyRecord,
    SystemType,
    latest_by_provider,
)

# Reference data
from .reference import (
    DEFAULT_ZONE,
    ClimateFactorTable,
    LifespanTable,
    resolve_climate_zone,
)

# Evidence extraction
from .evidence import EvidenceSet, collect_evidence

# Prediction Engine v1.0
from .prediction_engine import (
    Prediction,
    PredictionRunOrchestrator,
    Provenance,
    RunResult,
    RunState,
    SourceKind,
)

# Storage
from .store import (
    InMemoryPredictionStore,
    PredictionStore,
    PropertyNotFoundError,
    StoreError,
    SupabasePredictionStore,
)

__all__ = [
    # Models
    "EvidenceSnapshot",
    "PredictionField",
    "PropertyRecord",
    "SystemType",
    "latest_by_provider",
    # Reference data
    "DEFAULT_ZONE",
    "ClimateFactorTable",
    "LifespanTable",
    "resolve_climate_zone",
    # Evidence
    "EvidenceSet",
    "collect_evidence",
    # Prediction Engine
    "Prediction",
    "PredictionRunOrchestrator",
    "Provenance",
    "RunResult",
    "RunState",
    "SourceKind",
    # Storage
    "InMemoryPredictionStore",
    "PredictionStore",
    "PropertyNotFoundError",
    "StoreError",
    "SupabasePredictionStore",
]
