"""
Prediction Engine v1.0

Rule-based home system predictions (roof, HVAC, water heater) with
composed confidence scores and structured provenance.

Pipeline: snapshots + reference tables -> evidence -> field rules ->
confidence -> persisted predictions (one run id per execution).
"""

from .models import (
    AppliedModifier,
    EvidenceRef,
    ModifierKind,
    Prediction,
    Provenance,
    RuleOutcome,
    SourceKind,
)
from .buckets import bucket_labels, bucketize
from .confidence import BASE_RATES, ConfidenceCalculator, ConfidenceResult, clamp_confidence
from .rules import (
    AgeBucketRule,
    FieldRule,
    HvacPresenceRule,
    RuleContext,
    SystemTypeRule,
    default_rules,
    resolve_subtype,
)
from .orchestrator import (
    DEFAULT_MODEL_VERSION,
    PredictionRunOrchestrator,
    RunResult,
    RunState,
)

__all__ = [
    # Models
    "AppliedModifier",
    "EvidenceRef",
    "ModifierKind",
    "Prediction",
    "Provenance",
    "RuleOutcome",
    "SourceKind",
    # Buckets
    "bucket_labels",
    "bucketize",
    # Confidence
    "BASE_RATES",
    "ConfidenceCalculator",
    "ConfidenceResult",
    "clamp_confidence",
    # Rules
    "AgeBucketRule",
    "FieldRule",
    "HvacPresenceRule",
    "RuleContext",
    "SystemTypeRule",
    "default_rules",
    "resolve_subtype",
    # Orchestrator
    "DEFAULT_MODEL_VERSION",
    "PredictionRunOrchestrator",
    "RunResult",
    "RunState",
]

__version__ = "1.0"
