"""
Data models for the Prediction Engine

Predictions, their provenance, and the intermediate outcome a field rule
returns before the orchestrator stamps it with a run identifier.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from core.models import PredictionField
from core.reference.lifespan import LifespanRange


MAX_CONFIDENCE = 0.98


class SourceKind(Enum):
    """
    Primary evidence source behind a prediction.

    Ordered from most to least trusted; the base confidence rate is keyed
    by this value.
    """
    PERMIT = "permit"
    ASSESSOR_RECORD = "assessor_record"
    ADDRESS_CROSS_REFERENCE = "address_cross_reference"
    HOME_AGE_INFERENCE = "home_age_inference"
    STATISTICAL_DEFAULT = "statistical_default"
    DEFAULT_AFTER_PARSE_FAILURE = "default_after_parse_failure"

    @property
    def is_default(self) -> bool:
        return self in (SourceKind.STATISTICAL_DEFAULT, SourceKind.DEFAULT_AFTER_PARSE_FAILURE)


class ModifierKind(Enum):
    """Bounded confidence adjustments."""
    RECENCY = "recency"
    CROSS_VALIDATION = "cross_validation"
    CLIMATE_FIT = "climate_fit"
    EXCEEDS_LIFESPAN_WITHOUT_PERMIT = "exceeds_lifespan_without_permit"


@dataclass(frozen=True)
class AppliedModifier:
    """One modifier that contributed to a confidence value."""
    kind: ModifierKind
    delta: float
    detail: str = ""

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "delta": self.delta, "detail": self.detail}

    @classmethod
    def from_dict(cls, data: dict) -> "AppliedModifier":
        return cls(
            kind=ModifierKind(data["kind"]),
            delta=float(data["delta"]),
            detail=data.get("detail", ""),
        )


@dataclass(frozen=True)
class EvidenceRef:
    """
    One piece of contributing evidence.

    kind is what was read (permit, assessor_field, address_attribute,
    property_record, climate_zone); reference identifies the record or
    field within it.
    """
    provider: str
    kind: str
    reference: str
    observed_on: Optional[date] = None
    detail: str = ""

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "kind": self.kind,
            "reference": self.reference,
            "observed_on": self.observed_on.isoformat() if self.observed_on else None,
            "detail": self.detail,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EvidenceRef":
        observed = data.get("observed_on")
        return cls(
            provider=data["provider"],
            kind=data["kind"],
            reference=data["reference"],
            observed_on=date.fromisoformat(observed) if observed else None,
            detail=data.get("detail", ""),
        )


@dataclass(frozen=True)
class Provenance:
    """
    Structured explanation of a prediction.

    Carries everything needed to recompute the confidence: base rate,
    every applied modifier, and the evidence that triggered them.
    """
    source: SourceKind
    base_rate: float
    climate_zone: str
    evidence: tuple[EvidenceRef, ...] = ()
    modifiers: tuple[AppliedModifier, ...] = ()
    replacement_likely: Optional[bool] = None
    observed_on: Optional[date] = None
    estimated_age_years: Optional[float] = None
    subtype: Optional[str] = None
    lifespan: Optional[LifespanRange] = None
    failed_providers: tuple[str, ...] = ()

    @property
    def modifier_total(self) -> float:
        return sum(m.delta for m in self.modifiers)

    def has_modifier(self, kind: ModifierKind) -> bool:
        return any(m.kind is kind for m in self.modifiers)

    def to_dict(self) -> dict:
        return {
            "source": self.source.value,
            "base_rate": self.base_rate,
            "climate_zone": self.climate_zone,
            "evidence": [e.to_dict() for e in self.evidence],
            "modifiers": [m.to_dict() for m in self.modifiers],
            "replacement_likely": self.replacement_likely,
            "observed_on": self.observed_on.isoformat() if self.observed_on else None,
            "estimated_age_years": self.estimated_age_years,
            "subtype": self.subtype,
            "lifespan": self.lifespan.to_dict() if self.lifespan else None,
            "failed_providers": list(self.failed_providers),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Provenance":
        observed = data.get("observed_on")
        lifespan = data.get("lifespan")
        return cls(
            source=SourceKind(data["source"]),
            base_rate=float(data["base_rate"]),
            climate_zone=data["climate_zone"],
            evidence=tuple(EvidenceRef.from_dict(e) for e in data.get("evidence", [])),
            modifiers=tuple(AppliedModifier.from_dict(m) for m in data.get("modifiers", [])),
            replacement_likely=data.get("replacement_likely"),
            observed_on=date.fromisoformat(observed) if observed else None,
            estimated_age_years=data.get("estimated_age_years"),
            subtype=data.get("subtype"),
            lifespan=LifespanRange.from_dict(lifespan) if lifespan else None,
            failed_providers=tuple(data.get("failed_providers", [])),
        )


@dataclass(frozen=True)
class RuleOutcome:
    """What a field rule returns: value, confidence and provenance."""
    field: PredictionField
    value: str
    confidence: float
    provenance: Provenance


@dataclass(frozen=True)
class Prediction:
    """
    One persisted prediction row.

    One row per field per run. Rows are never updated; a new run writes
    new rows.
    """
    address_id: str
    run_id: str
    field: PredictionField
    predicted_value: str
    confidence: float
    provenance: Provenance
    model_version: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not 0 <= self.confidence <= MAX_CONFIDENCE:
            raise ValueError(
                f"confidence must be in [0, {MAX_CONFIDENCE}]: {self.confidence}"
            )
        if round(self.confidence, 2) != self.confidence:
            raise ValueError(f"confidence must have 2 decimal places: {self.confidence}")

    @classmethod
    def from_outcome(
        cls,
        outcome: RuleOutcome,
        address_id: str,
        run_id: str,
        model_version: str,
        created_at: Optional[datetime] = None,
    ) -> "Prediction":
        return cls(
            address_id=address_id,
            run_id=run_id,
            field=outcome.field,
            predicted_value=outcome.value,
            confidence=outcome.confidence,
            provenance=outcome.provenance,
            model_version=model_version,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict:
        return {
            "address_id": self.address_id,
            "run_id": self.run_id,
            "field": self.field.value,
            "predicted_value": self.predicted_value,
            "confidence": self.confidence,
            "provenance": self.provenance.to_dict(),
            "model_version": self.model_version,
            "created_at": self.created_at.isoformat(),
        }

    def to_row(self) -> dict:
        """Row for the hosted predictions table."""
        return {
            "address_id": self.address_id,
            "prediction_run_id": self.run_id,
            "field": self.field.value,
            "predicted_value": self.predicted_value,
            "confidence_0_1": self.confidence,
            "data_provenance": self.provenance.to_dict(),
            "model_version": self.model_version,
            "predicted_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Prediction":
        """Build from either to_dict() output or a hosted table row."""
        created_at = data.get("created_at") or data.get("predicted_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        confidence = data["confidence"] if "confidence" in data else data["confidence_0_1"]
        return cls(
            address_id=str(data["address_id"]),
            run_id=data.get("run_id") or data["prediction_run_id"],
            field=PredictionField(data["field"]),
            predicted_value=str(data["predicted_value"]),
            confidence=round(float(confidence), 2),
            provenance=Provenance.from_dict(data.get("provenance") or data["data_provenance"]),
            model_version=data.get("model_version") or "",
            created_at=created_at or datetime.now(timezone.utc),
        )
