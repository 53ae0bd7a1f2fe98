"""
Field Prediction Rules

One rule per predicted field. Each rule is a short-circuiting chain of
steps; a step returns a RuleOutcome when it finds a usable signal and
None otherwise, and the first outcome wins. The final step is always a
statistical default, so a rule never comes back empty.

Precedence:
- Age buckets: permit > home-age inference > statistical default
- Types: assessor field > address attributes > permit text > climate default
- HVAC presence: permit > assessor > address attributes > climate default

Rules hold no state between invocations. Everything they read arrives
in the RuleContext, which is shared read-only by all rules in a run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Callable, Final, Optional

from core.evidence import (
    EvidenceSet,
    default_hvac_present,
    default_subtype,
    infer_presence,
    infer_subtype,
    relevant_permits,
)
from core.evidence.classifier import SystemPermit
from core.models import PredictionField, PropertyRecord, SystemType
from core.reference import (
    ClimateFactorTable,
    LifespanRange,
    LifespanTable,
    resolve_lifespan,
)
from .buckets import bucketize
from .confidence import ConfidenceCalculator
from .models import EvidenceRef, Provenance, RuleOutcome, SourceKind


@dataclass(frozen=True)
class RuleContext:
    """Read-only inputs shared by every rule in a run."""
    property: PropertyRecord
    evidence: EvidenceSet
    climate_zone: str
    lifespans: LifespanTable
    climate_factors: ClimateFactorTable
    calculator: ConfidenceCalculator

    @property
    def reference_date(self) -> date:
        return self.calculator.reference_date


# =============================================================================
# Configuration Constants
# =============================================================================

# (min, typical, max) used when the lifespan table has no row at all
FALLBACK_LIFESPANS: Final[dict[SystemType, tuple[float, float, float]]] = {
    SystemType.ROOF: (15, 20, 25),
    SystemType.HVAC: (12, 15, 20),
    SystemType.WATER_HEATER: (8, 11, 14),
}

DEFAULT_AGE_BUCKETS: Final[dict[SystemType, str]] = {
    SystemType.ROOF: "11-15",
    SystemType.HVAC: "11-15",
    SystemType.WATER_HEATER: "7-9",
}


# =============================================================================
# Subtype Resolution
# =============================================================================

@dataclass(frozen=True)
class SubtypeResolution:
    """Winning subtype signal for a system plus how it was found."""
    value: str
    source: SourceKind
    evidence: tuple[EvidenceRef, ...]
    observed_on: Optional[date] = None
    cross_validated: bool = False
    cross_validation_detail: str = ""


def _declared_fields(system_type: SystemType, profile) -> list[tuple[str, Optional[str]]]:
    """(field name, declared value) pairs a profile offers for a system."""
    if system_type is SystemType.ROOF:
        return [("roof_cover", profile.roof_cover)]
    if system_type is SystemType.HVAC:
        cooling = getattr(profile, "cooling_type", None) or getattr(profile, "cooling", None)
        heating = getattr(profile, "heating_type", None) or getattr(profile, "heating", None)
        combined = " ".join(v for v in (cooling, heating) if v) or None
        return [("cooling/heating", combined)]
    return [("water_heater", profile.water_heater), ("heating_fuel", profile.heating_fuel)]


def _permit_subtype(system_type: SystemType, permits: list[SystemPermit]) -> Optional[tuple[str, SystemPermit]]:
    for candidate in permits:
        subtype = infer_subtype(system_type, candidate.permit.search_text)
        if subtype is not None:
            return subtype, candidate
    return None


def _permit_ref(candidate: SystemPermit) -> EvidenceRef:
    permit = candidate.permit
    return EvidenceRef(
        provider=permit.provider_name,
        kind="permit",
        reference=permit.reference,
        observed_on=permit.observed_date,
        detail=permit.description or permit.permit_type or "",
    )


def _from_declared(
    system_type: SystemType,
    profile,
    source: SourceKind,
    kind: str,
    permit_signal: Optional[tuple[str, SystemPermit]],
) -> Optional[SubtypeResolution]:
    if profile is None:
        return None
    for field_name, declared in _declared_fields(system_type, profile):
        subtype = infer_subtype(system_type, declared)
        if subtype is None:
            continue
        evidence = [EvidenceRef(profile.provider_name, kind, field_name, detail=declared)]
        cross_validated = permit_signal is not None and permit_signal[0] == subtype
        detail = ""
        if cross_validated:
            evidence.append(_permit_ref(permit_signal[1]))
            detail = f"{profile.provider_name} {field_name} agrees with permit text"
        return SubtypeResolution(
            value=subtype,
            source=source,
            evidence=tuple(evidence),
            cross_validated=cross_validated,
            cross_validation_detail=detail,
        )
    return None


def subtype_signal(system_type: SystemType, ctx: RuleContext) -> Optional[SubtypeResolution]:
    """
    First subtype signal from evidence: assessor, address, permit text.

    Returns None when no evidence names the subtype.
    """
    evidence = ctx.evidence
    permits = relevant_permits(system_type, evidence.permits)
    permit_signal = _permit_subtype(system_type, permits)

    steps: tuple[Callable[[], Optional[SubtypeResolution]], ...] = (
        lambda: _from_declared(
            system_type, evidence.assessor, SourceKind.ASSESSOR_RECORD,
            "assessor_field", permit_signal,
        ),
        lambda: _from_declared(
            system_type, evidence.address, SourceKind.ADDRESS_CROSS_REFERENCE,
            "address_attribute", permit_signal,
        ),
        lambda: _from_permit_text(system_type, permit_signal, permits),
    )
    for step in steps:
        resolution = step()
        if resolution is not None:
            return resolution
    return None


def climate_default_subtype(system_type: SystemType, ctx: RuleContext) -> SubtypeResolution:
    return SubtypeResolution(
        value=default_subtype(system_type, ctx.climate_zone),
        source=_default_source(ctx.evidence),
        evidence=(EvidenceRef("reference", "climate_zone", ctx.climate_zone),),
    )


def resolve_subtype(system_type: SystemType, ctx: RuleContext) -> SubtypeResolution:
    """Subtype from evidence, else the climate-conditioned default. Never fails."""
    return subtype_signal(system_type, ctx) or climate_default_subtype(system_type, ctx)


def _from_permit_text(
    system_type: SystemType,
    permit_signal: Optional[tuple[str, SystemPermit]],
    permits: list[SystemPermit],
) -> Optional[SubtypeResolution]:
    if permit_signal is None:
        return None
    subtype, winner = permit_signal
    evidence = [_permit_ref(winner)]
    corroborating = next(
        (
            p for p in permits
            if p is not winner
            and p.permit.provider_name != winner.permit.provider_name
            and infer_subtype(system_type, p.permit.search_text) == subtype
        ),
        None,
    )
    detail = ""
    if corroborating is not None:
        evidence.append(_permit_ref(corroborating))
        detail = "permits from two providers describe the same equipment"
    return SubtypeResolution(
        value=subtype,
        source=SourceKind.PERMIT,
        evidence=tuple(evidence),
        observed_on=winner.observed_on,
        cross_validated=corroborating is not None,
        cross_validation_detail=detail,
    )


def _default_source(evidence: EvidenceSet) -> SourceKind:
    if evidence.parse_issues:
        return SourceKind.DEFAULT_AFTER_PARSE_FAILURE
    return SourceKind.STATISTICAL_DEFAULT


# =============================================================================
# Rule Base
# =============================================================================

class FieldRule(ABC):
    """A prediction rule for one output field."""

    field: PredictionField
    system_type: SystemType

    def predict(self, ctx: RuleContext) -> RuleOutcome:
        """Run the step chain; the first usable signal wins."""
        for step in self.steps():
            outcome = step(ctx)
            if outcome is not None:
                return outcome
        return self.default(ctx)

    @abstractmethod
    def steps(self) -> tuple[Callable[[RuleContext], Optional[RuleOutcome]], ...]:
        """Ordered evidence steps, most trusted first."""
        ...

    @abstractmethod
    def default(self, ctx: RuleContext) -> RuleOutcome:
        """Outcome when no step yields a signal."""
        ...

    def lifespan_for(self, ctx: RuleContext, subtype: str) -> LifespanRange:
        return resolve_lifespan(
            ctx.lifespans,
            ctx.climate_factors,
            self.system_type,
            subtype,
            ctx.climate_zone,
            FALLBACK_LIFESPANS[self.system_type],
        )

    def build(
        self,
        ctx: RuleContext,
        value: str,
        source: SourceKind,
        evidence: tuple[EvidenceRef, ...],
        observed_on: Optional[date] = None,
        cross_validated: bool = False,
        cross_validation_detail: str = "",
        estimated_age: Optional[float] = None,
        lifespan: Optional[LifespanRange] = None,
        replacement_likely: Optional[bool] = None,
        has_direct_permit: bool = False,
        subtype: Optional[str] = None,
    ) -> RuleOutcome:
        """Compose confidence and provenance into a RuleOutcome."""
        result = ctx.calculator.compute(
            source=source,
            climate_zone=ctx.climate_zone,
            observed_on=observed_on,
            cross_validated=cross_validated,
            cross_validation_detail=cross_validation_detail,
            estimated_age=estimated_age,
            lifespan_max=lifespan.max_years if lifespan else None,
            has_direct_permit=has_direct_permit,
        )
        failed = ctx.evidence.failed_providers if source.is_default else ()
        provenance = Provenance(
            source=source,
            base_rate=result.base_rate,
            climate_zone=ctx.climate_zone,
            evidence=evidence,
            modifiers=result.modifiers,
            replacement_likely=replacement_likely,
            observed_on=observed_on,
            estimated_age_years=estimated_age,
            subtype=subtype,
            lifespan=lifespan,
            failed_providers=failed,
        )
        return RuleOutcome(self.field, value, result.value, provenance)


# =============================================================================
# Age Bucket Rules
# =============================================================================

class AgeBucketRule(FieldRule):
    """
    Component age bucket for one system.

    Home-age inference applies the typical-replacement adjustment: when
    the home is older than the component's typical lifespan, one
    replacement is assumed and the component age re-based to
    home_age - typical. No further floor is applied for any system.
    """

    def __init__(self, field: PredictionField, system_type: SystemType):
        self.field = field
        self.system_type = system_type

    def steps(self):
        return (self._from_permit, self._from_home_age)

    def _from_permit(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        permits = relevant_permits(self.system_type, ctx.evidence.permits)
        if not permits:
            return None

        latest = permits[0]
        observed_on = latest.observed_on
        age = round(ctx.calculator.years_since(observed_on), 1)
        subtype = resolve_subtype(self.system_type, ctx).value
        lifespan = self.lifespan_for(ctx, subtype)

        # Same work recorded by a second provider
        corroborating = next(
            (
                p for p in permits[1:]
                if p.permit.provider_name != latest.permit.provider_name
                and p.observed_on.year == observed_on.year
            ),
            None,
        )
        evidence = [_permit_ref(latest)]
        if corroborating is not None:
            evidence.append(_permit_ref(corroborating))

        return self.build(
            ctx,
            value=bucketize(self.system_type, age),
            source=SourceKind.PERMIT,
            evidence=tuple(evidence),
            observed_on=observed_on,
            cross_validated=corroborating is not None,
            cross_validation_detail=(
                f"{latest.install_kind.value} also recorded by {corroborating.permit.provider_name}"
                if corroborating is not None else ""
            ),
            estimated_age=age,
            lifespan=lifespan,
            replacement_likely=False,
            has_direct_permit=True,
            subtype=subtype,
        )

    def _from_home_age(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        sources = _year_built_sources(ctx)
        if not sources:
            return None

        year_built, primary_ref = sources[0]
        home_age = max(ctx.reference_date.year - year_built, 0)
        subtype = resolve_subtype(self.system_type, ctx).value
        lifespan = self.lifespan_for(ctx, subtype)

        estimated_age = float(home_age)
        if home_age > lifespan.typical_years:
            estimated_age = round(home_age - lifespan.typical_years, 1)

        agreeing = [ref for year, ref in sources[1:] if year == year_built]
        return self.build(
            ctx,
            value=bucketize(self.system_type, estimated_age),
            source=SourceKind.HOME_AGE_INFERENCE,
            evidence=(primary_ref, *agreeing),
            cross_validated=bool(agreeing),
            cross_validation_detail=(
                f"year built {year_built} confirmed by {agreeing[0].provider}" if agreeing else ""
            ),
            estimated_age=estimated_age,
            lifespan=lifespan,
            replacement_likely=estimated_age > lifespan.max_years,
            has_direct_permit=False,
            subtype=subtype,
        )

    def default(self, ctx: RuleContext) -> RuleOutcome:
        return self.build(
            ctx,
            value=DEFAULT_AGE_BUCKETS[self.system_type],
            source=_default_source(ctx.evidence),
            evidence=(EvidenceRef("reference", "statistical_default", self.field.value),),
        )


def _year_built_sources(ctx: RuleContext) -> list[tuple[int, EvidenceRef]]:
    """Year-built declarations in precedence order: property, assessor, address."""
    found: list[tuple[int, EvidenceRef]] = []
    if ctx.property.year_built:
        found.append((
            ctx.property.year_built,
            EvidenceRef("property_record", "property_record", "year_built",
                        detail=str(ctx.property.year_built)),
        ))
    assessor = ctx.evidence.assessor
    if assessor is not None and assessor.best_year_built:
        field_name = "effective_year_built" if assessor.effective_year_built else "year_built"
        found.append((
            assessor.best_year_built,
            EvidenceRef(assessor.provider_name, "assessor_field", field_name,
                        detail=str(assessor.best_year_built)),
        ))
    address = ctx.evidence.address
    if address is not None and address.year_built:
        found.append((
            address.year_built,
            EvidenceRef(address.provider_name, "address_attribute", "year_built",
                        detail=str(address.year_built)),
        ))
    return found


# =============================================================================
# Type Rules
# =============================================================================

class SystemTypeRule(FieldRule):
    """Equipment type for one system, via the subtype precedence chain."""

    def __init__(self, field: PredictionField, system_type: SystemType):
        self.field = field
        self.system_type = system_type

    def steps(self):
        return (self._from_evidence,)

    def _from_evidence(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        resolution = subtype_signal(self.system_type, ctx)
        if resolution is None:
            return None
        return self._outcome(ctx, resolution)

    def default(self, ctx: RuleContext) -> RuleOutcome:
        return self._outcome(ctx, climate_default_subtype(self.system_type, ctx))

    def _outcome(self, ctx: RuleContext, resolution: SubtypeResolution) -> RuleOutcome:
        return self.build(
            ctx,
            value=resolution.value,
            source=resolution.source,
            evidence=resolution.evidence,
            observed_on=resolution.observed_on,
            cross_validated=resolution.cross_validated,
            cross_validation_detail=resolution.cross_validation_detail,
            has_direct_permit=resolution.source is SourceKind.PERMIT,
            subtype=resolution.value,
        )


# =============================================================================
# HVAC Presence
# =============================================================================

def _bool_value(present: bool) -> str:
    return "true" if present else "false"


class HvacPresenceRule(FieldRule):
    """Whether the property has an HVAC system."""

    field = PredictionField.HVAC_PRESENT
    system_type = SystemType.HVAC

    def steps(self):
        return (self._from_permit, self._from_assessor, self._from_address)

    def _from_permit(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        permits = relevant_permits(SystemType.HVAC, ctx.evidence.permits)
        if not permits:
            return None
        latest = permits[0]
        evidence = [_permit_ref(latest)]
        assessor = ctx.evidence.assessor
        declared = (
            infer_presence(assessor.cooling_type, assessor.heating_type)
            if assessor is not None else None
        )
        if declared is True:
            evidence.append(EvidenceRef(assessor.provider_name, "assessor_field", "cooling/heating"))
        return self.build(
            ctx,
            value=_bool_value(True),
            source=SourceKind.PERMIT,
            evidence=tuple(evidence),
            observed_on=latest.observed_on,
            cross_validated=declared is True,
            cross_validation_detail="assessor declares cooling/heating" if declared else "",
            has_direct_permit=True,
        )

    def _from_assessor(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        assessor = ctx.evidence.assessor
        if assessor is None:
            return None
        present = infer_presence(assessor.cooling_type, assessor.heating_type)
        if present is None:
            return None
        evidence = [EvidenceRef(
            assessor.provider_name, "assessor_field", "cooling/heating",
            detail=" / ".join(v for v in (assessor.cooling_type, assessor.heating_type) if v),
        )]
        address = ctx.evidence.address
        corroborated = (
            address is not None and infer_presence(address.cooling, address.heating) == present
        )
        if corroborated:
            evidence.append(EvidenceRef(address.provider_name, "address_attribute", "cooling/heating"))
        return self.build(
            ctx,
            value=_bool_value(present),
            source=SourceKind.ASSESSOR_RECORD,
            evidence=tuple(evidence),
            cross_validated=corroborated,
            cross_validation_detail="address attributes agree" if corroborated else "",
        )

    def _from_address(self, ctx: RuleContext) -> Optional[RuleOutcome]:
        address = ctx.evidence.address
        if address is None:
            return None
        present = infer_presence(address.cooling, address.heating)
        if present is None:
            return None
        return self.build(
            ctx,
            value=_bool_value(present),
            source=SourceKind.ADDRESS_CROSS_REFERENCE,
            evidence=(EvidenceRef(
                address.provider_name, "address_attribute", "cooling/heating",
                detail=" / ".join(v for v in (address.cooling, address.heating) if v),
            ),),
        )

    def default(self, ctx: RuleContext) -> RuleOutcome:
        return self.build(
            ctx,
            value=_bool_value(default_hvac_present(ctx.climate_zone)),
            source=_default_source(ctx.evidence),
            evidence=(EvidenceRef("reference", "climate_zone", ctx.climate_zone),),
        )


# =============================================================================
# Rule Set
# =============================================================================

def default_rules() -> tuple[FieldRule, ...]:
    """The six field rules, in output order."""
    return (
        AgeBucketRule(PredictionField.ROOF_AGE_BUCKET, SystemType.ROOF),
        HvacPresenceRule(),
        SystemTypeRule(PredictionField.HVAC_SYSTEM_TYPE, SystemType.HVAC),
        AgeBucketRule(PredictionField.HVAC_AGE_BUCKET, SystemType.HVAC),
        SystemTypeRule(PredictionField.WATER_HEATER_TYPE, SystemType.WATER_HEATER),
        AgeBucketRule(PredictionField.WATER_HEATER_AGE_BUCKET, SystemType.WATER_HEATER),
    )
