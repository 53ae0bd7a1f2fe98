"""
Confidence Calculator

Confidence is composed, not learned:

    confidence = clamp(base_rate[source] + sum(modifiers), 0, 0.98)

rounded to 2 decimal places. Every modifier that fires is returned so
it can be written into provenance; the value is reproducible from the
provenance alone.
"""

from dataclasses import dataclass
from datetime import date
from typing import Final, Optional

from core.reference.climate_zones import DEFAULT_ZONE
from .models import MAX_CONFIDENCE, AppliedModifier, ModifierKind, SourceKind


# =============================================================================
# Configuration Constants
# =============================================================================

BASE_RATES: Final[dict[SourceKind, float]] = {
    SourceKind.PERMIT: 0.85,
    SourceKind.ASSESSOR_RECORD: 0.75,
    SourceKind.ADDRESS_CROSS_REFERENCE: 0.65,
    SourceKind.HOME_AGE_INFERENCE: 0.45,
    SourceKind.STATISTICAL_DEFAULT: 0.25,
    SourceKind.DEFAULT_AFTER_PARSE_FAILURE: 0.25,
}

# Recency bands (years since the evidence date)
RECENCY_RECENT_YEARS = 2
RECENCY_RECENT_BONUS = 0.10
RECENCY_MODERATE_YEARS = 5
RECENCY_MODERATE_BONUS = 0.05

CROSS_VALIDATION_BONUS = 0.05
CLIMATE_FIT_BONUS = 0.03
EXCEEDS_LIFESPAN_PENALTY = -0.10

DAYS_PER_YEAR = 365.25


def clamp_confidence(value: float) -> float:
    """Clamp to [0, 0.98] and round to 2 decimal places."""
    return round(min(max(value, 0.0), MAX_CONFIDENCE), 2)


@dataclass(frozen=True)
class ConfidenceResult:
    """Composed confidence and the components that produced it."""
    value: float
    base_rate: float
    modifiers: tuple[AppliedModifier, ...]


class ConfidenceCalculator:
    """
    Composes a bounded confidence score.

    Stateless apart from the reference date, which fixes "now" for the
    recency modifier so a run is deterministic.
    """

    def __init__(self, reference_date: date = None):
        """
        Initialize calculator.

        Args:
            reference_date: Date recency is measured from (default: today)
        """
        self._reference_date = reference_date or date.today()

    @property
    def reference_date(self) -> date:
        return self._reference_date

    def years_since(self, observed_on: date) -> float:
        """Whole-and-fractional years from observed_on to the reference date (>= 0)."""
        days = (self._reference_date - observed_on).days
        return max(days, 0) / DAYS_PER_YEAR

    def compute(
        self,
        source: SourceKind,
        climate_zone: str,
        observed_on: Optional[date] = None,
        cross_validated: bool = False,
        cross_validation_detail: str = "",
        estimated_age: Optional[float] = None,
        lifespan_max: Optional[float] = None,
        has_direct_permit: bool = False,
    ) -> ConfidenceResult:
        """
        Compose confidence for one prediction.

        Args:
            source: Primary evidence source kind
            climate_zone: Zone used by the rule
            observed_on: Date of the evidence that drove the prediction
            cross_validated: Two independent sources agree
            cross_validation_detail: Which sources agreed
            estimated_age: Component age the rule settled on
            lifespan_max: Reference max lifespan for the component
            has_direct_permit: A permit for this system backs the prediction

        Returns:
            ConfidenceResult with the clamped value and applied modifiers
        """
        base_rate = BASE_RATES[source]
        modifiers: list[AppliedModifier] = []

        recency = self._recency_modifier(observed_on)
        if recency is not None:
            modifiers.append(recency)

        if cross_validated:
            modifiers.append(AppliedModifier(
                ModifierKind.CROSS_VALIDATION,
                CROSS_VALIDATION_BONUS,
                cross_validation_detail or "independent sources agree",
            ))

        if climate_zone != DEFAULT_ZONE:
            modifiers.append(AppliedModifier(
                ModifierKind.CLIMATE_FIT,
                CLIMATE_FIT_BONUS,
                f"zone {climate_zone}",
            ))

        if (
            estimated_age is not None
            and lifespan_max is not None
            and estimated_age > lifespan_max
            and not has_direct_permit
        ):
            modifiers.append(AppliedModifier(
                ModifierKind.EXCEEDS_LIFESPAN_WITHOUT_PERMIT,
                EXCEEDS_LIFESPAN_PENALTY,
                f"estimated age {estimated_age:g}y exceeds max {lifespan_max:g}y",
            ))

        total = base_rate + sum(m.delta for m in modifiers)
        return ConfidenceResult(
            value=clamp_confidence(total),
            base_rate=base_rate,
            modifiers=tuple(modifiers),
        )

    def _recency_modifier(self, observed_on: Optional[date]) -> Optional[AppliedModifier]:
        if observed_on is None:
            return None
        years = self.years_since(observed_on)
        if years <= RECENCY_RECENT_YEARS:
            return AppliedModifier(
                ModifierKind.RECENCY, RECENCY_RECENT_BONUS, f"evidence {years:.1f}y old"
            )
        if years <= RECENCY_MODERATE_YEARS:
            return AppliedModifier(
                ModifierKind.RECENCY, RECENCY_MODERATE_BONUS, f"evidence {years:.1f}y old"
            )
        return None
