"""
Shared fixtures for the home systems engine tests.

Every test that depends on "today" uses REFERENCE_DATE so results are
deterministic.
"""

import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.evidence import collect_evidence
from core.models import EvidenceSnapshot, PropertyRecord
from core.prediction_engine import ConfidenceCalculator, RuleContext
from core.reference import (
    DEFAULT_CLIMATE_FACTORS,
    DEFAULT_LIFESPAN_ENTRIES,
    ClimateFactorTable,
    LifespanTable,
    resolve_climate_zone,
)
from core.store import InMemoryPredictionStore


REFERENCE_DATE = date(2024, 6, 1)


@pytest.fixture
def reference_date():
    """Fixed "today" for age and recency calculations."""
    return REFERENCE_DATE


@pytest.fixture
def make_snapshot():
    """Factory for evidence snapshots."""
    def _make(provider_name, payload, address_id="addr-1", retrieved_at=None):
        return EvidenceSnapshot(
            provider_name=provider_name,
            payload=payload,
            retrieved_at=retrieved_at or datetime(2024, 5, 1, tzinfo=timezone.utc),
            address_id=address_id,
        )
    return _make


@pytest.fixture
def build_context(reference_date):
    """Factory for a RuleContext over the built-in reference tables."""
    def _build(record, snapshots=()):
        evidence = collect_evidence(snapshots)
        region = record.standardized_region_code or evidence.region_code
        return RuleContext(
            property=record,
            evidence=evidence,
            climate_zone=resolve_climate_zone(region),
            lifespans=LifespanTable(DEFAULT_LIFESPAN_ENTRIES),
            climate_factors=ClimateFactorTable(DEFAULT_CLIMATE_FACTORS),
            calculator=ConfidenceCalculator(reference_date=reference_date),
        )
    return _build


@pytest.fixture
def store():
    """Fresh in-memory store (no file persistence)."""
    return InMemoryPredictionStore()


@pytest.fixture
def florida_home():
    """1990 Florida home with no stored coordinates."""
    return PropertyRecord(
        address_id="addr-fl",
        year_built=1990,
        standardized_region_code="FL",
        street_address="120 Palm Way",
        city="Miami",
        postal_code="33101",
    )


@pytest.fixture
def hvac_permit_payload():
    """Shovels payload with one finaled A/C change-out a year before REFERENCE_DATE."""
    return {
        "permits": [
            {
                "number": "M-2023-0042",
                "type": "Mechanical",
                "description": "A/C change out 4 ton split system",
                "status": "Final",
                "issue_date": "2023-05-10",
                "final_date": "2023-06-01",
            }
        ]
    }
