"""
Tests for Field Prediction Rules

Tests covering:
1. Permit-driven HVAC predictions (recent change-out, default zone)
2. Home-age inference with the typical-replacement adjustment (Florida, 1990)
3. Statistical defaults when no evidence exists
4. Excluded permits never counted as system evidence
5. Source precedence and cross-validation
6. Defaults reached because of unreadable payloads
"""

import pytest

from core.models import PredictionField, PropertyRecord
from core.prediction_engine import ModifierKind, SourceKind, clamp_confidence, default_rules
from core.reference import LookupLevel


def predict_all(ctx):
    """Run every default rule and index outcomes by field."""
    return {rule.field: rule.predict(ctx) for rule in default_rules()}


# =============================================================================
# Permit Evidence
# =============================================================================

class TestRecentHvacPermit:
    """A/C change-out permit one year old, no region (default zone)."""

    @pytest.fixture
    def outcomes(self, build_context, make_snapshot, hvac_permit_payload):
        record = PropertyRecord(address_id="addr-a")
        ctx = build_context(record, [make_snapshot("shovels", hvac_permit_payload, "addr-a")])
        assert ctx.climate_zone == "default"
        return predict_all(ctx)

    def test_hvac_system_type_from_permit_text(self, outcomes):
        outcome = outcomes[PredictionField.HVAC_SYSTEM_TYPE]
        assert outcome.value == "split_system"
        assert outcome.confidence == 0.95
        assert outcome.provenance.source is SourceKind.PERMIT
        assert outcome.provenance.evidence[0].reference == "M-2023-0042"

    def test_hvac_age_from_permit_date(self, outcomes):
        outcome = outcomes[PredictionField.HVAC_AGE_BUCKET]
        assert outcome.value == "0-5"
        assert outcome.confidence == 0.95
        assert outcome.provenance.estimated_age_years == 1.0
        assert outcome.provenance.replacement_likely is False
        assert outcome.provenance.has_modifier(ModifierKind.RECENCY)

    def test_hvac_present(self, outcomes):
        outcome = outcomes[PredictionField.HVAC_PRESENT]
        assert outcome.value == "true"
        assert outcome.confidence == 0.95

    def test_unrelated_systems_fall_back(self, outcomes):
        roof = outcomes[PredictionField.ROOF_AGE_BUCKET]
        assert roof.value == "11-15"
        assert roof.provenance.source is SourceKind.STATISTICAL_DEFAULT
        assert roof.confidence == 0.25


# =============================================================================
# Home-Age Inference
# =============================================================================

class TestFloridaHomeAge:
    """1990 Florida home, no evidence snapshots."""

    @pytest.fixture
    def outcomes(self, build_context, florida_home):
        ctx = build_context(florida_home)
        assert ctx.climate_zone == "florida"
        return predict_all(ctx)

    def test_roof_rebased_once(self, outcomes):
        # Home age 34, shingle/florida typical 15 -> 19 years, max 20
        outcome = outcomes[PredictionField.ROOF_AGE_BUCKET]
        provenance = outcome.provenance
        assert outcome.value == "16-20"
        assert provenance.estimated_age_years == 19.0
        assert provenance.replacement_likely is False
        assert provenance.subtype == "shingle"
        assert provenance.lifespan.level is LookupLevel.EXACT
        assert outcome.confidence == 0.48

    def test_hvac_past_lifespan(self, outcomes):
        # split_system/florida typical 12, max 15 -> 22 years
        outcome = outcomes[PredictionField.HVAC_AGE_BUCKET]
        assert outcome.value == "20+"
        assert outcome.provenance.replacement_likely is True
        assert outcome.provenance.has_modifier(ModifierKind.EXCEEDS_LIFESPAN_WITHOUT_PERMIT)
        assert outcome.confidence == 0.38

    def test_confidence_recomputable_from_provenance(self, outcomes):
        for outcome in outcomes.values():
            provenance = outcome.provenance
            assert clamp_confidence(provenance.base_rate + provenance.modifier_total) == outcome.confidence

    def test_water_heater_past_lifespan(self, outcomes):
        # electric_tank/florida typical 10, max 13 -> 24 years
        outcome = outcomes[PredictionField.WATER_HEATER_AGE_BUCKET]
        assert outcome.value == "13+"
        assert outcome.provenance.subtype == "electric_tank"
        assert outcome.provenance.replacement_likely is True
        assert outcome.confidence == 0.38

    def test_types_use_climate_defaults(self, outcomes):
        hvac_type = outcomes[PredictionField.HVAC_SYSTEM_TYPE]
        assert hvac_type.value == "split_system"
        assert hvac_type.provenance.source is SourceKind.STATISTICAL_DEFAULT
        assert hvac_type.confidence == 0.28
        assert outcomes[PredictionField.WATER_HEATER_TYPE].value == "electric_tank"


# =============================================================================
# No Evidence
# =============================================================================

class TestNoEvidence:
    """Default zone, no year built, no snapshots."""

    @pytest.fixture
    def outcomes(self, build_context):
        return predict_all(build_context(PropertyRecord(address_id="addr-c")))

    def test_every_field_predicted(self, outcomes):
        assert set(outcomes) == set(PredictionField)

    def test_water_heater_default(self, outcomes):
        outcome = outcomes[PredictionField.WATER_HEATER_AGE_BUCKET]
        assert outcome.value == "7-9"
        assert outcome.confidence == 0.25
        assert outcome.provenance.source is SourceKind.STATISTICAL_DEFAULT
        assert outcome.provenance.failed_providers == ()

    def test_all_defaults_at_base_rate(self, outcomes):
        assert {o.confidence for o in outcomes.values()} == {0.25}
        assert outcomes[PredictionField.HVAC_PRESENT].value == "true"
        assert outcomes[PredictionField.WATER_HEATER_TYPE].value == "gas_tank"

    def test_rules_are_deterministic(self, build_context, outcomes):
        again = predict_all(build_context(PropertyRecord(address_id="addr-c")))
        assert again == outcomes


# =============================================================================
# Excluded Permits
# =============================================================================

class TestExcludedPermit:
    """A paver/shutter permit is never evidence for any system."""

    def test_no_prediction_cites_the_permit(self, build_context, make_snapshot):
        payload = {"permits": [{
            "number": "B-77",
            "description": "misc: paver, shutter install",
            "final_date": "2023-09-01",
        }]}
        record = PropertyRecord(address_id="addr-d", year_built=2000)
        outcomes = predict_all(build_context(record, [make_snapshot("shovels", payload, "addr-d")]))

        for outcome in outcomes.values():
            assert all(ref.kind != "permit" for ref in outcome.provenance.evidence)
            assert outcome.provenance.source is not SourceKind.PERMIT
        assert outcomes[PredictionField.ROOF_AGE_BUCKET].provenance.source is SourceKind.HOME_AGE_INFERENCE


# =============================================================================
# Precedence and Cross-Validation
# =============================================================================

WATER_HEATER_PERMIT = {"permits": [{
    "number": "PL-2021-9",
    "type": "Plumbing",
    "description": "Replace 50 gal gas water heater",
    "final_date": "2021-01-15",
}]}


class TestPrecedence:
    """Assessor > address > permit text > climate default for types."""

    def test_assessor_beats_permit_text(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("attom", {"water_heater": "Electric"}),
            make_snapshot("shovels", WATER_HEATER_PERMIT),
        ])
        outcome = default_rules()[4].predict(ctx)
        assert outcome.field is PredictionField.WATER_HEATER_TYPE
        assert outcome.value == "electric_tank"
        assert outcome.provenance.source is SourceKind.ASSESSOR_RECORD
        assert outcome.confidence == 0.75

    def test_assessor_confirmed_by_permit(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("attom", {"water_heater": "Gas"}),
            make_snapshot("shovels", WATER_HEATER_PERMIT),
        ])
        outcome = default_rules()[4].predict(ctx)
        assert outcome.value == "gas_tank"
        assert outcome.confidence == 0.80
        assert [ref.kind for ref in outcome.provenance.evidence] == ["assessor_field", "permit"]

    def test_address_attributes_when_no_assessor(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("smarty", [{
                "components": {"state_abbreviation": "FL"},
                "attributes": {"water_heater": "Electric"},
            }]),
        ])
        outcome = default_rules()[4].predict(ctx)
        assert ctx.climate_zone == "florida"
        assert outcome.value == "electric_tank"
        assert outcome.provenance.source is SourceKind.ADDRESS_CROSS_REFERENCE
        assert outcome.confidence == 0.68

    def test_water_heater_age_from_permit(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("shovels", WATER_HEATER_PERMIT),
        ])
        outcome = default_rules()[5].predict(ctx)
        # 3.4 years, recency band 2-5 years
        assert outcome.value == "4-6"
        assert outcome.confidence == 0.90
        assert outcome.provenance.subtype == "gas_tank"

    def test_assessor_declares_no_hvac(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("attom", {"cooling_type": "None", "heating_type": "None"}),
        ])
        outcome = default_rules()[1].predict(ctx)
        assert outcome.field is PredictionField.HVAC_PRESENT
        assert outcome.value == "false"
        assert outcome.confidence == 0.75

    def test_year_built_confirmed_by_assessor(self, build_context, make_snapshot):
        record = PropertyRecord(address_id="addr-1", year_built=2010)
        ctx = build_context(record, [make_snapshot("attom", {"year_built": 2010})])
        outcome = default_rules()[0].predict(ctx)
        # 14 years, below shingle/default typical 22: no rebasing
        assert outcome.value == "11-15"
        assert outcome.provenance.estimated_age_years == 14.0
        assert outcome.confidence == 0.50

    def test_permit_confirmed_by_second_provider(self, build_context, make_snapshot, hvac_permit_payload):
        miami = {"features": [{"attributes": {
            "PROCNUM": "2023-88", "TYPE": "MECH", "DESC1": "REPLACE A/C", "BLDCMPDT": "20230520",
        }}]}
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("shovels", hvac_permit_payload),
            make_snapshot("miami_dade", miami),
        ])
        outcome = default_rules()[3].predict(ctx)
        assert outcome.field is PredictionField.HVAC_AGE_BUCKET
        assert outcome.provenance.has_modifier(ModifierKind.CROSS_VALIDATION)
        assert outcome.confidence == 0.98
        assert {ref.provider for ref in outcome.provenance.evidence} == {"shovels", "miami_dade"}


# =============================================================================
# Parse Failures
# =============================================================================

class TestDefaultAfterParseFailure:
    """A default reached because a payload was unreadable says so."""

    def test_failed_provider_flagged(self, build_context, make_snapshot):
        ctx = build_context(PropertyRecord(address_id="addr-1"), [
            make_snapshot("attom", "<html>502 Bad Gateway</html>"),
        ])
        outcomes = predict_all(ctx)
        for outcome in outcomes.values():
            assert outcome.provenance.source is SourceKind.DEFAULT_AFTER_PARSE_FAILURE
            assert outcome.provenance.failed_providers == ("attom",)
            assert outcome.confidence == 0.25

    def test_evidence_backed_fields_not_flagged(self, build_context, make_snapshot):
        record = PropertyRecord(address_id="addr-1", year_built=2010)
        ctx = build_context(record, [make_snapshot("attom", "<html>502 Bad Gateway</html>")])
        outcome = default_rules()[0].predict(ctx)
        assert outcome.provenance.source is SourceKind.HOME_AGE_INFERENCE
        assert outcome.provenance.failed_providers == ()
