"""
Tests for Evidence Extraction

Tests covering:
1. Provider date parsing
2. Permit normalisers (Shovels, Miami-Dade) and record-level parse issues
3. Permit relevance classifier (exclusion first, inclusion per system)
4. Assessor and address normalisers
5. Subtype / presence inference and climate defaults
6. Evidence collection across snapshots
"""

from datetime import date, datetime, timezone

import pytest

from core.evidence import (
    EvidenceKind,
    EvidenceParseError,
    InstallKind,
    PermitRecord,
    ProviderRegistration,
    classify_install,
    collect_evidence,
    extract_permits,
    get_provider,
    infer_presence,
    infer_subtype,
    is_excluded,
    is_system_permit,
    matches_system,
    normalize_attom,
    normalize_miami_dade_permit,
    normalize_smarty,
    parse_evidence_date,
    providers_for_kind,
    register_provider,
    relevant_permits,
)
from core.evidence.inference import default_subtype
from core.models import SystemType


ATTOM_PAYLOAD = {
    "property": [
        {
            "building": {
                "summary": {"yearBuilt": 1985, "yearBuiltEffective": 2005},
                "construction": {"roofCover": "Clay Tile"},
            },
            "utilities": {
                "coolingType": "Central",
                "heatingType": "Forced Air",
                "heatingFuel": "Gas",
                "waterHeater": "Gas",
            },
            "location": {"latitude": "25.7617", "longitude": "-80.1918"},
        }
    ]
}

SMARTY_PAYLOAD = [
    {
        "components": {"state_abbreviation": "FL", "city_name": "Miami", "zipcode": "33101"},
        "metadata": {"latitude": 25.7700, "longitude": -80.2000},
        "attributes": {"year_built": "1990", "air_conditioner": "Yes", "water_heater": "Electric"},
    }
]


# =============================================================================
# Date Parsing
# =============================================================================

class TestParseEvidenceDate:
    """Provider dates arrive in several encodings."""

    @pytest.mark.parametrize("value", [
        "2023-06-01",
        "20230601",
        "2023-06-01T10:30:00Z",
        1685577600000,
        "1685577600000",
        date(2023, 6, 1),
        datetime(2023, 6, 1, 8, 0, tzinfo=timezone.utc),
    ])
    def test_recognised_formats(self, value):
        assert parse_evidence_date(value) == date(2023, 6, 1)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_values_are_none(self, value):
        assert parse_evidence_date(value) is None

    @pytest.mark.parametrize("value", ["not a date", "2023-13-45", True])
    def test_unrecognised_values_raise(self, value):
        with pytest.raises(EvidenceParseError):
            parse_evidence_date(value)


# =============================================================================
# Permit Normalisers
# =============================================================================

class TestPermitNormalisers:
    """Provider-specific fields become one PermitRecord shape."""

    def test_shovels_permit(self, hvac_permit_payload):
        permits, issues = extract_permits("shovels", hvac_permit_payload)
        assert issues == []
        assert len(permits) == 1
        permit = permits[0]
        assert permit.provider_name == "shovels"
        assert permit.permit_number == "M-2023-0042"
        assert permit.date_issued == date(2023, 5, 10)
        assert permit.observed_date == date(2023, 6, 1)
        assert permit.is_finaled

    def test_miami_dade_feature_collection(self):
        payload = {
            "features": [
                {
                    "attributes": {
                        "PROCNUM": "2021-001",
                        "TYPE": "MECH",
                        "DESC1": "REPLACE A/C",
                        "DESC2": "3 TON SPLIT",
                        "ISSUDATE": 1609459200000,
                        "LSTAPPRDT": "20210115",
                        "BLDCMPDT": "2021-02-01",
                    }
                }
            ]
        }
        permits, issues = extract_permits("miami_dade", payload)
        assert issues == []
        permit = permits[0]
        assert permit.permit_type == "Mechanical"
        assert permit.description == "REPLACE A/C 3 TON SPLIT"
        assert permit.date_issued == date(2021, 1, 1)
        assert permit.approval_date == date(2021, 1, 15)
        assert permit.observed_date == date(2021, 2, 1)
        assert permit.jurisdiction == "Miami-Dade County"

    def test_observed_date_prefers_approval_over_issue(self):
        permit = normalize_miami_dade_permit({
            "PROCNUM": "X", "ISSUDATE": "20200101", "LSTAPPRDT": "20200301",
        })
        assert permit.observed_date == date(2020, 3, 1)
        assert not permit.is_finaled

    def test_bad_record_is_skipped_and_reported(self):
        payload = {
            "permits": [
                {"number": "OK-1", "description": "Re-roof", "final_date": "2020-01-01"},
                {"number": "BAD-1", "description": "Re-roof", "final_date": "garbage"},
                "not a record",
            ]
        }
        permits, issues = extract_permits("shovels", payload)
        assert [p.permit_number for p in permits] == ["OK-1"]
        assert [i.record_index for i in issues] == [1, 2]
        assert all(i.provider_name == "shovels" for i in issues)

    def test_payload_without_permit_list_is_empty(self):
        assert extract_permits("shovels", {"total": 0}) == ([], [])

    @pytest.mark.parametrize("payload", ["<html>error</html>", 42, {"permits": "none"}])
    def test_unreadable_payload_raises(self, payload):
        with pytest.raises(EvidenceParseError):
            extract_permits("shovels", payload)

    def test_unknown_permit_provider_raises(self):
        with pytest.raises(EvidenceParseError, match="No permit normaliser"):
            extract_permits("acme_permits", [])


# =============================================================================
# Permit Classifier
# =============================================================================

def _permit(description, permit_type=None, finaled=date(2022, 1, 1), provider="shovels"):
    return PermitRecord(
        provider_name=provider,
        permit_number="P-1",
        permit_type=permit_type,
        description=description,
        date_finaled=finaled,
    )


class TestPermitClassifier:
    """Exclusion is evaluated first and wins for every system."""

    def test_paver_shutter_permit_is_excluded_everywhere(self):
        text = "misc: paver, shutter install"
        assert is_excluded(text)
        for system_type in SystemType:
            assert not matches_system(system_type, text)

    def test_exclusion_wins_over_inclusion(self):
        assert not matches_system(SystemType.ROOF, "Re-roof pool cabana and install pavers")

    def test_hvac_change_out(self):
        text = "A/C change out 4 ton split system"
        assert matches_system(SystemType.HVAC, text)
        assert not matches_system(SystemType.ROOF, text)
        assert not matches_system(SystemType.WATER_HEATER, text)

    def test_roof_decking_is_not_an_outdoor_deck(self):
        assert matches_system(SystemType.ROOF, "Re-roof, replace roof decking and shingles")
        assert not matches_system(SystemType.ROOF, "New wood deck with roof cover")

    def test_reroof_replacing_damaged_decking(self):
        text = "REROOF: TEAR OFF SHINGLES, REPLACE DAMAGED DECKING, INSTALL NEW SHINGLES"
        assert not is_excluded(text)
        assert matches_system(SystemType.ROOF, text, "Roofing")
        assert matches_system(SystemType.ROOF, "Replace roof sheathing")
        assert is_excluded("Build 12x16 deck off rear slider")

    def test_roof_vents_are_not_hvac(self):
        text = "Roof replacement incl. new attic air vents"
        assert matches_system(SystemType.ROOF, text, "Roofing")
        assert not matches_system(SystemType.HVAC, text, "Roofing")
        assert not matches_system(SystemType.HVAC, "Replace air filter and exhaust fan")

    @pytest.mark.parametrize("text", [
        "Replace cooling system, 3 ton",
        "Heating unit replacement",
        "Change-out AC",
    ])
    def test_hvac_equipment_replacement(self, text):
        assert matches_system(SystemType.HVAC, text)

    def test_permit_type_alone_counts(self):
        assert is_system_permit(SystemType.HVAC, _permit("Permit 1182", permit_type="Mechanical"))
        assert is_system_permit(SystemType.ROOF, _permit("Permit 1183", permit_type="Roofing"))
        assert not is_system_permit(SystemType.WATER_HEATER, _permit("Permit 1184", permit_type="Plumbing"))

    def test_heat_pump_water_heater_is_not_hvac(self):
        text = "Install heat pump water heater"
        assert matches_system(SystemType.WATER_HEATER, text)
        assert not matches_system(SystemType.HVAC, text)

    def test_gas_water_heater_replacement(self):
        text = "Replace 50 gal gas water heater"
        assert matches_system(SystemType.WATER_HEATER, text)
        assert not matches_system(SystemType.HVAC, text)

    @pytest.mark.parametrize("description,kind", [
        ("Replace water heater", InstallKind.REPLACEMENT),
        ("Install new tankless water heater", InstallKind.NEW_INSTALL),
        ("Water heater", InstallKind.UNCLASSIFIED),
    ])
    def test_classify_install(self, description, kind):
        assert classify_install(SystemType.WATER_HEATER, _permit(description)) is kind

    def test_relevant_permits_newest_first_and_dated_only(self):
        permits = [
            _permit("Re-roof shingles", finaled=date(2010, 5, 1)),
            _permit("Re-roof with tile", finaled=date(2019, 8, 1)),
            _permit("Roof repair", finaled=None),
            _permit("Fence replacement", finaled=date(2021, 1, 1)),
        ]
        relevant = relevant_permits(SystemType.ROOF, permits)
        assert [sp.observed_on for sp in relevant] == [date(2019, 8, 1), date(2010, 5, 1)]
        assert all(sp.system_type is SystemType.ROOF for sp in relevant)


# =============================================================================
# Assessor / Address Normalisers
# =============================================================================

class TestAssessorNormaliser:
    """ATTOM-style property detail payloads."""

    def test_envelope(self):
        profile = normalize_attom("attom", ATTOM_PAYLOAD)
        assert profile.year_built == 1985
        assert profile.best_year_built == 2005
        assert profile.roof_cover == "Clay Tile"
        assert profile.cooling_type == "Central"
        assert profile.water_heater == "Gas"
        assert profile.has_coordinates
        assert profile.latitude == pytest.approx(25.7617)

    def test_flat_payload(self):
        profile = normalize_attom("attom", {"year_built": "1978", "roof_cover": "Metal"})
        assert profile.best_year_built == 1978
        assert profile.roof_cover == "Metal"
        assert not profile.has_coordinates

    def test_zero_year_is_unknown(self):
        profile = normalize_attom("attom", {"year_built": 0})
        assert profile.year_built is None

    def test_non_finite_numbers_are_unknown(self):
        profile = normalize_attom("attom", {
            "year_built": "inf",
            "effective_year_built": 1e400,
            "latitude": "nan",
            "longitude": "-Infinity",
        })
        assert profile.year_built is None
        assert profile.best_year_built is None
        assert not profile.has_coordinates

    @pytest.mark.parametrize("payload", [{"property": []}, "oops", {"property": 5}])
    def test_unreadable_payload_raises(self, payload):
        with pytest.raises(EvidenceParseError):
            normalize_attom("attom", payload)


class TestAddressNormaliser:
    """Smarty-style candidate lists."""

    def test_first_candidate(self):
        profile = normalize_smarty("smarty", SMARTY_PAYLOAD)
        assert profile.region_code == "FL"
        assert profile.city == "Miami"
        assert profile.postal_code == "33101"
        assert profile.year_built == 1990
        assert profile.cooling == "Yes"
        assert profile.has_coordinates

    def test_empty_candidate_list_raises(self):
        with pytest.raises(EvidenceParseError):
            normalize_smarty("smarty", [])

    def test_non_finite_coordinates_dropped(self):
        profile = normalize_smarty("smarty", [{
            "components": {"state_abbreviation": "FL"},
            "metadata": {"latitude": "nan", "longitude": "inf"},
        }])
        assert profile.latitude is None
        assert profile.longitude is None
        assert not profile.has_coordinates


# =============================================================================
# Inference
# =============================================================================

class TestInference:
    """Declared values and free text map to lifespan subtypes."""

    @pytest.mark.parametrize("system_type,text,subtype", [
        (SystemType.ROOF, "Clay Tile", "tile"),
        (SystemType.ROOF, "Asphalt Shingle", "shingle"),
        (SystemType.ROOF, "Standing seam metal", "metal"),
        (SystemType.HVAC, "Central", "split_system"),
        (SystemType.HVAC, "Heat Pump", "heat_pump"),
        (SystemType.HVAC, "Ductless mini-split", "mini_split"),
        (SystemType.HVAC, "Forced Air", "furnace"),
        (SystemType.WATER_HEATER, "Electric", "electric_tank"),
        (SystemType.WATER_HEATER, "Tankless gas", "tankless"),
    ])
    def test_infer_subtype(self, system_type, text, subtype):
        assert infer_subtype(system_type, text) == subtype

    @pytest.mark.parametrize("text", [None, "", "Unknown"])
    def test_no_subtype(self, text):
        assert infer_subtype(SystemType.ROOF, text) is None

    def test_infer_presence(self):
        assert infer_presence("Central", None) is True
        assert infer_presence("None", "none") is False
        assert infer_presence(None, "  ") is None

    @pytest.mark.parametrize("system_type,zone,subtype", [
        (SystemType.ROOF, "desert_southwest", "tile"),
        (SystemType.ROOF, "florida", "shingle"),
        (SystemType.HVAC, "freeze_thaw", "furnace"),
        (SystemType.HVAC, "default", "split_system"),
        (SystemType.WATER_HEATER, "florida", "electric_tank"),
        (SystemType.WATER_HEATER, "default", "gas_tank"),
    ])
    def test_climate_defaults(self, system_type, zone, subtype):
        assert default_subtype(system_type, zone) == subtype


# =============================================================================
# Provider Registry
# =============================================================================

class TestProviderRegistry:
    """Registered providers decide which normaliser reads a snapshot."""

    def test_lookup_is_case_insensitive(self):
        assert get_provider("SHOVELS").evidence_kind is EvidenceKind.PERMITS

    def test_unknown_provider(self):
        assert get_provider("acme") is None

    def test_permit_providers(self):
        names = {p.provider_name for p in providers_for_kind(EvidenceKind.PERMITS)}
        assert {"shovels", "miami_dade"} <= names

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            register_provider(ProviderRegistration("shovels", "Shovels", EvidenceKind.PERMITS))

    def test_invalid_name_rejected(self):
        with pytest.raises(ValueError):
            ProviderRegistration("Bad Name", "Bad", EvidenceKind.ADDRESS)


# =============================================================================
# Collector
# =============================================================================

class TestCollectEvidence:
    """Latest snapshot per provider, normalised by evidence kind."""

    def test_empty(self):
        evidence = collect_evidence([])
        assert evidence.is_empty
        assert evidence.coordinates is None
        assert evidence.failed_providers == ()

    def test_latest_snapshot_per_provider_wins(self, make_snapshot):
        old = make_snapshot("attom", {"year_built": 1970},
                            retrieved_at=datetime(2023, 1, 1, tzinfo=timezone.utc))
        new = make_snapshot("attom", {"year_built": 1975},
                            retrieved_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        evidence = collect_evidence([new, old])
        assert evidence.assessor.year_built == 1975

    def test_naive_and_aware_timestamps_compare(self, make_snapshot):
        naive = make_snapshot("attom", {"year_built": 1970}, retrieved_at=datetime(2024, 2, 1))
        aware = make_snapshot("attom", {"year_built": 1975},
                              retrieved_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        evidence = collect_evidence([aware, naive])
        assert evidence.assessor.year_built == 1970

    def test_permits_pooled_across_providers(self, make_snapshot, hvac_permit_payload):
        miami = make_snapshot("miami_dade", {"features": [
            {"attributes": {"PROCNUM": "R-1", "TYPE": "ROOF", "DESC1": "REROOF", "BLDCMPDT": "20190301"}}
        ]})
        evidence = collect_evidence([make_snapshot("shovels", hvac_permit_payload), miami])
        assert {p.provider_name for p in evidence.permits} == {"shovels", "miami_dade"}
        assert evidence.providers_used == ("miami_dade", "shovels")

    def test_unregistered_provider_ignored(self, make_snapshot):
        evidence = collect_evidence([make_snapshot("acme", {"anything": 1})])
        assert evidence.is_empty
        assert evidence.providers_used == ()

    def test_unreadable_payload_recorded(self, make_snapshot):
        evidence = collect_evidence([
            make_snapshot("attom", "<html>503</html>"),
            make_snapshot("smarty", SMARTY_PAYLOAD),
        ])
        assert evidence.assessor is None
        assert evidence.address is not None
        assert evidence.failed_providers == ("attom",)
        assert evidence.providers_used == ("smarty",)

    def test_coordinates_prefer_address(self, make_snapshot):
        evidence = collect_evidence([
            make_snapshot("attom", ATTOM_PAYLOAD),
            make_snapshot("smarty", SMARTY_PAYLOAD),
        ])
        assert evidence.coordinates == (25.77, -80.2)
        assert evidence.region_code == "FL"
