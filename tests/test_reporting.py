"""
Tests for the Home Systems Report and CLI

Tests covering:
1. Report data loading and ordering
2. PDF generation (bytes and file output)
3. Display formatting helpers
4. CLI run / show / report commands
"""

import json

import pytest

from core.models import PredictionField, PropertyRecord
from core.prediction_engine import PredictionRunOrchestrator
from core.store import PropertyNotFoundError
from reporting import (
    ReportGenerator,
    ReportNoPredictions,
    ReportSuccess,
    HomeSystemsReportData,
    generate_report,
    load_report_data,
)
from reporting.cli import main
from utils.formatting import (
    format_confidence,
    format_field_name,
    format_percent,
    format_value,
    format_years,
)


@pytest.fixture
def run_store(store, florida_home, make_snapshot, hvac_permit_payload, reference_date):
    """Store holding one completed run for addr-fl."""
    store.add_property(florida_home)
    store.add_snapshot(make_snapshot("shovels", hvac_permit_payload, "addr-fl"))
    PredictionRunOrchestrator(store, reference_date=reference_date).run("addr-fl")
    return store


@pytest.fixture
def report_data(run_store):
    return load_report_data(run_store, "addr-fl")


# =============================================================================
# Report Data
# =============================================================================

class TestReportData:

    def test_loads_latest_run(self, run_store, report_data):
        assert report_data.run_id == run_store.latest_run_id("addr-fl")
        assert len(report_data.predictions) == 6
        assert report_data.climate_zone == "florida"
        assert report_data.model_version == "rules_v1.0"

    def test_predictions_in_display_order(self, report_data):
        shuffled = HomeSystemsReportData(
            property=report_data.property,
            run_id=report_data.run_id,
            predictions=list(reversed(report_data.predictions)),
        )
        assert [p.field for p in shuffled.predictions] == list(PredictionField)

    def test_replacement_flags(self, report_data):
        # 1990 Florida home: water heater past lifespan, HVAC recently replaced
        flagged = {p.field for p in report_data.replacement_flags}
        assert PredictionField.WATER_HEATER_AGE_BUCKET in flagged
        assert PredictionField.HVAC_AGE_BUCKET not in flagged

    def test_display_address(self, report_data):
        assert report_data.display_address == "120 Palm Way, Miami, FL 33101"

    def test_display_address_falls_back_to_id(self):
        data = HomeSystemsReportData(
            property=PropertyRecord(address_id="addr-9"), run_id="run-1", predictions=[],
        )
        assert data.display_address == "addr-9"

    def test_no_predictions(self, store, florida_home):
        store.add_property(florida_home)
        assert load_report_data(store, "addr-fl") is None

    def test_unknown_property(self, store):
        with pytest.raises(PropertyNotFoundError):
            load_report_data(store, "nope")


# =============================================================================
# PDF Generation
# =============================================================================

class TestPdfGeneration:

    def test_generate_to_buffer(self, report_data):
        pdf_bytes = ReportGenerator().generate_to_buffer(report_data)
        assert pdf_bytes.startswith(b"%PDF")
        assert len(pdf_bytes) > 1000

    def test_generate_report_writes_file(self, report_data, tmp_path):
        result = generate_report(report_data, output_dir=tmp_path)

        assert isinstance(result, ReportSuccess)
        assert result.fields_included == 6
        assert result.path.parent == tmp_path
        assert result.path.name.startswith("home-systems-addr-fl-")
        assert result.path.read_bytes().startswith(b"%PDF")

    def test_markup_in_evidence_is_escaped(self, store, make_snapshot, reference_date):
        store.add_property(PropertyRecord(address_id="addr-x", street_address="1 <Main> & Co"))
        payload = {"permits": [{
            "number": "<M-1>",
            "description": "A/C change out <4 ton> & coil",
            "final_date": "2023-06-01",
        }]}
        store.add_snapshot(make_snapshot("shovels", payload, "addr-x"))
        PredictionRunOrchestrator(store, reference_date=reference_date).run("addr-x")

        pdf_bytes = ReportGenerator().generate_to_buffer(load_report_data(store, "addr-x"))

        assert pdf_bytes.startswith(b"%PDF")

    def test_no_predictions(self, tmp_path):
        data = HomeSystemsReportData(
            property=PropertyRecord(address_id="addr-9"), run_id="run-1", predictions=[],
        )
        result = generate_report(data, output_dir=tmp_path)
        assert isinstance(result, ReportNoPredictions)
        assert list(tmp_path.iterdir()) == []


# =============================================================================
# Formatting
# =============================================================================

class TestFormatting:

    def test_percent(self):
        assert format_percent(12.345) == "12.3%"
        assert format_confidence(0.85) == "85%"

    def test_field_names(self):
        assert format_field_name("hvac_age_bucket") == "HVAC Age"
        assert format_field_name("water_heater_type") == "Water Heater Type"
        assert format_field_name("hvac_present") == "HVAC Present"

    def test_values(self):
        assert format_value("roof_age_bucket", "16-20") == "16-20 years"
        assert format_value("hvac_present", "false") == "No"
        assert format_value("water_heater_type", "electric_tank") == "Electric Tank"

    def test_years(self):
        assert format_years(None) == "-"
        assert format_years(19.0) == "19 yrs"
        assert format_years(3.4) == "3.4 yrs"


# =============================================================================
# CLI
# =============================================================================

@pytest.fixture
def cli_env(monkeypatch):
    monkeypatch.setenv("STORE_TYPE", "memory")
    monkeypatch.setenv("RULE_WORKERS", "1")
    monkeypatch.setenv("MODEL_VERSION", "rules_v1.0")


class TestCli:

    def test_run(self, cli_env, store, florida_home, capsys):
        store.add_property(florida_home)

        assert main(["run", "addr-fl"], store=store) == 0

        assert "complete (6 predictions)" in capsys.readouterr().out
        assert len(store.list_run_ids("addr-fl")) == 1

    def test_run_unknown_property(self, cli_env, store, capsys):
        assert main(["run", "nope"], store=store) == 2
        assert "Property not found" in capsys.readouterr().err

    def test_show_json(self, cli_env, run_store, capsys):
        assert main(["show", "addr-fl", "--json"], store=run_store) == 0

        rows = json.loads(capsys.readouterr().out)
        assert [row["field"] for row in rows] == [f.value for f in PredictionField]

    def test_show_table(self, cli_env, run_store, capsys):
        assert main(["show", "addr-fl"], store=run_store) == 0

        out = capsys.readouterr().out
        assert "HVAC Age" in out
        assert "0-5 years" in out

    def test_show_no_predictions(self, cli_env, store, capsys):
        assert main(["show", "addr-fl"], store=store) == 1
        assert "No predictions" in capsys.readouterr().out

    def test_report(self, cli_env, run_store, tmp_path, capsys):
        assert main(["report", "addr-fl", "--output-dir", str(tmp_path)], store=run_store) == 0

        assert "Report generated" in capsys.readouterr().out
        assert len(list(tmp_path.glob("home-systems-addr-fl-*.pdf"))) == 1

    def test_report_unknown_property(self, cli_env, store, tmp_path):
        assert main(["report", "nope", "--output-dir", str(tmp_path)], store=store) == 2

    def test_invalid_store_config(self, monkeypatch, capsys):
        monkeypatch.setenv("STORE_TYPE", "supabase")
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)

        assert main(["show", "addr-fl"]) == 1
        assert "SUPABASE_URL" in capsys.readouterr().err
