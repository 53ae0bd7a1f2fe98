"""
Reporting module for the home systems engine.

Renders a property's latest (or a chosen) prediction run as a
Home Systems Report PDF.

Usage:
    from reporting import generate_report, load_report_data

    data = load_report_data(store, "addr-123")
    result = generate_report(data)
"""

from .pdf_generator import (
    ReportGenerator,
    ReportNoPredictions,
    ReportResult,
    ReportSuccess,
    generate_report,
)
from .schemas import FIELD_ORDER, HomeSystemsReportData, load_report_data

__all__ = [
    "ReportGenerator",
    "ReportNoPredictions",
    "ReportResult",
    "ReportSuccess",
    "generate_report",
    "FIELD_ORDER",
    "HomeSystemsReportData",
    "load_report_data",
]
