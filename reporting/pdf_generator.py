"""
Home Systems Report

Renders one prediction run for one property as a short PDF:

1. Header (address, run, model version, climate zone)
2. System Summary table (value, confidence, source per field)
3. Replacement Watch (age predictions past expected lifespan)
4. Field Detail (confidence breakdown and evidence per field)
5. Methodology note

Uses ReportLab platypus for deterministic output.
"""

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.prediction_engine.models import Prediction
from utils.formatting import format_confidence, format_field_name, format_value, format_years
from .schemas import HomeSystemsReportData


# =============================================================================
# Report Generation Result Types
# =============================================================================

@dataclass
class ReportSuccess:
    """Returned when PDF generation succeeds."""
    path: Path
    fields_included: int


@dataclass
class ReportNoPredictions:
    """Returned when the property has no prediction run to report."""
    message: str = "No predictions available for this property."


ReportResult = Union[ReportSuccess, ReportNoPredictions]


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette: charcoal text, muted accents."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    SLATE = colors.Color(0.35, 0.38, 0.42)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.Color(0.15, 0.25, 0.4)

    # Confidence bands
    HIGH = colors.Color(0.15, 0.4, 0.25)
    MEDIUM = colors.Color(0.5, 0.4, 0.15)
    LOW = colors.Color(0.55, 0.2, 0.2)


def confidence_color(confidence: float) -> colors.Color:
    if confidence >= 0.7:
        return Palette.HIGH
    if confidence >= 0.4:
        return Palette.MEDIUM
    return Palette.LOW


# =============================================================================
# Style Configuration
# =============================================================================

def get_report_styles():
    """Paragraph styles for the Home Systems Report."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Normal'],
        fontSize=18,
        leading=22,
        textColor=Palette.BLACK,
        alignment=TA_LEFT,
        fontName='Helvetica-Bold',
        spaceAfter=4,
    ))
    styles.add(ParagraphStyle(
        name='ReportMeta',
        parent=styles['Normal'],
        fontSize=8.5,
        leading=12,
        textColor=Palette.SLATE,
        fontName='Helvetica',
    ))
    styles.add(ParagraphStyle(
        name='SectionTitle',
        parent=styles['Normal'],
        fontSize=12,
        leading=16,
        textColor=Palette.ACCENT,
        fontName='Helvetica-Bold',
        spaceBefore=10,
        spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        name='FieldTitle',
        parent=styles['Normal'],
        fontSize=10,
        leading=13,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica-Bold',
        spaceBefore=6,
        spaceAfter=2,
    ))
    styles.add(ParagraphStyle(
        name='Body',
        parent=styles['Normal'],
        fontSize=9,
        leading=12.5,
        textColor=Palette.CHARCOAL,
        fontName='Helvetica',
    ))
    styles.add(ParagraphStyle(
        name='Small',
        parent=styles['Normal'],
        fontSize=7.5,
        leading=10,
        textColor=Palette.GRAY,
        fontName='Helvetica',
    ))
    return styles


def _table_style() -> TableStyle:
    return TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 8.5),
        ('BACKGROUND', (0, 0), (-1, 0), Palette.CHARCOAL),
        ('TEXTCOLOR', (0, 0), (-1, 0), Palette.WHITE),
        ('TEXTCOLOR', (0, 1), (-1, -1), Palette.CHARCOAL),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
        ('TOPPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2.5*mm),
        ('LEFTPADDING', (0, 0), (-1, -1), 2*mm),
        ('RIGHTPADDING', (0, 0), (-1, -1), 2*mm),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
    ])


# =============================================================================
# Generator
# =============================================================================

class ReportGenerator:
    """
    Generates Home Systems Report PDFs.

    Usage:
        generator = ReportGenerator()
        pdf_bytes = generator.generate_to_buffer(report_data)
    """

    PAGE_WIDTH, PAGE_HEIGHT = LETTER
    MARGIN_LEFT = 18*mm
    MARGIN_RIGHT = 18*mm
    MARGIN_TOP = 18*mm
    MARGIN_BOTTOM = 20*mm

    OUTPUT_DIR = Path("reports")

    def __init__(self, output_dir: Path = None):
        self.styles = get_report_styles()
        self.output_dir = Path(output_dir) if output_dir else self.OUTPUT_DIR

    def generate_report(self, data: HomeSystemsReportData) -> ReportResult:
        """
        Generate a report PDF on disk.

        Args:
            data: Report data for one run

        Returns:
            ReportSuccess with the file path, or ReportNoPredictions if the
            run has no predictions
        """
        if not data.predictions:
            return ReportNoPredictions()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"home-systems-{data.property.address_id}-{data.run_id[:8]}.pdf"
        output_path.write_bytes(self.generate_to_buffer(data))

        return ReportSuccess(path=output_path, fields_included=len(data.predictions))

    def generate_to_buffer(self, data: HomeSystemsReportData) -> bytes:
        """Generate PDF and return as bytes (for streaming or testing)."""
        buffer = BytesIO()
        self._build_document(data, buffer)
        return buffer.getvalue()

    def _build_document(self, data: HomeSystemsReportData, buffer: BytesIO):
        doc = SimpleDocTemplate(
            buffer,
            pagesize=LETTER,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=f"Home Systems Report - {data.property.address_id}",
            author="Home Systems Engine",
            subject="Home system age and type predictions",
        )

        story = []
        story.extend(self._build_header(data))
        story.extend(self._build_summary_table(data))
        story.extend(self._build_replacement_watch(data))
        story.extend(self._build_field_detail(data))
        story.extend(self._build_methodology())

        doc.build(story, onFirstPage=self._draw_page_frame, onLaterPages=self._draw_page_frame)

    def _draw_page_frame(self, canvas_obj: canvas.Canvas, doc):
        """Footer: wordmark left, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 7)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawString(self.MARGIN_LEFT, self.MARGIN_BOTTOM - 10*mm, "HOME SYSTEMS REPORT")
        canvas_obj.drawRightString(
            self.PAGE_WIDTH - self.MARGIN_RIGHT,
            self.MARGIN_BOTTOM - 10*mm,
            f"{doc.page}",
        )
        canvas_obj.restoreState()

    # =========================================================================
    # Sections
    # =========================================================================

    def _build_header(self, data: HomeSystemsReportData) -> list:
        elements = [
            Paragraph("Home Systems Report", self.styles['ReportTitle']),
            Paragraph(escape(data.display_address), self.styles['Body']),
            Spacer(1, 4),
        ]
        meta = [
            f"Property ID: {escape(data.property.address_id)}",
            f"Run: {data.run_id}",
            f"Model: {data.model_version}",
            f"Climate zone: {data.climate_zone or 'default'}",
            f"Generated: {data.generated_at}",
        ]
        if data.property.year_built:
            meta.insert(1, f"Year built: {data.property.year_built}")
        elements.append(Paragraph(" &nbsp;|&nbsp; ".join(meta), self.styles['ReportMeta']))
        elements.append(Spacer(1, 6))
        elements.append(HRFlowable(width="100%", thickness=0.5, color=Palette.LIGHT_GRAY))
        return elements

    def _build_summary_table(self, data: HomeSystemsReportData) -> list:
        elements = [Paragraph("System Summary", self.styles['SectionTitle'])]

        rows = [["System", "Prediction", "Confidence", "Source"]]
        for prediction in data.predictions:
            rows.append([
                format_field_name(prediction.field.value),
                format_value(prediction.field.value, prediction.predicted_value),
                format_confidence(prediction.confidence),
                prediction.provenance.source.value.replace("_", " "),
            ])

        table = Table(rows, colWidths=[45*mm, 45*mm, 25*mm, 60*mm])
        style = _table_style()
        for row, prediction in enumerate(data.predictions, 1):
            style.add('TEXTCOLOR', (2, row), (2, row), confidence_color(prediction.confidence))
        table.setStyle(style)
        elements.append(table)
        return elements

    def _build_replacement_watch(self, data: HomeSystemsReportData) -> list:
        flagged = data.replacement_flags
        if not flagged:
            return []

        elements = [Paragraph("Replacement Watch", self.styles['SectionTitle'])]
        for prediction in flagged:
            provenance = prediction.provenance
            lifespan = provenance.lifespan
            text = (
                f"<b>{format_field_name(prediction.field.value)}</b>: estimated "
                f"{format_years(provenance.estimated_age_years)}"
            )
            if lifespan is not None:
                text += (
                    f", beyond the {format_years(lifespan.max_years)} upper lifespan "
                    f"for {lifespan.subtype.replace('_', ' ')}"
                )
            text += ". No replacement permit on record."
            elements.append(Paragraph(text, self.styles['Body']))
        return elements

    def _build_field_detail(self, data: HomeSystemsReportData) -> list:
        elements = [Paragraph("Field Detail", self.styles['SectionTitle'])]
        for prediction in data.predictions:
            elements.append(KeepTogether(self._field_block(prediction)))
        return elements

    def _field_block(self, prediction: Prediction) -> List:
        provenance = prediction.provenance
        block = [
            Paragraph(
                f"{format_field_name(prediction.field.value)}: "
                f"{format_value(prediction.field.value, prediction.predicted_value)}",
                self.styles['FieldTitle'],
            ),
        ]

        breakdown = [f"Base {provenance.source.value.replace('_', ' ')}: {provenance.base_rate:.2f}"]
        for modifier in provenance.modifiers:
            breakdown.append(f"{modifier.kind.value.replace('_', ' ')} {modifier.delta:+.2f}")
        breakdown.append(f"= {prediction.confidence:.2f}")
        block.append(Paragraph(" &nbsp; ".join(breakdown), self.styles['Body']))

        if provenance.lifespan is not None:
            lifespan = provenance.lifespan
            block.append(Paragraph(
                f"Lifespan ({lifespan.subtype.replace('_', ' ')}, {lifespan.level.value}): "
                f"{format_years(lifespan.min_years)} / {format_years(lifespan.typical_years)} / "
                f"{format_years(lifespan.max_years)}",
                self.styles['Small'],
            ))
        for ref in provenance.evidence:
            observed = f" ({ref.observed_on.isoformat()})" if ref.observed_on else ""
            detail = f": {escape(ref.detail)}" if ref.detail else ""
            block.append(Paragraph(
                f"{escape(ref.provider)} {ref.kind} {escape(ref.reference)}{observed}{detail}",
                self.styles['Small'],
            ))
        if provenance.failed_providers:
            block.append(Paragraph(
                f"Unparseable evidence from: {', '.join(provenance.failed_providers)}",
                self.styles['Small'],
            ))
        return block

    def _build_methodology(self) -> list:
        return [
            Spacer(1, 8),
            HRFlowable(width="100%", thickness=0.5, color=Palette.LIGHT_GRAY),
            Paragraph(
                "Predictions follow a fixed order of evidence: building permits, then "
                "assessor records, then address metadata, then inference from the home's "
                "age, then regional defaults. Confidence starts from the base rate of the "
                "source used and is adjusted for recency, agreement between sources and "
                "regional fit. Figures are estimates, not inspection results.",
                self.styles['Small'],
            ),
        ]


def generate_report(data: HomeSystemsReportData, output_dir: Path = None) -> ReportResult:
    """
    Generate a Home Systems Report PDF on disk.

    Args:
        data: Report data for one run
        output_dir: Directory to write to (default: reports/)

    Returns:
        ReportSuccess or ReportNoPredictions
    """
    return ReportGenerator(output_dir=output_dir).generate_report(data)
