"""Survey report PDF drawing using ReportLab.

Pure utility: no DB or FastAPI imports.  ``build_report_data`` turns a raw
answer map into a :class:`ReportData`; ``build_report_pdf`` draws it onto
one or more pages and returns the PDF bytes.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape, letter
from reportlab.lib.units import cm
from reportlab.pdfgen import canvas

from sugb_forms.answers import coerce_answer, parse_number
from sugb_forms.engine import round_half_up
from sugb_forms.models.schema import QuestionType

from sugb_reports.models import ReportOptions

NOT_SPECIFIED = "Not specified"

_BRAND = colors.HexColor("#1e40af")
_ACCENT = colors.HexColor("#2563eb")
_MUTED = colors.HexColor("#6b7280")
_TEXT = colors.HexColor("#111827")
_LABEL = colors.HexColor("#374151")
_RULE = colors.HexColor("#e5e7eb")
_GREEN = colors.HexColor("#059669")

_PAGE_SIZES = {"A4": A4, "Letter": letter}


@dataclass(frozen=True)
class ReportData:
    """All data needed to render one survey report."""

    report_id: str
    generated_at: datetime
    contact: str
    organization_name: str
    industry: str
    size_category: str
    gross_salary: float
    fte_percentage: int
    annual_salary: int
    salary_scale: str
    salary_step: str
    holiday_allowance: str
    allowances: tuple[str, ...]
    pension_scheme: str
    employer_contribution: str
    employee_contribution: str
    ikb_amount: float


# ------------------------------------------------------------------
# Answer extraction
# ------------------------------------------------------------------

def _text(raw: Any, default: str = NOT_SPECIFIED) -> str:
    if raw is None:
        return default
    if isinstance(raw, (list, tuple)):
        joined = ", ".join(str(v) for v in raw if str(v).strip())
        return joined or default
    text = str(raw).strip()
    return text or default


def _number(raw: Any) -> float:
    value = parse_number(raw)
    return value if value is not None else 0.0


def fte_percentage_safe(raw: Any) -> int:
    """FTE percentage clamped to 1..200; missing or non-positive means 100."""
    value = 100.0 if raw is None else parse_number(raw)
    if value is None or not math.isfinite(value) or value <= 0:
        return 100
    return min(200, max(1, round_half_up(value)))


def _percent(raw: Any) -> str:
    value = parse_number(raw)
    if value is None:
        return _text(raw)
    return f"{value:g}%"


def build_report_data(
    report_id: str,
    responses: Mapping[str, Any],
    *,
    contact: str,
    generated_at: datetime,
) -> ReportData:
    """Extract the report fields from a raw answer map."""
    gross = _number(responses.get("gross_salary"))
    fte = fte_percentage_safe(responses.get("fte_percentage"))

    has_allowances = coerce_answer(
        QuestionType.YES_NO_WITH_EXPLANATION, responses.get("has_allowances"),
    )
    allowances: tuple[str, ...] = ()
    # Selections kept from before the user switched to "no" are not reported
    if has_allowances.answer != "no":
        selection = coerce_answer(
            QuestionType.MULTISELECT_WITH_EXPLANATION, responses.get("allowance_types"),
        )
        allowances = tuple(selection.selected)

    return ReportData(
        report_id=report_id,
        generated_at=generated_at,
        contact=contact,
        organization_name=_text(responses.get("organization_name"), "Unknown Organization"),
        industry=_text(responses.get("organization_industry")),
        size_category=_text(responses.get("organization_size")),
        gross_salary=gross,
        fte_percentage=fte,
        annual_salary=round_half_up(gross * 12 * fte / 100),
        salary_scale=_text(responses.get("salary_scale")),
        salary_step=_text(responses.get("salary_step")),
        holiday_allowance=_percent(responses.get("holiday_allowance")),
        allowances=allowances,
        pension_scheme=_text(responses.get("pension_scheme")),
        employer_contribution=_percent(responses.get("employer_contribution")),
        employee_contribution=_percent(responses.get("employee_contribution")),
        ikb_amount=_number(responses.get("ikb_amount")),
    )


def format_money(amount: float) -> str:
    """``1234.5 -> '€1,235'``; reports show whole euros."""
    return f"€{round_half_up(amount):,}"


# ------------------------------------------------------------------
# Drawing
# ------------------------------------------------------------------

class _Page:
    """Tracks the cursor and starts a new page when space runs out."""

    def __init__(self, c: canvas.Canvas, size: tuple[float, float]) -> None:
        self.c = c
        self.width, self.height = size
        self.margin = 2 * cm
        self.y = self.height - self.margin

    def ensure(self, needed: float) -> None:
        if self.y - needed < self.margin + 1.5 * cm:
            self.c.showPage()
            self.y = self.height - self.margin

    def heading(self, title: str) -> None:
        self.ensure(1.6 * cm)
        self.y -= 0.4 * cm
        self.c.setFillColor(_TEXT)
        self.c.setFont("Helvetica-Bold", 14)
        self.c.drawString(self.margin, self.y, title)
        self.y -= 0.25 * cm
        self.c.setStrokeColor(_RULE)
        self.c.setLineWidth(1)
        self.c.line(self.margin, self.y, self.width - self.margin, self.y)
        self.y -= 0.6 * cm

    def field(self, label: str, value: str) -> None:
        self.ensure(0.7 * cm)
        self.c.setFillColor(_LABEL)
        self.c.setFont("Helvetica-Bold", 10)
        self.c.drawString(self.margin, self.y, label)
        self.c.setFillColor(_MUTED)
        self.c.setFont("Helvetica", 10)
        self.c.drawString(self.margin + 6 * cm, self.y, _clip(value, 70))
        self.y -= 0.6 * cm

    def metric(self, amount: str, caption: str, color) -> None:
        self.ensure(1.8 * cm)
        box_h = 1.5 * cm
        self.c.setFillColor(color)
        self.c.roundRect(
            self.margin, self.y - box_h, self.width - 2 * self.margin, box_h, 6,
            stroke=0, fill=1,
        )
        self.c.setFillColor(colors.white)
        self.c.setFont("Helvetica-Bold", 18)
        self.c.drawCentredString(self.width / 2, self.y - 0.75 * cm, amount)
        self.c.setFont("Helvetica", 9)
        self.c.drawCentredString(self.width / 2, self.y - 1.2 * cm, caption)
        self.y -= box_h + 0.3 * cm


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _draw_contribution_chart(page: _Page, data: ReportData) -> None:
    """Horizontal bars for the percentage-based benefits."""
    bars = [
        ("Holiday allowance", data.holiday_allowance),
        ("Employer pension", data.employer_contribution),
        ("Employee pension", data.employee_contribution),
    ]
    values = [(label, parse_number(text)) for label, text in bars]
    values = [(label, v) for label, v in values if v is not None]
    if not values:
        return

    page.heading("Benefit Rates")
    scale_max = max(max(v for _, v in values), 1.0)
    bar_w_max = page.width - 2 * page.margin - 7 * cm
    for label, value in values:
        page.ensure(0.8 * cm)
        page.c.setFillColor(_LABEL)
        page.c.setFont("Helvetica", 9)
        page.c.drawString(page.margin, page.y, label)
        page.c.setFillColor(_ACCENT)
        page.c.rect(
            page.margin + 4 * cm, page.y - 0.1 * cm,
            bar_w_max * value / scale_max, 0.4 * cm, stroke=0, fill=1,
        )
        page.c.setFillColor(_TEXT)
        page.c.drawString(
            page.margin + 4.2 * cm + bar_w_max * value / scale_max, page.y, f"{value:g}%",
        )
        page.y -= 0.7 * cm


def build_report_pdf(data: ReportData, options: ReportOptions | None = None) -> bytes:
    """Draw the survey report and return raw PDF bytes."""
    options = options or ReportOptions()
    size = _PAGE_SIZES[options.format]
    if options.orientation == "landscape":
        size = landscape(size)

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=size)
    c.setTitle(f"SUGB Report - {data.organization_name}")
    page = _Page(c, size)

    # --- Header ---
    c.setFillColor(_BRAND)
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(page.width / 2, page.y, "Standard Inquiry for Equitable Pay (SUGB)")
    page.y -= 0.7 * cm
    c.setFillColor(_MUTED)
    c.setFont("Helvetica", 10)
    c.drawCentredString(page.width / 2, page.y, "Comprehensive Pay Equity Analysis Report")
    page.y -= 0.5 * cm
    c.drawCentredString(
        page.width / 2, page.y, f"Generated on {data.generated_at.strftime('%B %d, %Y')}",
    )
    page.y -= 0.4 * cm
    c.setStrokeColor(_ACCENT)
    c.setLineWidth(2)
    c.line(page.margin, page.y, page.width - page.margin, page.y)
    page.y -= 0.4 * cm

    # --- Organization ---
    page.heading("Organization")
    page.field("Name", data.organization_name)
    page.field("Industry", data.industry)
    page.field("Size Category", data.size_category)
    page.field("Report Contact", data.contact)

    # --- Compensation ---
    page.heading("Compensation Overview")
    page.metric(format_money(data.gross_salary), "Monthly Gross Salary", _ACCENT)
    page.metric(format_money(data.annual_salary), "Annual (FTE Adjusted)", _GREEN)
    page.field("Salary Scale", data.salary_scale)
    page.field("Salary Step", data.salary_step)
    page.field("FTE Percentage", f"{data.fte_percentage}%")
    page.field("Holiday Allowance", data.holiday_allowance)

    # --- Allowances ---
    page.heading("Benefits & Allowances")
    if data.allowances:
        page.field("Allowances", f"{len(data.allowances)} type(s)")
        for allowance in data.allowances:
            page.field("", f"- {allowance}")
    else:
        page.field("Allowances", "No allowances reported")

    # --- Pension ---
    page.heading("Pension")
    page.field("Scheme", data.pension_scheme)
    page.field("Employer Contribution", data.employer_contribution)
    page.field("Employee Contribution", data.employee_contribution)
    page.field("IKB Amount", format_money(data.ikb_amount))

    if options.include_charts:
        _draw_contribution_chart(page, data)

    if options.include_benchmarking:
        page.heading("Benchmarking")
        page.field("Annual vs. monthly x 12", format_money(data.gross_salary * 12))
        page.field("FTE adjustment", f"{data.fte_percentage - 100:+d} percentage points")

    # --- Footer (every report ends with the confidentiality note) ---
    page.ensure(1.2 * cm)
    c.setFillColor(_MUTED)
    c.setFont("Helvetica", 8)
    c.drawCentredString(
        page.width / 2, page.margin,
        f"Report ID: {data.report_id} | Generated: {data.generated_at.isoformat()}",
    )
    c.drawCentredString(
        page.width / 2, page.margin - 0.4 * cm,
        "This document may contain confidential salary information.",
    )

    c.showPage()
    c.save()
    return buf.getvalue()
