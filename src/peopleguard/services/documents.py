"""
peopleguard.services.documents

Document rendering helpers (no DB access).

Responsibilities:
- Render the formal warning-letter PDF (reportlab platypus).
- Render/sanitize HTML letters issued from the case workspace.
- Render QR code PNGs for complaint intake tokens.
"""

from __future__ import annotations

import html
import io
import re
from dataclasses import dataclass
from datetime import datetime

import qrcode
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from peopleguard.db.models import CaseOutcome

OUTCOME_HEADLINES = {
    CaseOutcome.no_action: "No Action Required",
    CaseOutcome.verbal_warning: "VERBAL WARNING",
    CaseOutcome.written_warning: "WRITTEN WARNING",
}

_SCRIPT_BLOCK = re.compile(r"<script[^>]*?>.*?</script>", re.IGNORECASE | re.DOTALL)
_EVENT_ATTR_DQ = re.compile(r"on\w+\s*=\s*\".*?\"", re.IGNORECASE)
_EVENT_ATTR_SQ = re.compile(r"on\w+\s*=\s*'.*?'", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class LetterSubject:
    employee_name: str
    employee_code: str
    department: str
    factory: str


def render_warning_pdf(
    *,
    system_name: str,
    subject: LetterSubject,
    outcome: CaseOutcome,
    reason: str,
    issued_at: datetime,
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=50,
        bottomMargin=40,
        title="Employee Warning Letter",
    )

    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="LetterTitle", fontSize=18, leading=22, alignment=TA_CENTER, spaceAfter=20
        )
    )
    styles.add(ParagraphStyle(name="Centered", fontSize=11, alignment=TA_CENTER, spaceAfter=30))
    styles.add(ParagraphStyle(name="Section", fontSize=12, leading=16, spaceAfter=10))
    styles.add(ParagraphStyle(name="Body", fontSize=11, leading=15, alignment=TA_JUSTIFY))
    styles.add(
        ParagraphStyle(
            name="Footer", fontSize=10, alignment=TA_CENTER, fontName="Helvetica-Oblique"
        )
    )

    grid = TableStyle(
        [
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
    )

    elements = [
        Paragraph("<b>EMPLOYEE WARNING LETTER</b>", styles["LetterTitle"]),
        Paragraph(html.escape(system_name), styles["Centered"]),
        Paragraph(f"Date of Issue: {issued_at:%d %B %Y}", styles["Normal"]),
        Spacer(1, 20),
        Paragraph("<b>EMPLOYEE DETAILS</b>", styles["Section"]),
        Table(
            [
                ["Employee Name:", subject.employee_name],
                ["Employee ID:", subject.employee_code],
                ["Department:", subject.department],
                ["Factory:", subject.factory],
            ],
            colWidths=[140, 375],
            style=TableStyle(
                [*grid.getCommands(), ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold")]
            ),
        ),
        Spacer(1, 15),
        Paragraph("<b>WARNING OUTCOME</b>", styles["Section"]),
        Table(
            [[OUTCOME_HEADLINES[outcome]]],
            colWidths=[515],
            style=TableStyle(
                [
                    *grid.getCommands(),
                    ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 14),
                ]
            ),
        ),
        Spacer(1, 15),
        Paragraph("<b>VIOLATION DETAILS</b>", styles["Section"]),
        Paragraph(html.escape(reason).replace("\n", "<br/>"), styles["Body"]),
        Spacer(1, 40),
        Paragraph(
            "This is an official warning. Further violations may result in disciplinary action.",
            styles["Footer"],
        ),
    ]

    doc.build(elements)
    return buffer.getvalue()


def render_standard_letter_html(
    *,
    case_ref: str,
    subject: LetterSubject,
    case_type_label: str,
    description: str,
    issued_at: datetime,
) -> str:
    e = html.escape
    return (
        "<html><head><style>body{font-family:Arial,sans-serif;line-height:1.6;padding:24px;}"
        "h1{margin-bottom:12px;} .meta{color:#4b5563;font-size:13px;} .section{margin-top:16px;}"
        "</style></head><body>"
        "<h1>Warning Letter</h1>"
        f"<div class='meta'>Date: {issued_at:%Y-%m-%d}</div>"
        f"<div class='meta'>Case: {e(case_ref)}</div>"
        f"<div class='meta'>Employee: {e(subject.employee_name)} ({e(subject.employee_code)})</div>"
        f"<div class='meta'>Factory: {e(subject.factory)}</div>"
        f"<div class='meta'>Case Type: {e(case_type_label)}</div>"
        f"<div class='section'><strong>Summary</strong><br/>{e(description)}</div>"
        "<div class='section'>Please acknowledge receipt of this letter.</div>"
        "</body></html>"
    )


def sanitize_html(raw: str) -> str:
    # Strips script blocks and inline event handlers; not a general-purpose sanitizer.
    cleaned = _SCRIPT_BLOCK.sub("", raw)
    cleaned = _EVENT_ATTR_DQ.sub("", cleaned)
    return _EVENT_ATTR_SQ.sub("", cleaned)


def render_qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_Q,
        box_size=20,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# --- Module Notes -----------------------------------------------------------
# Callers persist the returned bytes through `services.storage.FileStorage`; nothing
# here touches the filesystem.
