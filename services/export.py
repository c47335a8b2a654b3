"""
Export engine: read-only projections of registrations into csv, json, pdf
and xlsx documents.
"""
import enum
import io
import json
from datetime import datetime
from typing import Iterable, List, Sequence
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from models.registration import Registration, RegistrationStatus
from schemas.registration import RegistrationResponse

BASE_COLUMNS = [
    "ID", "Name", "Email", "Phone", "Organization", "Group Size", "Scans Used",
    "Max Scans", "Has QR", "Status", "Created At", "Team Members",
]


class ExportFormat(str, enum.Enum):
    CSV = "csv"
    JSON = "json"
    PDF = "pdf"
    XLSX = "xlsx"


class ExportFilter(str, enum.Enum):
    ALL = "all"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    PENDING = "pending"
    TODAY = "today"


CONTENT_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
    ExportFormat.PDF: "application/pdf",
    ExportFormat.XLSX: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def filter_registrations(registrations: Iterable[Registration], selection: ExportFilter) -> List[Registration]:
    registrations = list(registrations)
    if selection is ExportFilter.ACTIVE:
        wanted = {RegistrationStatus.ACTIVE, RegistrationStatus.CHECKED_IN}
        return [r for r in registrations if r.status in wanted]
    if selection is ExportFilter.EXHAUSTED:
        return [r for r in registrations if r.status == RegistrationStatus.EXHAUSTED]
    if selection is ExportFilter.PENDING:
        return [r for r in registrations if r.status == RegistrationStatus.PENDING]
    if selection is ExportFilter.TODAY:
        today = datetime.utcnow().date()
        return [r for r in registrations if r.created_at and r.created_at.date() == today]
    return registrations


def format_team_members(members: Sequence[dict]) -> str:
    parts = []
    for member in members or []:
        text = member.get("name") or ""
        if member.get("email"):
            text += f" ({member['email']})"
        if member.get("phone"):
            text += f" - {member['phone']}"
        parts.append(text)
    return "; ".join(parts)


def custom_field_keys(registrations: Sequence[Registration]) -> List[str]:
    keys: List[str] = []
    for registration in registrations:
        for key in (registration.custom_field_data or {}):
            if key not in keys:
                keys.append(key)
    return keys


def to_dataframe(registrations: Sequence[Registration]) -> pd.DataFrame:
    extra = custom_field_keys(registrations)
    rows = []
    for r in registrations:
        row = {
            "ID": r.id,
            "Name": r.name or "",
            "Email": r.email or "",
            "Phone": r.phone or "",
            "Organization": r.organization or "",
            "Group Size": r.group_size,
            "Scans Used": r.scans,
            "Max Scans": r.max_scans,
            "Has QR": "Yes" if r.has_qr else "No",
            "Status": RegistrationStatus(r.status).value,
            "Created At": r.created_at.isoformat() if r.created_at else "",
            "Team Members": format_team_members(r.team_members),
        }
        data = r.custom_field_data or {}
        for key in extra:
            row[key] = data.get(key, "")
        rows.append(row)
    return pd.DataFrame(rows, columns=BASE_COLUMNS + extra)


def _to_pdf(registrations: Sequence[Registration]) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.75 * inch, bottomMargin=0.75 * inch)
    styles = getSampleStyleSheet()

    content = [
        Paragraph("Event Registration Report", styles["Title"]),
        Paragraph(f"Generated: {datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')}", styles["Normal"]),
        Spacer(1, 12),
        Paragraph("Summary", styles["Heading2"]),
        Paragraph(f"Total Registrations: {len(registrations)}", styles["Normal"]),
        Paragraph(f"QR Codes Generated: {sum(1 for r in registrations if r.has_qr)}", styles["Normal"]),
        Paragraph(f"Total Entries: {sum(r.scans for r in registrations)}", styles["Normal"]),
        Spacer(1, 12),
        Paragraph("Registrations", styles["Heading2"]),
    ]

    for index, r in enumerate(registrations, start=1):
        lines = [
            f"<b>{index}. {escape(r.name or '-')} ({escape(r.id)})</b>",
            f"Email: {escape(r.email or '-')} | Phone: {escape(r.phone or '-')}",
            f"Organization: {escape(r.organization or '-')}",
            f"Group Size: {r.group_size} | Scans: {r.scans}/{r.max_scans} | "
            f"Status: {RegistrationStatus(r.status).value}",
        ]
        if r.team_members:
            lines.append(f"Team Members: {escape(format_team_members(r.team_members))}")
        for key, value in (r.custom_field_data or {}).items():
            lines.append(f"{escape(str(key))}: {escape(str(value))}")
        content.append(Paragraph("<br/>".join(lines), styles["Normal"]))
        content.append(Spacer(1, 8))

    doc.build(content)
    return buffer.getvalue()


def export_registrations(registrations: Sequence[Registration], fmt: ExportFormat) -> bytes:
    """Render registrations in the requested format"""
    fmt = ExportFormat(fmt)
    registrations = list(registrations)

    if fmt is ExportFormat.JSON:
        payload = [
            RegistrationResponse.model_validate(r).model_dump(mode="json", by_alias=True)
            for r in registrations
        ]
        return json.dumps(payload, indent=2).encode("utf-8")

    if fmt is ExportFormat.PDF:
        return _to_pdf(registrations)

    frame = to_dataframe(registrations)
    if fmt is ExportFormat.CSV:
        return frame.to_csv(index=False).encode("utf-8")

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name="Registrations")
    return buffer.getvalue()
