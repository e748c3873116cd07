"""
Project report rendering: PDF (reportlab) and Excel (openpyxl).

build_project_report() flattens a fully populated project (instances, their
catalog stage, connections) into plain rows; the renderers only lay those
rows out. Stages are always listed in ascending order and a missing date is
rendered as "Not set".
"""

import io
import logging
from datetime import datetime, timezone
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from stagetrack.models.project import STAGE_STATUS_COMPLETED, Project
from stagetrack.utils.helpers import format_business_date

logger = logging.getLogger(__name__)

NOT_SET = "Not set"

STAGE_COLUMNS = ["#", "Stage", "Status", "Start date", "Completion date", "Leads to"]

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
STATUS_FILLS = {
    "Ongoing": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
    "Completed": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
}


def _display_date(value) -> str:
    return format_business_date(value) or NOT_SET


def build_project_report(project: Project) -> dict:
    """Flatten a project into report rows, stages in ascending order."""
    instances = sorted(project.stage_instances.all(), key=lambda ps: (ps.order, ps.id))
    names = {ps.id: (ps.stage.name if ps.stage else f"Stage {ps.stage_id}") for ps in instances}

    successors: dict[int, list[str]] = {ps.id: [] for ps in instances}
    connections = []
    for conn in project.connections.all():
        source = names.get(conn.from_stage_id, NOT_SET)
        target = names.get(conn.to_stage_id, NOT_SET)
        successors.setdefault(conn.from_stage_id, []).append(target)
        connections.append({"id": conn.id, "from": source, "to": target})

    stages = [
        {
            "order": ps.order,
            "name": names[ps.id],
            "status": ps.status,
            "start_date": _display_date(ps.start_date),
            "completion_date": _display_date(ps.completion_date),
            "leads_to": ", ".join(successors.get(ps.id, [])),
        }
        for ps in instances
    ]

    return {
        "id": project.id,
        "name": project.name,
        "description": project.description or "",
        "status": project.status,
        "created_at": _display_date(project.created_at),
        "owner": project.owner.name if project.owner else "",
        "stage_count": len(stages),
        "completed_count": sum(1 for s in stages if s["status"] == STAGE_STATUS_COMPLETED),
        "stages": stages,
        "connections": connections,
        "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
    }


def _stage_row(stage: dict) -> list:
    return [
        stage["order"],
        stage["name"],
        stage["status"],
        stage["start_date"],
        stage["completion_date"],
        stage["leads_to"],
    ]


# ═══════════════════════════════════════════════════════════════
# PDF
# ═══════════════════════════════════════════════════════════════
def render_project_pdf(report: dict) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=0.6 * inch, rightMargin=0.6 * inch,
        topMargin=0.6 * inch, bottomMargin=0.6 * inch,
        title=report["name"],
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=20,
        textColor=colors.HexColor("#1e293b"),
        spaceAfter=12,
    )
    meta_style = ParagraphStyle(
        "ReportMeta",
        parent=styles["BodyText"],
        fontSize=9,
        textColor=colors.HexColor("#64748b"),
    )
    cell_style = ParagraphStyle("ReportCell", parent=styles["BodyText"], fontSize=8, leading=10)

    story = [
        Paragraph(escape(report["name"]), title_style),
        Paragraph(
            f"Status: <b>{escape(report['status'])}</b> &nbsp; "
            f"Created: {escape(report['created_at'])} &nbsp; "
            f"Owner: {escape(report['owner'])}",
            styles["BodyText"],
        ),
        Paragraph(f"Generated {escape(report['generated_at'])}", meta_style),
        Spacer(1, 0.2 * inch),
    ]
    if report["description"]:
        story.append(Paragraph(escape(report["description"]), styles["BodyText"]))
        story.append(Spacer(1, 0.2 * inch))

    story.append(Paragraph(
        f"Stages ({report['completed_count']}/{report['stage_count']} completed)",
        styles["Heading2"],
    ))
    if report["stages"]:
        data = [STAGE_COLUMNS] + [
            [Paragraph(escape(str(v)), cell_style) for v in _stage_row(stage)]
            for stage in report["stages"]
        ]
        table = Table(
            data,
            colWidths=[0.35 * inch, 1.9 * inch, 0.9 * inch, 0.95 * inch, 1.1 * inch, 1.6 * inch],
            repeatRows=1,
        )
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#354A5F")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, 0), 9),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f5f9")]),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cbd5e0")),
        ]))
        story.append(table)
    else:
        story.append(Paragraph("No stages have been added yet.", styles["BodyText"]))

    doc.build(story)
    logger.info("Rendered PDF report for project %s", report["id"],
                extra={"project_id": report["id"]})
    return buffer.getvalue()


# ═══════════════════════════════════════════════════════════════
# Excel
# ═══════════════════════════════════════════════════════════════
def render_project_xlsx(report: dict) -> io.BytesIO:
    """
    Generate a styled Excel workbook from a project report.
    Returns a BytesIO buffer ready for a Flask Response.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Project"

    ws.merge_cells("A1:F1")
    ws["A1"] = report["name"]
    ws["A1"].font = Font(size=16, bold=True)
    ws["A2"] = f"Generated: {report['generated_at']}"
    ws["A2"].font = Font(size=10, italic=True, color="666666")

    summary = [
        ("Status", report["status"]),
        ("Created", report["created_at"]),
        ("Owner", report["owner"]),
        ("Stages", f"{report['completed_count']}/{report['stage_count']} completed"),
        ("Description", report["description"]),
    ]
    for offset, (label, value) in enumerate(summary):
        ws.cell(row=4 + offset, column=1, value=label).font = Font(bold=True)
        ws.cell(row=4 + offset, column=2, value=value)

    header_row = 4 + len(summary) + 1
    for col, header in enumerate(STAGE_COLUMNS, 1):
        cell = ws.cell(row=header_row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center")

    for i, stage in enumerate(report["stages"], 1):
        row = header_row + i
        for col, value in enumerate(_stage_row(stage), 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = THIN_BORDER
        status_cell = ws.cell(row=row, column=3)
        if stage["status"] in STATUS_FILLS:
            status_cell.fill = STATUS_FILLS[stage["status"]]
            status_cell.font = Font(color="FFFFFF", bold=True)

    for col, width in enumerate([6, 32, 14, 14, 16, 40], 1):
        ws.column_dimensions[get_column_letter(col)].width = width

    # ── Sheet 2: Connections ───────────────────────────────────────────
    ws2 = wb.create_sheet("Connections")
    for col, header in enumerate(["From", "To"], 1):
        cell = ws2.cell(row=1, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
    for i, conn in enumerate(report["connections"], 2):
        ws2.cell(row=i, column=1, value=conn["from"]).border = THIN_BORDER
        ws2.cell(row=i, column=2, value=conn["to"]).border = THIN_BORDER
    ws2.column_dimensions["A"].width = 32
    ws2.column_dimensions["B"].width = 32

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output
