"""
Project report download.

    GET /api/v1/projects/<project_id>/export
        format: pdf | excel (default: pdf)

Readable by the owning manager and its referred users. Content is rendered
in memory; no temp files.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, request

from stagetrack.auth import current_caller
from stagetrack.services import project_service
from stagetrack.services.report_service import (
    build_project_report,
    render_project_pdf,
    render_project_xlsx,
)
from stagetrack.utils.errors import E, api_error

logger = logging.getLogger(__name__)

export_bp = Blueprint("export", __name__, url_prefix="/api/v1")

_FORMATS = {
    "pdf": ("application/pdf", "pdf"),
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
}


@export_bp.route("/projects/<int:project_id>/export", methods=["GET"])
def export_project(project_id: int):
    fmt = request.args.get("format", "pdf").lower()
    if fmt not in _FORMATS:
        return api_error(E.VALIDATION_INVALID, "Unsupported format. Supported values: pdf, excel.")

    project = project_service.get_project(current_caller(), project_id)
    report = build_project_report(project)

    if fmt == "pdf":
        content = render_project_pdf(report)
    else:
        content = render_project_xlsx(report).getvalue()

    mimetype, ext = _FORMATS[fmt]
    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    filename = f"project_{project_id}_report_{date_str}.{ext}"

    logger.info("Project %s exported as %s", project_id, fmt, extra={"project_id": project_id})
    return Response(
        content,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
