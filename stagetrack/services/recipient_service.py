"""Email recipient address book and project report sharing."""

from __future__ import annotations

import logging
from html import escape

from stagetrack.core.exceptions import ConflictError, ValidationError
from stagetrack.models import db
from stagetrack.models.auth import Account
from stagetrack.models.notification import EmailRecipient
from stagetrack.models.project import Project
from stagetrack.services.access import (
    CallerContext,
    fetch_for_write,
    require_manager,
    visible_owner_id,
)
from stagetrack.services.account_service import normalize_email
from stagetrack.services.email_service import Attachment, EmailService
from stagetrack.services.helpers.scoped_queries import get_scoped, get_visible
from stagetrack.services.report_service import build_project_report, render_project_pdf

logger = logging.getLogger(__name__)


def _check_unique(owner_id: int, email: str, exclude_id: int | None = None) -> None:
    query = EmailRecipient.query_for_owner(owner_id).filter(EmailRecipient.email == email)
    if exclude_id is not None:
        query = query.filter(EmailRecipient.id != exclude_id)
    if query.first():
        raise ConflictError("EmailRecipient", "email", email)


def list_recipients(caller: CallerContext) -> list[EmailRecipient]:
    owner_id = visible_owner_id(caller)
    if owner_id is None:
        return []
    return EmailRecipient.query_for_owner(owner_id).order_by(EmailRecipient.name).all()


def create_recipient(caller: CallerContext, data: dict) -> EmailRecipient:
    require_manager(caller, "add email recipients")
    name = str(data.get("name", "") or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    email = normalize_email(data.get("email"))
    _check_unique(caller.account_id, email)

    recipient = EmailRecipient(name=name, email=email, owner_id=caller.account_id)
    db.session.add(recipient)
    db.session.commit()
    return recipient


def update_recipient(caller: CallerContext, recipient_id: int, data: dict) -> EmailRecipient:
    require_manager(caller, "update email recipients")
    recipient = get_visible(EmailRecipient, recipient_id, caller, for_write=True)

    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        recipient.name = name
    if "email" in data:
        email = normalize_email(data.get("email"))
        _check_unique(caller.account_id, email, exclude_id=recipient.id)
        recipient.email = email

    db.session.commit()
    return recipient


def delete_recipient(caller: CallerContext, recipient_id: int) -> None:
    require_manager(caller, "delete email recipients")
    recipient = get_visible(EmailRecipient, recipient_id, caller, for_write=True)
    db.session.delete(recipient)
    db.session.commit()


def share_project(
    caller: CallerContext,
    project_id: int,
    recipient_ids: list,
    message: str | None = None,
) -> dict:
    """Email the project's PDF report to each selected recipient.

    The PDF is rendered once. Every recipient gets its own EmailLog row and
    a failed delivery does not stop the remaining ones.

    Returns:
        {"sent": [...emails], "failed": [{"email", "error"}], "logs": [...]}
    """
    project = fetch_for_write(Project, project_id, caller, "share projects")

    if not recipient_ids:
        raise ValidationError("recipient_ids is required", details={"recipient_ids": "required"})
    if not isinstance(recipient_ids, (list, tuple)):
        raise ValidationError("recipient_ids must be a list", details={"recipient_ids": "invalid"})
    if message is not None and not isinstance(message, str):
        raise ValidationError("message must be a string", details={"message": "invalid"})
    try:
        ids = [int(rid) for rid in recipient_ids if not isinstance(rid, bool)]
    except (TypeError, ValueError):
        ids = None
    if ids is None or len(ids) != len(recipient_ids):
        raise ValidationError("recipient_ids must be integers", details={"recipient_ids": "invalid"})

    recipients = [get_scoped(EmailRecipient, rid, owner_id=caller.account_id) for rid in ids]

    report = build_project_report(project)
    pdf = render_project_pdf(report)
    attachment = Attachment(filename=f"project-{project.id}-report.pdf", content=pdf)
    sender = db.session.get(Account, caller.account_id)

    sent, failed, logs = [], [], []
    for recipient in recipients:
        log = EmailService.send_from_template(
            to_email=recipient.email,
            to_name=recipient.name,
            template_name="project_report",
            context={
                "project_name": report["name"],
                "status": report["status"],
                "recipient_name": recipient.name,
                "sender_name": sender.name if sender else "Your manager",
                "stage_count": report["stage_count"],
                "completed_count": report["completed_count"],
                "message": f"<p>{escape(message)}</p>" if message else "",
            },
            attachments=[attachment],
            project_id=project.id,
        )
        logs.append(log)
        if log.status == "failed":
            failed.append({"email": recipient.email, "error": log.error_message})
        else:
            sent.append(recipient.email)

    db.session.commit()
    logger.info(
        "Project %s shared by manager %s: %d sent, %d failed",
        project.id, caller.account_id, len(sent), len(failed),
        extra={"project_id": project.id},
    )
    return {"sent": sent, "failed": failed, "logs": [log.to_dict() for log in logs]}
