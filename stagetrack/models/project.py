"""
Stage Tracker
Project domain models.

Models:
    - Project: manager-owned container with an aggregate status
    - ProjectStage: a catalog stage bound into one project's ordered list
    - StageConnection: directed edge between two ProjectStage rows of one project
"""

from datetime import datetime, timezone

from sqlalchemy import or_

from stagetrack.models import db
from stagetrack.models.base import OwnedModel
from stagetrack.utils.helpers import format_business_date

PROJECT_STATUS_PENDING = "Pending"
PROJECT_STATUS_ONGOING = "Ongoing"
PROJECT_STATUS_COMPLETED = "Completed"
PROJECT_STATUS_ARCHIVED = "Archived"
PROJECT_STATUSES = (
    PROJECT_STATUS_PENDING,
    PROJECT_STATUS_ONGOING,
    PROJECT_STATUS_COMPLETED,
    PROJECT_STATUS_ARCHIVED,
)

STAGE_STATUS_ONGOING = "Ongoing"
STAGE_STATUS_COMPLETED = "Completed"
STAGE_STATUSES = (STAGE_STATUS_ONGOING, STAGE_STATUS_COMPLETED)


# ── Project ──────────────────────────────────────────────────────────────────


class Project(OwnedModel):
    """Named container of ordered stage instances."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    status = db.Column(
        db.String(20),
        nullable=False,
        default=PROJECT_STATUS_PENDING,
        comment="Pending | Ongoing | Completed | Archived",
    )
    # Business date chosen by the manager, not an audit timestamp.
    created_at = db.Column(db.Date, nullable=False, index=True)

    inserted_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ────────────────────────────────────────────────────
    owner = db.relationship("Account", foreign_keys="Project.owner_id")
    stage_instances = db.relationship(
        "ProjectStage", backref="project", lazy="dynamic",
        order_by="ProjectStage.order", passive_deletes=True,
    )
    connections = db.relationship(
        "StageConnection", backref="project", lazy="dynamic",
        order_by="StageConnection.id", passive_deletes=True,
    )

    @property
    def stage_ids(self) -> list[int]:
        """Ids of the project's stage instances, earliest order first."""
        return [ps.id for ps in self.stage_instances]

    def to_dict(self, include_stages=False):
        """Serialize project to dictionary."""
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "created_at": format_business_date(self.created_at),
            "owner": {
                "id": self.owner.id,
                "name": self.owner.name,
                "email": self.owner.email,
            } if self.owner else None,
            "stages": self.stage_ids,
        }
        if include_stages:
            result["stages"] = [ps.to_dict() for ps in self.stage_instances]
        return result

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


# ── ProjectStage ─────────────────────────────────────────────────────────────


class ProjectStage(db.Model):
    """
    Binding of a catalog Stage into a project.

    `order` is the insertion sequence inside the project (1, 2, 3, ...). It is
    assigned once at creation and never rewritten, so it stays independent of
    the chronological start_date.
    """

    __tablename__ = "project_stages"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    stage_id = db.Column(
        db.Integer, db.ForeignKey("stages.id"), nullable=False, index=True,
    )
    status = db.Column(
        db.String(20),
        nullable=False,
        default=STAGE_STATUS_ONGOING,
        comment="Ongoing | Completed",
    )
    start_date = db.Column(db.Date, nullable=True)
    completion_date = db.Column(db.Date, nullable=True)
    order = db.Column(db.Integer, nullable=False, default=1, comment="Sort order within project")

    inserted_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_project_stages_project_order", "project_id", "order"),
    )

    stage = db.relationship("Stage")

    @property
    def connection_ids(self) -> list[int]:
        """Edges touching this instance on either side, rebuilt from the connection table."""
        rows = (
            db.session.query(StageConnection.id)
            .filter(
                StageConnection.project_id == self.project_id,
                or_(
                    StageConnection.from_stage_id == self.id,
                    StageConnection.to_stage_id == self.id,
                ),
            )
            .order_by(StageConnection.id)
            .all()
        )
        return [r[0] for r in rows]

    def to_dict(self, include_stage=True):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "stage_id": self.stage_id,
            "status": self.status,
            "start_date": format_business_date(self.start_date),
            "completion_date": format_business_date(self.completion_date),
            "order": self.order,
            "connections": self.connection_ids,
        }
        if include_stage:
            result["stage"] = self.stage.to_dict() if self.stage else None
        return result

    def __repr__(self):
        return f"<ProjectStage {self.id}: project={self.project_id} order={self.order}>"


# ── StageConnection ──────────────────────────────────────────────────────────


class StageConnection(db.Model):
    """Directed edge between two stage instances of the same project."""

    __tablename__ = "stage_connections"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer, db.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    from_stage_id = db.Column(
        db.Integer, db.ForeignKey("project_stages.id", ondelete="CASCADE"), nullable=False,
    )
    to_stage_id = db.Column(
        db.Integer, db.ForeignKey("project_stages.id", ondelete="CASCADE"), nullable=False,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "project_id", "from_stage_id", "to_stage_id",
            name="uq_stage_connections_edge",
        ),
    )

    from_stage = db.relationship("ProjectStage", foreign_keys=[from_stage_id])
    to_stage = db.relationship("ProjectStage", foreign_keys=[to_stage_id])

    def to_dict(self, include_endpoints=False):
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "from_stage": self.from_stage_id,
            "to_stage": self.to_stage_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_endpoints:
            result["from_stage"] = self.from_stage.to_dict() if self.from_stage else None
            result["to_stage"] = self.to_stage.to_dict() if self.to_stage else None
        return result

    def __repr__(self):
        return f"<StageConnection {self.id}: {self.from_stage_id}->{self.to_stage_id}>"
