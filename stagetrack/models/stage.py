"""Stage catalog model: reusable named phases owned by a manager."""

from datetime import datetime, timezone

from stagetrack.models import db
from stagetrack.models.base import OwnedModel


class Stage(OwnedModel):
    """
    Catalog entry that projects bind into their ordered stage list.

    A global stage (is_custom=False) is reusable across every project of its
    owner. A custom stage carries project_id and is offered only for that
    project; it is deleted together with the project.
    """

    __tablename__ = "stages"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    is_custom = db.Column(db.Boolean, nullable=False, default=False)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Set only for custom stages",
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "is_custom": self.is_custom,
            "project_id": self.project_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Stage {self.id}: {self.name}>"
