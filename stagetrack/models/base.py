"""
OwnedModel: Abstract base class for manager-owned models.

Projects, catalog stages and email recipients all belong to exactly one
manager account. Inheriting from OwnedModel adds:
  - owner_id FK column with index
  - query_for_owner(owner_id) classmethod
"""

from stagetrack.models import db


class OwnedModel(db.Model):
    """Abstract base for owner-scoped tables."""
    __abstract__ = True

    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_owner(cls, owner_id):
        """Return a query filtered by owner_id."""
        return cls.query.filter_by(owner_id=owner_id)
