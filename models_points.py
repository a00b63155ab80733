"""Interaction ledger and points history models.

- user_interactions: one row per (user, post, action_type), enforced by a
  unique constraint. This is the only de-duplication mechanism.
- points_history: append-only log of every points grant. The sum of a user's
  rows equals users.points.
"""

import json
from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from extensions import db


class UserInteraction(db.Model):
    __tablename__ = "user_interactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    post_id = Column(String(36), ForeignKey("posts.id"), nullable=False, index=True)
    action_type = Column(String(20), nullable=False)  # like / comment / share
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", "action_type", name="uq_user_interaction_user_post_action"),
        Index("idx_user_interactions_created", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "postId": self.post_id,
            "type": self.action_type,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class PointsHistory(db.Model):
    __tablename__ = "points_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    # Signed delta. Grants are positive today; nothing here assumes it.
    points = Column(Integer, nullable=False)
    action_type = Column(String(20), nullable=False)
    description = Column(Text, nullable=False)
    related_post_id = Column(String(36), ForeignKey("posts.id"), nullable=True)
    metadata_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_points_history_user_created", "user_id", "created_at"),
        Index("idx_points_history_user_action_created", "user_id", "action_type", "created_at"),
    )

    def to_dict(self):
        md = None
        if self.metadata_json:
            try:
                md = json.loads(self.metadata_json)
            except ValueError:
                md = None
        return {
            "id": self.id,
            "userId": self.user_id,
            "points": int(self.points),
            "actionType": self.action_type,
            "description": self.description,
            "relatedPostId": self.related_post_id,
            "metadata": md,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
