"""Post model and approval states.

Status moves pending -> approved or pending -> rejected and never back.
`likes_received` is the generic qualifying-engagement count (likes, comments
and shares all count); the per-kind columns are informational.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from extensions import db


POST_STATUS_PENDING = "pending"
POST_STATUS_APPROVED = "approved"
POST_STATUS_REJECTED = "rejected"

POST_TERMINAL_STATUSES = frozenset({POST_STATUS_APPROVED, POST_STATUS_REJECTED})


class Post(db.Model):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    platform = Column(String(40), nullable=False)  # twitter, facebook, youtube, tiktok ...
    url = Column(Text, nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=POST_STATUS_PENDING)
    likes_received = Column(Integer, nullable=False, default=0)
    likes_needed = Column(Integer, nullable=False, default=10)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    points_earned = Column(Integer, nullable=False, default=0)

    auto_approved = Column(Boolean, nullable=False, default=False)
    approved_by = Column(String(64), nullable=True)  # moderator id from the admin layer
    approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(String(64), nullable=True)
    rejected_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("likes_needed >= 1", name="ck_posts_likes_needed_positive"),
        CheckConstraint("likes_received >= 0", name="ck_posts_likes_received_non_negative"),
        Index("idx_posts_status_created", "status", "created_at"),
        Index("idx_posts_user_created", "user_id", "created_at"),
    )

    @property
    def accepts_engagement(self) -> bool:
        return self.status == POST_STATUS_PENDING

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "platform": self.platform,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "likesReceived": int(self.likes_received or 0),
            "likesNeeded": int(self.likes_needed or 0),
            "likes": int(self.likes or 0),
            "comments": int(self.comments or 0),
            "shares": int(self.shares or 0),
            "pointsEarned": int(self.points_earned or 0),
            "autoApproved": bool(self.auto_approved),
            "approvedBy": self.approved_by,
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "rejectedBy": self.rejected_by,
            "rejectedReason": self.rejected_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
