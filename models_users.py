"""User model.

`points` is the denormalized balance. It must always equal the sum of the
user's points_history rows and is only written through balances.credit().
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String

from extensions import db


USER_ROLE_USER = "user"
USER_ROLE_MODERATOR = "moderator"


def _new_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    points = Column(Integer, nullable=False, default=0)
    is_premium = Column(Boolean, nullable=False, default=False)
    # Explicit role attribute instead of matching a hard-coded admin email.
    role = Column(String(20), nullable=False, default=USER_ROLE_USER)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        Index("idx_users_points", "points"),
        Index("idx_users_created_at", "created_at"),
    )

    def to_summary(self):
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "points": int(self.points or 0),
            "isPremium": bool(self.is_premium),
        }

    def to_dict(self):
        return {
            **self.to_summary(),
            "role": self.role,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
