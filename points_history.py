"""Append-only points history.

No dedup happens here; callers guarantee each grant is appended once.
"""

import json
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from actions import parse_kind
from extensions import db
from models_points import PointsHistory


def append(
    user_id: str,
    delta: int,
    kind,
    description: str,
    related_post_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    created_at: Optional[datetime] = None,
) -> int:
    """Add one history row in the caller's transaction and return its id."""
    kind = parse_kind(kind)
    md_json = None
    if metadata is not None:
        md_json = json.dumps(metadata, separators=(",", ":"), ensure_ascii=False)
    entry = PointsHistory(
        user_id=user_id,
        points=int(delta),
        action_type=kind.value,
        description=description,
        related_post_id=related_post_id,
        metadata_json=md_json,
        created_at=created_at or datetime.utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry.id


def recent_for_user(user_id: str, limit: int = 50) -> list[PointsHistory]:
    return (
        PointsHistory.query.filter(PointsHistory.user_id == user_id)
        .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
        .limit(limit)
        .all()
    )


def exists_since(user_id: str, kind, since: datetime) -> bool:
    kind = parse_kind(kind)
    row = db.session.execute(
        select(PointsHistory.id)
        .where(PointsHistory.user_id == user_id)
        .where(PointsHistory.action_type == kind.value)
        .where(PointsHistory.created_at >= since)
        .limit(1)
    ).first()
    return row is not None


def sum_for_user(user_id: str) -> int:
    total = db.session.execute(
        select(func.coalesce(func.sum(PointsHistory.points), 0)).where(PointsHistory.user_id == user_id)
    ).scalar()
    return int(total or 0)
