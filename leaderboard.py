"""Leaderboard and rank projection over users.points.

Rank is `1 + number of users with strictly more points`, so tied users share
a rank and the next distinct score skips ahead (50, 30, 30, 10 -> 1, 2, 2, 4).
Ties are listed by join date, then by id.
"""

from sqlalchemy import func, select

from errors import UserNotFound
from extensions import db
from models_users import User


def top_n(n: int) -> list[tuple[User, int]]:
    users = (
        User.query.order_by(User.points.desc(), User.created_at.asc(), User.id.asc())
        .limit(max(0, int(n)))
        .all()
    )
    ranked = []
    rank = 0
    prev_points = None
    for i, user in enumerate(users):
        points = int(user.points or 0)
        # The list is the global top, so the first index of a score is the
        # number of users strictly above it.
        if points != prev_points:
            rank = i + 1
            prev_points = points
        ranked.append((user, rank))
    return ranked


def rank_of(user_id: str) -> int:
    row = db.session.execute(select(User.points).where(User.id == user_id)).first()
    if row is None:
        raise UserNotFound(user_id)
    above = db.session.execute(
        select(func.count()).select_from(User).where(User.points > int(row[0] or 0))
    ).scalar()
    return int(above or 0) + 1


def leaderboard(limit: int) -> list[dict]:
    return [{**user.to_summary(), "rank": rank} for user, rank in top_n(limit)]
