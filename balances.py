"""User balance: the denormalized running total in users.points.

credit() must only be called from points_system, in the same transaction as
the matching points_history.append().
"""

from datetime import datetime

from sqlalchemy import select, update

from errors import UserNotFound
from extensions import db
from models_users import User
import points_history


def credit(user_id: str, delta: int) -> int:
    """Atomically add `delta` to the user's balance and return the new balance."""
    res = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(points=User.points + int(delta), updated_at=datetime.utcnow())
        .execution_options(synchronize_session="fetch")
    )
    if res.rowcount == 0:
        raise UserNotFound(user_id)
    return get_balance(user_id)


def get_balance(user_id: str) -> int:
    row = db.session.execute(select(User.points).where(User.id == user_id)).first()
    if row is None:
        raise UserNotFound(user_id)
    return int(row[0] or 0)


def audit_balance(user_id: str) -> tuple[int, int]:
    """Return (balance, sum of history) for the user, read in one transaction."""
    return get_balance(user_id), points_history.sum_for_user(user_id)
