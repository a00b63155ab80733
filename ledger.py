"""Interaction ledger: who did which engagement on which post.

The unique constraint on (user_id, post_id, action_type) is what serializes
concurrent duplicates; has_recorded() is only a read helper and is never used
as the guard.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from actions import parse_kind
from errors import DuplicateInteraction
from extensions import db
from models_points import UserInteraction

logger = logging.getLogger(__name__)


def has_recorded(user_id: str, post_id: str, kind) -> bool:
    kind = parse_kind(kind)
    row = db.session.execute(
        select(UserInteraction.id)
        .where(UserInteraction.user_id == user_id)
        .where(UserInteraction.post_id == post_id)
        .where(UserInteraction.action_type == kind.value)
        .limit(1)
    ).first()
    return row is not None


def record(user_id: str, post_id: str, kind) -> UserInteraction:
    """Insert the ledger row inside the caller's transaction.

    Runs in a SAVEPOINT so a duplicate leaves the outer transaction usable.
    Raises DuplicateInteraction if the row already exists (or a concurrent
    transaction committed it first).
    """
    kind = parse_kind(kind)
    row = UserInteraction(user_id=user_id, post_id=post_id, action_type=kind.value)
    try:
        with db.session.begin_nested():
            db.session.add(row)
            db.session.flush()
    except IntegrityError:
        if has_recorded(user_id, post_id, kind):
            logger.debug("Duplicate %s by %s on post %s", kind.value, user_id, post_id)
            raise DuplicateInteraction(user_id, post_id, kind.value) from None
        raise
    return row


def count_for_user(user_id: str) -> int:
    return db.session.query(UserInteraction).filter(UserInteraction.user_id == user_id).count()
