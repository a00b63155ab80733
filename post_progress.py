"""Post progress and approval state machine.

    pending --engagement reaches likes_needed--> approved
    pending --moderator approve----------------> approved
    pending --moderator reject-----------------> rejected
    (premium owner) created directly as approved, auto_approved=True

approved and rejected are terminal. Every transition is a conditional UPDATE
guarded by `status = 'pending'`, so the database decides which transaction
wins when several race on the same post.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update

import config
from actions import ActionKind, parse_kind
from errors import InvalidThreshold, PostNotAcceptingEngagement, PostNotFound, UserNotFound
from extensions import db
from models_posts import (
    POST_STATUS_APPROVED,
    POST_STATUS_PENDING,
    POST_STATUS_REJECTED,
    Post,
)
from models_users import User

logger = logging.getLogger(__name__)


_KIND_COUNTER = {
    ActionKind.LIKE: Post.likes,
    ActionKind.COMMENT: Post.comments,
    ActionKind.SHARE: Post.shares,
}


def _validate_threshold(likes_needed) -> int:
    if isinstance(likes_needed, bool) or not isinstance(likes_needed, (int, str)):
        raise InvalidThreshold(likes_needed)
    try:
        value = int(likes_needed)
    except ValueError:
        raise InvalidThreshold(likes_needed) from None
    if value < 1:
        raise InvalidThreshold(likes_needed)
    return value


def create_post(
    user_id: str,
    platform: str,
    url: str,
    title: str,
    description: Optional[str] = None,
    likes_needed=None,
) -> Post:
    """Create a post for `user_id` and commit.

    Premium owners are approved immediately and earn no points for it.
    """
    owner = db.session.get(User, user_id)
    if owner is None:
        raise UserNotFound(user_id)
    threshold = _validate_threshold(config.DEFAULT_LIKES_NEEDED if likes_needed is None else likes_needed)

    post = Post(
        user_id=user_id,
        platform=(platform or "").strip().lower(),
        url=url,
        title=title,
        description=description,
        status=POST_STATUS_PENDING,
        likes_received=0,
        likes_needed=threshold,
        points_earned=0,
    )
    if owner.is_premium:
        post.status = POST_STATUS_APPROVED
        post.auto_approved = True
        post.approved_at = datetime.utcnow()

    db.session.add(post)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Post %s created by %s (status=%s, likes_needed=%s)", post.id, user_id, post.status, threshold)
    return post


def get_post(post_id: str) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise PostNotFound(post_id)
    return post


def get_pending_posts(limit: int = 500) -> list[Post]:
    return (
        Post.query.filter(Post.status == POST_STATUS_PENDING)
        .order_by(Post.created_at.asc())
        .limit(limit)
        .all()
    )


def list_posts(limit: int = 50) -> list[Post]:
    """All posts, newest first."""
    return Post.query.order_by(Post.created_at.desc()).limit(limit).all()


def list_user_posts(user_id: str, limit: int = 50) -> list[Post]:
    if db.session.get(User, user_id) is None:
        raise UserNotFound(user_id)
    return (
        Post.query.filter(Post.user_id == user_id)
        .order_by(Post.created_at.desc())
        .limit(limit)
        .all()
    )



def _current_status(post_id: str) -> Optional[str]:
    row = db.session.execute(select(Post.status).where(Post.id == post_id)).first()
    return row[0] if row else None


def register_engagement(post_id: str, kind, approval_points: int) -> tuple[int, bool]:
    """Count one qualifying engagement on a pending post.

    Runs inside the caller's transaction. Returns (likes_received, approved)
    where `approved` is True only for the transaction that moved the post to
    approved. Raises PostNotAcceptingEngagement if the post is terminal.
    """
    kind = parse_kind(kind)
    counter = _KIND_COUNTER[kind]
    res = db.session.execute(
        update(Post)
        .where(Post.id == post_id)
        .where(Post.status == POST_STATUS_PENDING)
        .values(
            {
                Post.likes_received: Post.likes_received + 1,
                counter: counter + 1,
                Post.updated_at: datetime.utcnow(),
            }
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        status = _current_status(post_id)
        if status is None:
            raise PostNotFound(post_id)
        raise PostNotAcceptingEngagement(post_id, status)

    likes_received, likes_needed = db.session.execute(
        select(Post.likes_received, Post.likes_needed).where(Post.id == post_id)
    ).one()

    approved = False
    if likes_received >= likes_needed:
        approved = _transition(
            post_id,
            POST_STATUS_APPROVED,
            extra_where=Post.likes_received >= Post.likes_needed,
            approved_at=datetime.utcnow(),
            points_earned=int(approval_points),
        )
    return int(likes_received), approved


def approve(post_id: str, moderator_id: Optional[str], approval_points: int) -> None:
    """Moderator approval. Runs inside the caller's transaction."""
    if not _transition(
        post_id,
        POST_STATUS_APPROVED,
        approved_by=moderator_id,
        approved_at=datetime.utcnow(),
        points_earned=int(approval_points),
    ):
        _raise_not_pending(post_id)


def reject(post_id: str, moderator_id: Optional[str], reason: Optional[str]) -> None:
    """Moderator rejection. Runs inside the caller's transaction."""
    if not _transition(
        post_id,
        POST_STATUS_REJECTED,
        rejected_by=moderator_id,
        rejected_reason=reason,
    ):
        _raise_not_pending(post_id)


def _raise_not_pending(post_id: str):
    status = _current_status(post_id)
    if status is None:
        raise PostNotFound(post_id)
    raise PostNotAcceptingEngagement(post_id, status)


def _transition(post_id: str, new_status: str, extra_where=None, **values) -> bool:
    stmt = update(Post).where(Post.id == post_id).where(Post.status == POST_STATUS_PENDING)
    if extra_where is not None:
        stmt = stmt.where(extra_where)
    res = db.session.execute(
        stmt.values(status=new_status, updated_at=datetime.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1
