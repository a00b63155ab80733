"""Points / engagement service.

This is the only module that writes the interaction ledger, points history,
user balances and post progress together. Each public operation is one
database transaction: it either commits every row it touched or none.

Engagement flow (process_engagement):
1. like/comment/share only.
2. post must exist, must not belong to the engager, must be pending.
3. ledger row first; a duplicate makes the whole call a no-op.
4. history + balance credit for the engager, one count on the post.
5. if that count reaches likes_needed the post is approved and the owner
   gets the post_approved reward (history + balance).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

import balances
import config
import ledger
import leaderboard
import points_history
import post_progress
from actions import ENGAGEMENT_KINDS, ActionKind, lookup, parse_kind
from errors import (
    DuplicateInteraction,
    PostNotAcceptingEngagement,
    PostNotFound,
    SelfEngagementForbidden,
    UnknownActionKind,
    UnsupportedActionKind,
    UserNotFound,
)
from extensions import db
from models_posts import POST_STATUS_APPROVED, POST_STATUS_PENDING, Post
from models_users import USER_ROLE_USER, User

logger = logging.getLogger(__name__)


@dataclass
class EngagementResult:
    success: bool
    points_awarded: int
    message: str
    post_status: Optional[str] = None
    post_approved: bool = False

    def to_dict(self):
        return {
            "success": self.success,
            "pointsAwarded": self.points_awarded,
            "message": self.message,
            "postStatus": self.post_status,
            "postApproved": self.post_approved,
        }


# ---- transaction helpers ----

def run_with_retry(fn, *args, max_retries: Optional[int] = None, backoff_ms: Optional[int] = None, **kwargs):
    """Call `fn`, retrying transient storage errors with exponential backoff.

    Only OperationalError (lost connection, deadlock, lock timeout) is retried.
    Every operation here is atomic, so a failed attempt left nothing behind.
    """
    retries = config.ENGAGEMENT_MAX_RETRIES if max_retries is None else max_retries
    backoff = config.ENGAGEMENT_RETRY_BACKOFF_MS if backoff_ms is None else backoff_ms
    attempt = 0
    while True:
        try:
            return fn(*args, **kwargs)
        except OperationalError:
            db.session.rollback()
            if attempt >= retries:
                raise
            delay = (backoff * (2 ** attempt)) / 1000.0
            logger.warning("Transient storage error in %s, retry %s/%s in %.3fs",
                           getattr(fn, "__name__", fn), attempt + 1, retries, delay)
            time.sleep(delay)
            attempt += 1


def _require_user(user_id: str, lock: bool = False) -> User:
    stmt = select(User).where(User.id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    user = db.session.execute(stmt).scalar_one_or_none()
    if user is None:
        raise UserNotFound(user_id)
    return user


def _grant(user_id: str, kind: ActionKind, related_post_id: Optional[str] = None,
           metadata: Optional[dict] = None, created_at: Optional[datetime] = None) -> int:
    """Append a history row and credit the same amount. Caller owns the transaction."""
    action = lookup(kind)
    points_history.append(
        user_id,
        action.points,
        action.kind,
        action.description,
        related_post_id=related_post_id,
        metadata=metadata,
        created_at=created_at,
    )
    return balances.credit(user_id, action.points)


def _engagement_kind(kind) -> ActionKind:
    try:
        parsed = parse_kind(kind)
    except UnknownActionKind:
        raise UnsupportedActionKind(kind) from None
    if parsed not in ENGAGEMENT_KINDS:
        raise UnsupportedActionKind(kind)
    return parsed


# ---- engagement ----

def process_engagement(user_id: str, post_id: str, kind) -> EngagementResult:
    kind = _engagement_kind(kind)
    try:
        post = db.session.get(Post, post_id)
        if post is None:
            raise PostNotFound(post_id)
        if post.user_id == user_id:
            raise SelfEngagementForbidden(user_id, post_id)
        if not post.accepts_engagement:
            raise PostNotAcceptingEngagement(post_id, post.status)
        _require_user(user_id)
        owner_id = post.user_id

        try:
            ledger.record(user_id, post_id, kind)
        except DuplicateInteraction:
            db.session.rollback()
            logger.debug("Engagement %s by %s on %s already recorded", kind.value, user_id, post_id)
            return EngagementResult(
                success=False,
                points_awarded=0,
                message="You have already performed this action on this post",
            )

        action = lookup(kind)
        approval = lookup(ActionKind.POST_APPROVED)
        _grant(user_id, kind, related_post_id=post_id)
        likes_received, approved = post_progress.register_engagement(post_id, kind, approval.points)
        if approved:
            _grant(
                owner_id,
                ActionKind.POST_APPROVED,
                related_post_id=post_id,
                metadata={"trigger": "threshold", "likesReceived": likes_received},
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("User %s earned %s points for %s on post %s (%s engagements)",
                user_id, action.points, kind.value, post_id, likes_received)
    if approved:
        logger.info("Post %s approved; owner %s credited %s points", post_id, owner_id, approval.points)

    message = f"You earned {action.points} points for this {kind.value}!"
    if approved:
        message += " This post has now been approved."
    return EngagementResult(
        success=True,
        points_awarded=action.points,
        message=message,
        post_status=POST_STATUS_APPROVED if approved else POST_STATUS_PENDING,
        post_approved=approved,
    )


def has_recent_interaction(user_id: str, post_id: str, kind) -> bool:
    return ledger.has_recorded(user_id, post_id, _engagement_kind(kind))


# ---- daily bonus ----

def _as_utc_naive(local_dt: datetime) -> datetime:
    # Naive datetimes are server-local; history timestamps are stored as naive UTC.
    return local_dt.astimezone(timezone.utc).replace(tzinfo=None)


def award_daily_bonus(user_id: str, now: Optional[datetime] = None) -> bool:
    """Grant the daily bonus once per server-local calendar day.

    Returns True if granted, False if already claimed today.
    """
    now = now or datetime.now()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        # The user row lock serializes concurrent claims for the same user.
        _require_user(user_id, lock=True)
        if points_history.exists_since(user_id, ActionKind.DAILY_BONUS, _as_utc_naive(day_start)):
            db.session.rollback()
            return False
        _grant(user_id, ActionKind.DAILY_BONUS, created_at=_as_utc_naive(now))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Daily bonus awarded to %s", user_id)
    return True


# ---- moderation ----

def approve_post(post_id: str, moderator_id: Optional[str] = None) -> Post:
    """Moderator approval of a pending post; the owner gets the approval reward."""
    approval = lookup(ActionKind.POST_APPROVED)
    try:
        post = post_progress.get_post(post_id)
        owner_id = post.user_id
        post_progress.approve(post_id, moderator_id, approval.points)
        _grant(
            owner_id,
            ActionKind.POST_APPROVED,
            related_post_id=post_id,
            metadata={"trigger": "moderator", "moderatorId": moderator_id},
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Post %s approved by moderator %s", post_id, moderator_id)
    return post_progress.get_post(post_id)


def reject_post(post_id: str, moderator_id: Optional[str] = None, reason: Optional[str] = None) -> Post:
    try:
        post_progress.get_post(post_id)
        post_progress.reject(post_id, moderator_id, reason)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Post %s rejected by moderator %s", post_id, moderator_id)
    return post_progress.get_post(post_id)


# ---- users ----

def create_user(email: Optional[str] = None, first_name: Optional[str] = None,
                last_name: Optional[str] = None, is_premium: bool = False,
                role: str = USER_ROLE_USER, user_id: Optional[str] = None) -> User:
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        points=0,
        is_premium=bool(is_premium),
        role=role,
    )
    if user_id:
        user.id = user_id
    db.session.add(user)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def set_premium(user_id: str, is_premium: bool) -> User:
    try:
        user = _require_user(user_id, lock=True)
        user.is_premium = bool(is_premium)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("User %s premium=%s", user_id, bool(is_premium))
    return user


# ---- read projections ----

def get_user_stats(user_id: str) -> dict:
    user = _require_user(user_id)
    total_posts = db.session.execute(
        select(func.count()).select_from(Post).where(Post.user_id == user_id)
    ).scalar()
    approved_posts = db.session.execute(
        select(func.count()).select_from(Post)
        .where(Post.user_id == user_id)
        .where(Post.status == POST_STATUS_APPROVED)
    ).scalar()
    total_interactions = ledger.count_for_user(user_id)
    return {
        "totalPosts": int(total_posts or 0),
        "approvedPosts": int(approved_posts or 0),
        "totalInteractions": int(total_interactions or 0),
        "points": int(user.points or 0),
        "rank": leaderboard.rank_of(user_id),
        "isPremium": bool(user.is_premium),
        "joinDate": user.created_at.isoformat() if user.created_at else None,
    }


def get_user_points_history(user_id: str, limit: Optional[int] = None) -> list[dict]:
    _require_user(user_id)
    limit = config.POINTS_HISTORY_DEFAULT_LIMIT if limit is None else limit
    return [row.to_dict() for row in points_history.recent_for_user(user_id, limit)]


def get_leaderboard(limit: Optional[int] = None) -> list[dict]:
    limit = config.LEADERBOARD_DEFAULT_LIMIT if limit is None else limit
    return leaderboard.leaderboard(limit)
