"""Action catalog: the fixed point value of every points-granting action.

Point values live here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from errors import UnknownActionKind


class ActionKind(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    SHARE = "share"
    POST_APPROVED = "post_approved"
    DAILY_BONUS = "daily_bonus"


@dataclass(frozen=True)
class PointsAction:
    kind: ActionKind
    points: int
    description: str


ACTION_CATALOG: dict[ActionKind, PointsAction] = {
    ActionKind.LIKE: PointsAction(ActionKind.LIKE, 1, "Liked a post"),
    ActionKind.COMMENT: PointsAction(ActionKind.COMMENT, 2, "Commented on a post"),
    ActionKind.SHARE: PointsAction(ActionKind.SHARE, 3, "Shared a post"),
    ActionKind.POST_APPROVED: PointsAction(ActionKind.POST_APPROVED, 10, "Post was approved"),
    ActionKind.DAILY_BONUS: PointsAction(ActionKind.DAILY_BONUS, 5, "Daily login bonus"),
}

# Kinds that count toward a post's approval threshold.
ENGAGEMENT_KINDS: frozenset[ActionKind] = frozenset(
    {ActionKind.LIKE, ActionKind.COMMENT, ActionKind.SHARE}
)


def parse_kind(kind) -> ActionKind:
    if isinstance(kind, ActionKind):
        return kind
    try:
        return ActionKind((kind or "").strip().lower())
    except (ValueError, AttributeError):
        raise UnknownActionKind(kind) from None


def lookup(kind) -> PointsAction:
    """Return the catalog entry for `kind` (an ActionKind or its string value)."""
    return ACTION_CATALOG[parse_kind(kind)]
