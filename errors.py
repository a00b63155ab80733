"""Failure types raised by the points ledger.

Precondition errors are final: retrying the same call cannot succeed.
DuplicateInteraction is not a failure for callers; the engagement service
turns it into a `success=False` result.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""
    status_code = 400


class PreconditionError(LedgerError):
    """Raised when the caller violated a precondition. Never retried."""
    pass


class UnknownActionKind(PreconditionError):
    def __init__(self, kind):
        super().__init__(f"Unknown action type: {kind}")
        self.kind = kind


class UnsupportedActionKind(PreconditionError):
    """Raised when a known action kind is not a qualifying engagement."""
    def __init__(self, kind):
        super().__init__(f"Invalid interaction type: {kind}")
        self.kind = kind


class UserNotFound(PreconditionError):
    status_code = 404

    def __init__(self, user_id):
        super().__init__("User not found")
        self.user_id = user_id


class PostNotFound(PreconditionError):
    status_code = 404

    def __init__(self, post_id):
        super().__init__("Post not found")
        self.post_id = post_id


class SelfEngagementForbidden(PreconditionError):
    status_code = 403

    def __init__(self, user_id, post_id):
        super().__init__("You cannot engage with your own post")
        self.user_id = user_id
        self.post_id = post_id


class PostNotAcceptingEngagement(PreconditionError):
    status_code = 409

    def __init__(self, post_id, status):
        super().__init__(f"Post is {status} and no longer accepts engagement")
        self.post_id = post_id
        self.status = status


class InvalidThreshold(PreconditionError):
    def __init__(self, likes_needed):
        super().__init__("likes_needed must be an integer >= 1")
        self.likes_needed = likes_needed


class DuplicateInteraction(LedgerError):
    """Raised by the interaction ledger when the (user, post, kind) row exists."""
    status_code = 409

    def __init__(self, user_id, post_id, kind):
        super().__init__("Interaction already recorded")
        self.user_id = user_id
        self.post_id = post_id
        self.kind = kind
