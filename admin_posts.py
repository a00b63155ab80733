"""Moderator APIs for post approval.

Admin access rules:
- POST /api/admin/posts/login with the ADMIN_POSTS_KEY (fallback ADMIN_API_KEY)
  stores an 'admin_posts' flag in the flask session.

Routes:
- POST /api/admin/posts/login
- POST /api/admin/posts/logout
- GET  /api/admin/posts/pending
- POST /api/admin/posts/<id>/approve
- POST /api/admin/posts/<id>/reject
- POST /api/admin/users/<id>/premium
- GET  /api/admin/users/<id>/audit
"""

import hmac

from flask import Blueprint, current_app, jsonify, request, session as flask_session
from sqlalchemy.exc import OperationalError

import balances
import points_system
import post_progress
from errors import PreconditionError
from extensions import limiter


admin_posts = Blueprint("admin_posts", __name__)


def _is_admin() -> bool:
    return bool(flask_session.get("admin_posts"))


def _require_admin():
    if not _is_admin():
        return jsonify({"success": False, "error": "Admin access required"}), 403
    return None


def _moderator_id(data: dict):
    return (str(data.get("moderator_id") or "").strip()) or flask_session.get("admin_posts_moderator")


def _run(fn, *args):
    """Run a service call; returns (result, None) or (None, error response)."""
    try:
        return points_system.run_with_retry(fn, *args), None
    except PreconditionError as e:
        return None, (jsonify({"success": False, "error": str(e)}), e.status_code)
    except OperationalError:
        current_app.logger.exception("Storage unavailable in %s", getattr(fn, "__name__", fn))
        return None, (jsonify({"success": False, "error": "Storage temporarily unavailable, please retry"}), 503)


def _moderate(fn, *args):
    post, err = _run(fn, *args)
    if err:
        return err
    return jsonify({"success": True, "post": post.to_dict()})


@admin_posts.post("/api/admin/posts/login")
@limiter.limit("5 per minute")
def admin_posts_login():
    data = request.get_json(silent=True) or {}
    key = str(data.get("key") or "").strip()
    expected = str(current_app.config.get("ADMIN_POSTS_KEY") or "")
    if key and expected and hmac.compare_digest(key, expected):
        flask_session["admin_posts"] = True
        moderator_id = str(data.get("moderator_id") or "").strip()
        if moderator_id:
            flask_session["admin_posts_moderator"] = moderator_id
        return jsonify({"success": True})
    return jsonify({"success": False, "error": "Invalid admin key"}), 403


@admin_posts.post("/api/admin/posts/logout")
def admin_posts_logout():
    flask_session.pop("admin_posts", None)
    flask_session.pop("admin_posts_moderator", None)
    return jsonify({"success": True})


@admin_posts.get("/api/admin/posts/pending")
def api_admin_pending_posts():
    err = _require_admin()
    if err:
        return err
    posts, err = _run(post_progress.get_pending_posts)
    if err:
        return err
    return jsonify({"success": True, "posts": [p.to_dict() for p in posts]})


@admin_posts.post("/api/admin/posts/<post_id>/approve")
def api_admin_approve_post(post_id: str):
    err = _require_admin()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    return _moderate(points_system.approve_post, post_id, _moderator_id(data))


@admin_posts.post("/api/admin/posts/<post_id>/reject")
def api_admin_reject_post(post_id: str):
    err = _require_admin()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None
    return _moderate(points_system.reject_post, post_id, _moderator_id(data), reason)


@admin_posts.post("/api/admin/users/<user_id>/premium")
def api_admin_set_premium(user_id: str):
    err = _require_admin()
    if err:
        return err
    data = request.get_json(silent=True) or {}
    if "is_premium" not in data:
        return jsonify({"success": False, "error": "is_premium is required"}), 400
    user, err = _run(points_system.set_premium, user_id, bool(data.get("is_premium")))
    if err:
        return err
    return jsonify({"success": True, "user": user.to_dict()})


@admin_posts.get("/api/admin/users/<user_id>/audit")
def api_admin_audit_user(user_id: str):
    err = _require_admin()
    if err:
        return err
    audit, err = _run(balances.audit_balance, user_id)
    if err:
        return err
    balance, history_sum = audit
    return jsonify(
        {
            "success": True,
            "userId": user_id,
            "balance": balance,
            "historySum": history_sum,
            "consistent": balance == history_sum,
        }
    )
