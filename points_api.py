"""User-facing points APIs.

Routes:
- POST /api/users
- POST /api/posts
- GET  /api/posts?limit=50
- GET  /api/posts/user?user_id=...&limit=50
- GET  /api/posts/<id>
- POST /api/posts/<id>/interact
- GET  /api/user/stats?user_id=...
- GET  /api/user/points-history?user_id=...&limit=50
- GET  /api/leaderboard?limit=10
- POST /api/user/daily-bonus

Authentication lives in front of this service; the acting user is passed as
`user_id`.
"""

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, OperationalError

import config
import points_system
import post_progress
from errors import PreconditionError
from extensions import limiter


points_api = Blueprint("points_api", __name__)

_MAX_LIST_LIMIT = 100


def _norm_id(value) -> str:
    return str(value or "").strip()


def _limit_arg(default: int) -> int:
    try:
        limit = int(request.args.get("limit") or default)
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, _MAX_LIST_LIMIT))


def _call(fn, *args, conflict_error: str = "Conflicting record", **kwargs):
    """Run a service call and map failures to the JSON envelope.

    Returns (result, None) on success or (None, response) on failure.
    """
    try:
        return points_system.run_with_retry(fn, *args, **kwargs), None
    except PreconditionError as e:
        return None, (jsonify({"success": False, "error": str(e)}), e.status_code)
    except IntegrityError:
        return None, (jsonify({"success": False, "error": conflict_error}), 409)
    except OperationalError:
        current_app.logger.exception("Storage unavailable in %s", getattr(fn, "__name__", fn))
        return None, (jsonify({"success": False, "error": "Storage temporarily unavailable, please retry"}), 503)
    except Exception:
        current_app.logger.exception("Unexpected error in %s", getattr(fn, "__name__", fn))
        return None, (jsonify({"success": False, "error": "Internal server error"}), 500)


@points_api.post("/api/users")
@limiter.limit("10 per minute")
def register_user():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower() or None
    user, err = _call(
        points_system.create_user,
        email=email,
        first_name=(data.get("first_name") or "").strip() or None,
        last_name=(data.get("last_name") or "").strip() or None,
        conflict_error="Email already registered",
    )
    if err:
        return err
    return jsonify({"success": True, "user": user.to_dict()}), 201


@points_api.post("/api/posts")
@limiter.limit("20 per minute")
def create_post():
    data = request.get_json(silent=True) or {}
    user_id = _norm_id(data.get("user_id"))
    platform = (data.get("platform") or "").strip()
    url = (data.get("url") or "").strip()
    title = (data.get("title") or "").strip()

    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400
    if not platform or not url or not title:
        return jsonify({"success": False, "error": "platform, url and title are required"}), 400

    post, err = _call(
        post_progress.create_post,
        user_id,
        platform,
        url,
        title,
        description=(data.get("description") or "").strip() or None,
        likes_needed=data.get("likes_needed"),
    )
    if err:
        return err
    return jsonify({"success": True, "post": post.to_dict()}), 201


@points_api.get("/api/posts")
def list_posts():
    posts, err = _call(post_progress.list_posts, _limit_arg(config.POSTS_DEFAULT_LIMIT))
    if err:
        return err
    return jsonify({"success": True, "posts": [p.to_dict() for p in posts]})


@points_api.get("/api/posts/user")
def list_user_posts():
    user_id = _norm_id(request.args.get("user_id"))
    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400
    posts, err = _call(post_progress.list_user_posts, user_id, _limit_arg(config.POSTS_DEFAULT_LIMIT))
    if err:
        return err
    return jsonify({"success": True, "posts": [p.to_dict() for p in posts]})


@points_api.get("/api/posts/<post_id>")
def get_post(post_id: str):
    post, err = _call(post_progress.get_post, post_id)
    if err:
        return err
    return jsonify({"success": True, "post": post.to_dict()})


@points_api.post("/api/posts/<post_id>/interact")
@limiter.limit("60 per minute")
def interact(post_id: str):
    data = request.get_json(silent=True) or {}
    user_id = _norm_id(data.get("user_id"))
    kind = (data.get("type") or "").strip().lower()
    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400

    result, err = _call(points_system.process_engagement, user_id, post_id, kind)
    if err:
        return err
    # Duplicates are a normal 200 with success=False.
    return jsonify(result.to_dict())


@points_api.get("/api/user/stats")
def user_stats():
    user_id = _norm_id(request.args.get("user_id"))
    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400
    stats, err = _call(points_system.get_user_stats, user_id)
    if err:
        return err
    return jsonify(stats)


@points_api.get("/api/user/points-history")
def user_points_history():
    user_id = _norm_id(request.args.get("user_id"))
    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400
    history, err = _call(
        points_system.get_user_points_history, user_id, _limit_arg(config.POINTS_HISTORY_DEFAULT_LIMIT)
    )
    if err:
        return err
    return jsonify(history)


@points_api.get("/api/leaderboard")
def get_leaderboard():
    board, err = _call(points_system.get_leaderboard, _limit_arg(config.LEADERBOARD_DEFAULT_LIMIT))
    if err:
        return err
    return jsonify(board)


@points_api.post("/api/user/daily-bonus")
@limiter.limit("10 per minute")
def daily_bonus():
    data = request.get_json(silent=True) or {}
    user_id = _norm_id(data.get("user_id"))
    if not user_id:
        return jsonify({"success": False, "error": "user_id is required"}), 400
    awarded, err = _call(points_system.award_daily_bonus, user_id)
    if err:
        return err
    return jsonify(
        {
            "awarded": awarded,
            "message": "Daily bonus awarded!" if awarded else "Daily bonus already claimed",
        }
    )
