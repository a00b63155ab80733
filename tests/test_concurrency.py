"""
Concurrent engagement tests.

Threads each get their own app context (and so their own session and
connection) and start together behind a barrier.
"""
import threading

from sqlalchemy import func

import points_system
from errors import PostNotAcceptingEngagement
from extensions import db
from models_points import PointsHistory, UserInteraction
from models_posts import Post
from models_users import User


def _run_concurrently(app, calls, fn=None):
    """Run `fn` (default: process_engagement) once per argument tuple, in parallel threads."""
    fn = fn or points_system.process_engagement
    barrier = threading.Barrier(len(calls))
    results, errors = [], []
    lock = threading.Lock()

    def _worker(*args):
        with app.app_context():
            barrier.wait()
            try:
                outcome = points_system.run_with_retry(fn, *args)
                with lock:
                    results.append(outcome)
            except Exception as e:
                with lock:
                    errors.append(e)

    # Release this thread's SQLite transaction so workers can take the lock.
    db.session.remove()
    threads = [threading.Thread(target=_worker, args=call) for call in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results, errors


def _approval_rows(post_id):
    return PointsHistory.query.filter_by(related_post_id=post_id, action_type='post_approved').count()


class TestConcurrentEngagement:

    def test_two_engagements_cross_threshold_once(self, app, make_user, make_post):
        owner, a, b = make_user(), make_user(), make_user()
        post_id = make_post(owner, likes_needed=2).id
        owner_id, a_id, b_id = owner.id, a.id, b.id

        results, errors = _run_concurrently(app, [(a_id, post_id, 'like'), (b_id, post_id, 'like')])

        assert errors == []
        assert [r.success for r in results] == [True, True]
        assert sum(r.post_approved for r in results) == 1
        post = db.session.get(Post, post_id)
        assert post.likes_received == 2
        assert post.status == 'approved'
        assert _approval_rows(post_id) == 1
        assert db.session.get(User, owner_id).points == 10

    def test_last_slot_has_exactly_one_winner(self, app, make_user, make_post):
        owner, a, b = make_user(), make_user(), make_user()
        post_id = make_post(owner, likes_needed=1).id
        owner_id = owner.id

        results, errors = _run_concurrently(app, [(a.id, post_id, 'like'), (b.id, post_id, 'share')])

        assert len(results) == 1 and results[0].post_approved is True
        assert len(errors) == 1 and isinstance(errors[0], PostNotAcceptingEngagement)
        assert db.session.get(Post, post_id).likes_received == 1
        assert UserInteraction.query.filter_by(post_id=post_id).count() == 1
        assert _approval_rows(post_id) == 1
        assert db.session.get(User, owner_id).points == 10

    def test_duplicate_attempts_have_one_winner(self, app, make_user, make_post):
        owner, fan = make_user(), make_user()
        post_id = make_post(owner).id
        fan_id = fan.id

        results, errors = _run_concurrently(app, [(fan_id, post_id, 'comment')] * 3)

        assert errors == []
        assert sorted(r.success for r in results) == [False, False, True]
        assert UserInteraction.query.filter_by(user_id=fan_id).count() == 1
        assert db.session.get(User, fan_id).points == 2
        assert db.session.get(Post, post_id).likes_received == 1

    def test_balances_match_history_after_contention(self, app, make_user, make_post):
        owner = make_user()
        fans = [make_user() for _ in range(5)]
        post_id = make_post(owner, likes_needed=3).id
        calls = [(f.id, post_id, kind) for f in fans for kind in ('like', 'share')]

        _run_concurrently(app, calls)

        for user in User.query.all():
            total = db.session.query(func.coalesce(func.sum(PointsHistory.points), 0)) \
                .filter(PointsHistory.user_id == user.id).scalar()
            assert user.points == total
        assert _approval_rows(post_id) == 1
        assert db.session.get(Post, post_id).likes_received == 3


class TestConcurrentDailyBonus:

    def test_same_day_claims_award_once(self, app, make_user):
        user_id = make_user().id

        results, errors = _run_concurrently(app, [(user_id,)] * 4, fn=points_system.award_daily_bonus)

        assert errors == []
        assert sorted(results) == [False, False, False, True]
        assert PointsHistory.query.filter_by(user_id=user_id, action_type='daily_bonus').count() == 1
        assert db.session.get(User, user_id).points == 5
