"""
Leaderboard ordering and count-based rank tests.
"""
import pytest

import balances
import leaderboard
import points_history
from errors import UserNotFound
from extensions import db


@pytest.fixture
def grant(app):
    """Give a user points through the history + balance path."""
    def _grant(user, amount):
        points_history.append(user.id, amount, 'daily_bonus', 'Test grant')
        balances.credit(user.id, amount)
        db.session.commit()
    return _grant


class TestTopN:

    def test_descending_with_shared_rank_for_ties(self, make_user, grant):
        users = [make_user() for _ in range(4)]
        for user, amount in zip(users, [10, 30, 50, 30]):
            grant(user, amount)

        ranked = leaderboard.top_n(4)

        assert [u.points for u, _ in ranked] == [50, 30, 30, 10]
        assert [rank for _, rank in ranked] == [1, 2, 2, 4]

    def test_ties_ordered_by_join_order(self, make_user, grant):
        first, second = make_user(), make_user()
        grant(second, 30)
        grant(first, 30)

        ranked = leaderboard.top_n(2)
        assert [u.id for u, _ in ranked] == [first.id, second.id]

    def test_limit(self, make_user, grant):
        for amount in (5, 4, 3):
            grant(make_user(), amount)
        assert len(leaderboard.top_n(2)) == 2
        assert leaderboard.top_n(0) == []

    def test_leaderboard_rows(self, make_user, grant):
        user = make_user(first_name='Ada', last_name='Lovelace', email='ada@example.com')
        grant(user, 7)
        row = leaderboard.leaderboard(1)[0]
        assert row == {
            'id': user.id,
            'firstName': 'Ada',
            'lastName': 'Lovelace',
            'email': 'ada@example.com',
            'points': 7,
            'isPremium': False,
            'rank': 1,
        }


class TestRankOf:

    def test_count_based_rank(self, make_user, grant):
        users = [make_user() for _ in range(4)]
        for user, amount in zip(users, [50, 30, 30, 10]):
            grant(user, amount)

        assert [leaderboard.rank_of(u.id) for u in users] == [1, 2, 2, 4]

    def test_everyone_at_zero_is_first(self, make_user):
        users = [make_user() for _ in range(3)]
        assert {leaderboard.rank_of(u.id) for u in users} == {1}

    def test_unknown_user(self, app):
        with pytest.raises(UserNotFound):
            leaderboard.rank_of('ghost')
