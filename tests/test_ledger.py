"""
Interaction ledger, points history and balance tests.
"""
import pytest
from sqlalchemy.exc import IntegrityError

import balances
import ledger
import points_history
from errors import DuplicateInteraction, UserNotFound
from extensions import db
from models_points import PointsHistory, UserInteraction


class TestInteractionLedger:

    def test_record_then_has_recorded(self, make_user, make_post):
        owner, fan = make_user(), make_user()
        post = make_post(owner)

        assert not ledger.has_recorded(fan.id, post.id, 'like')
        ledger.record(fan.id, post.id, 'like')
        db.session.commit()

        assert ledger.has_recorded(fan.id, post.id, 'like')
        assert not ledger.has_recorded(fan.id, post.id, 'share')

    def test_second_record_raises_duplicate(self, make_user, make_post):
        owner, fan = make_user(), make_user()
        post = make_post(owner)
        ledger.record(fan.id, post.id, 'comment')
        db.session.commit()

        with pytest.raises(DuplicateInteraction):
            ledger.record(fan.id, post.id, 'comment')
        db.session.rollback()

        assert UserInteraction.query.count() == 1

    def test_duplicate_leaves_outer_transaction_usable(self, make_user, make_post):
        owner, fan = make_user(), make_user()
        post = make_post(owner)
        ledger.record(fan.id, post.id, 'like')

        with pytest.raises(DuplicateInteraction):
            ledger.record(fan.id, post.id, 'like')
        ledger.record(fan.id, post.id, 'share')
        db.session.commit()

        assert UserInteraction.query.count() == 2

    def test_uniqueness_is_enforced_by_the_database(self, make_user, make_post):
        """A raw insert that bypasses ledger.record() still cannot duplicate."""
        owner, fan = make_user(), make_user()
        post = make_post(owner)
        db.session.add(UserInteraction(user_id=fan.id, post_id=post.id, action_type='like'))
        db.session.commit()

        db.session.add(UserInteraction(user_id=fan.id, post_id=post.id, action_type='like'))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()


class TestPointsHistory:

    def test_append_stores_signed_delta_and_metadata(self, make_user, make_post):
        user = make_user()
        post = make_post(user)
        entry_id = points_history.append(user.id, -4, 'like', 'Correction', related_post_id=post.id,
                                         metadata={'reason': 'test'})
        db.session.commit()

        row = db.session.get(PointsHistory, entry_id)
        assert row.points == -4
        assert row.to_dict()['metadata'] == {'reason': 'test'}
        assert row.related_post_id == post.id

    def test_history_has_no_dedup(self, make_user):
        user = make_user()
        points_history.append(user.id, 5, 'daily_bonus', 'Daily login bonus')
        points_history.append(user.id, 5, 'daily_bonus', 'Daily login bonus')
        db.session.commit()
        assert points_history.sum_for_user(user.id) == 10


class TestBalances:

    def test_credit_returns_new_balance(self, make_user):
        user = make_user()
        assert balances.credit(user.id, 3) == 3
        assert balances.credit(user.id, 7) == 10
        db.session.commit()
        assert balances.get_balance(user.id) == 10

    def test_credit_unknown_user(self, app):
        with pytest.raises(UserNotFound):
            balances.credit('no-such-user', 1)
        db.session.rollback()

    def test_audit_balance(self, make_user):
        user = make_user()
        points_history.append(user.id, 2, 'comment', 'Commented on a post')
        balances.credit(user.id, 2)
        db.session.commit()
        assert balances.audit_balance(user.id) == (2, 2)
