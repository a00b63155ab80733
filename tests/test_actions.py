"""
Action catalog tests.
"""
import pytest

import actions
from actions import ActionKind, ENGAGEMENT_KINDS
from errors import UnknownActionKind


class TestLookup:
    """lookup() resolves every kind to its fixed value."""

    @pytest.mark.parametrize('kind,points', [
        ('like', 1),
        ('comment', 2),
        ('share', 3),
        ('post_approved', 10),
        ('daily_bonus', 5),
    ])
    def test_point_values(self, kind, points):
        assert actions.lookup(kind).points == points

    def test_accepts_enum_members(self):
        entry = actions.lookup(ActionKind.SHARE)
        assert entry.kind is ActionKind.SHARE
        assert entry.description == 'Shared a post'

    def test_normalizes_case_and_whitespace(self):
        assert actions.lookup('  LIKE ').kind is ActionKind.LIKE

    @pytest.mark.parametrize('kind', ['retweet', '', None, 42])
    def test_unknown_kind_raises(self, kind):
        with pytest.raises(UnknownActionKind):
            actions.lookup(kind)


class TestCatalogShape:

    def test_every_kind_has_an_entry(self):
        assert set(actions.ACTION_CATALOG) == set(ActionKind)

    def test_only_like_comment_share_are_engagements(self):
        assert ENGAGEMENT_KINDS == {ActionKind.LIKE, ActionKind.COMMENT, ActionKind.SHARE}
