"""
Pytest configuration and fixtures for the points service.

Each test gets a fresh app on its own SQLite file (file-backed so that
threads get separate connections).
"""
import pytest

import points_system
import post_progress
from app import create_app
from extensions import db


ADMIN_KEY = "test-admin-key"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'points.db'}",
        "RATELIMIT_ENABLED": False,
        "ADMIN_POSTS_KEY": ADMIN_KEY,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    r = client.post('/api/admin/posts/login', json={'key': ADMIN_KEY, 'moderator_id': 'mod-1'})
    assert r.status_code == 200, f"Admin login failed: {r.get_json()}"
    return client


@pytest.fixture
def make_user(app):
    """Factory: create and commit a user."""
    counter = {'n': 0}

    def _make(is_premium=False, **kwargs):
        counter['n'] += 1
        kwargs.setdefault('email', f"user{counter['n']}@example.com")
        kwargs.setdefault('first_name', f"User{counter['n']}")
        kwargs.setdefault('last_name', 'Test')
        return points_system.create_user(is_premium=is_premium, **kwargs)

    return _make


@pytest.fixture
def make_post(app):
    """Factory: create and commit a post owned by `owner`."""
    def _make(owner, likes_needed=10, platform='twitter'):
        return post_progress.create_post(
            owner.id,
            platform,
            'https://twitter.com/someone/status/1',
            'Please boost my post',
            likes_needed=likes_needed,
        )

    return _make
