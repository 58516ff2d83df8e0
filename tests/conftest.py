"""
Shared pytest fixtures for the Household Budget test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.
"""
from datetime import datetime
from decimal import Decimal

import pytest
from flask import g

from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()
    # Requests share the session-wide app context, so drop the cached user
    g.pop('_login_user', None)


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def family(app):
    from models.family import Family
    f = Family(name='Test Family')
    _db.session.add(f)
    _db.session.commit()
    return f


@pytest.fixture
def user(app, family):
    from models.users import User
    u = User(
        email='admin@household.org',
        name='Admin User',
        family_id=family.id,
    )
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def patch_family(monkeypatch, family):
    """Scope family_query/family_get to ``family`` without a request."""
    monkeypatch.setattr('utils.db_helpers.get_family_id', lambda: family.id)
    return family


@pytest.fixture
def person(app, family):
    from models.people import Person
    p = Person(family_id=family.id, name='Ana', color='#EC4899')
    _db.session.add(p)
    _db.session.commit()
    return p


@pytest.fixture
def category(app, family):
    from models.categories import Category
    c = Category(family_id=family.id, name='Streaming', category_type='fixed')
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture
def make_planned(app, family):
    """Factory for planned expenses created at a fixed point in time."""
    from models.planned import PlannedExpense

    def _make(name='Netflix', amount='39.90', due_day=10, created_at=datetime(2026, 1, 5),
              category_id=None, description=None, deactivated_at=None):
        planned = PlannedExpense(
            family_id=family.id,
            name=name,
            amount=Decimal(amount),
            due_day=due_day,
            category_id=category_id,
            description=description,
            active=deactivated_at is None,
            created_at=created_at,
            deactivated_at=deactivated_at,
        )
        _db.session.add(planned)
        _db.session.commit()
        return planned
    return _make


@pytest.fixture
def client(app, user):
    """Test client already signed in as ``user``."""
    c = app.test_client()
    with c.session_transaction() as sess:
        sess['_user_id'] = str(user.id)
        sess['_fresh'] = True
    g.pop('_login_user', None)
    return c


@pytest.fixture
def anon_client(app):
    g.pop('_login_user', None)
    return app.test_client()
