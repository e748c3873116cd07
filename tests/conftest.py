"""
Shared pytest fixtures for the Stage Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - manager / other_manager / member / orphan: seeded accounts
    - *_caller: CallerContext for each seeded account
    - auth_headers: factory building Bearer headers for an account
"""

import pytest

from stagetrack import create_app
from stagetrack.models import db as _db
from stagetrack.models.auth import ROLE_MANAGER, ROLE_USER, Account
from stagetrack.services.access import CallerContext
from stagetrack.services.jwt_service import generate_access_token
from stagetrack.utils.crypto import hash_password

TEST_PASSWORD = "secret123"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Accounts ─────────────────────────────────────────────────────────────


def make_account(email, *, role=ROLE_MANAGER, referred_by=None, name=None, is_active=True):
    account = Account(
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        name=name or email.split("@")[0].title(),
        role=role,
        referred_by_id=referred_by.id if referred_by else None,
        is_active=is_active,
    )
    _db.session.add(account)
    _db.session.commit()
    return account


@pytest.fixture()
def manager():
    return make_account("manager@example.com", name="Mia Manager")


@pytest.fixture()
def other_manager():
    return make_account("other@example.com", name="Oscar Other")


@pytest.fixture()
def member(manager):
    """Read-only user referred by `manager`."""
    return make_account("member@example.com", role=ROLE_USER, referred_by=manager)


@pytest.fixture()
def orphan():
    """User account with no referring manager."""
    return make_account("orphan@example.com", role=ROLE_USER)


@pytest.fixture()
def manager_caller(manager):
    return CallerContext.from_account(manager)


@pytest.fixture()
def other_caller(other_manager):
    return CallerContext.from_account(other_manager)


@pytest.fixture()
def member_caller(member):
    return CallerContext.from_account(member)


@pytest.fixture()
def orphan_caller(orphan):
    return CallerContext.from_account(orphan)


@pytest.fixture()
def auth_headers():
    """Return a function building JWT headers for an account."""

    def _headers(account):
        token = generate_access_token(account.id, account.role)
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    return _headers
