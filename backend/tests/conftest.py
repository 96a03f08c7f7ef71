"""
Pytest fixtures for crowdfund backend tests.

Provides test database setup, permission seeding, user/campaign factories
and authenticated request headers.
"""

from datetime import date, timedelta

import pytest

from crowdfund import create_app
from crowdfund.extensions import db
from crowdfund.models import Campaign, Donation, Permission, User, UserPermission
from crowdfund.permissions import MANAGE_CAMPAIGNS, MANAGE_DONATIONS, MANAGE_USERS, VIEW_DONATIONS
from crowdfund.services import permission_service, session_service
from crowdfund.services.auth_service import create_default_roles, hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def setup_permissions(db_session):
    """Seed permissions, default roles and their grants."""
    permission_service.initialize_permissions()
    create_default_roles()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def make_user(db_session, setup_permissions, password_hash):
    """Factory: make_user("a@x.com", is_admin=False, permissions=("manage campaigns",))."""
    def _make(email, *, name=None, is_admin=False, permissions=(), is_active=True):
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            password_hash=password_hash,
            is_admin=is_admin,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()

        for permission_name in permissions:
            permission = db_session.query(Permission).filter_by(name=permission_name).one()
            db_session.add(UserPermission(user_id=user.id, permission_id=permission.id))
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin@crowdfund.test", name="Admin", is_admin=True)


@pytest.fixture(scope='function')
def moderator(make_user):
    return make_user("moderator@crowdfund.test", permissions=(MANAGE_CAMPAIGNS,))


@pytest.fixture(scope='function')
def finance(make_user):
    return make_user("finance@crowdfund.test", permissions=(MANAGE_DONATIONS,))


@pytest.fixture(scope='function')
def auditor(make_user):
    return make_user("auditor@crowdfund.test", permissions=(VIEW_DONATIONS,))


@pytest.fixture(scope='function')
def support(make_user):
    return make_user("support@crowdfund.test", permissions=(MANAGE_USERS,))


@pytest.fixture(scope='function')
def owner(make_user):
    return make_user("owner@crowdfund.test", name="Owner")


@pytest.fixture(scope='function')
def donor(make_user):
    return make_user("donor@crowdfund.test", name="Donor")


@pytest.fixture(scope='function')
def stranger(make_user):
    return make_user("stranger@crowdfund.test", name="Stranger")


def auth_headers(user) -> dict:
    """Create a session for user and return Authorization headers."""
    _, token = session_service.create_session(user.id)
    return {'Authorization': f'Bearer {token}'}


def get_auth_token(client, email: str, password: str = PASSWORD) -> str | None:
    """Helper to get auth token through the login endpoint."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


@pytest.fixture(scope='function')
def make_campaign(db_session):
    """Factory for campaigns; status defaults to approved."""
    def _make(creator, *, status=Campaign.STATUS_APPROVED, goal_amount=10000, current_amount=0, title="Clean Water"):
        today = date.today()
        campaign = Campaign(
            title=title,
            description=f"{title} campaign",
            goal_amount=goal_amount,
            current_amount=current_amount,
            start_date=today,
            end_date=today + timedelta(days=30),
            status=status,
            creator_id=creator.id,
        )
        db_session.add(campaign)
        db_session.commit()
        return campaign

    return _make


@pytest.fixture(scope='function')
def make_donation(db_session):
    """Factory for donations inserted directly (no aggregate side effects)."""
    def _make(campaign, donor, *, amount=500, status=Donation.STATUS_PENDING,
              visibility=Donation.VISIBILITY_PUBLIC, anonymous=False, currency="USD", created_at=None):
        donation = Donation(
            campaign_id=campaign.id,
            donor_id=donor.id,
            amount=amount,
            currency=currency,
            status=status,
            visibility=visibility,
            anonymous=anonymous,
        )
        if created_at is not None:
            donation.created_at = created_at
        db_session.add(donation)
        db_session.commit()
        return donation

    return _make


@pytest.fixture(scope='function')
def headers_for(db_session):
    """Fixture form of auth_headers for use inside tests."""
    return auth_headers
