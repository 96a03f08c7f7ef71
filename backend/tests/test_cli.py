"""CLI bootstrap commands."""

from crowdfund.models import Permission, Role, User
from crowdfund.services import permission_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert "DONE System initialized" in first.output
    assert "Using existing admin" in second.output
    assert db_session.query(Permission).count() == 4
    assert {r.name for r in db_session.query(Role).all()} == {"moderator", "finance", "support"}
    admin = db_session.query(User).filter_by(email="admin@crowdfund.local").one()
    assert admin.is_admin is True


def test_users_create_and_grant(app, db_session, setup_permissions):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        "users", "create", "--name", "Mod", "--email", "Mod@Crowdfund.test", "--password", "Password123!",
    ])
    assert "PASS Created user" in created.output

    granted = runner.invoke(args=["perms", "grant", "mod@crowdfund.test", "manage campaigns"])
    assert "PASS Granted" in granted.output

    user = db_session.query(User).filter_by(email="mod@crowdfund.test").one()
    assert permission_service.get_direct_permissions(user.id) == {"manage campaigns"}

    unknown = runner.invoke(args=["perms", "grant", "mod@crowdfund.test", "launch rockets"])
    assert "FAIL" in unknown.output


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--name", "X", "--email", "x@crowdfund.test", "--password", "weak"])

    assert "FAIL Password validation failed" in result.output
    assert db_session.query(User).count() == 0
