"""
CLI command tests.
"""

from retailpos.models import User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    assert first.exit_code == 0, first.output
    assert "Created user: admin" in first.output

    second = runner.invoke(args=["system", "init"])
    assert second.exit_code == 0
    assert "already exists" in second.output

    db_session.expire_all()
    assert {u.username: u.role for u in db_session.query(User).all()} == {
        "admin": "admin",
        "cashier": "cashier",
    }


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        "users", "create",
        "--username", "lee",
        "--password", "Password123",
        "--role", "cashier",
    ])
    assert created.exit_code == 0, created.output

    listed = runner.invoke(args=["users", "list"])
    assert "lee" in listed.output


def test_users_create_weak_password_fails(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "weak",
        "--password", "abc",
        "--role", "cashier",
    ])
    assert result.exit_code != 0
    assert "at least 8 characters" in result.output
