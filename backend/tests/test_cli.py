"""CLI command tests using Flask's CLI runner."""

from stockbook.models import User
from stockbook.services import invoice_service
from tests.conftest import NOON_IST


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--name", "Chen", "--email", "Chen@Example.com", "--password", "Passw0rd!",
    ])
    assert result.exit_code == 0, result.output
    assert "chen@example.com" in result.output
    assert db_session.query(User).filter_by(email="chen@example.com").count() == 1

    listing = runner.invoke(args=["users", "list"])
    assert "chen@example.com" in listing.output


def test_users_create_rejects_weak_password(app, db_session):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--name", "Chen", "--email", "chen@example.com", "--password", "short",
    ])
    assert result.exit_code != 0
    assert db_session.query(User).count() == 0


def test_sequences_show(app, db_session, user_a, widget):
    invoice_service.create_invoice(
        user_a.id, None, [{"description": "Widget", "quantity": 1, "rate": 10}], now=NOON_IST,
    )

    result = app.test_cli_runner().invoke(args=[
        "sequences", "show", "--user-id", str(user_a.id), "--date", "2026-10-18",
    ])

    assert result.exit_code == 0, result.output
    assert "issued serials: 1" in result.output
    assert f"INV-20261018-{user_a.id}-0002" in result.output


def test_sequences_show_rejects_bad_date(app, db_session, user_a):
    result = app.test_cli_runner().invoke(args=[
        "sequences", "show", "--user-id", str(user_a.id), "--date", "18/10/2026",
    ])
    assert result.exit_code != 0
