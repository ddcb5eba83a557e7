"""
CLI command tests.
"""

from solnet.models import ExpenseCategory, InventoryItem, Location, SmsQueue, User
from solnet.services import sms_queue_service


class TestSystemInit:

    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init", "--admin-password", "Password123!"])
        assert result.exit_code == 0, result.output
        assert "Created admin: admin" in result.output

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "already exists" in result.output

        assert db_session.query(Location).filter_by(code="MAIN").count() == 1
        assert db_session.query(User).filter_by(role="admin").count() == 1
        assert db_session.query(ExpenseCategory).count() > 0

    def test_init_rejects_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--admin-password", "weak"])
        assert result.exit_code != 0
        assert "Password validation failed" in result.output


class TestUsers:

    def test_create_and_list(self, app, db_session, location_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "tech9",
            "--email", "tech9@solnet.local",
            "--password", "Password123!",
            "--role", "technician",
            "--location-code", "main",
        ])
        assert result.exit_code == 0, result.output
        user = db_session.query(User).filter_by(username="tech9").one()
        assert user.location_id == location_a.id

        result = runner.invoke(args=["users", "list", "--location-code", "MAIN"])
        assert "tech9" in result.output

    def test_unknown_location(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "x", "--email", "x@solnet.local", "--password", "Password123!",
            "--role", "sales", "--location-code", "NOPE",
        ])
        assert result.exit_code != 0
        assert "Location 'NOPE' not found" in result.output

    def test_unknown_role_rejected(self, app, db_session, location_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "x", "--email", "x@solnet.local", "--password", "Password123!",
            "--role", "janitor",
        ])
        assert result.exit_code != 0


class TestOperations:

    def test_process_queue(self, app, db_session, sent_sms):
        sms_queue_service.enqueue("0911223344", "queued")
        runner = app.test_cli_runner()
        result = runner.invoke(args=["sms", "process-queue", "--batch-size", "5"])
        assert result.exit_code == 0, result.output
        assert "sent 1" in result.output
        assert db_session.query(SmsQueue).one().status == "sent"

    def test_refresh_predictions(self, app, db_session, ssd_item):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["inventory", "refresh-predictions"])
        assert result.exit_code == 0, result.output
        assert "1 item(s)" in result.output
        assert db_session.get(InventoryItem, ssd_item.id).avg_daily_sales == 0

    def test_cleanup_security_events(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["maintenance", "cleanup-security-events", "--retention-days", "30"])
        assert result.exit_code == 0, result.output
        assert "Deleted 0 security events" in result.output
