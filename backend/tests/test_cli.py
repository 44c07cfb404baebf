"""
CLI command tests (flask system init, flask users ...).
"""

from shoppos.models import CompanyProfile, User
from shoppos.services.auth_service import verify_password


class TestSystemInit:
    def test_creates_profile_and_admin(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--company", "Golden Mart",
                                     "--admin-password", "Secret1234"])

        assert result.exit_code == 0, result.output
        assert "DONE System initialized" in result.output
        assert db_session.query(CompanyProfile).one().company_name == "Golden Mart"
        admin = db_session.query(User).filter_by(username="admin").one()
        assert admin.role == "admin"
        assert verify_password("Secret1234", admin.password_hash)

    def test_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])
        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert "already exists" in result.output
        assert db_session.query(User).count() == 1
        assert db_session.query(CompanyProfile).count() == 1

    def test_weak_password_fails(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init", "--admin-password", "short"])
        assert result.exit_code != 0
        assert db_session.query(User).count() == 0


class TestUsersCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["users", "create", "--username", "cashier1",
                                     "--password", "Cashier123", "--role", "cashier"])
        assert result.exit_code == 0, result.output

        listing = runner.invoke(args=["users", "list"])
        assert "cashier1" in listing.output
        assert "cashier" in listing.output

    def test_duplicate_username(self, app, db_session, admin_user):
        result = app.test_cli_runner().invoke(args=["users", "create", "--username", "admin",
                                                    "--password", "Another123", "--role", "admin"])
        assert result.exit_code != 0

    def test_list_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "No users found." in result.output
