"""
Tests for the operational scripts.
"""
import pytest

from auth.passwords import verify_password
from models import Material, Payment, Student, Tutoring, User
from scripts import create_user, seed_demo


class TestSeedDemo:
    """seed_demo.seed is idempotent."""

    def test_seed_twice(self, db_session):
        seed_demo.seed(db_session)
        seed_demo.seed(db_session)

        assert db_session.query(User).count() == 3
        assert db_session.query(Student).count() == 4
        assert db_session.query(Material).count() == 4
        assert db_session.query(Tutoring).count() == 4
        assert db_session.query(Payment).count() == 5

        admin = db_session.query(User).filter(User.email == "admin@reforcoescolar.com").one()
        assert admin.role == "ADMIN"
        assert verify_password("123456", admin.password)

    def test_wipe(self, db_session):
        seed_demo.seed(db_session)
        seed_demo.wipe(db_session)
        assert db_session.query(User).count() == 0

    def test_seeded_admin_can_log_in(self, client, db_session):
        seed_demo.seed(db_session)
        response = client.post(
            "/api/auth/login",
            json={"email": "admin@reforcoescolar.com", "password": "123456"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "ADMIN"


class TestCreateUserArgs:
    """Argument validation runs before any database access."""

    def test_rejects_bad_role(self, capsys):
        code = create_user.main(["--email", "x@example.com", "--password", "abcdef", "--role", "STUDENT"])
        assert code == 1
        assert "--role" in capsys.readouterr().out

    def test_rejects_short_password(self, capsys):
        code = create_user.main(["--email", "x@example.com", "--password", "abc"])
        assert code == 1

    @pytest.mark.parametrize("email", ["x@y@z.w", "a b@example.com", "@example.com", ""])
    def test_rejects_malformed_email(self, capsys, email):
        code = create_user.main(["--email", email, "--password", "abcdef"])
        assert code == 1
        assert "--email" in capsys.readouterr().out
