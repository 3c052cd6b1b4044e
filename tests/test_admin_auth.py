import os
import unittest
from unittest import mock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from app.core.config import Settings, settings
from app.core.security import create_jwt, decode_jwt, hash_password, parse_ttl
from app.db.session import get_db
from app.main import app
from app.models.admin import Admin


class AdminAuthTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Admin.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        Admin.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            db.execute(delete(Admin))
            db.commit()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

        self._settings_backup = {
            "ADMIN_BOOTSTRAP_ENABLED": settings.ADMIN_BOOTSTRAP_ENABLED,
            "ADMIN_BOOTSTRAP_EMAIL": settings.ADMIN_BOOTSTRAP_EMAIL,
            "ADMIN_BOOTSTRAP_PASSWORD": settings.ADMIN_BOOTSTRAP_PASSWORD,
        }
        settings.ADMIN_BOOTSTRAP_ENABLED = True
        settings.ADMIN_BOOTSTRAP_EMAIL = "admin@example.com"
        settings.ADMIN_BOOTSTRAP_PASSWORD = "admin123"

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        for key, value in self._settings_backup.items():
            setattr(settings, key, value)

    def test_login_bootstraps_admin_when_absent(self):
        response = self.client.post(
            "/api/auth/login",
            json={"username": "admin@example.com", "password": "admin123"},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["message"], "Login successful")
        self.assertEqual(body["admin"]["role"], "super_admin")
        self.assertNotIn("password_hash", body["admin"])

        claims = decode_jwt(body["token"], settings.JWT_SECRET)
        self.assertEqual(claims["email"], "admin@example.com")
        self.assertEqual(claims["role"], "super_admin")
        self.assertEqual(claims["adminId"], body["admin"]["id"])

        with self.SessionLocal() as db:
            admin = db.query(Admin).one()
            self.assertIsNotNone(admin.last_login_at)

    def test_login_accepts_email_field_and_mixed_case(self):
        with self.SessionLocal() as db:
            db.add(
                Admin(
                    first_name="Ops",
                    last_name="Lead",
                    email="ops@example.com",
                    password_hash=hash_password("s3cret"),
                    role="admin",
                )
            )
            db.commit()
        response = self.client.post("/api/auth/login", json={"email": "OPS@example.com", "password": "s3cret"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["admin"]["email"], "ops@example.com")

    def test_wrong_password_is_rejected(self):
        self.client.post("/api/auth/login", json={"username": "admin@example.com", "password": "admin123"})
        response = self.client.post("/api/auth/login", json={"username": "admin@example.com", "password": "nope"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "message": "Invalid credentials"})

    def test_inactive_admin_cannot_login(self):
        with self.SessionLocal() as db:
            db.add(
                Admin(
                    first_name="Old",
                    last_name="Admin",
                    email="old@example.com",
                    password_hash=hash_password("pw"),
                    status="inactive",
                )
            )
            db.commit()
        response = self.client.post("/api/auth/login", json={"username": "old@example.com", "password": "pw"})
        self.assertEqual(response.status_code, 401)

    def test_missing_credentials_is_400(self):
        response = self.client.post("/api/auth/login", json={"username": "admin@example.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Email and password are required")

    def test_verify_echoes_claims(self):
        login = self.client.post("/api/auth/login", json={"username": "admin@example.com", "password": "admin123"})
        token = login.json()["token"]
        response = self.client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["admin"]["email"], "admin@example.com")

    def test_invalid_token_is_401_and_wrong_role_is_403(self):
        response = self.client.get("/api/auth/verify", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid or expired token")

        token = create_jwt({"sub": "1", "role": "viewer"}, settings.JWT_SECRET, parse_ttl("5m"))
        response = self.client.get("/api/faqs", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["message"], "Insufficient permissions")

    def test_parse_ttl_units(self):
        self.assertEqual(parse_ttl("7d").days, 7)
        self.assertEqual(parse_ttl("12h").total_seconds(), 12 * 3600)
        self.assertEqual(parse_ttl("90").total_seconds(), 90)
        with self.assertRaises(ValueError):
            parse_ttl("forever")


class BootstrapSettingsTests(unittest.TestCase):
    def _settings(self, **overrides):
        values = {"DATABASE_URL": "sqlite+pysqlite:///:memory:", "JWT_SECRET": "test-secret"}
        values.update(overrides)
        with mock.patch.dict(os.environ, {}):
            os.environ.pop("ADMIN_BOOTSTRAP_ENABLED", None)
            os.environ.pop("APP_ENV", None)
            return Settings(_env_file=None, **values)

    def test_bootstrap_enabled_by_default_only_for_local(self):
        self.assertTrue(self._settings().ADMIN_BOOTSTRAP_ENABLED)
        self.assertFalse(self._settings(APP_ENV="production").ADMIN_BOOTSTRAP_ENABLED)

    def test_explicit_flag_wins(self):
        self.assertTrue(self._settings(APP_ENV="production", ADMIN_BOOTSTRAP_ENABLED=True).ADMIN_BOOTSTRAP_ENABLED)
        self.assertFalse(self._settings(ADMIN_BOOTSTRAP_ENABLED=False).ADMIN_BOOTSTRAP_ENABLED)


if __name__ == "__main__":
    unittest.main()
