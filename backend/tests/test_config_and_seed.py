from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from naijaauto import create_app
from naijaauto.config import Settings
from naijaauto.store.memory import InMemoryRepository
from naijaauto.store.seed import seed_marketplace


class SettingsFromEnvTestCase(unittest.TestCase):
    def test_defaults_for_local_development(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()
        self.assertEqual(settings.env, "dev")
        self.assertFalse(settings.is_production)
        self.assertTrue(settings.seed_on_startup)
        self.assertEqual(settings.store_backend, "sql")
        self.assertEqual(settings.otp_ttl_minutes, 10)

    def test_environment_overrides_and_bounds(self):
        env = {
            "NAIJAAUTO_ENV": "Production",
            "SECRET_KEY": "a-very-long-production-secret",
            "DATABASE_URL": "postgresql://naija:pw@db/naijaauto",
            "APP_URL": "https://naijaauto.app/",
            "OTP_MAX_ATTEMPTS": "500",
            "OTP_TTL_MINUTES": "abc",
            "EMAIL_QUEUE_ENABLED": "yes",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        self.assertTrue(settings.is_production)
        self.assertFalse(settings.seed_on_startup)
        self.assertEqual(settings.app_url, "https://naijaauto.app")
        self.assertEqual(settings.otp_max_attempts, 20)
        self.assertEqual(settings.otp_ttl_minutes, 10)
        self.assertTrue(settings.email_queue_enabled)
        settings.validate_for_production()

    def test_production_refuses_weak_configuration(self):
        with self.assertRaises(RuntimeError):
            Settings(env="production").validate_for_production()
        with self.assertRaises(RuntimeError):
            Settings(env="prod", secret_key="s" * 32).validate_for_production()
        Settings(env="prod", secret_key="s" * 32, store_backend="memory").validate_for_production()
        with self.assertRaises(RuntimeError):
            create_app(settings=Settings(env="production", store_backend="memory"))


class SeedTestCase(unittest.TestCase):
    def test_seed_runs_once_and_preserves_admin_edits(self):
        repo = InMemoryRepository()
        self.assertEqual(seed_marketplace(repo), {"locations_added": 15, "packages_added": 3})
        repo.update_featured_package("feature_7_days", {"amount_ngn": 30000})
        self.assertEqual(seed_marketplace(repo), {"locations_added": 0, "packages_added": 0})
        self.assertEqual(repo.get_featured_package_by_code("feature_7_days").amount_ngn, 30000)

    def test_cli_seed_command(self):
        app = create_app(settings=Settings(store_backend="memory", database_url="sqlite:///:memory:", seed_on_startup=False))
        runner = app.test_cli_runner()
        first = runner.invoke(args=["seed"])
        self.assertEqual(first.exit_code, 0)
        self.assertIn("seed_ok locations_added=15 packages_added=3", first.output)
        second = runner.invoke(args=["seed"])
        self.assertIn("seed_ok locations_added=0 packages_added=0", second.output)


if __name__ == "__main__":
    unittest.main()
