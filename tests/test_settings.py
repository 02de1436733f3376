from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from firepath.settings import SettingsError, load_settings


class LoadSettingsTest(unittest.TestCase):
    def test_defaults_without_env(self) -> None:
        settings = load_settings(env={}, dotenv_path="does-not-exist.env")

        self.assertEqual(settings.app_env, "development")
        self.assertEqual(settings.firestore_project_id, "")
        self.assertEqual(settings.firestore_database, "")
        self.assertEqual(settings.batch_limit, 500)
        self.assertEqual(settings.batch_size, 500)
        self.assertEqual(settings.log_level, "INFO")

    def test_env_override(self) -> None:
        settings = load_settings(
            env={
                "APP_ENV": "production",
                "FIRESTORE_PROJECT_ID": "demo-project",
                "FIRESTORE_DATABASE": "secondary",
                "FIRESTORE_BATCH_LIMIT": "400",
                "FIRESTORE_BATCH_SIZE": "100",
                "LOG_LEVEL": "debug",
            },
            dotenv_path="does-not-exist.env",
        )

        self.assertEqual(settings.app_env, "production")
        self.assertEqual(settings.firestore_project_id, "demo-project")
        self.assertEqual(settings.firestore_database, "secondary")
        self.assertEqual(settings.batch_limit, 400)
        self.assertEqual(settings.batch_size, 100)
        self.assertEqual(settings.log_level, "DEBUG")

    def test_batch_size_defaults_to_limit(self) -> None:
        settings = load_settings(env={"FIRESTORE_BATCH_LIMIT": "250"}, dotenv_path="does-not-exist.env")

        self.assertEqual(settings.batch_size, 250)

    def test_dotenv_loaded_when_env_missing(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            dotenv = Path(tmpdir) / ".env"
            dotenv.write_text(
                "# local\nFIRESTORE_PROJECT_ID='from-dotenv'\nFIRESTORE_BATCH_SIZE=50\n",
                encoding="utf-8",
            )

            settings = load_settings(env={}, dotenv_path=dotenv)

        self.assertEqual(settings.firestore_project_id, "from-dotenv")
        self.assertEqual(settings.batch_size, 50)
        self.assertEqual(settings.batch_limit, 500)

    def test_env_has_priority_over_dotenv(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            dotenv = Path(tmpdir) / ".env"
            dotenv.write_text("FIRESTORE_BATCH_SIZE=50\n", encoding="utf-8")

            settings = load_settings(env={"FIRESTORE_BATCH_SIZE": "80"}, dotenv_path=dotenv)

        self.assertEqual(settings.batch_size, 80)

    def test_invalid_integer_raises(self) -> None:
        with self.assertRaises(SettingsError):
            load_settings(env={"FIRESTORE_BATCH_LIMIT": "abc"}, dotenv_path="does-not-exist.env")

    def test_non_positive_batch_size_raises(self) -> None:
        with self.assertRaises(SettingsError):
            load_settings(env={"FIRESTORE_BATCH_SIZE": "0"}, dotenv_path="does-not-exist.env")

    def test_batch_size_above_limit_raises(self) -> None:
        with self.assertRaises(SettingsError):
            load_settings(
                env={"FIRESTORE_BATCH_LIMIT": "500", "FIRESTORE_BATCH_SIZE": "501"},
                dotenv_path="does-not-exist.env",
            )

    def test_invalid_log_level_raises(self) -> None:
        with self.assertRaises(SettingsError):
            load_settings(env={"LOG_LEVEL": "chatty"}, dotenv_path="does-not-exist.env")


if __name__ == "__main__":
    unittest.main()
