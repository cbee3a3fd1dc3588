import os
import unittest
import sys
from pathlib import Path
from unittest import mock

# Ensure src/ is importable
SYS_PATH_ADDED = str(Path(__file__).resolve().parents[1] / "src")
if SYS_PATH_ADDED not in sys.path:
    sys.path.insert(0, SYS_PATH_ADDED)

from ruter_departures.config import ENTUR_URL, load_settings  # noqa: E402
from ruter_departures.defaults import normalize_defaults  # noqa: E402
from ruter_departures.http import create_session  # noqa: E402
from ruter_departures.settings_store import SqlSettingsStore  # noqa: E402


class SqlSettingsStoreTests(unittest.TestCase):
    def setUp(self):
        self.db_path = Path(__file__).parent / "tmp_rovodev_settings.db"
        self.db_url = f"sqlite:///{self.db_path}"

    def tearDown(self):
        if self.db_path.exists():
            self.db_path.unlink()

    def test_set_and_get(self):
        store = SqlSettingsStore(self.db_url)
        self.assertIsNone(store.get("defaultStopId"))
        self.assertEqual(store.get("defaultStopId", "x"), "x")
        store.set("defaultStopId", "NSR:StopPlace:58366")
        store.set("defaultLines", ["12", "31"])
        store.set("defaultLines", ["31"])

        reopened = SqlSettingsStore(self.db_url)
        self.assertEqual(reopened.get("defaultStopId"), "NSR:StopPlace:58366")
        self.assertEqual(reopened.get("defaultLines"), ["31"])

    def test_normalize_persists(self):
        normalize_defaults(SqlSettingsStore(self.db_url))
        store = SqlSettingsStore(self.db_url)
        self.assertEqual(store.get("defaultMaxResults"), 50)
        self.assertEqual(store.get("defaultLines"), [])
        self.assertFalse(normalize_defaults(store))


class ConfigTests(unittest.TestCase):
    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings()
        self.assertEqual(settings.entur_url, ENTUR_URL)
        self.assertEqual(settings.client_name, "com.haleyproductions.ruter")
        self.assertEqual(settings.request_timeout_seconds, 20)

    def test_yaml_and_env(self):
        cfg = Path(__file__).parent / "tmp_rovodev_config.yaml"
        cfg.write_text("log_level: debug\nrequest_timeout_seconds: 5\n", encoding="utf-8")
        try:
            env = {"RUTER_CLIENT_NAME": "acme-board", "RUTER_REQUEST_TIMEOUT_SECONDS": "9"}
            with mock.patch.dict(os.environ, env, clear=True):
                settings = load_settings(cfg)
        finally:
            cfg.unlink()
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.client_name, "acme-board")
        self.assertEqual(settings.request_timeout_seconds, 9)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_settings(Path(__file__).parent / "does_not_exist.yaml")

    def test_session_headers(self):
        sess = create_session("acme-board")
        self.assertEqual(sess.headers["ET-Client-Name"], "acme-board")
        self.assertIn("acme-board", sess.headers["User-Agent"])

    def test_session_does_not_retry(self):
        retry = create_session().get_adapter("https://api.entur.io").max_retries
        self.assertEqual(retry.total, 0)
        self.assertIn("POST", retry.allowed_methods)


if __name__ == "__main__":
    unittest.main()
