import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from sponsor_api.connection import ConnectionManager, ConnectionState


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class ConnectionManagerTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.clock = FakeClock()

    def tearDown(self):
        self._tmp.cleanup()

    def _manager(self, url, **kwargs):
        kwargs.setdefault("retry_interval", 10)
        kwargs.setdefault("health_check_interval", 30)
        manager = ConnectionManager(url, clock=self.clock, **kwargs)
        self.addCleanup(manager.dispose)
        return manager

    def test_no_url_is_disabled_and_never_connects(self):
        initialize = MagicMock()
        manager = self._manager(None, initialize=initialize)
        self.assertEqual(manager.state, ConnectionState.DISABLED)
        self.assertFalse(manager.connect())
        self.assertFalse(manager.ensure_connected())
        self.assertEqual(manager.state, ConnectionState.DISABLED)
        initialize.assert_not_called()

    def test_connects_and_initializes_once(self):
        initialize = MagicMock()
        manager = self._manager("sqlite+pysqlite:///:memory:", initialize=initialize)
        self.assertTrue(manager.ensure_connected())
        self.assertEqual(manager.state, ConnectionState.CONNECTED)
        self.clock.now += 60
        self.assertTrue(manager.ensure_connected())
        initialize.assert_called_once_with(manager.engine)

    def test_unreachable_store_reports_disconnected(self):
        missing_dir = os.path.join(self._tmp.name, "missing")
        manager = self._manager(f"sqlite:///{missing_dir}/sponsors.db")
        self.assertFalse(manager.ensure_connected())
        self.assertEqual(manager.state, ConnectionState.DISCONNECTED)
        with self.assertRaises(RuntimeError):
            manager.engine

    def test_recovers_after_retry_interval(self):
        db_dir = os.path.join(self._tmp.name, "later")
        manager = self._manager(f"sqlite:///{db_dir}/sponsors.db")
        self.assertFalse(manager.ensure_connected())

        os.makedirs(db_dir)
        self.clock.now += 5
        # Still inside the retry window, so no new attempt yet.
        self.assertFalse(manager.ensure_connected())

        self.clock.now += 10
        self.assertTrue(manager.ensure_connected())
        self.assertEqual(manager.state, ConnectionState.CONNECTED)

    def test_missing_driver_reports_disconnected(self):
        manager = self._manager("postgresql+psycopg2://u:p@127.0.0.1:1/db")
        with patch(
            "sponsor_api.connection.create_engine",
            side_effect=ModuleNotFoundError("No module named 'psycopg2'"),
        ):
            with self.assertLogs("sponsor_api.connection", level="WARNING"):
                self.assertFalse(manager.ensure_connected())
        self.assertEqual(manager.state, ConnectionState.DISCONNECTED)

    def test_mark_disconnected_forces_recheck_later(self):
        manager = self._manager("sqlite+pysqlite:///:memory:")
        self.assertTrue(manager.ensure_connected())
        manager.mark_disconnected(RuntimeError("boom"))
        self.assertFalse(manager.is_connected)
        self.assertFalse(manager.ensure_connected())
        self.clock.now += 11
        self.assertTrue(manager.ensure_connected())

    def test_failed_initialize_counts_as_disconnected(self):
        from sqlalchemy.exc import OperationalError

        initialize = MagicMock(side_effect=OperationalError("create", {}, Exception("nope")))
        manager = self._manager("sqlite+pysqlite:///:memory:", initialize=initialize)
        self.assertFalse(manager.connect())
        self.assertEqual(manager.state, ConnectionState.DISCONNECTED)


if __name__ == "__main__":
    unittest.main()
