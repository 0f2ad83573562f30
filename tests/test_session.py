from unittest import TestCase
from unittest.mock import patch

import psycopg2

from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from qalam.db.session import Database

_real_connect = Engine.connect


def _flaky_connect(failures):
    calls = {"count": 0}

    def connect(engine):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        return _real_connect(engine)

    return connect


class DatabaseConnectTests(TestCase):
    def setUp(self):
        self.database = Database("sqlite://")

    def tearDown(self):
        self.database.dispose()

    @patch("qalam.db.session.time.sleep")
    def test_retries_with_backoff(self, sleep):
        with patch.object(Engine, "connect", autospec=True, side_effect=_flaky_connect(2)):
            self.database.connect(retries=3, backoff=0.5)

        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.5, 1.0])

    @patch("qalam.db.session.time.sleep")
    def test_gives_up_after_retries(self, sleep):
        with patch.object(Engine, "connect", autospec=True, side_effect=_flaky_connect(10)):
            with self.assertRaises(OperationalError):
                self.database.connect(retries=2, backoff=0.1)

        self.assertEqual(sleep.call_count, 2)

    def test_healthy(self):
        self.assertTrue(self.database.is_healthy())

    def test_sqlite_foreign_keys_enabled(self):
        with self.database.engine.connect() as conn:
            self.assertEqual(conn.exec_driver_sql("PRAGMA foreign_keys").scalar(), 1)


class EnsureDatabaseTests(TestCase):
    @patch("qalam.db.session.psycopg2.connect")
    def test_sqlite_is_left_alone(self, connect):
        Database("sqlite://").ensure_database()

        connect.assert_not_called()

    @patch("qalam.db.session.psycopg2.connect")
    def test_creates_postgres_database(self, connect):
        database = Database("postgresql://blog:pw@db.local:5433/qalam")

        database.ensure_database()

        connect.assert_called_once_with(
            dbname="postgres", user="blog", password="pw", host="db.local", port=5433
        )
        connect.return_value.cursor.return_value.execute.assert_called_once()
        database.dispose()

    @patch("qalam.db.session.psycopg2.connect", side_effect=psycopg2.OperationalError("refused"))
    def test_unreachable_server_is_logged(self, connect):
        database = Database("postgresql://blog:pw@db.local/qalam")

        with self.assertLogs("qalam.db.session", level="WARNING"):
            database.ensure_database()
        database.dispose()
