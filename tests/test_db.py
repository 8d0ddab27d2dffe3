"""Tests for pharmacy_finder.db (pool lifecycle and query helpers, no live Postgres)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from pharmacy_finder import db


@pytest.fixture()
def fake_pool():
    conn = MagicMock()
    pool = MagicMock()
    pool.getconn.return_value = conn
    with patch.object(db, "_pool", pool):
        yield pool, conn


class TestInitPool:
    def test_unreachable_database_means_json_mode(self, caplog):
        with patch.object(
            db.pool, "ThreadedConnectionPool", side_effect=psycopg2.OperationalError("refused")
        ):
            assert db.init_pool() is False
        assert db.is_available() is False
        assert "serving JSON snapshots" in caplog.text

    def test_missing_table_closes_pool(self):
        created = MagicMock()
        with (
            patch.object(db.pool, "ThreadedConnectionPool", return_value=created),
            patch.object(db, "scalar", side_effect=psycopg2.ProgrammingError("no table")),
        ):
            assert db.init_pool() is False
        created.closeall.assert_called_once()
        assert db.is_available() is False

    def test_success(self):
        created = MagicMock()
        with (
            patch.object(db.pool, "ThreadedConnectionPool", return_value=created),
            patch.object(db, "scalar", return_value=3),
        ):
            assert db.init_pool() is True
            assert db.is_available() is True
            db.close_pool()
        assert db.is_available() is False

    def test_dsn_takes_precedence(self):
        with patch.object(db, "DATABASE_URL", "postgresql://u@h/db"):
            assert db._connect_kwargs() == {"dsn": "postgresql://u@h/db"}
        with patch.object(db, "DATABASE_URL", None):
            assert db._connect_kwargs()["dbname"] == db.DB_CONFIG["dbname"]


class TestGetConn:
    def test_without_pool(self):
        with patch.object(db, "_pool", None):
            with pytest.raises(RuntimeError):
                with db.get_conn():
                    pass

    def test_commits_on_success(self, fake_pool):
        pool, conn = fake_pool
        with db.get_conn() as c:
            assert c is conn
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_rolls_back_and_returns_connection_on_error(self, fake_pool):
        pool, conn = fake_pool
        with pytest.raises(ValueError):
            with db.get_conn():
                raise ValueError("bad row")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn)


class TestHelpers:
    def test_scalar(self, fake_pool):
        _, conn = fake_pool
        cur = conn.cursor.return_value.__enter__.return_value
        cur.fetchone.return_value = (7,)
        assert db.scalar("SELECT count(*) FROM pharmacies") == 7

    def test_fetch_one_none(self, fake_pool):
        _, conn = fake_pool
        cur = conn.cursor.return_value.__enter__.return_value
        cur.fetchone.return_value = None
        assert db.fetch_one("SELECT 1 WHERE false") is None

    def test_insert_row_wraps_dicts_as_json(self, fake_pool):
        _, conn = fake_pool
        cur = conn.cursor.return_value.__enter__.return_value
        db.insert_row("user_analytics_events", {"event_type": "search", "event_data": {"k": 1}})
        sql, values = cur.execute.call_args.args
        assert sql == "INSERT INTO user_analytics_events (event_type, event_data) VALUES (%s, %s)"
        assert values[0] == "search"
        assert isinstance(values[1], db.extras.Json)

    def test_insert_row_returning(self):
        with patch.object(db, "fetch_one", return_value={"id": 1}) as fetch_one:
            assert db.insert_row("appointments", {"status": "pending"}, returning=True) == {"id": 1}
        assert fetch_one.call_args.args[0].endswith("RETURNING *")
