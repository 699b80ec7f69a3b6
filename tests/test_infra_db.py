"""Tests for database layer (no real DB needed)."""

import os
from unittest.mock import MagicMock, patch

import pytest

from relay8x8.infra.db import get_conn, txn


class TestGetConn:
    def test_missing_database_url_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()

    def test_connects_with_database_url(self):
        env = {"DATABASE_URL": "postgres://u:p@h/db"}
        with patch.dict(os.environ, env, clear=True), \
             patch("relay8x8.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db")


class TestTxn:
    def test_commits_on_success(self):
        conn = MagicMock()

        with txn(conn) as cur:
            cur.execute("SELECT 1")

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_not_called()

    def test_rolls_back_on_error(self):
        conn = MagicMock()

        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_owned_connection_is_closed(self):
        conn = MagicMock()
        with patch("relay8x8.infra.db.get_conn", return_value=conn):
            with txn():
                pass

        conn.close.assert_called_once()
