"""Tests for checkpoint saver selection and setup."""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import psycopg
import pytest
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.checkpoint.sqlite.aio import AsyncSqliteSaver

from deep_report.configuration import Settings
from deep_report.integrations.checkpoint import (
    UNAVAILABLE_MESSAGE,
    CheckpointStoreError,
    CheckpointStoreUnavailableError,
    mask_connection_string,
    open_checkpointer,
    setup_checkpointer,
)


class TestSetupCheckpointer:
    def test_saver_without_setup_is_left_alone(self):
        asyncio.run(setup_checkpointer(InMemorySaver()))

    def test_awaits_async_setup(self):
        checkpointer = MagicMock()
        checkpointer.setup = AsyncMock()

        asyncio.run(setup_checkpointer(checkpointer))

        checkpointer.setup.assert_awaited_once()

    def test_refused_connection_is_unavailable(self):
        checkpointer = MagicMock()
        checkpointer.setup = AsyncMock(side_effect=psycopg.OperationalError("connection refused"))

        with pytest.raises(CheckpointStoreUnavailableError, match="try again later"):
            asyncio.run(setup_checkpointer(checkpointer))

    def test_schema_failure_is_store_error(self):
        checkpointer = MagicMock()
        checkpointer.setup = AsyncMock(side_effect=sqlite3.OperationalError("database is locked"))

        with pytest.raises(CheckpointStoreError) as exc_info:
            asyncio.run(setup_checkpointer(checkpointer))

        assert not isinstance(exc_info.value, CheckpointStoreUnavailableError)


class TestOpenCheckpointer:
    def test_sqlite_without_postgres_url(self, tmp_path):
        path = tmp_path / "nested" / "checkpoints.sqlite"

        async def open_saver():
            async with open_checkpointer(Settings(sqlite_path=str(path))) as checkpointer:
                return type(checkpointer)

        assert asyncio.run(open_saver()) is AsyncSqliteSaver
        assert path.exists()

    def test_postgres_with_url(self):
        saver = MagicMock()
        saver.setup = AsyncMock()

        @asynccontextmanager
        async def from_conn_string(url):
            yield saver

        async def open_saver():
            async with open_checkpointer(Settings(postgres_url="postgresql://u:p@db/reports")) as checkpointer:
                return checkpointer

        with patch("deep_report.integrations.checkpoint.AsyncPostgresSaver") as postgres_saver:
            postgres_saver.from_conn_string.side_effect = from_conn_string
            assert asyncio.run(open_saver()) is saver

        postgres_saver.from_conn_string.assert_called_once_with("postgresql://u:p@db/reports")
        saver.setup.assert_awaited_once()

    def test_unreachable_postgres(self):
        async def open_saver():
            async with open_checkpointer(Settings(postgres_url="postgresql://u:p@db/reports")):
                pass

        with patch("deep_report.integrations.checkpoint.AsyncPostgresSaver") as postgres_saver:
            postgres_saver.from_conn_string.side_effect = psycopg.OperationalError("connection refused")
            with pytest.raises(CheckpointStoreUnavailableError) as exc_info:
                asyncio.run(open_saver())

        assert str(exc_info.value) == UNAVAILABLE_MESSAGE


@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgresql://user:secret@db:5432/reports", "postgresql://user:***@db:5432/reports"),
        ("postgresql://db/reports", "postgresql://db/reports"),
        ("dbname=reports", "dbname=reports"),
    ],
)
def test_mask_connection_string(url, expected):
    assert mask_connection_string(url) == expected
