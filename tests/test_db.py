"""Tests for database URL handling."""
import pytest

from eventreg.db import ensure_async_driver, ensure_sync_driver


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("postgresql+asyncpg://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_async_driver(url, expected):
    assert ensure_async_driver(url) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql+asyncpg://u:p@db:5432/app", "postgresql+psycopg2://u:p@db:5432/app"),
        ("postgresql://u:p@db:5432/app", "postgresql+psycopg2://u:p@db:5432/app"),
        ("sqlite+aiosqlite:///events.db", "sqlite:///events.db"),
        ("mysql+aiomysql://u:p@db/app", "mysql+aiomysql://u:p@db/app"),
    ],
)
def test_sync_driver_for_migrations(url, expected):
    assert ensure_sync_driver(url) == expected
