from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_configure() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))
    tests_path = root / "tests"
    if str(tests_path) not in sys.path:
        sys.path.insert(0, str(tests_path))


@pytest.fixture
def cursor():
    from db import get_conn, create_tables, create_indexes

    conn, cur = get_conn(":memory:")
    create_tables(cur)
    create_indexes(cur)
    conn.commit()
    yield cur
    conn.close()


@pytest.fixture
def db_path(tmp_path):
    from db import get_conn, create_tables, create_indexes

    path = str(tmp_path / "club.db")
    conn, cur = get_conn(path)
    create_tables(cur)
    create_indexes(cur)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def session():
    from fakes import FakeSession

    return FakeSession()
