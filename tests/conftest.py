"""
tests/conftest.py
"""
from __future__ import annotations

import itertools
from pathlib import Path
from typing import Callable, Generator

import pytest
from flask.testing import FlaskClient

# The single-file app lives here:
from iorinav.nav import app, get_db, init_db, schema_guard  # noqa: WPS433

CSRF = "test-token"

_clock = itertools.count()


@pytest.fixture(autouse=True)
def _fresh_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Every test gets its own empty database and a schema guard that has not
    run yet.  Env-driven settings are pinned to their defaults.
    """
    monkeypatch.setitem(app.config, "TESTING", True)
    monkeypatch.setitem(app.config, "DATABASE", str(tmp_path / "test.sqlite3"))
    monkeypatch.setitem(app.config, "SESSION_COOKIE_SECURE", False)
    monkeypatch.setitem(app.config, "ICON_API", "")
    monkeypatch.setitem(app.config, "DISPLAY_CATEGORY", "")
    monkeypatch.setitem(app.config, "ENABLE_PUBLIC_SUBMISSION", "false")
    with app.app_context():
        init_db()
    schema_guard.reset()


@pytest.fixture
def client() -> Generator[FlaskClient, None, None]:
    """
    Gives each test an isolated application context *and* test client.

    Yields:
        `flask.testing.FlaskClient`
    """
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture
def admin(client: FlaskClient) -> FlaskClient:
    """The same client, with an admin session and a known CSRF token."""
    with client.session_transaction() as s:
        s["logged_in"] = True
        s["csrf"] = CSRF
    return client


@pytest.fixture
def make_category(client) -> Callable[..., int]:
    def _make(name: str, *, sort_order=9999, is_private=0) -> int:
        db = get_db()
        cur = db.execute(
            "INSERT INTO category (catelog, sort_order, is_private) VALUES (?,?,?)",
            (name, sort_order, is_private),
        )
        db.commit()
        return cur.lastrowid

    return _make


@pytest.fixture
def make_site(client) -> Callable[..., int]:
    """
    Insert a site row.  ``create_time`` ticks forward one second per call
    so later sites are "newer" unless a test says otherwise.
    """

    def _make(
        name: str,
        url: str,
        catelog_id: int,
        *,
        sort_order=9999,
        is_private=0,
        desc=None,
        logo=None,
        create_time: str | None = None,
    ) -> int:
        db = get_db()
        if create_time is None:
            n = next(_clock)
            create_time = f"2024-01-01 {n // 3600 % 24:02d}:{n // 60 % 60:02d}:{n % 60:02d}"
        cat = db.execute(
            "SELECT catelog FROM category WHERE id=?", (catelog_id,)
        ).fetchone()
        cur = db.execute(
            """
            INSERT INTO sites (name, url, logo, "desc", catelog_id, catelog_name,
                               sort_order, is_private, create_time)
            VALUES (?,?,?,?,?,?,?,?,?)
            """,
            (
                name,
                url,
                logo,
                desc,
                catelog_id,
                cat["catelog"] if cat else None,
                sort_order,
                is_private,
                create_time,
            ),
        )
        db.commit()
        return cur.lastrowid

    return _make
