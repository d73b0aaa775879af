"""
tests/test_homepage.py
"""
from __future__ import annotations

import re

import pytest
import requests

import iorinav.nav as nav
from iorinav.nav import app, get_db


def _html(rv) -> str:
    assert rv.status_code == 200
    return rv.get_data(as_text=True)


def _catalog_order(html: str) -> list[str]:
    """Catalog names in sidebar order, read from the submission datalist."""
    block = html.split('<datalist id="catalogList">', 1)[1].split("</datalist>", 1)[0]
    return re.findall(r'<option value="([^"]*)">', block)


def _heading(html: str) -> str:
    return re.search(r'<h2 id="sitesHeading"[^>]*>([^<]*)</h2>', html).group(1)


def _set(**settings):
    db = get_db()
    db.executemany(
        "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
        settings.items(),
    )
    db.commit()


@pytest.fixture
def seeded(make_category, make_site):
    tools = make_category("Tools", sort_order=2)
    news = make_category("News", sort_order=1)
    misc = make_category("Misc")
    make_site("Hammer", "https://hammer.example/", tools, sort_order=5,
              desc="hits things")
    make_site("Paper", "https://paper.example/", news, sort_order=1)
    make_site("Junk", "https://junk.example/", misc, sort_order=0)
    make_site("Vault", "https://vault.example/", tools, is_private=1)
    return {"tools": tools, "news": news, "misc": misc}


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status
        self.ok = status < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


# ───────────────────────── catalogs ────────────────────────────────────
def test_categories_follow_declared_order(client, seeded):
    html = _html(client.get("/"))
    # declared order wins over the sites' own sort_order
    assert _catalog_order(html) == ["News", "Tools", "Misc"]


def test_no_catalog_shows_everything(client, seeded):
    html = _html(client.get("/"))
    assert _heading(html) == "全部收藏 · 3 个网站"
    for name in ("Hammer", "Paper", "Junk"):
        assert name in html
    assert "Vault" not in html


def test_admin_sees_private_sites(admin, seeded):
    html = _html(admin.get("/"))
    assert "Vault" in html
    assert _heading(html) == "全部收藏 · 4 个网站"


def test_catalog_filter(client, seeded):
    html = _html(client.get("/?catalog=News"))
    assert _heading(html) == "News · 1 个网站"
    assert "Paper" in html
    assert "Hammer" not in html


def test_unknown_catalog_falls_back_to_all(client, seeded):
    html = _html(client.get("/?catalog=Nope"))
    assert _heading(html) == "全部收藏 · 3 个网站"
    assert 'data-catalog-exists="false"' in html


def test_display_category_default(client, seeded, monkeypatch):
    monkeypatch.setitem(app.config, "DISPLAY_CATEGORY", "Tools")
    html = _html(client.get("/"))
    assert _heading(html) == "Tools · 1 个网站"

    # "all" (any case) always wins over the default
    html = _html(client.get("/?catalog=ALL"))
    assert _heading(html) == "全部收藏 · 3 个网站"


def test_display_category_ignored_when_missing(client, seeded, monkeypatch):
    monkeypatch.setitem(app.config, "DISPLAY_CATEGORY", "Ghost")
    assert _heading(_html(client.get("/"))) == "全部收藏 · 3 个网站"


def test_blank_category_name_becomes_uncategorized(client, make_category, make_site):
    cid = make_category("   ")
    make_site("Lonely", "https://lonely.example/", cid)
    html = _html(client.get("/?catalog=未分类"))
    assert _heading(html) == "未分类 · 1 个网站"


# ───────────────────────── cards ───────────────────────────────────────
def test_card_escapes_and_sanitizes(client, make_category, make_site):
    cid = make_category("Tools")
    make_site("<b>Bold</b>", "javascript:alert(1)", cid, desc='say "hi"')
    html = _html(client.get("/"))
    assert "<b>Bold</b>" not in html
    assert "&lt;b&gt;Bold&lt;/b&gt;" in html
    assert 'href="javascript:' not in html
    assert 'href="#"' in html
    assert "say &#34;hi&#34;" in html


def test_card_defaults(client, make_category, make_site):
    cid = make_category("Tools")
    make_site("plain", "https://plain.example", cid)
    html = _html(client.get("/"))
    assert 'href="https://plain.example/"' in html
    assert "暂无描述" in html
    # no logo → first letter, upper-cased
    assert ">P</div>" in html


def test_submission_button_hidden_by_default(client, seeded, monkeypatch):
    assert 'id="addSiteBtn" class="hidden ' in _html(client.get("/"))
    monkeypatch.setitem(app.config, "ENABLE_PUBLIC_SUBMISSION", "true")
    assert 'id="addSiteBtn" class=" ' in _html(client.get("/"))


# ───────────────────────── layout settings ─────────────────────────────
def test_default_layout_is_vertical(client, seeded):
    html = _html(client.get("/"))
    assert '<main class="lg:ml-64 ' in html
    assert nav.GRID_CLASS_DEFAULT in html
    assert "hits things" in html
    assert "复制" in html


def test_horizontal_layout(client, seeded):
    _set(layout_menu_layout="horizontal")
    html = _html(client.get("/"))
    assert 'id="horizontalCategoryNav"' in html
    assert "min-[550px]:hidden" in html
    assert '<main class=" ' in html


def test_hide_flags_and_five_columns(client, seeded):
    _set(layout_hide_desc="true", layout_hide_links="true", layout_grid_cols="5")
    html = _html(client.get("/"))
    assert "hits things" not in html
    assert 'class="copy-btn' not in html
    assert nav.GRID_CLASS_FIVE in html


def test_five_columns_hide_copy_label(client, seeded):
    _set(layout_grid_cols="5")
    html = _html(client.get("/"))
    assert 'class="copy-btn' in html
    assert '<span class="copy-text">' not in html


def test_hide_title_and_subtitle(client, seeded):
    _set(layout_hide_title="true", layout_hide_subtitle="true")
    html = _html(client.get("/"))
    assert "<h1" not in html


def test_custom_wallpaper_and_blur(client, seeded):
    _set(
        layout_custom_wallpaper="https://img.example/bg.jpg",
        layout_enable_bg_blur="true",
        layout_bg_blur_intensity="8",
    )
    html = _html(client.get("/"))
    assert "background-image: url('https://img.example/bg.jpg')" in html
    assert "filter: blur(8px);" in html
    assert "bg-white/80 backdrop-blur-sm border-b" in html
    assert 'class="bg-secondary-50 font-sans text-gray-800 relative"' in html


def test_unsafe_wallpaper_is_dropped(client, seeded):
    _set(layout_custom_wallpaper="javascript:alert(1)")
    html = _html(client.get("/"))
    assert "background-image" not in html


def test_frosted_glass(client, seeded):
    _set(layout_enable_frosted_glass="true", layout_frosted_glass_intensity="22")
    html = _html(client.get("/"))
    assert ":root { --frosted-glass-blur: 22px; }" in html
    assert "frosted-glass-effect" in html.split('id="sitesGrid"', 1)[1]


def test_frosted_glass_rejects_garbage_intensity(client, seeded):
    _set(layout_enable_frosted_glass="true", layout_frosted_glass_intensity="1px;}x{")
    html = _html(client.get("/"))
    assert ":root { --frosted-glass-blur: 15px; }" in html


# ───────────────────────── random wallpaper ────────────────────────────
def test_random_wallpaper_rotates(client, seeded, monkeypatch):
    _set(layout_random_wallpaper="true", bing_country="jp")
    feed = [
        {"fullUrl": "https://img.example/0.jpg"},
        {"url": "https://img.example/1.jpg"},
        {"fullUrl": "https://img.example/2.jpg"},
    ]
    seen = []

    def fake_get(url, **kw):
        seen.append(url)
        return _FakeResponse(feed)

    monkeypatch.setattr(nav.requests, "get", fake_get)

    client.set_cookie(nav.WALLPAPER_COOKIE, "0")
    rv = client.get("/")
    html = _html(rv)
    assert seen == ["https://peapix.com/bing/feed?n=7&country=jp"]
    assert "https://img.example/1.jpg" in html
    assert "wallpaper_index=1" in rv.headers["Set-Cookie"]
    assert "Max-Age=31536000" in rv.headers["Set-Cookie"]

    client.set_cookie(nav.WALLPAPER_COOKIE, "2")
    rv = client.get("/")
    assert "https://img.example/0.jpg" in _html(rv)
    assert "wallpaper_index=0" in rv.headers["Set-Cookie"]


def test_random_wallpaper_spotlight_feed(client, seeded, monkeypatch):
    _set(layout_random_wallpaper="true", bing_country="spotlight")
    seen = []
    monkeypatch.setattr(
        nav.requests, "get", lambda url, **kw: seen.append(url) or _FakeResponse([])
    )
    rv = client.get("/")
    assert seen == ["https://peapix.com/spotlight/feed?n=7"]
    assert "wallpaper_index=0" in rv.headers["Set-Cookie"]


@pytest.mark.parametrize(
    "behaviour",
    [
        requests.ConnectionError("down"),
        _FakeResponse([], status=503),
        _FakeResponse(ValueError("bad json")),
        _FakeResponse({"not": "a list"}),
    ],
)
def test_random_wallpaper_failure_keeps_page(client, seeded, monkeypatch, behaviour):
    _set(
        layout_random_wallpaper="true",
        layout_custom_wallpaper="https://img.example/fixed.jpg",
    )

    def fake_get(url, **kw):
        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour

    monkeypatch.setattr(nav.requests, "get", fake_get)
    client.set_cookie(nav.WALLPAPER_COOKIE, "4")
    rv = client.get("/")
    html = _html(rv)
    assert "https://img.example/fixed.jpg" in html
    assert "wallpaper_index=0" in rv.headers["Set-Cookie"]


def test_no_cookie_without_random_wallpaper(client, seeded):
    rv = client.get("/")
    assert nav.WALLPAPER_COOKIE not in rv.headers.get("Set-Cookie", "")


def test_database_failure_is_plain_500(client):
    get_db().execute("DROP TABLE sites")
    rv = client.get("/")
    assert rv.status_code == 500
    assert rv.mimetype == "text/plain"
    assert rv.get_data(as_text=True).startswith("Failed to fetch data:")


def test_category_order_failure_is_plain_500(client, seeded):
    db = get_db()
    db.execute("PRAGMA foreign_keys = OFF")
    rows = db.execute("SELECT id, catelog, is_private FROM category").fetchall()
    db.execute("DROP TABLE category")
    # still joinable, but without the sort_order column
    db.execute("CREATE TABLE category (id INTEGER PRIMARY KEY, catelog TEXT, is_private INTEGER)")
    db.executemany("INSERT INTO category VALUES (?, ?, ?)", [tuple(r) for r in rows])
    db.commit()

    rv = client.get("/")
    assert rv.status_code == 500
    assert rv.mimetype == "text/plain"
    assert rv.get_data(as_text=True).startswith("Failed to fetch category orders:")


def test_settings_failure_falls_back_to_defaults(client, seeded, caplog):
    get_db().execute("DROP TABLE settings")
    html = _html(client.get("/"))
    assert '<main class="lg:ml-64 ' in html
    assert nav.GRID_CLASS_DEFAULT in html
    assert "background-image" not in html
    assert "layout settings unavailable" in caplog.text
