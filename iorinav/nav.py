#!/usr/bin/env python3
"""
A single-file bookmark navigation site.
"""

import math
import os
import re
import secrets
import sqlite3
import unicodedata
from collections import defaultdict, deque
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from time import time
from typing import DefaultDict
from urllib.parse import quote, urlsplit

import click
import requests
from flask import (
    Flask,
    Response,
    abort,
    g,
    redirect,
    render_template_string,
    request,
    session,
    url_for,
)
from itsdangerous import BadSignature, SignatureExpired, TimestampSigner
from markupsafe import Markup
from pypinyin import lazy_pinyin
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.security import check_password_hash as verify_token
from werkzeug.security import generate_password_hash as hash_token

################################################################################
# Imports & constants
################################################################################

ROOT = Path(__file__).parent
ENV_FILE = ROOT / ".env"
SECRET_FILE = ROOT / ".secret_key"
SECRET_KEY = (
    SECRET_FILE.read_text().strip() if SECRET_FILE.exists() else secrets.token_hex(32)
)
SECRET_FILE.write_text(SECRET_KEY)
TOKEN_LEN = 48
signer = TimestampSigner(SECRET_KEY, salt="login-token")


def _read_env_file() -> dict[str, str]:
    env = {}
    if not ENV_FILE.exists():
        return env
    for ln in ENV_FILE.read_text().splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#") or "=" not in ln:
            continue
        k, v = ln.split("=", 1)
        env[k.strip()] = v.strip()
    return env


_ENV_FROM_FILE = _read_env_file()


def env_value(key: str, default: str = "") -> str:
    """Process env wins over the .env file; blank values count as unset."""
    return (os.environ.get(key) or _ENV_FROM_FILE.get(key) or default).strip()


DB_FILE = Path(env_value("NAV_DATABASE", str(ROOT / "nav.sqlite3")))

SORT_FALLBACK = 9999
FETCH_ALL_THRESHOLD = 1000  # pageSize at/above this means "give me everything"
PAGE_SIZE_DEFAULT = 10
SQLITE_INT_MAX = 2**63 - 1
UNCATEGORIZED = "未分类"
UNNAMED = "未命名"
DEFAULT_ICON_API = "https://favicon.im/"
SITE_NAME_DFLT = "灰色轨迹"
SITE_DESCRIPTION_DFLT = (
    "一个优雅、快速、易于部署的书签（网址）收藏与分享平台，完全基于 Cloudflare 全家桶构建"
)
FOOTER_TEXT_DFLT = "曾梦想仗剑走天涯"
PROJECT_URL = "https://slink.661388.xyz/iori-nav"

WALLPAPER_COOKIE = "wallpaper_index"
WALLPAPER_COOKIE_MAX_AGE = 31536000  # one year
WALLPAPER_FEED_SIZE = 7
SPOTLIGHT_FEED = "https://peapix.com/spotlight/feed"
BING_FEED = "https://peapix.com/bing/feed"

# setting key → default; booleans are stored as the strings "true"/"false"
LAYOUT_DEFAULTS = {
    "layout_hide_desc": False,
    "layout_hide_links": False,
    "layout_hide_category": False,
    "layout_hide_title": False,
    "layout_hide_subtitle": False,
    "layout_grid_cols": "4",
    "layout_custom_wallpaper": "",
    "layout_menu_layout": "vertical",
    "layout_random_wallpaper": False,
    "bing_country": "",
    "layout_enable_frosted_glass": False,
    "layout_frosted_glass_intensity": "15",
    "layout_enable_bg_blur": False,
    "layout_bg_blur_intensity": "0",
}

GRID_CLASS_DEFAULT = "grid grid-cols-2 md:grid-cols-3 lg:grid-cols-4 gap-3 sm:gap-6"
GRID_CLASS_FIVE = (
    "grid grid-cols-2 md:grid-cols-3 lg:grid-cols-4 xl:grid-cols-5 gap-3 sm:gap-6"
)

_HTTP_RE = re.compile(r"^https?://", re.I)
_CSS_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")

TAG_ICON_SVG = """
<svg xmlns="http://www.w3.org/2000/svg" class="h-5 w-5 mr-2 {cls}" fill="none" viewBox="0 0 24 24" stroke="currentColor">
  <path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M7 7h.01M7 3h5c.512 0 1.024.195 1.414.586l7 7a2 2 0 010 2.828l-7 7a2 2 0 01-2.828 0l-7-7A1.994 1.994 0 013 12V7a4 4 0 014-4z" />
</svg>
"""
GITHUB_ICON_SVG = """
<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M15 22v-4a4.8 4.8 0 0 0-1-3.5c3 0 6-2 6-5.5.08-1.25-.27-2.48-1-3.5.28-1.15.28-2.35 0-3.5 0 0-1 0-3 1.5-2.64-.5-5.36-.5-8 0C6 2 5 2 5 2c-.3 1.15-.3 2.35 0 3.5A5.403 5.403 0 0 0 4 9c0 3.5 3 5.5 6 5.5-.39.49-.68 1.05-.85 1.65-.17.6-.22 1.23-.15 1.85v4"></path><path d="M9 18c-4.51 2-5-2-7-2"></path></svg>
"""
ADMIN_ICON_SVG = """
<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" fill="none" stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round"><path d="M12 22s8-4 8-10V5l-8-3-8 3v7c0 6 8 10 8 10z"/><path d="M12 11a3 3 0 1 0 0-6 3 3 0 0 0 0 6z"/><path d="M7 18a5 5 0 0 1 10 0"/></svg>
"""


################################################################################
# App
################################################################################
app = Flask(__name__)
app.url_map.strict_slashes = False
app.config.update(SECRET_KEY=SECRET_KEY, DATABASE=str(DB_FILE))
app.config.update(
    SESSION_COOKIE_SAMESITE="Lax",
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SECURE=True,
    ICON_API=env_value("ICON_API"),
    DISPLAY_CATEGORY=env_value("DISPLAY_CATEGORY"),
    ENABLE_PUBLIC_SUBMISSION=env_value("ENABLE_PUBLIC_SUBMISSION", "false"),
    SITE_NAME=env_value("SITE_NAME", SITE_NAME_DFLT),
    SITE_DESCRIPTION=env_value("SITE_DESCRIPTION", SITE_DESCRIPTION_DFLT),
    FOOTER_TEXT=env_value("FOOTER_TEXT", FOOTER_TEXT_DFLT),
    WALLPAPER_TIMEOUT=float(env_value("WALLPAPER_TIMEOUT", "5")),
)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)


###############################################################################
# Database helpers
###############################################################################
def get_db():
    if "db" not in g:
        g.db = sqlite3.connect(app.config["DATABASE"])
        g.db.execute("PRAGMA foreign_keys = ON;")
        g.db.row_factory = sqlite3.Row
    return g.db


@app.teardown_appcontext
def close_db(error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    db.executescript(
        """
        ------------------------------------------------------------
        -- 1.  Admin account
        ------------------------------------------------------------
        CREATE TABLE IF NOT EXISTS user (
            id          INTEGER PRIMARY KEY,
            username    TEXT UNIQUE NOT NULL,
            token_hash  TEXT NOT NULL
        );

        ------------------------------------------------------------
        -- 2.  Categories
        ------------------------------------------------------------
        CREATE TABLE IF NOT EXISTS category (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            catelog     TEXT UNIQUE NOT NULL,
            is_private  INTEGER NOT NULL DEFAULT 0,
            sort_order  INTEGER NOT NULL DEFAULT 9999,
            create_time TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        ------------------------------------------------------------
        -- 3.  Sites (bookmarks)
        ------------------------------------------------------------
        CREATE TABLE IF NOT EXISTS sites (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            name          TEXT NOT NULL,
            url           TEXT UNIQUE NOT NULL,
            logo          TEXT,
            "desc"        TEXT,
            catelog_id    INTEGER NOT NULL,
            catelog_name  TEXT,
            sort_order    INTEGER NOT NULL DEFAULT 9999,
            is_private    INTEGER NOT NULL DEFAULT 0,
            create_time   TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (catelog_id) REFERENCES category(id)
        );

        CREATE INDEX IF NOT EXISTS idx_sites_catelog_id ON sites(catelog_id);
        CREATE INDEX IF NOT EXISTS idx_sites_sort_order ON sites(sort_order);

        ------------------------------------------------------------
        -- 4.  Site-wide key/value settings
        ------------------------------------------------------------
        CREATE TABLE IF NOT EXISTS settings (
            key   TEXT PRIMARY KEY,
            value TEXT
        );
        """
    )
    db.commit()


def table_columns(db, table: str) -> set[str]:
    return {row["name"] for row in db.execute(f"PRAGMA table_info({table})")}


def migrate_schema(db) -> list[str]:
    """
    Bring an older ``sites`` table up to date.

    Every step is idempotent, so running this twice is merely wasteful.
    Returns the names of the columns that had to be added.
    """
    added = []
    db.execute("CREATE INDEX IF NOT EXISTS idx_sites_catelog_id ON sites(catelog_id)")
    db.execute("CREATE INDEX IF NOT EXISTS idx_sites_sort_order ON sites(sort_order)")

    cols = table_columns(db, "sites")
    if "is_private" not in cols:
        db.execute("ALTER TABLE sites ADD COLUMN is_private INTEGER DEFAULT 0")
        added.append("is_private")
    if "catelog_name" not in cols:
        db.execute("ALTER TABLE sites ADD COLUMN catelog_name TEXT")
        # backfill only on the run that created the column
        db.execute(
            """
            UPDATE sites
               SET catelog_name = (SELECT catelog FROM category
                                    WHERE category.id = sites.catelog_id)
             WHERE catelog_name IS NULL
            """
        )
        added.append("catelog_name")
    db.commit()
    return added


class SchemaGuard:
    """Remembers whether this process has already brought the schema up to date."""

    def __init__(self) -> None:
        self.checked = False

    def ensure(self, db) -> bool:
        if self.checked:
            return True
        try:
            migrate_schema(db)
        except sqlite3.Error:
            db.rollback()
            app.logger.exception("Failed to ensure indexes or columns")
            return False
        self.checked = True
        return True

    def reset(self) -> None:
        self.checked = False


schema_guard = SchemaGuard()


# -------------------------------------------------------------------------
# Time helpers
# -------------------------------------------------------------------------
def utc_now() -> datetime:
    """Return an *aware* datetime in UTC."""
    return datetime.now(timezone.utc)


###############################################################################
# CLI – create admin + token, migrate
###############################################################################
def _create_admin(db, *, username: str) -> str:
    handle = secrets.token_urlsafe(TOKEN_LEN)
    token = signer.sign(handle).decode()
    db.execute(
        "INSERT INTO user (username, token_hash) VALUES (?,?)",
        (username, hash_token(handle)),
    )
    db.commit()
    return token


def _rotate_token(db) -> str:
    """Generate + store a *new* one-time token, return it for display."""
    handle = secrets.token_urlsafe(TOKEN_LEN)
    token = signer.sign(handle).decode()
    db.execute("UPDATE user SET token_hash=? WHERE id=1", (hash_token(handle),))
    db.commit()
    return token


@app.cli.command("init")
@click.option("--username", prompt=True, help="Admin username")
def cli_init(username: str):
    """Initialise DB *and* create the admin account."""
    init_db()
    db = get_db()
    token = _create_admin(db, username=username.strip())

    click.secho("\n✅  Admin created.", fg="green")
    click.echo(f"\nOne-time login token:\n\n{token}\n")
    click.echo("Paste it into the login form at /login within 1 minute.")


@app.cli.command("token")
def cli_token():
    """Rotate the admin’s one-time login token."""
    token = _rotate_token(get_db())

    click.secho("\n🔑  Fresh login token generated.\n", fg="yellow")
    click.echo(f"{token}\n")
    click.echo("Paste it into the login form at /login within 1 minute.")


@app.cli.command("migrate")
def cli_migrate():
    """Add missing indexes/columns to an existing database."""
    added = migrate_schema(get_db())
    schema_guard.checked = True
    app.logger.info("schema migrated, added columns: %s", added or "none")
    if added:
        click.secho(f"✅  Added columns: {', '.join(added)}", fg="green")
    else:
        click.echo("Schema already up to date.")


###############################################################################
# Content helpers
###############################################################################
def normalize_sort_order(value) -> int | float:
    """Any finite number is kept; everything else becomes SORT_FALLBACK."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return SORT_FALLBACK
    try:
        num = float(value)
    except (TypeError, ValueError):
        return SORT_FALLBACK
    if not math.isfinite(num):
        return SORT_FALLBACK
    if num.is_integer() and -SQLITE_INT_MAX - 1 <= num <= SQLITE_INT_MAX:
        return int(num)
    return num


def parse_flag(value) -> int:
    if isinstance(value, str):
        return 1 if value.strip().lower() in {"1", "true", "yes", "on"} else 0
    return 1 if value else 0


def sanitize_url(url: str | None) -> str:
    """
    Return a normalised absolute http(s) URL, or "" for anything else
    (javascript:, data:, relative paths, garbage).
    """
    if not url:
        return ""
    trimmed = str(url).strip()
    if not trimmed:
        return ""
    try:
        parts = urlsplit(trimmed)
        parts.port  # noqa: B018 – raises on a malformed port
    except ValueError:
        return trimmed if _HTTP_RE.match(trimmed) else ""
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return ""
    userinfo, at, hostport = parts.netloc.rpartition("@")
    return parts._replace(
        scheme=parts.scheme.lower(),
        netloc=userinfo + at + hostport.lower(),
        path=parts.path or "/",
    ).geturl()


def css_url(url: str) -> str:
    """Percent-encode the characters that could close a CSS ``url('…')``."""
    for ch, enc in (("\\", "%5C"), ("'", "%27"), ('"', "%22"), ("(", "%28"), (")", "%29")):
        url = url.replace(ch, enc)
    return url


def css_number(value: str | None, default: str) -> str:
    value = (value or "").strip()
    return value if _CSS_NUMBER_RE.match(value) else default


def default_logo(url: str, icon_api: str = "") -> str | None:
    """Favicon lookup URL for *url*'s host; None for non-http(s) URLs."""
    if not url.startswith(("https://", "http://")):
        return None
    host = _HTTP_RE.sub("", url).split("/")[0]
    if icon_api:
        return icon_api + host
    return f"{DEFAULT_ICON_API}{host}?larger=true"


def catalog_label(value: str | None) -> str:
    return (value or "").strip() or UNCATEGORIZED


def _is_han(ch: str) -> bool:
    return "\u3400" <= ch <= "\u9fff" or "\uf900" <= ch <= "\ufaff"


def catalog_sort_key(name: str) -> tuple:
    """
    Collation key that mimics a zh-Hans, base-sensitivity compare:
    case and accents are ignored; digits and punctuation come first, then
    Han characters by pinyin, then letters.
    """
    key = []
    for ch in name:
        if _is_han(ch):
            key.append((1, lazy_pinyin(ch)[0], ch))
            continue
        base = "".join(
            c for c in unicodedata.normalize("NFKD", ch) if not unicodedata.combining(c)
        ).casefold()
        if base:
            key.append((2 if base.isalpha() else 0, base, ""))
    return tuple(key)


def build_catalog_meta(sites, category_orders: dict) -> list[dict]:
    """
    One ``{name, order, fallback, id}`` dict per category present in *sites*,
    sorted by declared order, then the lowest site sort_order, then name.
    """
    fallback: dict[str, int | float] = {}
    ids: dict[str, int] = {}
    for site in sites:
        name = catalog_label(site["catelog"])
        if site["catelog_id"] and name not in ids:
            ids[name] = site["catelog_id"]
        sort = normalize_sort_order(site["sort_order"])
        if name not in fallback or sort < fallback[name]:
            fallback[name] = sort

    metas = [
        {
            "name": name,
            "order": category_orders.get(name, low),
            "fallback": low,
            "id": ids.get(name),
        }
        for name, low in fallback.items()
    ]
    metas.sort(
        key=lambda m: (m["order"], m["fallback"], catalog_sort_key(m["name"]), m["name"])
    )
    return metas


def load_category_orders(db) -> dict[str, int | float]:
    """Declared category sort orders; a missing table just means none declared."""
    try:
        rows = db.execute("SELECT catelog, sort_order FROM category").fetchall()
    except sqlite3.OperationalError as exc:
        if "no such table" in str(exc).lower():
            return {}
        raise
    return {r["catelog"]: normalize_sort_order(r["sort_order"]) for r in rows}


def select_catalog(
    requested: str | None, catalogs: list[str], default_category: str = ""
) -> tuple[str | None, bool]:
    """
    Resolve the ``?catalog=`` argument → (current_catalog, catalog_exists).

    ``all`` forces the full listing; an empty request falls back to
    *default_category* when it is a known catalog.  When nothing resolves the
    grid shows every site and current_catalog is the first sorted catalog.
    """
    wanted = (requested or "").strip()
    explicit_all = wanted.lower() == "all"
    if explicit_all:
        wanted = ""

    default_category = (default_category or "").strip()
    if not wanted and not explicit_all and default_category in catalogs:
        wanted = default_category

    exists = bool(wanted) and wanted in catalogs
    if exists:
        return wanted, True
    return (catalogs[0] if catalogs else None), False



def load_layout(db) -> dict:
    """
    Layout/theme settings keyed without the ``layout_`` prefix.
    Unknown or unreadable settings fall back to LAYOUT_DEFAULTS.
    """
    layout = {k.removeprefix("layout_"): v for k, v in LAYOUT_DEFAULTS.items()}
    q_marks = ",".join("?" * len(LAYOUT_DEFAULTS))
    try:
        rows = db.execute(
            f"SELECT key, value FROM settings WHERE key IN ({q_marks})",
            tuple(LAYOUT_DEFAULTS),
        ).fetchall()
    except sqlite3.Error as exc:
        app.logger.warning("layout settings unavailable, using defaults: %s", exc)
        return layout

    for row in rows:
        key, value = row["key"], row["value"]
        if value is None:
            continue
        name = key.removeprefix("layout_")
        if isinstance(LAYOUT_DEFAULTS[key], bool):
            layout[name] = value == "true"
        else:
            layout[name] = value
    return layout


def site_name() -> str:
    return app.config["SITE_NAME"] or SITE_NAME_DFLT


def site_description() -> str:
    return app.config["SITE_DESCRIPTION"] or SITE_DESCRIPTION_DFLT


def tag_icon(active: bool) -> Markup:
    return Markup(TAG_ICON_SVG.format(cls="text-primary-600" if active else "text-gray-400"))


app.jinja_env.globals.update(
    site_name=site_name,
    site_description=site_description,
    tag_icon=tag_icon,
    github_icon=Markup(GITHUB_ICON_SVG),
    admin_icon=Markup(ADMIN_ICON_SVG),
    project_url=PROJECT_URL,
)


###############################################################################
# Authentication
###############################################################################
def validate_token(token: str, max_age: int = 60) -> bool:
    """Check the signature age, then the handle against the stored hash."""
    try:
        handle = signer.unsign(token, max_age=max_age).decode()
    except SignatureExpired:
        return False
    except BadSignature:
        return False

    row = get_db().execute("SELECT token_hash FROM user LIMIT 1").fetchone()
    return bool(row) and verify_token(row["token_hash"], handle)


def is_admin_authenticated() -> bool:
    return bool(session.get("logged_in"))


def _client_ip() -> str:
    # left-most entry after ProxyFix = real client
    return (
        request.access_route[0] if request.access_route else request.remote_addr
    ) or "unknown"


def rate_limit(max_requests: int, window: int = 60):
    hits: DefaultDict[str, deque] = defaultdict(deque)

    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            now = time()
            dq = hits[_client_ip()]
            while dq and now - dq[0] > window:
                dq.popleft()

            if len(dq) >= max_requests:
                retry_after = int(window - (now - dq[0]))
                return Response(
                    "Too many requests – try again later.",
                    status=429,
                    headers={"Retry-After": str(retry_after)},
                )

            dq.append(now)
            return view(*args, **kwargs)

        return wrapped

    return decorator


@app.route("/login", methods=["GET", "POST"])
@rate_limit(max_requests=5, window=60)
def login():
    token = request.form.get("token", "").strip()

    if request.method == "POST" and token and validate_token(token):
        # burn the token so it cannot be replayed
        db = get_db()
        db.execute(
            "UPDATE user SET token_hash=? WHERE id=1",
            (hash_token(secrets.token_hex(16)),),
        )
        db.commit()

        session.clear()
        session.permanent = True
        session["logged_in"] = True
        session["csrf"] = secrets.token_hex(16)
        return redirect(url_for("index"))

    return render_template_string(TEMPL_LOGIN, title="登录")


@app.route("/logout")
def logout():
    session.clear()
    return redirect(url_for("index"))


SAFE_METHODS = {"GET", "HEAD", "OPTIONS", "TRACE"}


@app.before_request
def csrf_protect():
    if request.method in SAFE_METHODS:
        return

    # anonymous writes are rejected by the views themselves (covers /login)
    if not session.get("logged_in"):
        return

    token = session.get("csrf", "")
    sent = request.form.get("csrf") or request.headers.get("X-CSRFToken", "")
    if not token or not secrets.compare_digest(token, sent):
        abort(403)


@app.after_request
def sec_headers(resp):
    resp.headers.update(
        {
            "X-Frame-Options": "DENY",
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }
    )
    return resp


###############################################################################
# Config API
###############################################################################
def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def site_filters(
    *,
    include_private: bool,
    catalog_id: str | None = None,
    catalog: str | None = None,
    keyword: str | None = None,
) -> tuple[str, tuple]:
    """Shared ``FROM … WHERE …`` clause for the page and count queries."""
    clauses = ["(s.is_private = 0 OR ? = 1)"]
    params: list = [1 if include_private else 0]

    if catalog_id:
        clauses.append("s.catelog_id = ?")
        params.append(catalog_id)
    elif catalog:
        clauses.append("s.catelog_name = ?")
        params.append(catalog)

    if keyword:
        like = f"%{keyword}%"
        clauses.append(
            '(s.name LIKE ? OR s.url LIKE ? OR s.catelog_name LIKE ? OR s."desc" LIKE ?)'
        )
        params.extend([like] * 4)

    return "FROM sites s WHERE " + " AND ".join(clauses), tuple(params)


def paginate_sites(base_sql: str, params: tuple, *, page: int, per_page: int, db):
    """
    Return (rows, total).  Large pages skip the COUNT query and report
    ``rows + offset`` instead.
    """
    offset = (page - 1) * per_page
    rows = db.execute(
        f"SELECT s.* {base_sql} "
        "ORDER BY s.sort_order ASC, s.create_time DESC LIMIT ? OFFSET ?",
        params + (per_page, offset),
    ).fetchall()

    if per_page >= FETCH_ALL_THRESHOLD:
        return rows, len(rows) + offset
    total = db.execute(f"SELECT COUNT(*) AS total {base_sql}", params).fetchone()
    return rows, (total["total"] if total else 0)


def clean_site_fields(data: dict) -> dict:
    def text(key):
        return str(data.get(key) or "").strip()

    catelog_id = data.get("catelogId")
    if isinstance(catelog_id, str):
        catelog_id = catelog_id.strip()
    return {
        "name": text("name"),
        "url": text("url"),
        "logo": text("logo") or None,
        "desc": text("desc") or None,
        "catelog_id": catelog_id,
        "sort_order": normalize_sort_order(data.get("sort_order")),
        "is_private": parse_flag(data.get("is_private")),
    }


def find_category(db, catelog_id):
    return db.execute(
        "SELECT id, catelog, is_private FROM category WHERE id = ?", (catelog_id,)
    ).fetchone()


def url_taken(db, url: str, *, exclude_id: int | None = None) -> bool:
    if exclude_id is None:
        row = db.execute("SELECT id FROM sites WHERE url = ?", (url,)).fetchone()
    else:
        row = db.execute(
            "SELECT id FROM sites WHERE url = ? AND id != ?", (url, exclude_id)
        ).fetchone()
    return row is not None


def _is_duplicate_url(exc: sqlite3.IntegrityError) -> bool:
    return "sites.url" in str(exc)


REQUIRED_FIELDS_MSG = "Name, URL and Catelog are required"
DUPLICATE_URL_MSG = "This URL already exists, please do not add it again"


def _prepare_site(db, data, *, exclude_id: int | None = None):
    """
    Validate + complete a site payload.
    Returns (fields, None) or (None, (error_body, status)).
    """
    if not isinstance(data, dict):
        return None, ({"error": "Invalid JSON body"}, 400)

    fields = clean_site_fields(data)
    if not fields["name"] or not fields["url"] or not fields["catelog_id"]:
        return None, ({"error": REQUIRED_FIELDS_MSG}, 400)

    if url_taken(db, fields["url"], exclude_id=exclude_id):
        return None, ({"error": DUPLICATE_URL_MSG}, 409)

    if not fields["logo"]:
        fields["logo"] = default_logo(fields["url"], app.config["ICON_API"])

    category = find_category(db, fields["catelog_id"])
    if category is None:
        return None, ({"error": "Category not found."}, 400)

    fields["catelog_id"] = category["id"]
    fields["catelog_name"] = category["catelog"]
    if parse_flag(category["is_private"]):
        fields["is_private"] = 1
    return fields, None


@app.route("/api/config", methods=["GET"])
def config_list():
    db = get_db()
    schema_guard.ensure(db)

    per_page = min(max(_int_arg("pageSize", PAGE_SIZE_DEFAULT), 1), SQLITE_INT_MAX)
    # keep the OFFSET inside SQLite's 64-bit range
    page = min(max(_int_arg("page", 1), 1), SQLITE_INT_MAX // per_page)
    base_sql, params = site_filters(
        include_private=is_admin_authenticated(),
        catalog_id=request.args.get("catalogId"),
        catalog=request.args.get("catalog"),
        keyword=request.args.get("keyword"),
    )

    try:
        rows, total = paginate_sites(
            base_sql, params, page=page, per_page=per_page, db=db
        )
    except (sqlite3.Error, OverflowError) as exc:
        return {"error": f"Failed to fetch config data: {exc}"}, 500

    return {
        "code": 200,
        "data": [dict(r) for r in rows],
        "total": total,
        "page": page,
        "pageSize": per_page,
    }


@app.route("/api/config", methods=["POST"])
def config_create():
    if not is_admin_authenticated():
        return {"error": "Unauthorized"}, 401

    db = get_db()
    try:
        fields, err = _prepare_site(db, request.get_json(silent=True))
        if err:
            return err
        cur = db.execute(
            """
            INSERT INTO sites (name, url, logo, "desc", catelog_id, catelog_name,
                               sort_order, is_private)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                fields["name"],
                fields["url"],
                fields["logo"],
                fields["desc"],
                fields["catelog_id"],
                fields["catelog_name"],
                fields["sort_order"],
                fields["is_private"],
            ),
        )
        db.commit()
    except sqlite3.IntegrityError as exc:
        db.rollback()
        if _is_duplicate_url(exc):
            return {"error": DUPLICATE_URL_MSG}, 409
        return {"error": f"Failed to create config: {exc}"}, 500
    except (sqlite3.Error, OverflowError) as exc:
        db.rollback()
        return {"error": f"Failed to create config: {exc}"}, 500

    return {
        "code": 201,
        "message": "Config created successfully",
        "insert": {
            "success": True,
            "meta": {"last_row_id": cur.lastrowid, "changes": cur.rowcount},
        },
    }, 201


@app.route("/api/config/<int:site_id>", methods=["GET"])
def config_detail(site_id: int):
    if not is_admin_authenticated():
        return {"error": "Unauthorized"}, 401
    try:
        row = get_db().execute("SELECT * FROM sites WHERE id = ?", (site_id,)).fetchone()
    except (sqlite3.Error, OverflowError) as exc:
        return {"error": f"Failed to fetch config: {exc}"}, 500
    if row is None:
        return {"error": "Config not found"}, 404
    return {"code": 200, "data": dict(row)}


@app.route("/api/config/<int:site_id>", methods=["PUT"])
def config_update(site_id: int):
    if not is_admin_authenticated():
        return {"error": "Unauthorized"}, 401

    db = get_db()
    try:
        if db.execute("SELECT 1 FROM sites WHERE id = ?", (site_id,)).fetchone() is None:
            return {"error": "Config not found"}, 404
        fields, err = _prepare_site(db, request.get_json(silent=True), exclude_id=site_id)
        if err:
            return err
        db.execute(
            """
            UPDATE sites
               SET name = ?, url = ?, logo = ?, "desc" = ?, catelog_id = ?,
                   catelog_name = ?, sort_order = ?, is_private = ?
             WHERE id = ?
            """,
            (
                fields["name"],
                fields["url"],
                fields["logo"],
                fields["desc"],
                fields["catelog_id"],
                fields["catelog_name"],
                fields["sort_order"],
                fields["is_private"],
                site_id,
            ),
        )
        db.commit()
    except sqlite3.IntegrityError as exc:
        db.rollback()
        if _is_duplicate_url(exc):
            return {"error": DUPLICATE_URL_MSG}, 409
        return {"error": f"Failed to update config: {exc}"}, 500
    except (sqlite3.Error, OverflowError) as exc:
        db.rollback()
        return {"error": f"Failed to update config: {exc}"}, 500

    return {"code": 200, "message": "Config updated successfully"}


@app.route("/api/config/<int:site_id>", methods=["DELETE"])
def config_delete(site_id: int):
    if not is_admin_authenticated():
        return {"error": "Unauthorized"}, 401

    db = get_db()
    try:
        cur = db.execute("DELETE FROM sites WHERE id = ?", (site_id,))
        db.commit()
    except (sqlite3.Error, OverflowError) as exc:
        db.rollback()
        return {"error": f"Failed to delete config: {exc}"}, 500
    if cur.rowcount == 0:
        return {"error": "Config not found"}, 404
    return {"code": 200, "message": "Config deleted successfully"}


###############################################################################
# Homepage
###############################################################################
SITES_SQL = """
    SELECT s.*, c.catelog
      FROM sites s
      INNER JOIN category c ON s.catelog_id = c.id
     WHERE (s.is_private = 0 OR ? = 1)
     ORDER BY s.sort_order ASC, s.create_time DESC
"""


def wallpaper_feed_url(country: str) -> str:
    if country == "spotlight":
        return f"{SPOTLIGHT_FEED}?n={WALLPAPER_FEED_SIZE}"
    return f"{BING_FEED}?n={WALLPAPER_FEED_SIZE}&country={quote(country or '')}"


def current_wallpaper_index() -> int:
    m = re.match(r"[0-9]+", request.cookies.get(WALLPAPER_COOKIE, ""))
    return int(m.group(0)) if m else -1


def rotate_wallpaper(country: str, current: int) -> tuple[int, str | None]:
    """
    Step to the next image of the wallpaper feed.

    Returns (next_index, image_url); a failed fetch yields (0, None) and the
    page keeps whatever wallpaper is already configured.
    """
    try:
        resp = requests.get(
            wallpaper_feed_url(country),
            timeout=app.config["WALLPAPER_TIMEOUT"],
            headers={"Accept": "application/json"},
        )
        if not resp.ok:
            app.logger.warning("wallpaper feed returned HTTP %s", resp.status_code)
            return 0, None
        feed = resp.json()
    except (requests.RequestException, ValueError) as exc:
        app.logger.warning("wallpaper feed unavailable: %s", exc)
        return 0, None

    if not isinstance(feed, list) or not feed:
        return 0, None

    nxt = (current + 1) % len(feed)
    item = feed[nxt]
    if not isinstance(item, dict):
        return nxt, None
    return nxt, (item.get("fullUrl") or item.get("url") or None)


def theme_classes(custom_wallpaper: bool, menu_layout: str) -> dict[str, str]:
    """CSS class strings that differ between the default and wallpaper themes."""
    if custom_wallpaper:
        header = (
            "bg-transparent border-none shadow-none"
            if menu_layout == "horizontal"
            else "bg-white/80 backdrop-blur-sm border-b border-primary-100/60 "
            "shadow-sm transition-colors duration-300"
        )
        return {
            "header": header,
            "container": "rounded-2xl",
            "title": "text-gray-900",
            "subtext": "text-gray-600",
            "overview_number": "text-gray-800",
            "search_input": "bg-white/90 backdrop-blur border border-gray-200 "
            "text-gray-800 placeholder-gray-400 focus:ring-primary-200 "
            "focus:border-primary-400 focus:bg-white",
            "search_icon": "text-gray-400",
            "link_active": "bg-primary-600 text-white shadow-sm font-semibold",
            "link_inactive": "bg-white/60 text-gray-700 hover:bg-white "
            "hover:text-primary-600 backdrop-blur-sm",
            "footer": "bg-transparent py-8 px-6 mt-12 border-none shadow-none text-black",
            "hitokoto": "text-black",
        }
    return {
        "header": "bg-primary-700 text-white border-b border-primary-600 shadow-sm",
        "container": "rounded-2xl border border-primary-100/60 bg-white/80 "
        "backdrop-blur-sm shadow-sm",
        "title": "text-white",
        "subtext": "text-primary-100/90",
        "overview_number": "text-white",
        "search_input": "bg-white/15 text-white placeholder-primary-200 "
        "focus:ring-white/30 focus:bg-white/20 border-none",
        "search_icon": "text-primary-200",
        "link_active": "bg-white text-primary-700 shadow-sm font-semibold",
        "link_inactive": "bg-primary-600/40 text-white hover:bg-primary-600/60 "
        "backdrop-blur-sm",
        "footer": "bg-white py-8 px-6 mt-12 border-t border-primary-100",
        "hitokoto": "text-gray-500",
    }


def layout_classes(menu_layout: str) -> dict[str, str]:
    if menu_layout == "horizontal":
        return {
            "sidebar": "min-[550px]:hidden",
            "main": "",
            "sidebar_toggle": "!hidden",
            "mobile_toggle": "min-[550px]:hidden",
        }
    return {
        "sidebar": "",
        "main": "lg:ml-64",
        "sidebar_toggle": "",
        "mobile_toggle": "lg:hidden",
    }


def grid_class(cols: str) -> str:
    return GRID_CLASS_FIVE if cols == "5" else GRID_CLASS_DEFAULT


def site_card(site: dict) -> dict:
    """Display values for one site card; escaping is left to the template."""
    name = site.get("name") or UNNAMED
    url = sanitize_url(site.get("url"))
    display_url = url or site.get("url") or ""
    return {
        "id": site["id"],
        "name": name,
        "catalog": site.get("catelog") or UNCATEGORIZED,
        "desc": site.get("desc") or "暂无描述",
        "url": url,
        "href": url or "#",
        "display_url": display_url or "未提供链接",
        "logo": sanitize_url(site.get("logo")),
        "initial": (name.strip()[:1] or "站").upper(),
        "data_name": site.get("name") or "",
        "data_catalog": site.get("catelog") or "",
    }


def _plain_error(message: str, status: int) -> Response:
    return Response(message, status=status, mimetype="text/plain")


@app.route("/")
def index():
    db = get_db()
    include_private = 1 if is_admin_authenticated() else 0

    try:
        sites = [dict(r) for r in db.execute(SITES_SQL, (include_private,))]
    except sqlite3.Error as exc:
        return _plain_error(f"Failed to fetch data: {exc}", 500)

    try:
        category_orders = load_category_orders(db)
    except sqlite3.Error as exc:
        return _plain_error(f"Failed to fetch category orders: {exc}", 500)

    catalogs_meta = build_catalog_meta(sites, category_orders)
    catalogs = [m["name"] for m in catalogs_meta]
    current_catalog, catalog_exists = select_catalog(
        request.args.get("catalog"), catalogs, app.config["DISPLAY_CATEGORY"]
    )
    current_sites = (
        [s for s in sites if catalog_label(s["catelog"]) == current_catalog]
        if catalog_exists
        else sites
    )

    layout = load_layout(db)
    next_wallpaper = None
    if layout["random_wallpaper"]:
        next_wallpaper, image = rotate_wallpaper(
            layout["bing_country"], current_wallpaper_index()
        )
        if image:
            layout["custom_wallpaper"] = image

    custom_wallpaper = bool(layout["custom_wallpaper"])
    menu_layout = layout["menu_layout"]
    wallpaper_url = sanitize_url(layout["custom_wallpaper"])

    if catalog_exists:
        heading = f"{current_catalog} · {len(current_sites)} 个网站"
    else:
        heading = f"全部收藏 · {len(sites)} 个网站"

    html = render_template_string(
        TEMPL_INDEX,
        layout=layout,
        horizontal=menu_layout == "horizontal",
        theme=theme_classes(custom_wallpaper, menu_layout),
        classes=layout_classes(menu_layout),
        grid_class=grid_class(layout["grid_cols"]),
        catalogs=catalogs_meta,
        catalog_names=catalogs,
        current_catalog=current_catalog,
        catalog_exists=catalog_exists,
        cards=[site_card(s) for s in current_sites],
        total_sites=len(sites),
        heading=heading,
        heading_active=current_catalog if catalog_exists else "",
        submission_class=(
            "" if str(app.config["ENABLE_PUBLIC_SUBMISSION"]) == "true" else "hidden"
        ),
        footer_text=app.config["FOOTER_TEXT"] or FOOTER_TEXT_DFLT,
        current_year=utc_now().year,
        wallpaper_url=css_url(wallpaper_url) if wallpaper_url else "",
        bg_blur=(
            css_number(layout["bg_blur_intensity"], "0")
            if layout["enable_bg_blur"]
            else ""
        ),
        frosted_glass_blur=(
            css_number(layout["frosted_glass_intensity"], "15")
            if layout["enable_frosted_glass"]
            else ""
        ),
        csrf=session.get("csrf", ""),
    )

    resp = Response(html, content_type="text/html; charset=utf-8")
    if next_wallpaper is not None:
        resp.set_cookie(
            WALLPAPER_COOKIE,
            str(next_wallpaper),
            max_age=WALLPAPER_COOKIE_MAX_AGE,
            path="/",
            samesite="Lax",
        )
    return resp


###############################################################################
# Templates
###############################################################################
def wrap(body: str) -> str:
    """Glue prolog + page-specific body + epilog."""
    return TEMPL_PROLOG + body + TEMPL_EPILOG


TEMPL_PROLOG = """<!doctype html>
<html lang="zh-CN">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{% if title %}{{ title }} · {% endif %}{{ site_name() }}</title>
<meta name="description" content="{{ site_description() }}">
<script src="https://cdn.tailwindcss.com"></script>
<script>
tailwind.config={theme:{extend:{colors:{
  primary:{50:'#f4f6fb',100:'#e8ecf6',200:'#cbd6eb',500:'#4f6ab0',600:'#3d5595',700:'#324579'},
  secondary:{50:'#f8f7f4',100:'#efece4',200:'#ddd6c5'},
  accent:{100:'#e6f4ee',200:'#c4e6d6',500:'#3f9c72',700:'#2a6d4f'}}}}};
</script>
<style>
.frosted-glass-effect{background:rgba(255,255,255,.55);backdrop-filter:blur(var(--frosted-glass-blur,15px));-webkit-backdrop-filter:blur(var(--frosted-glass-blur,15px));border:1px solid rgba(255,255,255,.35);box-shadow:0 4px 24px rgba(0,0,0,.08)}
.line-clamp-2{display:-webkit-box;-webkit-line-clamp:2;-webkit-box-orient:vertical;overflow:hidden}
.site-card{transition:transform .2s ease,box-shadow .2s ease}.site-card:hover{transform:translateY(-2px)}
</style>
{% if frosted_glass_blur %}<style>:root { --frosted-glass-blur: {{ frosted_glass_blur }}px; }</style>{% endif %}
</head>
<body class="bg-secondary-50 font-sans text-gray-800{% if wallpaper_url %} relative{% endif %}">
{% if wallpaper_url %}<div style="position: fixed; inset: 0; z-index: -10; background-image: url('{{ wallpaper_url }}'); background-size: cover; background-attachment: fixed; background-position: center; {% if bg_blur %}filter: blur({{ bg_blur }}px);{% endif %}"></div>{% endif %}
"""

TEMPL_EPILOG = """
</body>
</html>
"""

TEMPL_INDEX = wrap("""
{% macro vertical_header() %}
  <div class="max-w-5xl mx-auto flex flex-col md:flex-row md:items-center md:justify-between gap-6">
    <div class="flex-1 text-center md:text-left">
      <span class="inline-flex items-center gap-2 rounded-full bg-primary-600/70 px-3 py-1 text-[11px] uppercase tracking-[0.28em] text-secondary-200/80">
        精选 · 真实 · 有温度
      </span>
      {% if not layout.hide_title %}
      <h1 class="mt-4 text-3xl md:text-4xl font-semibold tracking-tight {{ theme.title }}">{{ site_name() }}</h1>
      {% endif %}
      {% if not layout.hide_subtitle %}
      <p class="mt-3 text-sm md:text-base {{ theme.subtext }} leading-relaxed">{{ site_description() }}</p>
      {% endif %}
    </div>
    <div class="w-full md:w-auto flex justify-center md:justify-end">
      <div class="rounded-2xl bg-white/10 backdrop-blur-md px-6 py-5 shadow-lg border border-white/10 text-left md:text-right">
        <p class="text-xs uppercase tracking-[0.28em] text-secondary-100/70">Current Overview</p>
        <span class="mt-3 text-2xl font-semibold {{ theme.overview_number }}">{{ total_sites }}</span>
        <span class="text-sm text-secondary-100/85">条书签 ·<span class="mt-3 text-2xl font-semibold {{ theme.overview_number }}"> {{ catalog_names|length }}</span> 个分类</span>
        <p class="mt-2 text-xs text-secondary-100/60">每日人工维护,确保链接状态可用、内容可靠。</p>
      </div>
    </div>
  </div>
{% endmacro %}

{% macro horizontal_header() %}
  <div class="max-w-4xl mx-auto text-center relative z-10">
    <div class="mb-8">
      {% if not layout.hide_title %}
      <h1 class="text-3xl md:text-4xl font-bold tracking-tight mb-3 {{ theme.title }}">{{ site_name() }}</h1>
      {% endif %}
      {% if not layout.hide_subtitle %}
      <p class="{{ theme.subtext }} opacity-90 text-sm md:text-base">{{ site_description() }}</p>
      {% endif %}
    </div>
    <div class="relative max-w-xl mx-auto mb-8">
      <input id="headerSearchInput" type="text" name="search" placeholder="搜索书签..." class="search-input-target w-full pl-12 pr-4 py-3.5 rounded-2xl transition-all shadow-lg outline-none focus:outline-none focus:ring-2 {{ theme.search_input }}" autocomplete="off">
      <svg xmlns="http://www.w3.org/2000/svg" class="h-6 w-6 absolute left-4 top-3.5 {{ theme.search_icon }}" fill="none" viewBox="0 0 24 24" stroke="currentColor">
        <path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M21 21l-6-6m2-5a7 7 0 11-14 0 7 7 0 0114 0z" />
      </svg>
    </div>
    <div class="relative max-w-5xl mx-auto">
      <div id="horizontalCategoryNav" class="flex flex-wrap justify-center gap-3 overflow-hidden" style="max-height: 48px;">
        <a href="?catalog=all" class="menu-item inline-flex items-center px-4 py-2 rounded-full text-sm transition-all duration-200 whitespace-nowrap {{ theme.link_active if not catalog_exists else theme.link_inactive }}">全部</a>
        {% for cat in catalogs %}
        {% set active = catalog_exists and cat.name == current_catalog %}
        <a href="?catalog={{ cat.name|urlencode }}" data-id="{{ cat.id or '' }}" class="menu-item inline-flex items-center px-4 py-2 rounded-full text-sm transition-all duration-200 whitespace-nowrap {{ theme.link_active if active else theme.link_inactive }}">{{ cat.name }}</a>
        {% endfor %}
      </div>
    </div>
  </div>
{% endmacro %}

<div class="fixed top-4 left-4 z-50 {{ classes.mobile_toggle }}">
  <button id="sidebarToggle" class="p-2 rounded-lg bg-white shadow-md hover:bg-gray-100" aria-label="菜单">
    <svg xmlns="http://www.w3.org/2000/svg" class="h-6 w-6 text-primary-500" fill="none" viewBox="0 0 24 24" stroke="currentColor">
      <path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M4 6h16M4 12h16M4 18h16" />
    </svg>
  </button>
</div>
{% if horizontal %}
<a href="{{ project_url }}" target="_blank" rel="noopener" class="fixed top-4 left-4 z-50 hidden min-[550px]:flex items-center justify-center p-2 rounded-lg bg-white/80 backdrop-blur shadow-md hover:bg-white text-gray-700 hover:text-black transition-all" title="GitHub">{{ github_icon }}</a>
{% endif %}

<div id="mobileOverlay" class="fixed inset-0 bg-black/50 z-40 hidden"></div>

<aside id="sidebar" class="fixed left-0 top-0 h-full w-64 bg-white shadow-lg z-50 -translate-x-full lg:translate-x-0 transform transition-transform duration-300 {{ classes.sidebar }}">
  <div class="flex items-center justify-between p-6 border-b border-gray-100">
    <a href="?catalog=all" class="text-lg font-semibold text-primary-700">{{ site_name() }}</a>
    <button id="sidebarClose" class="p-1 rounded hover:bg-gray-100 lg:hidden {{ classes.sidebar_toggle }}" aria-label="关闭">&times;</button>
  </div>
  <div class="p-4">
    <input id="searchInput" type="text" placeholder="搜索书签..." class="search-input-target w-full px-3 py-2 rounded-lg border border-gray-200 focus:outline-none focus:ring-2 focus:ring-primary-200" autocomplete="off">
  </div>
  <nav id="categoryNav" class="px-4 space-y-1 overflow-y-auto" style="max-height: calc(100% - 220px);">
    {% for cat in catalogs %}
    {% set active = catalog_exists and cat.name == current_catalog %}
    <a href="?catalog={{ cat.name|urlencode }}" data-id="{{ cat.id or '' }}" class="flex items-center px-3 py-2 rounded-lg {{ 'bg-secondary-100 text-primary-700' if active else 'hover:bg-gray-100' }} w-full">
      {{ tag_icon(active) }}
      {{ cat.name }}
    </a>
    {% endfor %}
  </nav>
  <div class="absolute bottom-0 left-0 right-0 p-4 border-t border-gray-100 space-y-2">
    <button id="addSiteBtn" class="{{ submission_class }} w-full px-4 py-2 rounded-lg bg-primary-600 text-white hover:bg-primary-700">添加新书签</button>
    <a href="{{ url_for('login') }}" class="block w-full text-center px-4 py-2 rounded-lg bg-gray-100 hover:bg-gray-200 text-gray-700">后台管理</a>
  </div>
</aside>

<main class="{{ classes.main }} min-h-screen flex flex-col">
  <header class="{{ theme.header }} px-6 py-10 sm:px-8">
    {% if horizontal %}
    <div class="min-[550px]:hidden">{{ vertical_header() }}</div>
    <div class="hidden min-[550px]:block">
      <a href="{{ url_for('login') }}" target="_blank" class="fixed top-4 right-4 z-50 hidden min-[550px]:flex items-center justify-center p-2 rounded-lg bg-white/80 backdrop-blur shadow-md hover:bg-white text-gray-700 hover:text-primary-600 transition-all" title="后台管理">{{ admin_icon }}</a>
      {{ horizontal_header() }}
    </div>
    {% else %}
    {{ vertical_header() }}
    {% endif %}
  </header>

  <section class="flex-1 px-4 sm:px-6 py-8">
    <div class="max-w-7xl mx-auto {{ theme.container }} p-4 sm:p-6">
      <h2 id="sitesHeading" class="text-lg font-semibold text-gray-800 mb-6"
          data-default="{{ heading }}" data-active="{{ heading_active }}"
          data-catalog-exists="{{ 'true' if catalog_exists else 'false' }}">{{ heading }}</h2>
      <div id="sitesGrid" class="{{ grid_class }}">
        {% for site in cards %}
        <div class="{{ 'site-card group rounded-xl overflow-hidden transition-all frosted-glass-effect' if layout.enable_frosted_glass else 'site-card group bg-white border border-primary-100/60 rounded-xl shadow-sm overflow-hidden' }}"
             data-id="{{ site.id }}" data-name="{{ site.data_name }}" data-url="{{ site.url }}" data-catalog="{{ site.data_catalog }}">
          <div class="p-5">
            <a href="{{ site.href }}" {% if site.url %}target="_blank" rel="noopener noreferrer"{% endif %} class="block">
              <div class="flex items-start">
                <div class="site-icon flex-shrink-0 mr-4 transition-all duration-300">
                  {% if site.logo %}
                  <img src="{{ site.logo }}" alt="{{ site.name }}" class="w-10 h-10 rounded-lg object-cover bg-gray-100">
                  {% else %}
                  <div class="w-10 h-10 rounded-lg bg-primary-600 flex items-center justify-center text-white font-semibold text-lg shadow-inner">{{ site.initial }}</div>
                  {% endif %}
                </div>
                <div class="flex-1 min-w-0">
                  <h3 class="site-title text-base font-medium text-gray-900 truncate transition-all duration-300 origin-left" title="{{ site.name }}">{{ site.name }}</h3>
                  {% if not layout.hide_category %}
                  <span class="inline-flex items-center px-2 py-0.5 mt-1 rounded-full text-xs font-medium bg-secondary-100 text-primary-700">{{ site.catalog }}</span>
                  {% endif %}
                </div>
              </div>
              {% if not layout.hide_desc %}
              <p class="mt-2 text-sm text-gray-600 leading-relaxed line-clamp-2" title="{{ site.desc }}">{{ site.desc }}</p>
              {% endif %}
            </a>
            {% if not layout.hide_links %}
            <div class="mt-3 flex items-center justify-between">
              <span class="text-xs text-primary-600 truncate max-w-[140px]" title="{{ site.display_url }}">{{ site.display_url }}</span>
              <button class="copy-btn relative flex items-center px-2 py-1 {{ 'bg-accent-100 text-accent-700 hover:bg-accent-200' if site.url else 'bg-gray-200 text-gray-400 cursor-not-allowed' }} rounded-full text-xs font-medium transition-colors" data-url="{{ site.url }}" {% if not site.url %}disabled{% endif %}>
                <svg xmlns="http://www.w3.org/2000/svg" class="h-3 w-3 {{ '' if layout.grid_cols == '5' else 'mr-1' }}" fill="none" viewBox="0 0 24 24" stroke="currentColor">
                  <path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M8 5H6a2 2 0 00-2 2v12a2 2 0 002 2h10a2 2 0 002-2v-1M8 5a2 2 0 002 2h2a2 2 0 002-2M8 5a2 2 0 012-2h2a2 2 0 012 2m0 0h2a2 2 0 012 2v3m2 4H10m0 0l3-3m-3 3l3 3" />
                </svg>
                {% if layout.grid_cols != '5' %}<span class="copy-text">复制</span>{% endif %}
                <span class="copy-success hidden absolute -top-8 right-0 bg-accent-500 text-white text-xs px-2 py-1 rounded shadow-md">已复制!</span>
              </button>
            </div>
            {% endif %}
          </div>
        </div>
        {% else %}
        <p class="col-span-full text-center text-gray-500 py-12">暂无书签</p>
        {% endfor %}
      </div>
    </div>
  </section>

  <footer class="{{ theme.footer }}">
    <div class="max-w-5xl mx-auto text-center text-sm space-y-2">
      <p id="hitokoto" class="{{ theme.hitokoto }}"></p>
      <p>&copy; {{ current_year }} {{ site_name() }} · {{ footer_text }}</p>
    </div>
  </footer>
</main>

<div id="addSiteModal" class="hidden fixed inset-0 z-50 flex items-center justify-center bg-black/50">
  <form id="addSiteForm" class="bg-white rounded-2xl shadow-xl w-full max-w-md p-6 space-y-3">
    <h3 class="text-lg font-semibold">添加新书签</h3>
    <input name="name" required placeholder="名称" class="w-full px-3 py-2 border rounded-lg">
    <input name="url" required placeholder="https://" class="w-full px-3 py-2 border rounded-lg">
    <input name="logo" placeholder="图标 URL（可选）" class="w-full px-3 py-2 border rounded-lg">
    <input name="desc" placeholder="描述（可选）" class="w-full px-3 py-2 border rounded-lg">
    <input name="catalog" list="catalogList" required placeholder="分类" class="w-full px-3 py-2 border rounded-lg">
    <datalist id="catalogList">{% for cat in catalog_names %}<option value="{{ cat }}">{% endfor %}</datalist>
    <p id="addSiteMessage" class="text-sm text-gray-500"></p>
    <div class="flex justify-end gap-2">
      <button type="button" id="addSiteCancel" class="px-4 py-2 rounded-lg bg-gray-100">取消</button>
      <button type="submit" class="px-4 py-2 rounded-lg bg-primary-600 text-white">提交</button>
    </div>
  </form>
</div>

<script>
(function () {
  var sidebar = document.getElementById('sidebar');
  var overlay = document.getElementById('mobileOverlay');
  function toggleSidebar(open) {
    sidebar.classList.toggle('-translate-x-full', !open);
    overlay.classList.toggle('hidden', !open);
  }
  document.getElementById('sidebarToggle').addEventListener('click', function () { toggleSidebar(true); });
  document.getElementById('sidebarClose').addEventListener('click', function () { toggleSidebar(false); });
  overlay.addEventListener('click', function () { toggleSidebar(false); });

  document.querySelectorAll('.copy-btn').forEach(function (btn) {
    btn.addEventListener('click', function (ev) {
      ev.preventDefault();
      var url = btn.dataset.url;
      if (!url) return;
      navigator.clipboard.writeText(url).then(function () {
        var ok = btn.querySelector('.copy-success');
        ok.classList.remove('hidden');
        setTimeout(function () { ok.classList.add('hidden'); }, 1500);
      });
    });
  });

  var heading = document.getElementById('sitesHeading');
  document.querySelectorAll('.search-input-target').forEach(function (input) {
    input.addEventListener('input', function () {
      var q = input.value.trim().toLowerCase();
      var shown = 0;
      document.querySelectorAll('#sitesGrid .site-card').forEach(function (card) {
        var hay = (card.dataset.name + ' ' + card.dataset.url + ' ' + card.dataset.catalog).toLowerCase();
        var hit = !q || hay.indexOf(q) !== -1;
        card.classList.toggle('hidden', !hit);
        if (hit) shown += 1;
      });
      heading.textContent = q ? ('搜索结果 · ' + shown + ' 个网站') : heading.dataset.default;
    });
  });

  var modal = document.getElementById('addSiteModal');
  var form = document.getElementById('addSiteForm');
  var addBtn = document.getElementById('addSiteBtn');
  addBtn.addEventListener('click', function () { modal.classList.remove('hidden'); });
  document.getElementById('addSiteCancel').addEventListener('click', function () { modal.classList.add('hidden'); });
  form.addEventListener('submit', function (ev) {
    ev.preventDefault();
    var data = new FormData(form);
    var catelogId = '';
    document.querySelectorAll('#categoryNav a[data-id]').forEach(function (a) {
      if (a.textContent.trim() === data.get('catalog')) catelogId = a.dataset.id;
    });
    fetch('/api/config', {
      method: 'POST',
      headers: {'Content-Type': 'application/json', 'X-CSRFToken': {{ csrf|tojson }}},
      body: JSON.stringify({name: data.get('name'), url: data.get('url'), logo: data.get('logo'),
                            desc: data.get('desc'), catelogId: catelogId})
    }).then(function (r) { return r.json(); }).then(function (body) {
      document.getElementById('addSiteMessage').textContent = body.error || body.message;
      if (!body.error) setTimeout(function () { location.reload(); }, 800);
    });
  });

  fetch('https://v1.hitokoto.cn/?encode=text').then(function (r) { return r.text(); })
    .then(function (t) { document.getElementById('hitokoto').textContent = t; })
    .catch(function () {});
})();
</script>
""")

TEMPL_LOGIN = wrap("""
<main class="min-h-screen flex items-center justify-center px-4">
  <form method="post" class="w-full max-w-sm bg-white rounded-2xl shadow-sm border border-primary-100/60 p-6 space-y-4">
    <h1 class="text-xl font-semibold text-gray-900">{{ site_name() }}</h1>
    <p class="text-sm text-gray-500">粘贴 <code>flask token</code> 生成的一次性登录令牌。</p>
    <input type="password" name="token" required autofocus class="w-full px-3 py-2 border border-gray-200 rounded-lg focus:outline-none focus:ring-2 focus:ring-primary-200">
    <button class="w-full px-4 py-2 rounded-lg bg-primary-600 text-white hover:bg-primary-700">登录</button>
  </form>
</main>
""")

TEMPL_404 = wrap("""
<main class="min-h-screen flex flex-col items-center justify-center px-4 text-center">
  <h2 class="text-2xl font-semibold text-gray-900">Page not found</h2>
  <p class="mt-3 text-gray-600">The URL you asked for doesn’t exist.
     <a href="{{ url_for('index') }}" class="text-primary-600 underline">Back to the front page</a>.</p>
</main>
""")

TEMPL_500 = wrap("""
<main class="min-h-screen flex flex-col items-center justify-center px-4 text-center">
  <h2 class="text-2xl font-semibold text-gray-900">Internal Server Error</h2>
  <p class="mt-3 text-gray-600">Our fault, not yours. Please try again in a minute.</p>
</main>
""")


###############################################################################
# Error pages
###############################################################################
def _wants_json() -> bool:
    return request.path.startswith("/api/")


@app.errorhandler(404)
def not_found(exc):
    if _wants_json():
        return {"error": "Not found"}, 404
    return render_template_string(TEMPL_404, title="404"), 404


@app.errorhandler(500)
def internal_error(exc):
    app.logger.error("unhandled error on %s: %s", request.path, exc)
    if _wants_json():
        return {"error": "Internal Server Error"}, 500
    return render_template_string(TEMPL_500, title="500"), 500


###############################################################################
# main
###############################################################################
if __name__ == "__main__":
    app.run(debug=True)
