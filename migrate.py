#!/usr/bin/env python3
"""
migrate.py  –  in-place schema upgrade for an existing nav database.

• Usage:
      python migrate.py [path/to/nav.sqlite3]

  Without an argument the database configured for the app is used
  (NAV_DATABASE or iorinav/nav.sqlite3).

• Adds the indexes and the ``is_private`` / ``catelog_name`` columns that
  older databases lack, back-filling ``catelog_name`` from the category
  table.  Safe to run more than once.
"""

import sqlite3
import sys
from pathlib import Path

import iorinav.nav as nav

# ----------------------------------------------------------------------
# 0.  locations + sanity checks
# ----------------------------------------------------------------------
TARGET = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(nav.app.config["DATABASE"])

if not TARGET.exists():
    sys.exit(f"❌  {TARGET} not found – nothing to migrate.")

nav.app.config["DATABASE"] = str(TARGET)

# ----------------------------------------------------------------------
# 1.  upgrade
# ----------------------------------------------------------------------
with nav.app.app_context():
    db = nav.get_db()
    if not nav.table_columns(db, "sites"):
        sys.exit(f"❌  {TARGET} has no sites table – run `flask init` first.")

    try:
        added = nav.migrate_schema(db)
    except sqlite3.Error as exc:
        db.rollback()
        sys.exit(f"❌  migration failed: {exc}")

    total = db.execute("SELECT COUNT(*) FROM sites").fetchone()[0]

# ----------------------------------------------------------------------
# 2.  report
# ----------------------------------------------------------------------
print(f"Migrating {TARGET}")
if added:
    for col in added:
        print(f"  • sites.{col:14} added")
else:
    print("  • schema already up to date")
print(f"  • {total} site rows checked")
print("✅  done.")
