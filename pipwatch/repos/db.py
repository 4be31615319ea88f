"""SQLite bootstrap for the signal and outcome stores.

Migrations are the numbered ``.sql`` files under ``db/migrations``; the
highest applied number is kept in ``PRAGMA user_version``.
"""

import logging
import pathlib
import sqlite3

logger = logging.getLogger("pipwatch.repos")

MIGRATION_DIR = pathlib.Path(__file__).resolve().parent.parent.parent / "db" / "migrations"


def _pending_migrations(applied: int) -> list[tuple[int, pathlib.Path]]:
    scripts = []
    for path in MIGRATION_DIR.glob("*.sql"):
        number = int(path.name.split("_", 1)[0])
        if number > applied:
            scripts.append((number, path))
    return sorted(scripts)


def init_db(db_path: str) -> int:
    """Bring the database at *db_path* up to the latest schema version.

    Creates the parent directory for file databases.  Safe to call on every
    boot: already-applied migrations are skipped.

    Returns:
        The schema version after migrating.
    """
    if db_path != ":memory:":
        pathlib.Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        for number, path in _pending_migrations(version):
            logger.info("Applying migration %s", path.name)
            conn.executescript(path.read_text(encoding="utf-8"))
            conn.execute(f"PRAGMA user_version = {number}")
            version = number
        conn.commit()
    finally:
        conn.close()
    return version


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a connection whose rows support access by column name.

    Each repository call opens and closes its own connection.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn
