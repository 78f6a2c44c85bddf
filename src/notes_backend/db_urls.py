from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote


def normalize_database_url_for_async(database_url: str) -> str:
    """
    Normalize DATABASE_URL to an asyncio-capable driver for the runtime engine.

    Conventions:
    - SQLite: sqlite+aiosqlite://...
    - PostgreSQL: postgresql+psycopg://... (psycopg3 ships async support for AsyncEngine)
    """
    url = (database_url or "").strip()
    if not url:
        return url

    if url.startswith("sqlite://") and "+aiosqlite" not in url:
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)

    return _normalize_postgres(url)


def normalize_database_url_for_alembic(database_url: str) -> str:
    """
    Alembic connects with a synchronous engine (engine_from_config).

    Map async drivers back to their sync counterparts so migrations don't trip over them:
    - sqlite+aiosqlite:// -> sqlite://
    - postgresql:// -> postgresql+psycopg://
    """
    url = (database_url or "").strip()
    if not url:
        return url

    if url.startswith("sqlite+aiosqlite://"):
        return url.replace("sqlite+aiosqlite://", "sqlite://", 1)

    return _normalize_postgres(url)


def _normalize_postgres(url: str) -> str:
    # Accept postgres:// and the psycopg2 default driver; always run on psycopg3.
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    if url.startswith("postgresql+psycopg2://"):
        return url.replace("postgresql+psycopg2://", "postgresql+psycopg://", 1)
    return url


def database_dialect(database_url: str) -> str:
    """Return the bare dialect name ("sqlite", "postgresql", ...) of a database URL."""

    url = (database_url or "").strip().lower()
    scheme = url.split("://", 1)[0]
    dialect = scheme.split("+", 1)[0]
    if dialect == "postgres":
        return "postgresql"
    return dialect


def extract_sqlite_db_file_path(database_url: str) -> Path | None:
    """Infer the local database file of a SQLite DATABASE_URL (best effort).

    Supports:
    - sqlite:///./relative.db
    - sqlite:////abs/path.db
    - sqlite+aiosqlite:///./relative.db

    Returns None for in-memory databases and non-SQLite URLs.
    """

    url = (database_url or "").strip()
    if not url:
        return None

    # Query parameters (check_same_thread etc.) are irrelevant for the file path.
    url = url.split("#", 1)[0].split("?", 1)[0]
    if database_dialect(url) != "sqlite" or url.lower().endswith(":memory:"):
        return None

    sep = url.find("://")
    if sep == -1:
        return None

    rest = url[sep + 3 :]
    # - sqlite:///./.data/dev.db -> rest = "/./.data/dev.db"
    # - sqlite:////tmp/a.db      -> rest = "//tmp/a.db"
    if rest.startswith("/"):
        # Drop the separator slash; an absolute path keeps its own leading slash.
        rest = rest[1:]

    file_path = unquote(rest)
    if not file_path or file_path == ":memory:":
        return None
    return Path(file_path)


def ensure_sqlite_parent_dir(database_url: str) -> None:
    """Create the parent directory of a SQLite database file if needed."""

    path = extract_sqlite_db_file_path(database_url)
    if path is None:
        return

    parent = path.parent
    if str(parent) in {"", "."}:
        return

    parent.mkdir(parents=True, exist_ok=True)
