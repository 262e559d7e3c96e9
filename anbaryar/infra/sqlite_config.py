"""تنظیم یکسان اتصال‌های SQLite برای انبارهٔ محلی فهرست داروها."""
from __future__ import annotations

import sqlite3
from os import PathLike
from pathlib import Path

_ALLOWED_PRAGMAS = frozenset({"journal_mode", "synchronous", "busy_timeout"})
DEFAULT_BUSY_TIMEOUT_MS = 5000


def _set_pragma(conn: sqlite3.Connection, name: str, value: str | int) -> None:
    """اجرای PRAGMA از فهرست مجاز روی اتصال.

    مثال::

        >>> conn = sqlite3.connect(":memory:")
        >>> _set_pragma(conn, "synchronous", "NORMAL")
    """
    if name not in _ALLOWED_PRAGMAS:
        raise ValueError(f"Unsupported PRAGMA: {name}")
    conn.execute(f"PRAGMA {name} = {value};")


def configure_connection(conn: sqlite3.Connection) -> sqlite3.Connection:
    """اعمال PRAGMAهای پایه و ``row_factory`` روی اتصال تازه.

    ژورنال WAL و همگام‌سازی NORMAL برای یک کاربر محلی کافی است؛
    ``busy_timeout`` جلوی خطای «database is locked» در دو فرایند هم‌زمان CLI را
    می‌گیرد.

    مثال::

        >>> connection = configure_connection(sqlite3.connect(":memory:"))
        >>> connection.execute("PRAGMA busy_timeout;").fetchone()[0]
        5000
    """

    conn.row_factory = sqlite3.Row
    _set_pragma(conn, "journal_mode", "WAL")
    _set_pragma(conn, "synchronous", "NORMAL")
    _set_pragma(conn, "busy_timeout", DEFAULT_BUSY_TIMEOUT_MS)
    return conn


def open_connection(path: str | PathLike[str]) -> sqlite3.Connection:
    """ساخت پوشهٔ والد و بازکردن اتصال پیکربندی‌شده به فایل پایگاه داده."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    return configure_connection(sqlite3.connect(target))


__all__ = ["configure_connection", "open_connection", "DEFAULT_BUSY_TIMEOUT_MS"]
