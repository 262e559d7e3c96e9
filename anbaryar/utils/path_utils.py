"""ابزارهای کمکی مسیر برای داده‌های کاربر، لاگ و پوشهٔ خروجی گزارش."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Iterable

__all__ = [
    "APP_NAME",
    "get_app_base_path",
    "resource_path",
    "get_user_data_dir",
    "get_log_directory",
    "get_documents_dir",
    "get_export_directory",
    "default_database_path",
]

APP_NAME = "AnbarYar"
_EXPORT_DIR_ENV = "ANBARYAR_EXPORT_DIR"
_DATA_DIR_ENV = "ANBARYAR_HOME"


@lru_cache(maxsize=1)
def get_app_base_path() -> Path:
    """مسیر ریشهٔ پروژه (محل پوشهٔ ``config``)."""

    return Path(__file__).resolve().parents[2]


def _normalize_parts(parts: Iterable[str | os.PathLike[str]]) -> Path:
    path = Path()
    for piece in parts:
        candidate = Path(os.fspath(piece))
        if candidate.is_absolute():
            path = candidate
        else:
            path = path / candidate
    return path


def resource_path(*parts: str | os.PathLike[str]) -> Path:
    """دسترسی به فایل‌های همراه برنامه (config و ...)."""

    if not parts:
        return get_app_base_path()
    candidate = _normalize_parts(parts)
    if candidate.is_absolute():
        return candidate
    return get_app_base_path() / candidate


def get_user_data_dir(app_name: str = APP_NAME) -> Path:
    """پوشهٔ کاربر برای پایگاه داده و لاگ؛ ``ANBARYAR_HOME`` بر آن مقدم است."""

    override = os.getenv(_DATA_DIR_ENV)
    base = Path(override).expanduser() if override else Path(os.path.expanduser("~")) / app_name
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_log_directory(subdir: str = "logs", app_name: str = APP_NAME) -> Path:
    """ساخت/بازگرداندن پوشهٔ لاگ عمومی برنامه."""

    log_dir = get_user_data_dir(app_name) / subdir
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_documents_dir() -> Path:
    """پوشهٔ اسناد کاربر؛ در نبود ``~/Documents`` خود پوشهٔ خانه برگردانده می‌شود."""

    home = Path(os.path.expanduser("~"))
    documents = home / "Documents"
    return documents if documents.is_dir() else home


def get_export_directory(subdirectory: str = APP_NAME, override: str | Path | None = None) -> Path:
    """پوشهٔ خروجی گزارش‌ها که در صورت نبود ساخته می‌شود.

    اولویت: آرگومان ``override``، سپس متغیر محیطی ``ANBARYAR_EXPORT_DIR`` و در
    نهایت ``<Documents>/<subdirectory>``.
    """

    if override is not None:
        target = Path(override).expanduser()
    elif os.getenv(_EXPORT_DIR_ENV):
        target = Path(os.environ[_EXPORT_DIR_ENV]).expanduser()
    else:
        target = get_documents_dir() / subdirectory
    target.mkdir(parents=True, exist_ok=True)
    return target


def default_database_path(app_name: str = APP_NAME) -> Path:
    return get_user_data_dir(app_name) / "anbaryar.sqlite3"
