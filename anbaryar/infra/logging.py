"""راه‌اندازی لاگ نشست، شناسهٔ همبستگی عملیات و ثبت خطاهای مدیریت‌نشده."""
from __future__ import annotations

import contextvars
import getpass
import logging
import logging.config
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from time import perf_counter
from types import TracebackType
from typing import Any, Callable, Iterator

import yaml

from anbaryar.utils.path_utils import get_log_directory, resource_path

DEFAULT_LOGGING_CONFIG = Path("config/logging.yaml")
LOG_LEVEL_ENV = "ANBARYAR_LOG_LEVEL"
LOG_CONFIG_ENV = "ANBARYAR_LOG_CONFIG"
DEFAULT_LOGGER_NAME = "anbaryar"

_CORRELATION_ID: contextvars.ContextVar[str] = contextvars.ContextVar(
    "anbaryar_correlation_id", default=""
)


def current_correlation_id() -> str:
    """شناسهٔ همبستگی عملیات جاری (یا رشتهٔ خالی بیرون از هر عملیات)."""

    return _CORRELATION_ID.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """برچسب‌گذاری همهٔ لاگ‌های یک عملیات (مثلاً یک ورود فایل) با یک شناسه.

    مثال::

        >>> with correlation_scope("import-1") as cid:
        ...     current_correlation_id() == cid
        True
        >>> current_correlation_id()
        ''
    """

    value = correlation_id or uuid.uuid4().hex[:12]
    token = _CORRELATION_ID.set(value)
    try:
        yield value
    finally:
        _CORRELATION_ID.reset(token)


@dataclass(slots=True)
class StepTally:
    """شمارندهٔ اقلام یک مرحله که فراخواننده در طول مرحله پر می‌کند."""

    step: str
    items: int = 0


@contextmanager
def log_step(logger: logging.Logger, step: str, *, items: int = 0) -> Iterator[StepTally]:
    """ثبت شروع و پایان یک مرحلهٔ ورود یا خروجی با شناسهٔ همبستگی و تعداد اقلام.

    مثال::

        >>> with correlation_scope("exp-1"), log_step(logging.getLogger("x"), "export") as tally:
        ...     tally.items = 12
        >>> tally.items
        12
    """

    tally = StepTally(step=step, items=items)
    correlation_id = current_correlation_id() or "-"
    start = perf_counter()
    logger.info("شروع مرحلهٔ %s (correlation=%s)", step, correlation_id)
    try:
        yield tally
    except Exception:
        logger.exception(
            "مرحلهٔ %s پس از %d قلم با خطا پایان یافت (correlation=%s)",
            step,
            tally.items,
            correlation_id,
        )
        raise
    logger.info(
        "مرحلهٔ %s تکمیل شد: %d قلم در %.2fs (correlation=%s)",
        step,
        tally.items,
        perf_counter() - start,
        correlation_id,
    )


@dataclass(slots=True, frozen=True)
class LoggingContext:
    """اطلاعات نشست جاری برای درج در لاگ و گزارش خطا.

    مثال::

        >>> ctx = LoggingContext(
        ...     application="AnbarYar",
        ...     version="1.0.0",
        ...     session_id="abc",
        ...     user="tester",
        ...     pid=123,
        ...     log_dir=Path("logs"),
        ...     error_dir=Path("logs/errors"),
        ... )
        >>> ctx.new_error_id().startswith("abc-")
        True
    """

    application: str
    version: str
    session_id: str
    user: str
    pid: int
    log_dir: Path
    error_dir: Path

    def new_error_id(self) -> str:
        return f"{self.session_id}-{uuid.uuid4().hex[:8]}"

    def write_error_report(self, *, error_id: str, message: str, traceback_text: str) -> Path:
        """نوشتن گزارش خطا با متادیتای نشست و شناسهٔ همبستگی."""

        timestamp = datetime.now(timezone.utc)
        self.error_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.error_dir / f"{error_id}-{timestamp.strftime('%Y%m%dT%H%M%SZ')}.log"
        lines = [
            f"application={self.application}",
            f"version={self.version}",
            f"session_id={self.session_id}",
            f"correlation_id={current_correlation_id()}",
            f"error_id={error_id}",
            f"user={self.user}",
            f"pid={self.pid}",
            f"timestamp={timestamp.isoformat().replace('+00:00', 'Z')}",
            "",
            message.strip(),
            "",
            traceback_text.strip(),
            "",
        ]
        report_path.write_text("\n".join(lines), encoding="utf-8")
        return report_path


class SessionContextFilter(logging.Filter):
    """افزودن شناسهٔ نشست و شناسهٔ همبستگی به همهٔ رکوردها."""

    def __init__(self, context: LoggingContext) -> None:
        super().__init__(name="")
        self._context = context

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = getattr(record, "session_id", self._context.session_id)
        record.correlation_id = getattr(record, "correlation_id", current_correlation_id())
        record.application = getattr(record, "application", self._context.application)
        record.app_version = getattr(record, "app_version", self._context.version)
        record.error_id = getattr(record, "error_id", "")
        record.report_path = getattr(record, "report_path", "")
        return True


def _replace_filter(target: logging.Filterer, filter_obj: logging.Filter) -> None:
    for existing in [item for item in target.filters if isinstance(item, SessionContextFilter)]:
        target.removeFilter(existing)
    target.addFilter(filter_obj)


def _attach_filter(target: logging.Logger, filter_obj: logging.Filter) -> None:
    """نصب فیلتر نشست روی logger و handlerهایش؛ فیلتر نشست قبلی جایگزین می‌شود."""

    _replace_filter(target, filter_obj)
    for handler in target.handlers:
        _replace_filter(handler, filter_obj)


def _apply_log_dir(config: dict[str, Any], log_directory: Path) -> None:
    """قرار دادن فایل‌های لاگ نسبی در پوشهٔ لاگ کاربر."""

    handlers = config.get("handlers", {})
    if not isinstance(handlers, dict):
        return
    for handler_cfg in handlers.values():
        if not isinstance(handler_cfg, dict):
            continue
        filename = handler_cfg.get("filename")
        if not filename:
            continue
        filename_path = Path(str(filename)).expanduser()
        if not filename_path.is_absolute():
            filename_path = log_directory / filename_path.name
        filename_path.parent.mkdir(parents=True, exist_ok=True)
        handler_cfg["filename"] = str(filename_path)


def _apply_level_override(config: dict[str, Any], logger_name: str, level: str) -> None:
    loggers = config.setdefault("loggers", {})
    if isinstance(loggers, dict):
        logger_cfg = loggers.setdefault(logger_name, {})
        if isinstance(logger_cfg, dict):
            logger_cfg["level"] = level
    handlers = config.get("handlers", {})
    if isinstance(handlers, dict):
        console = handlers.get("console")
        if isinstance(console, dict):
            console["level"] = level


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is not None:
        return Path(config_path)
    override = os.getenv(LOG_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return resource_path(DEFAULT_LOGGING_CONFIG)


def _normalize_level(level: str | None) -> str | None:
    candidate = level or os.getenv(LOG_LEVEL_ENV)
    if not candidate:
        return None
    name = candidate.strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        raise ValueError(f"unknown log level: {candidate}")
    return name


def setup_logging(
    config_path: str | Path | None = None,
    log_dir: str | Path | None = None,
    *,
    level: str | None = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> bool:
    """بارگذاری پیکربندی YAML و اعمال آن با ``dictConfig``.

    در نبود فایل پیکربندی، ``logging.basicConfig`` با سطح درخواستی (پیش‌فرض
    WARNING) اعمال و ``False`` برگردانده می‌شود.

    مثال::

        >>> setup_logging()  # doctest: +SKIP
        True

    Raises:
        ValueError: اگر ساختار YAML نگاشت نباشد یا سطح لاگ ناشناخته باشد.
    """

    level_name = _normalize_level(level)
    path = _resolve_config_path(config_path)
    if not path.exists():
        logging.basicConfig(
            level=level_name or "WARNING",
            format="%(levelname)s %(name)s: %(message)s",
        )
        logging.getLogger(logger_name).debug("logging config not found: %s", path)
        return False

    with path.open("r", encoding="utf-8") as handle:
        data: Any = yaml.safe_load(handle)
    if not isinstance(data, dict):
        raise ValueError("logging config must be a mapping")

    log_directory = Path(log_dir).expanduser().resolve() if log_dir else get_log_directory()
    _apply_log_dir(data, log_directory)
    if level_name:
        _apply_level_override(data, logger_name, level_name)

    logging.config.dictConfig(data)
    return True


def configure_logging(
    *,
    app_name: str,
    app_version: str,
    logger_name: str = DEFAULT_LOGGER_NAME,
    config_path: str | Path | None = None,
    log_dir: str | Path | None = None,
    level: str | None = None,
) -> LoggingContext:
    """پیکربندی کامل لاگ نشست و بازگرداندن کانتکست آن."""

    log_directory = Path(log_dir).expanduser().resolve() if log_dir else get_log_directory()
    log_directory.mkdir(parents=True, exist_ok=True)
    setup_logging(config_path, log_directory, level=level, logger_name=logger_name)
    error_directory = log_directory / "errors"

    context = LoggingContext(
        application=app_name,
        version=app_version,
        session_id=uuid.uuid4().hex,
        user=getpass.getuser(),
        pid=os.getpid(),
        log_dir=log_directory,
        error_dir=error_directory,
    )

    filter_obj = SessionContextFilter(context)
    _attach_filter(logging.getLogger(), filter_obj)
    _attach_filter(logging.getLogger(logger_name), filter_obj)
    logging.captureWarnings(True)
    return context


def install_exception_hook(logger: logging.Logger, context: LoggingContext) -> Callable[[], None]:
    """نصب ``sys.excepthook`` برای ثبت خطای مدیریت‌نشده و نوشتن گزارش آن.

    Returns:
        Callable[[], None]: تابعی برای بازگردانی هندلر قبلی.
    """

    previous_hook = sys.excepthook

    def handle_exception(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_tb: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            previous_hook(exc_type, exc_value, exc_tb)
            return
        error_id = context.new_error_id()
        traceback_text = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
        report_path = context.write_error_report(
            error_id=error_id,
            message=str(exc_value),
            traceback_text=traceback_text,
        )
        logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_tb),
            extra={"error_id": error_id, "report_path": str(report_path)},
        )
        previous_hook(exc_type, exc_value, exc_tb)

    sys.excepthook = handle_exception

    def restore() -> None:
        sys.excepthook = previous_hook

    return restore


__all__ = [
    "LoggingContext",
    "SessionContextFilter",
    "configure_logging",
    "correlation_scope",
    "current_correlation_id",
    "install_exception_hook",
    "log_step",
    "StepTally",
    "setup_logging",
]
