"""لایهٔ زیرساختی برای عملیات I/O، ذخیره‌سازی و هماهنگی سرویس موجودی."""

from anbaryar.infra.errors import ExportError, InfraError, StorageWriteError, WorkbookReadError
from anbaryar.infra.sqlite_config import configure_connection

__all__ = [
    "ExportError",
    "InfraError",
    "StorageWriteError",
    "WorkbookReadError",
    "configure_connection",
]
