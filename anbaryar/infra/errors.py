"""مدل خطای لایهٔ Infra برای خواندن، خروجی و ذخیره‌سازی."""
from __future__ import annotations

from dataclasses import dataclass


class InfraError(RuntimeError):
    """پایهٔ همهٔ خطاهای لایهٔ زیرساخت."""

    def __str__(self) -> str:  # pragma: no cover - ساده
        return super().__str__()


@dataclass(eq=True)
class WorkbookReadError(InfraError):
    """فایل ورودی قابل خواندن یا رمزگشایی نیست."""

    path: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"خطا در خواندن فایل {self.path}: {self.detail}"
        return f"خطا در خواندن فایل {self.path}"


@dataclass(eq=True)
class ExportError(InfraError):
    """هر خطای ساخت یا نوشتن فایل گزارش Excel."""

    detail: str

    def __str__(self) -> str:
        return f"خطا در ایجاد فایل اکسل: {self.detail}"


@dataclass(eq=True)
class StorageWriteError(InfraError):
    """شکست در ذخیرهٔ پایدار داده‌ها."""

    message: str = "خطا در ذخیره اطلاعات داروها"

    def __str__(self) -> str:
        return self.message


__all__ = [
    "InfraError",
    "WorkbookReadError",
    "ExportError",
    "StorageWriteError",
]
