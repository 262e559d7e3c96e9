"""تعریف خطاهای دامنه برای هستهٔ شمارش انبار."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class DomainError(Exception):
    """پایهٔ تمام خطاهای دامنه‌ای."""


@dataclass(frozen=True, slots=True)
class BaseDomainError(DomainError):
    """خطای غنی‌شده با زمینه برای دیباگ و گزارش‌گیری.

    Attributes:
        func: نام تابعی که خطا در آن رخ داده است.
        column: نام فیلد در صورت ارتباط.
        value: مقدار خامی که باعث خطا شده است.
        row_index: شمارهٔ سطر ورودی (۱-پایه) در صورت موجود بودن.
        message: پیام فارسی آمادهٔ نمایش؛ در صورت وجود جایگزین نمایش فنی می‌شود.
    """

    func: str
    column: str | None = None
    value: Any | None = None
    row_index: int | None = None
    message: str | None = None

    def __str__(self) -> str:  # pragma: no cover - نمایش ساده
        if self.message:
            return self.message
        parts: list[str] = [self.__class__.__name__, f"func={self.func}"]
        if self.column is not None:
            parts.append(f"column={self.column}")
        if self.value is not None:
            parts.append(f"value={self.value!r}")
        if self.row_index is not None:
            parts.append(f"row_index={self.row_index}")
        return " ".join(parts)


class DrugValidationError(BaseDomainError):
    """مقدار نامعتبر برای کد، نام یا موجودی دارو."""


class DuplicateDrugCodeError(DrugValidationError):
    """کد دارو در مجموعهٔ فعلی تکراری است."""


@dataclass(eq=True)
class DrugNotFoundError(DomainError, KeyError):
    """شناسهٔ دارو در مجموعهٔ فعلی وجود ندارد."""

    drug_id: str

    def __str__(self) -> str:
        return f"دارو با شناسهٔ {self.drug_id} یافت نشد"


__all__ = [
    "DomainError",
    "BaseDomainError",
    "DrugValidationError",
    "DrugNotFoundError",
    "DuplicateDrugCodeError",
]
