"""مدل‌های دادهٔ شمارش انبار (Core-only, بدون I/O).

رکورد :class:`Drug` فقط‌خواندنی است و «تفاوت» دو حالت دارد: صفر پیش از
شمارش و ``physical_qty - system_qty`` پس از آن. تنها مسیر به‌روزرسانی
ساخت نسخهٔ جدید با :meth:`Drug.with_physical_qty` است.

مثال::

    >>> drug = Drug(id="drug_A1_1_x", code="A1", name="Aspirin", system_qty=100)
    >>> drug.with_physical_qty(80).difference
    -20.0
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Tuple

from .common.errors import DrugValidationError
from .common.normalization import format_number

__all__ = [
    "Drug",
    "DrugStats",
    "ImportResult",
    "generate_drug_id",
    "create_drug",
    "utc_now_iso",
    "MSG_ALL_DUPLICATES",
    "MSG_NO_DRUGS_FOUND",
]

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_ID_SUFFIX_LENGTH = 9

MSG_ALL_DUPLICATES = "همه داروهای فایل قبلاً موجود هستند"
MSG_NO_DRUGS_FOUND = "هیچ دارویی در فایل یافت نشد"


def utc_now_iso() -> str:
    """زمان فعلی UTC به قالب ISO-8601 با پسوند Z."""

    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_drug_id(
    code: str,
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> str:
    """ساخت شناسهٔ یکتا به شکل ``drug_<code>_<epoch-ms>_<9 نویسهٔ base36>``.

    مثال::

        >>> generate_drug_id("A1", now_ms=1700000000000, rng=random.Random(7)).startswith("drug_A1_1700000000000_")
        True
    """

    stamp = int(time.time() * 1000) if now_ms is None else int(now_ms)
    source = rng or random
    suffix = "".join(source.choice(_BASE36) for _ in range(_ID_SUFFIX_LENGTH))
    return f"drug_{code}_{stamp}_{suffix}"


def _as_quantity(value: Any, label: str) -> float:
    message = f"مقدار {label} نامعتبر است"
    if isinstance(value, bool):
        raise DrugValidationError(func="Drug", column=label, value=value, message=message)
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise DrugValidationError(func="Drug", column=label, value=value, message=message) from exc
    if not math.isfinite(number):
        raise DrugValidationError(func="Drug", column=label, value=value, message=message)
    return number


def _settled_difference(system_qty: float, physical_qty: float, difference: Any) -> float:
    counted = physical_qty - system_qty
    if physical_qty != 0:
        return counted
    try:
        previous = float(difference)
    except (TypeError, ValueError):
        return 0.0
    return counted if previous == counted else 0.0


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class Drug:
    """یک قلم موجودی.

    ``difference`` فقط دو حالت مجاز دارد: پیش از شمارش صفر است و پس از هر
    شمارش برابر ``physical_qty - system_qty``. شمارش صفر صریح (کالا در انبار
    نیست) تفاوت ``-system_qty`` را نگه می‌دارد؛ هر مقدار دیگری هنگام ساخت
    به حالت مجاز برگردانده می‌شود.
    """

    id: str
    code: str
    name: str
    system_qty: float
    physical_qty: float = 0.0
    difference: float = 0.0
    notes: str | None = None
    stock: float | None = None
    category: str | None = None
    unit: str | None = None
    created_at: str | None = None

    def __post_init__(self) -> None:
        system_qty = _as_quantity(self.system_qty, "systemQty")
        physical_qty = _as_quantity(self.physical_qty, "physicalQty")
        object.__setattr__(self, "system_qty", system_qty)
        object.__setattr__(self, "physical_qty", physical_qty)
        settled = _settled_difference(system_qty, physical_qty, self.difference)
        object.__setattr__(self, "difference", settled)

    @property
    def is_counted(self) -> bool:
        return self.physical_qty > 0

    def with_physical_qty(self, physical_qty: float, notes: str | None = None) -> "Drug":
        """نسخهٔ جدید با شمارش فیزیکی تازه و تفاوت بازمحاسبه‌شده."""

        counted = _as_quantity(physical_qty, "physicalQty")
        changes: dict[str, Any] = {"physical_qty": counted, "difference": counted - self.system_qty}
        if notes is not None:
            changes["notes"] = notes
        return replace(self, **changes)

    def with_id(self, new_id: str) -> "Drug":
        return replace(self, id=new_id)

    def to_dict(self) -> dict[str, Any]:
        """شکل JSON ذخیره‌شده (کلیدهای camelCase)."""

        payload: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "systemQty": self.system_qty,
            "physicalQty": self.physical_qty,
            "difference": self.difference,
        }
        optional = {
            "notes": self.notes,
            "stock": self.stock,
            "category": self.category,
            "unit": self.unit,
            "createdAt": self.created_at,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Drug":
        """بازسازی از شکل JSON؛ ``difference`` ذخیره‌شده به حالت مجاز برگردانده می‌شود."""

        try:
            drug_id = payload["id"]
            code = payload["code"]
            name = payload["name"]
        except KeyError as exc:
            raise DrugValidationError(func="Drug.from_dict", column=str(exc.args[0])) from exc
        return cls(
            id=str(drug_id),
            code=str(code),
            name=str(name),
            system_qty=payload.get("systemQty", 0),
            physical_qty=payload.get("physicalQty", 0) or 0,
            difference=payload.get("difference", 0) or 0,
            notes=_optional_text(payload.get("notes")),
            stock=_optional_float(payload.get("stock")),
            category=_optional_text(payload.get("category")),
            unit=_optional_text(payload.get("unit")),
            created_at=_optional_text(payload.get("createdAt")),
        )


def create_drug(
    code: str,
    name: str,
    system_qty: float,
    *,
    physical_qty: float = 0.0,
    notes: str | None = None,
    stock: float | None = None,
    category: str | None = None,
    unit: str | None = None,
    id_factory: Callable[[str], str] = generate_drug_id,
    created_at: str | None = None,
) -> Drug:
    """ساخت رکورد تازه با شناسهٔ جدید و زمان ایجاد."""

    return Drug(
        id=id_factory(code),
        code=code,
        name=name,
        system_qty=system_qty,
        physical_qty=physical_qty,
        notes=notes,
        stock=stock,
        category=category,
        unit=unit,
        created_at=created_at or utc_now_iso(),
    )


@dataclass(frozen=True, slots=True)
class DrugStats:
    """آمار تجمیعی مجموعهٔ رکوردها."""

    total_items: int = 0
    counted_items: int = 0
    matched_items: int = 0
    shortage_items: int = 0
    surplus_items: int = 0
    total_difference: float = 0.0

    @property
    def progress_percent(self) -> float:
        if not self.total_items:
            return 0.0
        return self.counted_items / self.total_items * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalItems": self.total_items,
            "countedItems": self.counted_items,
            "matchedItems": self.matched_items,
            "shortageItems": self.shortage_items,
            "surplusItems": self.surplus_items,
            "totalDifference": self.total_difference,
        }


@dataclass(frozen=True, slots=True)
class ImportResult:
    """نتیجهٔ یک عملیات ورود فایل؛ پیام‌ها آمادهٔ نمایش مستقیم به کاربر هستند."""

    success: bool
    imported_count: int = 0
    duplicate_count: int = 0
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        if not self.success:
            return self.errors[0] if self.errors else MSG_NO_DRUGS_FOUND
        if self.imported_count == 0:
            return MSG_NO_DRUGS_FOUND
        return f"{format_number(self.imported_count)} دارو با موفقیت اضافه شد"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "importedCount": self.imported_count,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }
