"""ادغام رکوردهای تازه با مجموعهٔ فعلی و حذف تکرارها (Core-only).

منطق ادغام کاملاً خالص است؛ ذخیره‌سازی و اطلاع‌رسانی بر عهدهٔ لایهٔ Infra
است. کلید تجاری برای تشخیص تکرار «کد» نرمال‌شده است و هر رکورد پذیرفته‌شده
شناسهٔ تازه دریافت می‌کند.

مثال::

    >>> from anbaryar.core.models import Drug
    >>> existing = [Drug(id="d1", code="A1", name="Aspirin", system_qty=10)]
    >>> incoming = [Drug(id="x", code="A1", name="Aspirin", system_qty=10),
    ...             Drug(id="y", code="B2", name="Zinc", system_qty=5)]
    >>> result = reconcile(existing, incoming, id_factory=lambda code: f"new_{code}")
    >>> [drug.id for drug in result.merged], result.duplicate_count
    (['d1', 'new_B2'], 1)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple

from .common.normalization import format_number, normalize_text
from .models import MSG_ALL_DUPLICATES, MSG_NO_DRUGS_FOUND, Drug, ImportResult, generate_drug_id

__all__ = [
    "ReconcileResult",
    "reconcile",
    "remove_duplicate_ids",
    "build_import_result",
]


@dataclass(frozen=True)
class ReconcileResult:
    """خروجی ادغام: مجموعهٔ نهایی و شمارش پذیرفته/تکراری."""

    merged: Tuple[Drug, ...]
    accepted: Tuple[Drug, ...]
    imported_count: int
    duplicate_count: int

    @property
    def all_duplicates(self) -> bool:
        return self.imported_count == 0 and self.duplicate_count > 0


def _code_key(code: str) -> str:
    return normalize_text(code)


def reconcile(
    existing: Sequence[Drug],
    incoming: Iterable[Drug],
    id_factory: Callable[[str], str] = generate_drug_id,
) -> ReconcileResult:
    """افزودن رکوردهای تازه‌ای که کدشان در مجموعهٔ فعلی نیست.

    کدی که پیش‌تر در همین دسته پذیرفته شده نیز تکراری حساب می‌شود تا
    مجموعهٔ نهایی در لحظهٔ ادغام کد تکراری نداشته باشد.
    """

    seen = {_code_key(drug.code) for drug in existing}
    accepted: List[Drug] = []
    duplicates = 0
    for drug in incoming:
        key = _code_key(drug.code)
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        accepted.append(drug.with_id(id_factory(drug.code)))

    return ReconcileResult(
        merged=tuple(existing) + tuple(accepted),
        accepted=tuple(accepted),
        imported_count=len(accepted),
        duplicate_count=duplicates,
    )


def remove_duplicate_ids(drugs: Iterable[Drug]) -> List[Drug]:
    """حذف رکوردهای با شناسهٔ تکراری با حفظ اولین نمونه و ترتیب.

    مثال::

        >>> from anbaryar.core.models import Drug
        >>> items = [Drug(id="a", code="1", name="x", system_qty=1),
        ...          Drug(id="a", code="2", name="y", system_qty=2)]
        >>> [drug.code for drug in remove_duplicate_ids(items)]
        ['1']
    """

    seen: set[str] = set()
    unique: List[Drug] = []
    for drug in drugs:
        if drug.id in seen:
            continue
        seen.add(drug.id)
        unique.append(drug)
    return unique


def build_import_result(
    result: ReconcileResult,
    *,
    row_errors: Sequence[str] = (),
    extra_warnings: Sequence[str] = (),
) -> ImportResult:
    """ساخت :class:`ImportResult` با پیام‌های فارسی آمادهٔ نمایش."""

    errors = list(row_errors)
    warnings: List[str] = []

    if result.all_duplicates:
        errors.insert(0, MSG_ALL_DUPLICATES)
        return ImportResult(
            success=False,
            imported_count=0,
            duplicate_count=result.duplicate_count,
            errors=tuple(errors),
            warnings=tuple(extra_warnings),
        )

    if result.imported_count == 0:
        warnings.append(MSG_NO_DRUGS_FOUND)
    if result.duplicate_count:
        warnings.append(f"{format_number(result.duplicate_count)} داروی تکراری نادیده گرفته شد")
    warnings.extend(extra_warnings)

    return ImportResult(
        success=True,
        imported_count=result.imported_count,
        duplicate_count=result.duplicate_count,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )
