"""زیرساخت ساخت و قالب‌بندی خروجی‌های Excel گزارش شمارش."""

from .formatting import apply_workbook_formatting

__all__ = ["apply_workbook_formatting"]
