"""Inventory Config Loader (Core): سبک، کش‌شونده و با مقادیر پیش‌فرض امن.

نکتهٔ معماری: اگر قرار باشد I/O از Core خارج شود، کافی است دادهٔ JSON خوانده‌شده
در Infra به تابع :func:`parse_inventory_config` پاس داده شود. این ماژول هر دو
مسیر را فراهم می‌کند. نبودِ فایل تنظیمات خطا نیست و پیکربندی پیش‌فرض برمی‌گردد.

مثال::

    >>> config = parse_inventory_config({"header_scan_rows": 3})
    >>> config.header_scan_rows, config.export.prefix
    (3, 'anbaryad_export')
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Tuple

from anbaryar.utils.path_utils import resource_path

from .common.columns import DEFAULT_SCAN_ROWS, ColumnMap
from .common.normalization import DEFAULT_REPAIR_STRATEGIES, validate_repair_strategies

__all__ = [
    "DEFAULT_CONFIG_VERSION",
    "DEFAULT_CONFIG_PATH",
    "ExportOptions",
    "ExcelOptions",
    "InventoryConfig",
    "parse_inventory_config",
    "load_inventory_config",
    "get_inventory_config",
]

DEFAULT_CONFIG_VERSION = "1.0.0"
DEFAULT_CONFIG_PATH = resource_path("config", "inventory.json")

_DEFAULT_EXPORT_OPTIONS: Mapping[str, object] = {
    "prefix": "anbaryad_export",
    "subdirectory": "AnbarYar",
    "include_summary": True,
}
_DEFAULT_EXCEL_OPTIONS: Mapping[str, object] = {
    "rtl": True,
    "font_name": "Vazirmatn",
    "font_size": 11,
}
_DEFAULT_COLUMN_MAP: Mapping[str, int] = {"code": 1, "name": 2, "system_qty": 3}
_FORBIDDEN_FILENAME_CHARS = set('\\/:*?"<>|')


@dataclass(frozen=True)
class ExportOptions:
    """تنظیمات فایل خروجی گزارش."""

    prefix: str
    subdirectory: str
    include_summary: bool


@dataclass(frozen=True)
class ExcelOptions:
    """تنظیمات ظاهری Excel (جهت و فونت)."""

    rtl: bool
    font_name: str
    font_size: int


@dataclass(frozen=True)
class InventoryConfig:
    """پیکربندی نهایی و فقط‌خواندنی ورود/خروج داده."""

    version: str
    header_scan_rows: int
    default_column_map: ColumnMap
    repair_strategies: Tuple[str, ...]
    export: ExportOptions
    excel: ExcelOptions


def _normalize_scan_rows(value: object) -> int:
    if isinstance(value, bool):
        raise TypeError("header_scan_rows must be an integer")
    try:
        rows = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise TypeError("header_scan_rows must be an integer") from exc
    if rows <= 0:
        raise ValueError("header_scan_rows must be a positive integer")
    return rows


def _normalize_column_map(payload: object) -> ColumnMap:
    if not isinstance(payload, Mapping):
        raise TypeError("default_column_map must be an object")
    values: Dict[str, int] = {}
    for key in ("code", "name", "system_qty"):
        raw = payload.get(key, _DEFAULT_COLUMN_MAP[key])
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            raise ValueError(f"default_column_map.{key} must be a non-negative integer")
        values[key] = raw
    if len(set(values.values())) != len(values):
        raise ValueError("default_column_map indices must be distinct")
    return ColumnMap(**values, is_default=True)


def _normalize_strategies(payload: object) -> Tuple[str, ...]:
    if isinstance(payload, str) or not isinstance(payload, (list, tuple)):
        raise TypeError("repair_strategies must be a list of strategy names")
    return validate_repair_strategies(payload)


def _normalize_export_options(payload: object) -> ExportOptions:
    if not isinstance(payload, Mapping):
        raise TypeError("export must be an object")
    merged = {**_DEFAULT_EXPORT_OPTIONS, **payload}
    prefix = str(merged["prefix"]).strip()
    if not prefix:
        raise ValueError("export.prefix must be a non-empty string")
    if any(ch in _FORBIDDEN_FILENAME_CHARS for ch in prefix):
        raise ValueError("export.prefix contains characters not allowed in file names")
    subdirectory = str(merged["subdirectory"]).strip()
    if not subdirectory:
        raise ValueError("export.subdirectory must be a non-empty string")
    return ExportOptions(
        prefix=prefix,
        subdirectory=subdirectory,
        include_summary=bool(merged["include_summary"]),
    )


def _normalize_excel_options(payload: object) -> ExcelOptions:
    """اعتبارسنجی و نرمال‌سازی گزینه‌های Excel."""

    if not isinstance(payload, Mapping):
        raise TypeError("excel must be an object")
    merged = {**_DEFAULT_EXCEL_OPTIONS, **payload}
    try:
        font_size = int(merged["font_size"])  # type: ignore[arg-type]
    except (ValueError, TypeError) as exc:  # pragma: no cover - defensive branch
        raise TypeError("excel.font_size must be an integer") from exc
    if font_size <= 0:
        raise ValueError("excel.font_size must be a positive integer")
    return ExcelOptions(
        rtl=bool(merged["rtl"]),
        font_name=str(merged["font_name"]),
        font_size=font_size,
    )


def parse_inventory_config(data: Mapping[str, object]) -> InventoryConfig:
    """مسیر خالص برای تبدیل dict به :class:`InventoryConfig`."""

    if not isinstance(data, Mapping):
        raise TypeError("inventory config must be a JSON object")
    return InventoryConfig(
        version=str(data.get("version", DEFAULT_CONFIG_VERSION)),
        header_scan_rows=_normalize_scan_rows(data.get("header_scan_rows", DEFAULT_SCAN_ROWS)),
        default_column_map=_normalize_column_map(data.get("default_column_map", _DEFAULT_COLUMN_MAP)),
        repair_strategies=_normalize_strategies(
            data.get("repair_strategies", list(DEFAULT_REPAIR_STRATEGIES))
        ),
        export=_normalize_export_options(data.get("export", {})),
        excel=_normalize_excel_options(data.get("excel", {})),
    )


@lru_cache(maxsize=8)
def _load_config_cached(resolved_path: str, raw: str, mtime_ns: int) -> InventoryConfig:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in inventory config: {resolved_path}") from exc
    return parse_inventory_config(data)


def load_inventory_config(path: str | Path = DEFAULT_CONFIG_PATH) -> InventoryConfig:
    """بارگذاری تنظیمات از فایل JSON؛ فایل ناموجود → پیکربندی پیش‌فرض."""

    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
        mtime_ns = config_path.stat().st_mtime_ns
    except FileNotFoundError:
        return parse_inventory_config({})
    return _load_config_cached(str(config_path.resolve()), raw, mtime_ns)


load_inventory_config.cache_clear = _load_config_cached.cache_clear  # type: ignore[attr-defined]
load_inventory_config.cache_info = _load_config_cached.cache_info  # type: ignore[attr-defined]


def get_inventory_config() -> InventoryConfig:
    """دسترسی ساده برای دریافت پیکربندی کش‌شده."""

    return load_inventory_config()
