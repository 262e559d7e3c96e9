"""رابط خط فرمان headless برای ورود فایل، شمارش و گزارش موجودی.

این ماژول فقط آرگومان‌ها را تجزیه، :class:`InventoryService` را فراخوانی و
نتیجه را چاپ می‌کند؛ هیچ منطق دامنه‌ای در آن نیست.

مثال::

    >>> from anbaryar.infra import cli
    >>> cli.main(["--db", "inv.sqlite3", "import", "stock.xlsx"])  # doctest: +SKIP
    0
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence

from anbaryar import __version__
from anbaryar.core.common.errors import DomainError
from anbaryar.core.common.normalization import format_number
from anbaryar.core.config import get_inventory_config
from anbaryar.core.filters import SORT_KEYS, FilterOptions
from anbaryar.core.models import Drug
from anbaryar.infra.errors import InfraError
from anbaryar.infra.excel.exporter import export_template, status_label
from anbaryar.infra.inventory_service import InventoryService
from anbaryar.infra.logging import configure_logging, install_exception_hook
from anbaryar.infra.storage import InventoryStorage
from anbaryar.utils.path_utils import APP_NAME, default_database_path

__all__ = ["main"]

_LOGGER = logging.getLogger(__name__)

ServiceFactory = Callable[[argparse.Namespace], InventoryService]


def _build_parser() -> argparse.ArgumentParser:
    """ایجاد پارسر با زیرفرمان‌های ورود، خروجی، آمار و ویرایش."""

    parser = argparse.ArgumentParser(prog="anbaryar", description="AnbarYar inventory count CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--db",
        default=None,
        help="مسیر پایگاه دادهٔ SQLite (پیش‌فرض: پوشهٔ دادهٔ کاربر)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="سطح لاگ کنسول (پیش‌فرض از ANBARYAR_LOG_LEVEL یا config/logging.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    import_cmd = sub.add_parser("import", help="ورود فایل Excel یا CSV موجودی سیستم")
    import_cmd.add_argument("file", help="مسیر فایل xlsx/xls/csv")

    export_cmd = sub.add_parser("export", help="ساخت گزارش Excel شمارش")
    export_cmd.add_argument("--out", default=None, help="پوشهٔ خروجی (پیش‌فرض: Documents/AnbarYar)")
    export_cmd.add_argument("--prefix", default=None, help="پیشوند نام فایل خروجی")
    export_cmd.add_argument(
        "--no-summary",
        action="store_true",
        help="فقط یک شیت «شمارش انبار» بدون شیت خلاصه",
    )

    stats_cmd = sub.add_parser("stats", help="نمایش آمار شمارش")
    stats_cmd.add_argument("--json", action="store_true", help="خروجی JSON")

    list_cmd = sub.add_parser("list", help="فهرست داروها با فیلتر و مرتب‌سازی")
    list_cmd.add_argument("--search", default="", help="جست‌وجو در نام یا کد")
    status_group = list_cmd.add_mutually_exclusive_group()
    status_group.add_argument("--shortage", action="store_true", help="فقط اقلام دارای کمبود")
    status_group.add_argument("--surplus", action="store_true", help="فقط اقلام دارای مازاد")
    status_group.add_argument("--counted", action="store_true", help="فقط اقلام شمارش‌شده")
    status_group.add_argument("--uncounted", action="store_true", help="فقط اقلام شمارش‌نشده")
    list_cmd.add_argument("--sort", choices=SORT_KEYS, default=None, help="کلید مرتب‌سازی")

    count_cmd = sub.add_parser("count", help="ثبت شمارش فیزیکی یک قلم")
    count_cmd.add_argument("id", help="شناسهٔ دارو")
    count_cmd.add_argument("qty", type=float, help="تعداد شمارش‌شده")
    count_cmd.add_argument("--notes", default=None, help="توضیحات")

    remove_cmd = sub.add_parser("remove", help="حذف یک قلم")
    remove_cmd.add_argument("id", help="شناسهٔ دارو")

    sub.add_parser("clear", help="حذف همهٔ داده‌های ذخیره‌شده")
    sub.add_parser("dedupe", help="حذف رکوردهای با شناسهٔ تکراری")

    template_cmd = sub.add_parser("template", help="ساخت فایل الگوی ورود")
    template_cmd.add_argument("--out", default="anbaryar_template.xlsx", help="مسیر فایل الگو")
    return parser


def _default_service(args: argparse.Namespace) -> InventoryService:
    db_path = Path(args.db) if args.db else default_database_path()
    service = InventoryService(InventoryStorage(db_path))
    service.load_data()
    return service


def _format_drug(drug: Drug) -> str:
    counted = format_number(drug.physical_qty) if drug.is_counted else "-"
    return (
        f"{drug.id}\t{drug.code}\t{drug.name}\t"
        f"{format_number(drug.system_qty)}\t{counted}\t{status_label(drug.difference)}"
    )


def _run_import(service: InventoryService, args: argparse.Namespace) -> int:
    result = service.import_file(args.file)
    marker = "✅" if result.success else "❌"
    print(f"{marker} {result.message}")
    for error in result.errors:
        if error != result.message:
            print(f"  - {error}", file=sys.stderr)
    for warning in result.warnings:
        if warning != result.message:
            print(f"⚠️  {warning}")
    return 0 if result.success else 1


def _run_export(service: InventoryService, args: argparse.Namespace) -> int:
    path = service.export_report(
        directory=args.out,
        prefix=args.prefix,
        include_summary=False if args.no_summary else None,
    )
    print(f"✅ گزارش ذخیره شد: {path}")
    return 0


def _run_stats(service: InventoryService, args: argparse.Namespace) -> int:
    stats = service.get_stats()
    if args.json:
        payload = stats.to_dict()
        payload["lastImportDate"] = service.last_import_date
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0
    print("=== آمار شمارش انبار ===")
    print(f"کل اقلام: {stats.total_items}")
    print(f"شمارش شده: {stats.counted_items} ({stats.progress_percent:.0f}%)")
    print(f"مطابق: {stats.matched_items}")
    print(f"کمبود: {stats.shortage_items}")
    print(f"مازاد: {stats.surplus_items}")
    print(f"مجموع تفاوت: {format_number(stats.total_difference)}")
    if service.last_import_date:
        print(f"آخرین ورود: {service.last_import_date}")
    return 0


def _run_list(service: InventoryService, args: argparse.Namespace) -> int:
    options = FilterOptions(
        search_query=args.search,
        show_only_shortage=args.shortage,
        show_only_surplus=args.surplus,
        show_only_counted=args.counted,
        show_only_uncounted=args.uncounted,
        sort_by=args.sort,
    )
    drugs = service.get_filtered_drugs(options)
    for drug in drugs:
        print(_format_drug(drug))
    print(f"({len(drugs)} قلم)")
    return 0


def _run_count(service: InventoryService, args: argparse.Namespace) -> int:
    drug = service.update_physical_count(args.id, args.qty, notes=args.notes)
    print(f"✅ {drug.name}: {status_label(drug.difference)}")
    return 0


def _run_remove(service: InventoryService, args: argparse.Namespace) -> int:
    drug = service.remove_drug(args.id)
    print(f"✅ {drug.name} حذف شد")
    return 0


def _run_clear(service: InventoryService, args: argparse.Namespace) -> int:
    service.clear_drugs()
    print("✅ همهٔ داده‌ها پاک شد")
    return 0


def _run_dedupe(service: InventoryService, args: argparse.Namespace) -> int:
    removed = service.remove_duplicates()
    print(f"✅ {removed} رکورد تکراری حذف شد")
    return 0


def _run_template(args: argparse.Namespace) -> int:
    path = export_template(args.out, config=get_inventory_config())
    print(f"✅ فایل الگو ذخیره شد: {path}")
    return 0


_RUNNERS: dict[str, Callable[[InventoryService, argparse.Namespace], int]] = {
    "import": _run_import,
    "export": _run_export,
    "stats": _run_stats,
    "list": _run_list,
    "count": _run_count,
    "remove": _run_remove,
    "clear": _run_clear,
    "dedupe": _run_dedupe,
}


def main(
    argv: Sequence[str] | None = None,
    *,
    service_factory: ServiceFactory | None = None,
    configure_logs: bool = True,
) -> int:
    """نقطهٔ ورود CLI؛ خروجی ۰ موفقیت، ۱ ورود ناموفق و ۲ خطای اجرا است."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    restore_hook: Callable[[], None] | None = None
    if configure_logs:
        context = configure_logging(app_name=APP_NAME, app_version=__version__, level=args.log_level)
        restore_hook = install_exception_hook(logging.getLogger("anbaryar"), context)

    try:
        if args.command == "template":
            return _run_template(args)
        runner = _RUNNERS.get(args.command)
        if runner is None:
            raise RuntimeError(f"Unsupported command: {args.command}")
        service = (service_factory or _default_service)(args)
        return runner(service, args)
    except (DomainError, InfraError, FileNotFoundError, ValueError) as exc:
        _LOGGER.error("فرمان %s ناموفق بود: %s", args.command, exc)
        print(f"❌ {exc}", file=sys.stderr)
        return 2
    finally:
        if restore_hook is not None:
            restore_hook()


if __name__ == "__main__":
    raise SystemExit(main())
