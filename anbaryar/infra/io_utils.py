"""ابزارهای ورودی/خروجی فایل‌های موجودی (CSV و Excel) در لایهٔ زیرساخت.

این ماژول فقط بایت‌ها را به جدول دوبعدی سلول‌ها تبدیل می‌کند و برعکس؛ هیچ
منطق دامنه‌ای در آن قرار ندارد تا اصل جداسازی Core/Infra حفظ شود.
"""

from __future__ import annotations

import contextlib
import io
import logging
import math
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime
from os import PathLike
from pathlib import Path
from typing import Any, Iterator, List, Sequence, Tuple

import pandas as pd

from anbaryar.infra.errors import WorkbookReadError

__all__ = [
    "Cell",
    "Grid",
    "SheetSpec",
    "is_csv_path",
    "is_spreadsheet_container",
    "parse_csv_line",
    "read_csv_text",
    "read_workbook",
    "read_workbook_file",
    "write_workbook",
    "write_xlsx_atomic",
]

Cell = Any
Grid = List[List[Cell]]

_LOGGER = logging.getLogger(__name__)
_INVALID_SHEET_CHARS = re.compile(r"[\\/*?:\[\]]")
_LINE_SPLIT = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class SheetSpec:
    """یک شیت خروجی: نام، ردیف‌ها (شامل سرستون) و عرض پیشنهادی ستون‌ها.

    ``freeze_header`` ردیف اول را هنگام پیمایش ثابت نگه می‌دارد.
    """

    name: str
    rows: Sequence[Sequence[Cell]]
    column_widths: Tuple[float, ...] = field(default=())
    freeze_header: bool = True


def _safe_sheet_name(name: str, taken: set[str]) -> str:
    """اصلاح و یکتا‌سازی نام شیت مطابق محدودیت‌های Excel."""

    base = _INVALID_SHEET_CHARS.sub(" ", (name or "Sheet").strip()) or "Sheet"
    base = base[:31]
    candidate = base
    index = 2
    while candidate in taken or not candidate:
        suffix = f" ({index})"
        candidate = (base[: max(0, 31 - len(suffix))] + suffix).rstrip()
        index += 1
    taken.add(candidate)
    return candidate


def is_csv_path(path: str | PathLike[str]) -> bool:
    return Path(path).suffix.lower() == ".csv"


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def parse_csv_line(line: str) -> List[str]:
    """تجزیهٔ یک خط CSV با پشتیبانی از فیلدهای داخل گیومه.

    گیومه وضعیت «داخل گیومه» را تغییر می‌دهد، کامای بیرون از گیومه جداکننده
    است و ``""`` درون گیومه یک گیومهٔ واقعی است. سلول‌ها trim می‌شوند.

    مثال::

        >>> parse_csv_line('ABC123,"Drug, with comma",100')
        ['ABC123', 'Drug, with comma', '100']
    """

    cells: List[str] = []
    current: List[str] = []
    in_quotes = False
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    cells.append("".join(current).strip())
    return cells


def read_csv_text(text: str) -> Grid:
    """تبدیل متن CSV به جدول؛ خطوط خالی حذف می‌شوند."""

    return [parse_csv_line(line) for line in _LINE_SPLIT.split(text) if line.strip()]


def _normalize_cell(value: Any) -> Cell:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    try:
        if pd.isna(value):  # type: ignore[arg-type]
            return None
    except (TypeError, ValueError):
        pass
    item = getattr(value, "item", None)
    if callable(item) and not isinstance(value, (str, bytes, datetime, date)):
        # numpy scalar → Python scalar
        try:
            return item()
        except (TypeError, ValueError):
            return value
    return value


def _frame_to_grid(frame: pd.DataFrame) -> Grid:
    grid: Grid = []
    for raw_row in frame.itertuples(index=False, name=None):
        row = [_normalize_cell(value) for value in raw_row]
        while row and (row[-1] is None or (isinstance(row[-1], str) and not row[-1].strip())):
            row.pop()
        if row:
            grid.append(row)
    return grid


def _decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


_CONTAINER_SIGNATURES = (
    b"PK\x03\x04",  # xlsx (zip)
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",  # xls (OLE2)
)


def is_spreadsheet_container(data: bytes) -> bool:
    """آیا بایت‌ها با امضای فایل xlsx یا xls شروع می‌شوند؟

    مثال::

        >>> is_spreadsheet_container(b"code,name,qty")
        False
    """

    return data.startswith(_CONTAINER_SIGNATURES)


def read_workbook(data: bytes, is_csv: bool, *, source: str = "<bytes>") -> Grid:
    """رمزگشایی بایت‌های فایل به جدول دوبعدی سلول‌ها.

    برای CSV متن UTF-8 خط‌به‌خط تجزیه می‌شود. برای فایل دودویی، شیت اول با
    pandas خوانده می‌شود. اگر بایت‌ها امضای xlsx/xls داشته باشند و خوانده
    نشوند (فایل خراب یا موتور ناموجود) :class:`WorkbookReadError` پرتاب
    می‌شود؛ در غیر این صورت بایت‌ها به‌عنوان CSV تفسیر می‌شوند (فایل متنی با
    پسوند اشتباه).
    """

    if is_csv:
        return read_csv_text(_decode_text(data))

    try:
        frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object)
    except Exception as exc:
        if is_spreadsheet_container(data):
            _LOGGER.error("رمزگشایی فایل Excel %s ناموفق بود: %s", source, exc)
            raise WorkbookReadError(path=source, detail=str(exc) or exc.__class__.__name__) from exc
        _LOGGER.warning("فایل %s قالب Excel ندارد؛ تلاش با CSV: %s", source, exc)
        return read_csv_text(_decode_text(data))
    return _frame_to_grid(frame)


def read_workbook_file(path: str | PathLike[str]) -> Grid:
    """خواندن فایل از دیسک و انتخاب قالب بر اساس پسوند ``.csv``."""

    source = Path(path)
    try:
        data = source.read_bytes()
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"فایل یافت نشد: {source}") from exc
    except OSError as exc:
        raise WorkbookReadError(path=str(source), detail=str(exc)) from exc
    _LOGGER.debug("فایل %s خوانده شد (%d بایت)", source, len(data))
    return read_workbook(data, is_csv_path(source), source=str(source))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

@contextlib.contextmanager
def _temporary_file_path(*, suffix: str = "", directory: Path | str | None = None) -> Iterator[Path]:
    """مدیریت مسیر فایل موقتی با پاک‌سازی خودکار پس از اتمام کار."""

    fd, name = tempfile.mkstemp(suffix=suffix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def _pick_engine() -> str | None:
    """انتخاب بهترین engine نصب‌شده برای نوشتن Excel."""

    forced = os.getenv("EXCEL_ENGINE")
    if forced in {"openpyxl", "xlsxwriter"}:
        return forced

    for engine in ("openpyxl", "xlsxwriter"):
        try:
            __import__(engine)
        except Exception:
            continue
        return engine
    return None


def _sheet_frame(spec: SheetSpec) -> pd.DataFrame:
    rows = [list(row) for row in spec.rows]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows, dtype=object)


def write_workbook(
    sheets: Sequence[SheetSpec],
    *,
    rtl: bool = True,
    font_name: str | None = None,
    font_size: int | None = None,
) -> bytes:
    """سریال‌سازی شیت‌ها به یک فایل xlsx در حافظه.

    هر :class:`SheetSpec` یک شیت می‌سازد؛ ردیف اول هر شیت سرستون فرض می‌شود و
    عرض ستون‌ها از ``column_widths`` خوانده می‌شود.
    """

    from anbaryar.infra.excel.formatting import apply_workbook_formatting

    if not sheets:
        raise ValueError("at least one sheet is required")
    engine = _pick_engine()
    if engine is None:
        raise RuntimeError("هیچ engine نوشتن Excel (openpyxl/xlsxwriter) نصب نیست")

    buffer = io.BytesIO()
    taken: set[str] = set()
    written: dict[str, SheetSpec] = {}
    with pd.ExcelWriter(buffer, engine=engine) as writer:
        for spec in sheets:
            safe_name = _safe_sheet_name(str(spec.name), taken)
            frame = _sheet_frame(spec)
            frame.to_excel(writer, sheet_name=safe_name, index=False, header=False)
            written[safe_name] = spec
        apply_workbook_formatting(
            writer,
            engine=engine,
            sheets=written,
            rtl=rtl,
            font_name=font_name,
            font_size=font_size,
        )
    return buffer.getvalue()


def write_xlsx_atomic(
    sheets: Sequence[SheetSpec],
    filepath: Path | str | PathLike[str],
    *,
    rtl: bool = True,
    font_name: str | None = None,
    font_size: int | None = None,
) -> Path:
    """نوشتن امن و اتمیک فایل xlsx (فایل موقت و سپس ``os.replace``)."""

    target_path = Path(filepath)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    payload = write_workbook(sheets, rtl=rtl, font_name=font_name, font_size=font_size)
    with _temporary_file_path(suffix=".xlsx", directory=target_path.parent) as tmp_path:
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, target_path)
    return target_path
