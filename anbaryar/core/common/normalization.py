# -*- coding: utf-8 -*-
"""
A compact, fail-safe text cleaner for spreadsheet cells (Python 3.10+).

Public API:
- normalize_text(value: Any) -> str
- repair_mojibake(text: str, strategies=...) -> str
- clean_cell_text(value: Any, strategies=...) -> str
- validate_repair_strategies(names) -> tuple[str, ...]
- fold_digits(text: str) -> str
- format_number(value: float) -> str
- cell_to_text(value: Any) -> str

Design notes:
- Side-effect free on import and on inputs.
- Deterministic; no exceptions escape to callers (except configuration
  validation, which raises ValueError up front).
- Core string normalization cached with @lru_cache(maxsize=1024).
"""
from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, Sequence, Tuple

import pandas as pd

from .mojibake_table import LITERAL_REPAIRS

__all__ = [
    "MOJIBAKE_MARKERS",
    "DEFAULT_REPAIR_STRATEGIES",
    "normalize_text",
    "has_mojibake",
    "repair_mojibake",
    "clean_cell_text",
    "validate_repair_strategies",
    "fold_digits",
    "format_number",
    "cell_to_text",
]

# ---------------------------------------------------------------------------
# Constants & Regex Patterns (internal)
# ---------------------------------------------------------------------------

# Zero-width, BOM, directional embeddings/isolates and invisible operators.
_RE_INVISIBLE = re.compile(r"[\u200b-\u200d\ufeff\u202a-\u202e\u2060-\u2069]")

# NBSP, typographic spaces, LRM/RLM and line/paragraph separators act as spaces.
_RE_SPACE_LIKE = re.compile(r"[\u00a0\u2000-\u200a\u200e\u200f\u2028\u2029]")

_RE_WHITESPACE = re.compile(r"\s+")

_PUNCT_TRANSLATION = str.maketrans(
    {
        "\u201c": '"',  # left double quote
        "\u201d": '"',  # right double quote
        "\u2018": "'",  # left single quote
        "\u2019": "'",  # right single quote
        "\u2013": "-",  # en dash
        "\u2014": "-",  # em dash
    }
)

# Arabic-Indic (0660–0669) and Extended Arabic-Indic (06F0–06F9) → ASCII digits
_DIGIT_TRANSLATION: Dict[int, int | None] = {
    **{ord(chr(0x0660 + i)): ord(str(i)) for i in range(10)},
    **{ord(chr(0x06F0 + i)): ord(str(i)) for i in range(10)},
    ord("٫"): ord("."),  # ARABIC DECIMAL SEPARATOR
    ord("٬"): None,  # ARABIC THOUSANDS SEPARATOR
    ord("\u2212"): ord("-"),  # MINUS SIGN
}

# Ø Ù Ú Û are the lead bytes of U+0600–U+06FF seen through latin-1;
# Ã and Â are the lead bytes of U+0080–U+00FF (double-encoded text).
MOJIBAKE_MARKERS = frozenset("ØÙÚÛÃÂ")

DEFAULT_REPAIR_STRATEGIES: Tuple[str, ...] = ("bytes", "literal")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _is_missing(value: Any) -> bool:
    """Return True for None/NaN/NA scalars. Fail-safe."""
    try:
        if value is None:
            return True
        if isinstance(value, float):
            return math.isnan(value)
        if isinstance(value, (str, bytes, bytearray, int)):
            return False
        result = pd.isna(value)
        return bool(result) if isinstance(result, bool) else False
    except Exception:
        return False


def _trim_fraction_zeros(num_str: str) -> str:
    """Remove trailing fractional zeros; fix '.5'→'0.5' and '10.'→'10'."""
    try:
        if "." not in num_str or "e" in num_str.lower():
            return num_str
        sign = ""
        if num_str.startswith("-"):
            sign, num_str = "-", num_str[1:]
        int_part, _, frac_part = num_str.partition(".")
        frac_part = frac_part.rstrip("0")
        if not int_part:
            int_part = "0"
        if frac_part:
            return f"{sign}{int_part}.{frac_part}"
        return f"{sign}{int_part}"
    except Exception:
        return num_str or ""


def format_number(value: float) -> str:
    """نمایش پایدار عدد بدون صفرهای اضافهٔ اعشاری.

    مثال::

        >>> format_number(20.0)
        '20'
        >>> format_number(-2.50)
        '-2.5'
    """
    try:
        val = float(value)
        if not math.isfinite(val):
            return "0"
        if val.is_integer() and abs(val) < 1e15:
            return str(int(val))
        s = format(val, ".12g")
        if s in {"-0", "-0.0"}:
            s = "0"
        return _trim_fraction_zeros(s)
    except Exception:
        return "0"


def cell_to_text(value: Any) -> str:
    """تبدیل امن مقدار خام سلول به رشته (معادل toString در صفحه‌گسترده).

    - None/NaN → ""
    - float با مقدار صحیح → بدون «.0» (۱۲۳.۰ → "123")
    - bytes → UTF-8 با جایگزینی کاراکترهای نامعتبر
    """
    try:
        if _is_missing(value):
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", "replace")
        if isinstance(value, float):
            return format_number(value)
        return str(value)
    except Exception:
        return ""


# ---------------------------------------------------------------------------
# Core normalization (cached)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1024)
def _normalize_core(s: str) -> str:
    """
    Cached cleaning pipeline.

    Steps:
    1) Remove zero-width/BOM/bidi-control code points
    2) Space-like code points → ' '
    3) Typographic quotes and dashes → ASCII
    4) Collapse whitespace, strip
    """
    try:
        s = _RE_INVISIBLE.sub("", s)
        s = _RE_SPACE_LIKE.sub(" ", s)
        s = s.translate(_PUNCT_TRANSLATION)
        return _RE_WHITESPACE.sub(" ", s).strip()
    except Exception:
        return ""


def normalize_text(value: Any) -> str:
    """
    Normalize arbitrary input to a single-line display string.
    Returns empty string on any error. Idempotent.

    Doctests (acceptance):
    >>> normalize_text("  Para\\u200bcetamol \\u00a0 500 ") == "Paracetamol 500"
    True
    >>> normalize_text(None)
    ''
    """
    try:
        s = cell_to_text(value)
        if not s:
            return ""
        return _normalize_core(s)
    except Exception:
        return ""


# ---------------------------------------------------------------------------
# Mojibake repair
# ---------------------------------------------------------------------------

def has_mojibake(text: str) -> bool:
    """تشخیص وجود نشانه‌های متن فارسیِ خراب‌شده (UTF-8 خوانده‌شده با Latin-1)."""

    try:
        return any(ch in MOJIBAKE_MARKERS for ch in text)
    except Exception:
        return False


def _char_to_byte(ch: str) -> int:
    code = ord(ch)
    if code < 256:
        return code
    # windows-1252 renders bytes 0x80–0x9F as typographic characters
    encoded = ch.encode("cp1252")
    if len(encoded) != 1:
        raise ValueError(ch)
    return encoded[0]


def _repair_by_bytes(text: str) -> str:
    """تفسیر دوبارهٔ کاراکترها به‌عنوان بایت و رمزگشایی UTF-8."""

    try:
        raw = bytes(_char_to_byte(ch) for ch in text)
        return raw.decode("utf-8")
    except (UnicodeError, ValueError):
        return text


def _repair_by_literals(text: str) -> str:
    """جایگزینی زیررشته‌های شناخته‌شده با جدول ثابت (طولانی‌ترین ابتدا)."""

    fixed = text
    for corrupted, correct in LITERAL_REPAIRS:
        if corrupted in fixed:
            fixed = fixed.replace(corrupted, correct)
    return fixed


_STRATEGIES: Dict[str, Callable[[str], str]] = {
    "bytes": _repair_by_bytes,
    "literal": _repair_by_literals,
}


def validate_repair_strategies(names: Iterable[str]) -> Tuple[str, ...]:
    """اعتبارسنجی فهرست راهبردهای ترمیم؛ نام ناشناخته ValueError می‌دهد.

    مثال::

        >>> validate_repair_strategies(["literal"])
        ('literal',)
    """

    if isinstance(names, str):
        names = [names]
    result: list[str] = []
    for name in names:
        key = str(name).strip().lower()
        if key not in _STRATEGIES:
            raise ValueError(f"Unknown mojibake repair strategy: {name!r}")
        if key not in result:
            result.append(key)
    return tuple(result)


def repair_mojibake(text: str, strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES) -> str:
    """ترمیم بهترین‌تلاش متن فارسی خراب‌شده؛ هرگز استثنا پرتاب نمی‌کند.

    راهبردها به ترتیب اجرا می‌شوند تا زمانی که نشانه‌ای باقی نماند. اگر هیچ
    راهبردی متن را تغییر ندهد، ورودی بدون تغییر بازگردانده می‌شود.

    مثال::

        >>> repair_mojibake("کالا".encode("utf-8").decode("latin-1"))
        'کالا'
        >>> repair_mojibake("Aspirin")
        'Aspirin'
    """

    try:
        if not text or not has_mojibake(text):
            return text
        current = text
        for name in strategies:
            strategy = _STRATEGIES.get(name)
            if strategy is None:
                continue
            candidate = strategy(current)
            if candidate != current:
                current = candidate
            if not has_mojibake(current):
                break
        return current
    except Exception:
        return text


def clean_cell_text(value: Any, strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES) -> str:
    """ترمیم متن خام سلول و سپس نرمال‌سازی آن.

    ترمیم پیش از فشرده‌سازی فاصله‌ها اجرا می‌شود چون بایت 0x85 (بخشی از «م»
    خراب‌شده) در رشتهٔ پایتون فاصله حساب می‌شود.
    """

    return normalize_text(repair_mojibake(cell_to_text(value), strategies))


def fold_digits(text: str) -> str:
    """تبدیل ارقام فارسی/عربی و جداکننده‌های عددی به ASCII.

    مثال::

        >>> fold_digits("۱۲٫۵")
        '12.5'
    """

    try:
        return text.translate(_DIGIT_TRANSLATION)
    except Exception:
        return text
