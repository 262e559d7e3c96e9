"""جدول ثابت ترمیم متن فارسیِ خراب‌شده (آخرین راه‌حل).

این جدول فقط داده است: برای هر واژه یا حرف رایج فارسی، صورت خراب‌شدهٔ آن
در دو حالت رایج (بایت‌های UTF-8 خوانده‌شده با latin-1 و با windows-1252)
به شکل درست نگاشت می‌شود. ترتیب کلیدها از طولانی به کوتاه است تا واژه‌ها
پیش از حروف منفرد جایگزین شوند.

مثال::

    >>> dict(LITERAL_REPAIRS)["Ù\\x86Ø§Ù\\x85"]
    'نام'
"""

from __future__ import annotations

from typing import Dict, Tuple

__all__ = ["LITERAL_REPAIRS", "KNOWN_WORDS", "KNOWN_LETTERS"]

KNOWN_WORDS: Tuple[str, ...] = (
    "کد کالا",
    "نام دارو",
    "موجودی سیستم",
    "استامینوفن",
    "آسپرین",
    "موجودی",
    "سیستم",
    "کالا",
    "دارو",
    "ردیف",
    "نام",
    "کد",
)

KNOWN_LETTERS: str = "آابپتثجچحخدذرزژسشصضطظعغفقکگلمنوهیئءأؤإةيكًٌٍَُِّ"


def _cp1252_char(byte: int) -> str:
    try:
        return bytes([byte]).decode("cp1252")
    except UnicodeDecodeError:
        # 0x81, 0x8D, 0x8F, 0x90, 0x9D are undefined and pass through as C1
        return chr(byte)


def _garble_latin1(text: str) -> str:
    return text.encode("utf-8").decode("latin-1")


def _garble_cp1252(text: str) -> str:
    return "".join(_cp1252_char(byte) for byte in text.encode("utf-8"))


def _build_table() -> Tuple[Tuple[str, str], ...]:
    table: Dict[str, str] = {}
    for entry in (*KNOWN_WORDS, *KNOWN_LETTERS):
        for garble in (_garble_latin1, _garble_cp1252):
            corrupted = garble(entry)
            if corrupted != entry:
                table.setdefault(corrupted, entry)
    return tuple(sorted(table.items(), key=lambda item: (-len(item[0]), item[0])))


LITERAL_REPAIRS: Tuple[Tuple[str, str], ...] = _build_table()
