from __future__ import annotations

import math

import pytest

from anbaryar.core.common.normalization import (
    cell_to_text,
    clean_cell_text,
    fold_digits,
    format_number,
    normalize_text,
    validate_repair_strategies,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  Para\u200bcetamol \u00a0 500 ", "Paracetamol 500"),
        ("\ufeffکد کالا", "کد کالا"),
        ("a\u2003b\u00a0c", "a b c"),
        ("\u202bنام دارو\u202c", "نام دارو"),
        ("line\u2028break", "line break"),
        ("“X” – Y", '"X" - Y'),
        ("\u2018a\u2019\u2014b", "'a'-b"),
        ("\t tab \n newline ", "tab newline"),
        (None, ""),
        (math.nan, ""),
        (123.0, "123"),
        (12.5, "12.5"),
        (42, "42"),
    ],
)
def test_normalize_text_cases(raw, expected) -> None:
    assert normalize_text(raw) == expected


def test_normalize_text_is_idempotent_for_mixed_input() -> None:
    value = "  \u200f آسپرین  ۸۰  \u200b"
    once = normalize_text(value)
    assert once == "آسپرین ۸۰"
    assert normalize_text(once) == once


def test_cell_to_text_handles_bool_and_bytes() -> None:
    assert cell_to_text(True) == "true"
    assert cell_to_text("نام".encode("utf-8")) == "نام"
    assert cell_to_text(None) == ""


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("۱۲۳", "123"),
        ("١٢٣", "123"),
        ("۱۲٫۵", "12.5"),
        ("۱٬۲۳۴", "1234"),
        ("−5", "-5"),
        ("ABC", "ABC"),
    ],
)
def test_fold_digits(raw: str, expected: str) -> None:
    assert fold_digits(raw) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(20.0, "20"), (-2.5, "-2.5"), (0.1 + 0.2, "0.3"), (math.inf, "0"), (-0.0, "0")],
)
def test_format_number(value: float, expected: str) -> None:
    assert format_number(value) == expected


def test_validate_repair_strategies_normalizes_and_dedupes() -> None:
    assert validate_repair_strategies(["bytes", "LITERAL", "bytes"]) == ("bytes", "literal")
    assert validate_repair_strategies("literal") == ("literal",)


def test_validate_repair_strategies_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown mojibake repair strategy"):
        validate_repair_strategies(["bytes", "guess"])


def test_clean_cell_text_repairs_before_collapsing_spaces() -> None:
    garbled = " " + "موجودی سیستم".encode("utf-8").decode("latin-1") + " "
    assert clean_cell_text(garbled) == "موجودی سیستم"
