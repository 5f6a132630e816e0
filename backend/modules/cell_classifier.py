"""
Sheetflow Core - Cell Classifier Module
Strict, reversible classification of single raw cell values
"""

import math
import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from config import SERIAL_DATE_MAX, SERIAL_DATE_MIN


class CellKind:
    NUMBER = "number"
    DATE = "date"
    MEASUREMENT = "measurement"
    BOOLEAN = "boolean"
    TEXT = "text"
    EMPTY = "empty"


@dataclass(frozen=True)
class CellValue:
    """Tagged classification of one cell.

    `value` holds the parsed payload for the kind: int/float for numbers,
    `datetime.date` for dates, the lenient magnitude for measurements and the
    raw input otherwise.
    """

    kind: str
    value: Any
    raw: Any
    unit: Optional[str] = None

    @property
    def canonical(self) -> Any:
        """Value a cleaned table stores for this cell."""
        if self.kind == CellKind.NUMBER:
            return self.value
        if self.kind == CellKind.DATE:
            return self.value.isoformat()
        return self.raw


EXCEL_EPOCH = date(1899, 12, 30)

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

NUMBER_PAIR_PATTERN = re.compile(r"^\d+[/-]\d+$")
YMD_PATTERN = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
DMY_PATTERN = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2,4})$")
DAY_MON_YEAR_PATTERN = re.compile(r"^(\d{1,2})[-/.\s]+([A-Za-z]{3})[-/.\s]+(\d{2,4})$")
MON_DAY_YEAR_PATTERN = re.compile(r"^([A-Za-z]{3})[-/.\s]+(\d{1,2})[-/.\s]+(\d{2,4})$")
SERIAL_PATTERN = re.compile(r"^\d+$")
NUMBER_TEXT_PATTERN = re.compile(r"^-?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

CURRENCY_SYMBOLS = "$€£₹¥"
UNIT_SUFFIX_PATTERN = re.compile(r"^(-?[\d,.]+)\s*([a-zA-Z%°µ]+)$")
CURRENCY_PREFIX_PATTERN = re.compile(r"^([$€£₹¥])\s*(-?[\d,.]+)$")
CURRENCY_SUFFIX_PATTERN = re.compile(r"^(-?[\d,.]+)\s*([$€£₹¥])$")


def is_number_pair(text: str) -> bool:
    """True for ID/fraction-like values such as `2511/1122` or `777-333`."""
    return bool(NUMBER_PAIR_PATTERN.match(str(text).strip()))


def _valid_day(n: int) -> bool:
    return 1 <= n <= 31


def _valid_month(n: int) -> bool:
    return 1 <= n <= 12


def _expand_year(text: str) -> int:
    year = int(text)
    if len(text) == 2:
        # Same pivot as strptime's %y.
        return 2000 + year if year < 69 else 1900 + year
    return year


def _make_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_strict_date(value: Any) -> Optional[date]:
    """Parse one of the accepted date shapes, or return None.

    Accepted: YYYY-MM-DD, DD-MM-YYYY (or MM-DD-YYYY when only that order is
    plausible), DD-Mon-YY[YY] and Mon-DD-YY[YY]. Anything else, including
    out-of-range or non-existent calendar dates, is not a date.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return None
    text = str(value).strip()
    if not text or is_number_pair(text):
        return None

    match = YMD_PATTERN.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        if _valid_month(month) and _valid_day(day):
            parsed = _make_date(year, month, day)
            if parsed:
                return parsed

    match = DMY_PATTERN.match(text)
    if match:
        first, second = int(match.group(1)), int(match.group(2))
        year = _expand_year(match.group(3))
        if _valid_day(first) and _valid_month(second):
            parsed = _make_date(year, second, first)
            if parsed:
                return parsed
        if _valid_month(first) and _valid_day(second):
            parsed = _make_date(year, first, second)
            if parsed:
                return parsed

    match = DAY_MON_YEAR_PATTERN.match(text)
    if match:
        day, month = int(match.group(1)), MONTHS.get(match.group(2).lower())
        if month and _valid_day(day):
            parsed = _make_date(_expand_year(match.group(3)), month, day)
            if parsed:
                return parsed

    match = MON_DAY_YEAR_PATTERN.match(text)
    if match:
        month, day = MONTHS.get(match.group(1).lower()), int(match.group(2))
        if month and _valid_day(day):
            parsed = _make_date(_expand_year(match.group(3)), month, day)
            if parsed:
                return parsed

    return None


def parse_excel_serial(value: Any) -> Optional[date]:
    """Interpret a pure-digit string inside the serial band as an Excel day count."""
    text = str(value).strip()
    if not SERIAL_PATTERN.match(text):
        return None
    serial = int(text)
    if serial < SERIAL_DATE_MIN or serial > SERIAL_DATE_MAX:
        return None
    return EXCEL_EPOCH + timedelta(days=serial)


def format_date(value: date, style: str = "iso") -> str:
    """Render a date as `YYYY-MM-DD` (iso) or `DD-MM-YYYY` (dmy)."""
    if style == "dmy":
        return f"{value.day:02d}-{value.month:02d}-{value.year:04d}"
    return value.isoformat()


def _shortest_digits(value: float) -> tuple[str, int]:
    """Shortest round-trip digits of a positive float and the decimal point position.

    The value equals 0.<digits> * 10 ** point.
    """
    _, digits, exponent = Decimal(repr(value)).as_tuple()
    text = "".join(str(d) for d in digits)
    stripped = text.rstrip("0") or "0"
    exponent += len(text) - len(stripped)
    return stripped, exponent + len(stripped)


def format_number(value: Any) -> str:
    """Canonical text of a number, as spreadsheet front ends print it.

    Integral values carry no fraction. Other values use the shortest digits,
    positional between 1e-6 and 1e21 and exponential outside (`1.5e-7`).
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    sign = "-" if value < 0 else ""
    digits, point = _shortest_digits(abs(value))
    if len(digits) <= point <= 21:
        return sign + digits + "0" * (point - len(digits))
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits
    exponent = point - 1
    mantissa = digits if len(digits) == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


def parse_strict_number(value: Any) -> Optional[float]:
    """Return the number only if re-serializing it gives back the trimmed input.

    `"123"` -> 123, while `"007"`, `"1,200"`, `"$5"` and `"1.50"` stay text.
    """
    text = str(value).strip()
    if not text or not NUMBER_TEXT_PATTERN.match(text):
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    if format_number(number) != text:
        return None
    if number.is_integer():
        return int(number)
    return number


def _measurement_parts(text: str) -> Optional[tuple[str, str]]:
    match = UNIT_SUFFIX_PATTERN.match(text)
    if match:
        return match.group(1), match.group(2)
    match = CURRENCY_PREFIX_PATTERN.match(text)
    if match:
        return match.group(2), match.group(1)
    match = CURRENCY_SUFFIX_PATTERN.match(text)
    if match:
        return match.group(1), match.group(2)
    return None


def is_measurement(value: Any) -> bool:
    """Number bundled with a unit or currency symbol (`12 kg`, `$5`, `100 €`, `40%`)."""
    text = str(value).strip()
    return bool(text) and _measurement_parts(text) is not None


def to_number(value: Any) -> float:
    """Lenient numeric coercion for aggregation; never raises, falls back to 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0

    text = str(value).strip()
    if not text:
        return 0

    if text.endswith("%"):
        stripped = re.sub(r"[^0-9.\-]", "", text)
        try:
            return float(stripped) / 100
        except ValueError:
            return 0

    stripped = re.sub(r"[^0-9.\-]", "", text)
    if not stripped or stripped.count(".") > 1:
        return 0
    try:
        number = float(stripped)
    except ValueError:
        return 0
    return number if math.isfinite(number) else 0


def is_empty(value: Any) -> bool:
    """None, NaN and whitespace-only strings count as empty."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def classify_cell(value: Any, serial_dates: bool = True) -> CellValue:
    """Classify one raw value into number, date, measurement, boolean, text or empty."""
    # 1. Already-typed values
    if isinstance(value, bool):
        return CellValue(CellKind.BOOLEAN, value, value)
    if isinstance(value, (int, float)) and not is_empty(value):
        return CellValue(CellKind.NUMBER, value, value)

    # 2. Empty input
    if is_empty(value):
        return CellValue(CellKind.EMPTY, value, value)

    raw = value if isinstance(value, str) else str(value)
    text = raw.strip()

    # 3-4. Strict dates (number/number values are rejected inside)
    parsed_date = parse_strict_date(text)
    if parsed_date:
        return CellValue(CellKind.DATE, parsed_date, value)

    # 5. Excel serial days
    if serial_dates:
        serial = parse_excel_serial(text)
        if serial:
            return CellValue(CellKind.DATE, serial, value)

    # 6. Strict numeric
    number = parse_strict_number(text)
    if number is not None:
        return CellValue(CellKind.NUMBER, number, value)

    # 7. Measurement
    parts = _measurement_parts(text)
    if parts is not None:
        magnitude, unit = parts
        return CellValue(CellKind.MEASUREMENT, to_number(magnitude), value, unit=unit)

    # 8. Text, unchanged
    return CellValue(CellKind.TEXT, value, value)


def as_text(value: Any) -> str:
    """String form used for matching, merging and grouping keys."""
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return format_number(value)
    return str(value)
