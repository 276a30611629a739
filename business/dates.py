"""Date parsing for hand-edited table cells.

Accepted forms (full-width digits and separators included)::

    2025/11/17   2025-11-17   ２０２５／１１／１７   2025年11月17日
    11/17        11-17        11月17日           (current year)
"""
import re
import unicodedata
from datetime import date
from typing import Optional

DATE_FORMAT = "%Y/%m/%d"
PLACEHOLDERS = {"", "-", "未設定"}

_FULL_DATE = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$")
_MONTH_DAY = re.compile(r"^(\d{1,2})[/\-](\d{1,2})$")


def _normalize(text: str) -> str:
    text = unicodedata.normalize("NFKC", text).strip()
    text = re.sub(r"\s+", "", text)
    text = text.replace("年", "/").replace("月", "/").replace("日", "")
    return text.replace(".", "/")


def parse_date(text: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """Convert a date cell to a calendar date.

    Args:
        text: cell text
        today: reference day whose year completes month/day values

    Returns:
        The date, or None for placeholders, unknown formats and impossible
        calendar dates.
    """
    if text is None:
        return None
    value = _normalize(text)
    if value in PLACEHOLDERS:
        return None

    match = _FULL_DATE.match(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _MONTH_DAY.match(value)
        if not match:
            return None
        year = (today or date.today()).year
        month, day = (int(part) for part in match.groups())

    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)
