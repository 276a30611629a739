"""Lenient number parsing for free-text table cells."""
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

MAN_MARKER = "万"
MAN = 10000

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_MARKDOWN_LINK = re.compile(r"\[([^\]]+)]\(([^)]+)\)")


def parse_amount(text: Optional[str]) -> int:
    """Parse an amount such as "3万円" or "5-10万" into yen.

    Two or more numbers are read as a from-to range and averaged over the
    first two. The stored text is never rewritten.

    Examples:
        >>> parse_amount("3万円")
        30000
        >>> parse_amount("5-10万")
        75000
    """
    if not text:
        return 0
    numbers = _NUMBER.findall(text)
    if not numbers:
        return 0
    if len(numbers) == 1:
        amount = Decimal(numbers[0])
    else:
        amount = (Decimal(numbers[0]) + Decimal(numbers[1])) / 2
    if MAN_MARKER in text:
        amount *= MAN
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_int(text: Optional[str]) -> Optional[int]:
    """Leading integer of the text ("15以上" -> 15), None when there is none."""
    if not text:
        return None
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None


def parse_count(text: Optional[str]) -> int:
    """Transaction count; blank or unparseable counts are 0."""
    return parse_int(text) or 0


def parse_contact(value: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split a contact cell into (label, url).

    ``[label](url)`` keeps its label, a bare http(s) URL gets "開く".
    """
    if not value:
        return None
    match = _MARKDOWN_LINK.search(value)
    if match:
        return match.group(1), match.group(2)
    if value.startswith("http"):
        return "開く", value
    return None
