"""Filter and sort pipeline behind the dashboard table.

Filters combine with AND; sorting works on the dashboard column index and
is stable in both directions.
"""
from dataclasses import dataclass
from datetime import datetime, time
from typing import List, Optional, Union

from database.models import FIELD_ALIASES, CustomerRecord

from .amounts import parse_amount, parse_count, parse_int
from .dates import parse_date

ASC = "asc"
DESC = "desc"

# Dashboard column order
COLUMN_FIELDS: List[str] = [
    "is_favorite",
    "has_trouble",
    "customer_name",
    "next_action",
    "contact_url",
    "last_contact_date",
    "scheduled_date",
    "transaction_count",
    "total_amount",
    "gender",
    "age",
    "notes",
]
DATE_COLUMNS = {"last_contact_date", "scheduled_date"}

_EPOCH = datetime(1970, 1, 1)
# Unparseable dates sort as this moment, ahead of every real date
MISSING_DATE_SENTINEL = datetime(1900, 1, 1)


@dataclass
class ViewFilters:
    """Dashboard filters; empty strings and None mean "no filter"."""
    action: str = ""
    search: str = ""
    favorite: Optional[bool] = None
    trouble: Optional[bool] = None
    gender: str = ""
    age: str = ""
    min_transactions: str = ""

    def matches(self, record: CustomerRecord) -> bool:
        if self.action and self.action not in (record.next_action or ""):
            return False
        if self.favorite is not None and record.is_favorite != self.favorite:
            return False
        if self.trouble is not None and record.has_trouble != self.trouble:
            return False
        if self.gender and record.gender != self.gender:
            return False
        if self.age and record.age != self.age:
            return False
        minimum = parse_int(self.min_transactions)
        if minimum is not None and parse_count(record.transaction_count) < minimum:
            return False

        term = self.search.strip().lower()
        if not term:
            return True
        return any(term in value.lower() for value in record.text_values())


@dataclass
class SortState:
    column: Optional[int] = None
    direction: str = ASC

    def toggle(self, column: int) -> "SortState":
        """Same column flips the direction, a new column starts ascending."""
        if self.column == column:
            return SortState(column, DESC if self.direction == ASC else ASC)
        return SortState(column, ASC)


def _epoch_millis(moment: datetime) -> int:
    return int((moment - _EPOCH).total_seconds() * 1000)


def _date_value(text: str) -> int:
    parsed = parse_date(text)
    if parsed is None:
        return _epoch_millis(MISSING_DATE_SENTINEL)
    return _epoch_millis(datetime.combine(parsed, time()))


def column_value(record: CustomerRecord, column: int) -> Union[int, str]:
    """Sort key of a record for one dashboard column."""
    if column < 0 or column >= len(COLUMN_FIELDS):
        return ""
    name = COLUMN_FIELDS[column]
    value = getattr(record, name)
    if isinstance(value, bool):
        return 1 if value else 0
    if name in DATE_COLUMNS:
        return _date_value(value)
    if name == "transaction_count":
        return parse_count(value)
    if name == "total_amount":
        return parse_amount(value)
    return value or ""


def column_index(column: Union[int, str, None]) -> Optional[int]:
    """Resolve a column given as an index, a digit string or a field name."""
    if column is None or column == "":
        return None
    if isinstance(column, int):
        return column
    if column.isdigit():
        return int(column)
    name = FIELD_ALIASES.get(column, column)
    return COLUMN_FIELDS.index(name) if name in COLUMN_FIELDS else None


def filter_records(records: List[CustomerRecord], filters: ViewFilters) -> List[CustomerRecord]:
    return [record for record in records if filters.matches(record)]


def sort_records(records: List[CustomerRecord], sort: SortState) -> List[CustomerRecord]:
    if sort.column is None:
        return list(records)
    return sorted(
        records,
        key=lambda r: column_value(r, sort.column),
        reverse=sort.direction == DESC,
    )


def apply_view(
    records: List[CustomerRecord],
    filters: Optional[ViewFilters] = None,
    sort: Optional[SortState] = None,
) -> List[CustomerRecord]:
    """Filtered, sorted view of ``records``; the input list is not modified."""
    visible = filter_records(records, filters or ViewFilters())
    return sort_records(visible, sort or SortState())
