"""Dashboard statistics.

Headline figures describe the currently visible (filtered) rows; the
time-series figures always cover the whole customer list, keyed on the last
contact date.
"""
import calendar
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from config.business_config import ACTION_OPTIONS, UNSET_ACTION, URGENT_ACTIONS
from database.models import CustomerRecord

from .amounts import parse_amount, parse_count
from .dates import parse_date


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def count_actions(records: List[CustomerRecord]) -> Tuple[Dict[str, int], int]:
    """Per-action counts and the number of urgent rows.

    Labels outside the vocabulary (including pasted URLs and links) are left
    out; blank labels count as 未設定.
    """
    valid = set(ACTION_OPTIONS)
    counts: Counter = Counter()
    urgent = 0
    for record in records:
        action = (record.next_action or "").strip() or UNSET_ACTION
        if action in valid and "http" not in action and "[" not in action:
            counts[action] += 1
            if action in URGENT_ACTIONS:
                urgent += 1
        elif action == UNSET_ACTION:
            counts[UNSET_ACTION] += 1
    return dict(counts), urgent


def summarize(
    visible: List[CustomerRecord],
    all_records: Optional[List[CustomerRecord]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Figures for the dashboard stats bar and charts."""
    all_records = visible if all_records is None else all_records
    today = (now or datetime.now()).date()
    month_start = today.replace(day=1)

    contacts = [(record, parse_date(record.last_contact_date, today=today)) for record in all_records]
    contacts = [(record, contacted) for record, contacted in contacts if contacted is not None]

    action_counts, urgent = count_actions(visible)

    daily_contacts = []
    for offset in range(29, -1, -1):
        day = today - timedelta(days=offset)
        daily_contacts.append({
            "date": day.isoformat(),
            "count": sum(1 for _, contacted in contacts if contacted == day),
        })

    monthly_contacts = []
    for offset in range(11, -1, -1):
        start, end = _month_bounds(*_shift_month(today.year, today.month, -offset))
        monthly_contacts.append({
            "month": start.isoformat(),
            "count": sum(1 for _, contacted in contacts if start <= contacted <= end),
        })

    monthly_sales = []
    for offset in range(5, -1, -1):
        start, end = _month_bounds(*_shift_month(today.year, today.month, -offset))
        monthly_sales.append({
            "month": start.isoformat(),
            "amount": sum(
                parse_amount(record.total_amount)
                for record, contacted in contacts
                if start <= contacted <= end
            ),
        })

    yearly_sales = []
    for year in range(today.year - 2, today.year + 1):
        yearly_sales.append({
            "year": year,
            "amount": sum(
                parse_amount(record.total_amount)
                for record, contacted in contacts
                if contacted.year == year
            ),
        })

    return {
        "totalCustomers": len(visible),
        "totalAmount": sum(parse_amount(record.total_amount) for record in visible),
        "urgentCount": urgent,
        "actionCounts": action_counts,
        "newCustomersThisMonth": sum(
            1
            for record, contacted in contacts
            if parse_count(record.transaction_count) == 0 and contacted >= month_start
        ),
        "contactsThisMonth": sum(1 for _, contacted in contacts if contacted >= month_start),
        "dailyContacts": daily_contacts,
        "monthlyContacts": monthly_contacts,
        "monthlySales": monthly_sales,
        "yearlySales": yearly_sales,
    }
