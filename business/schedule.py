"""Scheduled-date calculation.

The one place that turns (next action, last contact) into a follow-up date.
The dashboard, the edit session and the notification check all call it, so a
displayed scheduled date and a notified one can never disagree.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from config.business_config import (
    ACTION_OFFSETS,
    DEFAULT_OFFSET_DAYS,
    DONE_ACTION,
    UNSET_ACTION,
)
from database.models import CustomerRecord

from .dates import format_date, parse_date


def offset_days(next_action: Optional[str]) -> Optional[int]:
    """Days until the follow-up for an action label, None when none is needed."""
    if not next_action or next_action == UNSET_ACTION:
        return None
    for keyword, days in ACTION_OFFSETS:
        if keyword in next_action:
            return days
    if DONE_ACTION in next_action:
        return None
    return DEFAULT_OFFSET_DAYS


def calculate_scheduled_date(
    next_action: Optional[str],
    last_contact_date: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[date]:
    """Follow-up date for an action, never earlier than ``now``.

    A schedule that would land before ``now`` is recomputed from ``now`` with
    the same offset.
    """
    days = offset_days(next_action)
    if days is None:
        return None

    now = now or datetime.now()
    last_contact = parse_date(last_contact_date, today=now.date())
    if last_contact is None:
        return None

    candidate = datetime.combine(last_contact, time()) + timedelta(days=days)
    if candidate < now:
        candidate = now + timedelta(days=days)
    return candidate.date()


def compute_scheduled_date(
    next_action: Optional[str],
    last_contact_date: Optional[str],
    now: Optional[datetime] = None,
) -> str:
    """``calculate_scheduled_date`` formatted as YYYY/MM/DD, "" when unscheduled."""
    scheduled = calculate_scheduled_date(next_action, last_contact_date, now)
    return format_date(scheduled) if scheduled else ""


def refresh_scheduled_date(record: CustomerRecord, now: Optional[datetime] = None) -> CustomerRecord:
    record.scheduled_date = compute_scheduled_date(record.next_action, record.last_contact_date, now)
    return record


def refresh_scheduled_dates(
    records: List[CustomerRecord], now: Optional[datetime] = None
) -> List[CustomerRecord]:
    """Recompute every stored scheduled date in place before display."""
    now = now or datetime.now()
    for record in records:
        refresh_scheduled_date(record, now)
    return records
