"""Due-customer selection and notification rendering.

``select_due`` picks the customers whose scheduled date falls between today
and ``today + horizon_days``; ``run_notification_check`` is the one-shot
check used by the HTTP endpoint, the CLI script and the optional daily job.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from config.business_config import ACTION_PRIORITY, DONE_ACTION, UNRANKED_PRIORITY
from database.models import CustomerRecord

from .dates import format_date, parse_date
from .schedule import calculate_scheduled_date

SKIPPED_ACTIONS = {"", "-", DONE_ACTION}
COMPUTED_MARK = " (計算値)"


def action_rank(next_action: str) -> int:
    """Notification priority of an action label (lower first)."""
    if next_action in ACTION_PRIORITY:
        return ACTION_PRIORITY[next_action]
    for keyword, rank in sorted(ACTION_PRIORITY.items(), key=lambda item: item[1]):
        if keyword in next_action:
            return rank
    return UNRANKED_PRIORITY


def _has_value(text: Optional[str]) -> bool:
    return bool(text) and text != "-"


def effective_scheduled_date(
    record: CustomerRecord, now: Optional[datetime] = None
) -> Tuple[Optional[date], bool]:
    """Scheduled date used for notification, and whether it was computed.

    The stored value wins when it parses; otherwise the date is recomputed
    from the last contact date.
    """
    now = now or datetime.now()
    if _has_value(record.scheduled_date):
        stored = parse_date(record.scheduled_date, today=now.date())
        if stored is not None:
            return stored, False
    if _has_value(record.last_contact_date):
        computed = calculate_scheduled_date(record.next_action, record.last_contact_date, now)
        if computed is not None:
            return computed, True
    return None, False


def is_within_days(target: date, days: int, today: date) -> bool:
    diff = (target - today).days
    return 0 <= diff <= days


def select_due(
    records: List[CustomerRecord],
    horizon_days: int = 1,
    now: Optional[datetime] = None,
) -> List[CustomerRecord]:
    """Customers due within ``horizon_days`` of today, ordered by action priority.

    The sort is stable, so customers of the same priority keep table order.
    """
    now = now or datetime.now()
    today = now.date()
    due = []
    for record in records:
        if (record.next_action or "") in SKIPPED_ACTIONS:
            continue
        scheduled, _ = effective_scheduled_date(record, now)
        if scheduled is not None and is_within_days(scheduled, horizon_days, today):
            due.append(record)
    return sorted(due, key=lambda r: action_rank(r.next_action))


def describe_due(record: CustomerRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Preview row for the test-mode response."""
    scheduled, _ = effective_scheduled_date(record, now)
    return {
        "id": record.record_id,
        "customerName": record.customer_name,
        "nextAction": record.next_action,
        "scheduledDate": record.scheduled_date,
        "calculatedScheduledDate": format_date(scheduled) if scheduled else None,
        "lastContactDate": record.last_contact_date,
        "contactUrl": record.contact_url,
    }


def build_notification_message(records: List[CustomerRecord], now: Optional[datetime] = None) -> str:
    """Render the Discord message body for the due customers."""
    lines = ["📢 **営業アクション通知**", ""]
    if not records:
        lines.append("今日対応すべき顧客はありません。")
        return "\n".join(lines)

    lines.append(f"今日対応すべき顧客: **{len(records)}件**")
    lines.append("")
    for index, record in enumerate(records, start=1):
        lines.append(f"**{index}. {record.customer_name}**")
        lines.append(f"   - アクション: {record.next_action}")
        scheduled, computed = effective_scheduled_date(record, now)
        if scheduled is not None:
            shown = format_date(scheduled) if computed else record.scheduled_date
            lines.append(f"   - 実行予定日: {shown}{COMPUTED_MARK if computed else ''}")
        if _has_value(record.last_contact_date):
            lines.append(f"   - 最終連絡日: {record.last_contact_date}")
        if _has_value(record.contact_url):
            lines.append(f"   - 連絡先: {record.contact_url}")
        if _has_value(record.total_amount):
            lines.append(f"   - 総額: {record.total_amount}")
        lines.append("")
    return "\n".join(lines)


def run_notification_check(
    store,
    notifier=None,
    horizon_days: int = 1,
    test_mode: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Load customers, select the due ones and notify them once.

    Args:
        store: object with ``load_customers()`` (usually ``CustomerStore``)
        notifier: object with ``ensure_configured()`` and ``send(content)``;
            required unless ``test_mode``
        horizon_days: days after today still counted as due
        test_mode: only report the selection, never send
        now: reference moment

    Returns:
        Result payload with ``ok``, ``message`` and ``customersCount``; test
        mode adds the ``customers`` preview.

    Raises:
        NotificationError: when the webhook is not configured or sending
            fails (no retry).
    """
    now = now or datetime.now()
    due = select_due(store.load_customers(), horizon_days=horizon_days, now=now)

    if test_mode:
        return {
            "ok": True,
            "message": "テストモード",
            "customersCount": len(due),
            "customers": [describe_due(record, now) for record in due],
        }

    notifier.ensure_configured()
    if due:
        notifier.send(build_notification_message(due, now))
        logger.info(f"営業アクション通知を送信しました: {len(due)}件")
    else:
        logger.info("通知対象の顧客はありません")

    return {
        "ok": True,
        "message": f"{len(due)}件の通知を送信しました",
        "customersCount": len(due),
    }
