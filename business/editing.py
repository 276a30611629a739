"""In-memory editing of the customer list with debounced persistence.

The dashboard edits one cell at a time. ``EditSession`` applies the edit to
the in-memory list (recomputing the scheduled date when its inputs change)
and ``AutoSaver`` writes the whole list back once edits have been quiet for
``delay`` seconds::

    session = EditSession(store.load_customers())
    saver = AutoSaver(session.snapshot, store.save_customers, delay=2.0)

    session.update_field(record_id, "nextAction", "リコンタクト")
    saver.mark_dirty()        # (re)arms the timer
    await saver.flush()       # or save right away

Only one save runs at a time. While a save is in flight no new timer is
armed; edits made meanwhile are picked up by a fresh timer once it finishes.
A failed save keeps the edits in memory and the list dirty; the next edit
arms the timer again.
"""
import asyncio
from datetime import datetime
from typing import Any, Callable, List, Optional

from loguru import logger

from database.models import BOOLEAN_FIELDS, FIELD_ALIASES, CustomerRecord, to_bool, to_text

from .schedule import refresh_scheduled_date

READ_ONLY_FIELDS = {"scheduled_date", "record_id"}
SCHEDULE_INPUTS = {"next_action", "last_contact_date"}


class RecordNotFound(KeyError):
    """No record carries the requested key."""


class EditSession:
    """Mutable customer list addressed by stable record keys."""

    def __init__(self, records: Optional[List[CustomerRecord]] = None):
        self._records: List[CustomerRecord] = []
        self.replace_all(records or [])

    @property
    def records(self) -> List[CustomerRecord]:
        return self._records

    def replace_all(self, records: List[CustomerRecord], now: Optional[datetime] = None) -> None:
        """Swap in a new list, recomputing every scheduled date."""
        now = now or datetime.now()
        self._records = [refresh_scheduled_date(record, now) for record in records]

    def find(self, record_id: str) -> CustomerRecord:
        for record in self._records:
            if record.record_id == record_id:
                return record
        raise RecordNotFound(record_id)

    @staticmethod
    def resolve_field(field: str) -> str:
        name = FIELD_ALIASES.get(field, field)
        if name in READ_ONLY_FIELDS:
            raise ValueError(f"{field} は編集できません")
        if name not in FIELD_ALIASES.values():
            raise ValueError(f"不明な項目です: {field}")
        return name

    def update_field(
        self,
        record_id: str,
        field: str,
        value: Any,
        now: Optional[datetime] = None,
    ) -> CustomerRecord:
        """Set one field of one record.

        Raises:
            RecordNotFound: unknown record key.
            ValueError: read-only or unknown field.
        """
        name = self.resolve_field(field)
        record = self.find(record_id)
        setattr(record, name, to_bool(value) if name in BOOLEAN_FIELDS else to_text(value))
        if name in SCHEDULE_INPUTS:
            refresh_scheduled_date(record, now)
        return record

    def toggle_mark(self, record_id: str, field: str) -> CustomerRecord:
        name = self.resolve_field(field)
        if name not in BOOLEAN_FIELDS:
            raise ValueError(f"{field} は切り替えできません")
        record = self.find(record_id)
        setattr(record, name, not getattr(record, name))
        return record

    def snapshot(self) -> List[CustomerRecord]:
        """Independent copies, safe to hand to a writer thread."""
        return [record.copy() for record in self._records]


class AutoSaver:
    """Debounced whole-list persistence on the running event loop.

    Attributes:
        delay: quiet period in seconds before a save starts
        dirty: unsaved edits exist
        saving: a save is in flight
        last_error: message of the most recent failed save, if any
    """

    def __init__(
        self,
        snapshot: Callable[[], List[CustomerRecord]],
        save: Callable[[List[CustomerRecord]], Any],
        delay: float = 2.0,
    ):
        self._snapshot = snapshot
        self._save = save
        self.delay = delay
        self.dirty = False
        self.saving = False
        self.last_error: Optional[str] = None
        self.last_saved_at: Optional[datetime] = None
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def mark_dirty(self) -> None:
        """Record an edit and (re)start the debounce timer."""
        self.dirty = True
        self._arm()

    def _arm(self) -> None:
        if self.saving:
            return
        self.cancel()
        self._timer = asyncio.ensure_future(self._wait_and_save())

    def cancel(self) -> None:
        if self.pending:
            self._timer.cancel()
        self._timer = None

    async def wait_idle(self) -> None:
        """Wait until the save in flight, if any, has finished."""
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})

    async def _wait_and_save(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        await self._save_now()

    async def _write(self, records: List[CustomerRecord]) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._save, records)
        finally:
            self.saving = False

    def _start(self, records: List[CustomerRecord]) -> asyncio.Task:
        self.saving = True
        self._inflight = asyncio.ensure_future(self._write(records))
        return self._inflight

    async def _save_now(self) -> bool:
        if not self.dirty or self.saving:
            return False
        self.dirty = False
        records = self._snapshot()
        try:
            await asyncio.shield(self._start(records))
        except Exception as e:
            self.dirty = True
            self.last_error = str(e)
            logger.error(f"自動保存に失敗しました: {e}")
            return False

        self.last_error = None
        self.last_saved_at = datetime.now()
        logger.info(f"自動保存しました: {len(records)}件")
        if self.dirty:
            self._arm()
        return True

    async def flush(self) -> bool:
        """Save pending edits immediately.

        A save already in flight is awaited first; edits made while it ran
        are then written by a second save.

        Returns:
            True when a save ran and succeeded.
        """
        self.cancel()
        await self.wait_idle()
        # the finished save may have re-armed the timer
        self.cancel()
        return await self._save_now()

    async def save_records(self, records: List[CustomerRecord]) -> None:
        """Write an explicit list in place of the session snapshot.

        Waits for a save in flight so the two never overlap and the older
        snapshot cannot land last. Pending edits are dropped.

        Raises:
            Whatever the writer raises; the dirty flag is left untouched.
        """
        self.cancel()
        while self.saving:
            await self.wait_idle()
            self.cancel()
        await asyncio.shield(self._start(records))
        self.dirty = False
        self.last_error = None
        self.last_saved_at = datetime.now()

    def status(self) -> dict:
        return {
            "dirty": self.dirty,
            "saving": self.saving,
            "pending": self.pending,
            "lastError": self.last_error,
            "lastSavedAt": self.last_saved_at.isoformat(timespec="seconds") if self.last_saved_at else None,
        }
