"""Tests for the edit session and debounced autosave"""
import asyncio
import time

import pytest

from business.editing import AutoSaver, EditSession, RecordNotFound
from database.models import CustomerRecord


@pytest.fixture
def session(sample_records, now):
    session = EditSession()
    session.replace_all(sample_records, now)
    return session


class TestEditSession:

    def test_replace_all_computes_dates(self, session):
        assert session.records[0].scheduled_date == "2025/11/22"
        assert session.records[3].scheduled_date == ""

    def test_update_recomputes_schedule(self, session, now):
        record_id = session.records[0].record_id

        record = session.update_field(record_id, "nextAction", "クロージング", now)

        assert record.next_action == "クロージング"
        assert record.scheduled_date == "2025/11/24"

    def test_update_last_contact(self, session, now):
        record_id = session.records[0].record_id

        record = session.update_field(record_id, "last_contact_date", "2025/11/20", now)

        assert record.scheduled_date == "2025/11/25"

    def test_update_other_field_keeps_schedule(self, session, now):
        record = session.records[0]
        session.update_field(record.record_id, "notes", "電話済み", now)
        assert record.notes == "電話済み"
        assert record.scheduled_date == "2025/11/22"

    def test_values_are_coerced(self, session):
        record_id = session.records[1].record_id
        assert session.update_field(record_id, "hasHeart", "true").has_heart is True
        assert session.update_field(record_id, "transactionCount", 4).transaction_count == "4"
        assert session.update_field(record_id, "gender", None).gender == ""

    @pytest.mark.parametrize("field", ["scheduledDate", "scheduled_date", "record_id", "unknown"])
    def test_rejected_fields(self, session, field):
        with pytest.raises(ValueError):
            session.update_field(session.records[0].record_id, field, "x")

    def test_unknown_record(self, session):
        with pytest.raises(RecordNotFound):
            session.update_field("missing", "notes", "x")

    def test_toggle_mark(self, session):
        record_id = session.records[0].record_id
        assert session.toggle_mark(record_id, "isFavorite").is_favorite is False
        assert session.toggle_mark(record_id, "isFavorite").is_favorite is True
        assert session.toggle_mark(record_id, "has_trouble").has_trouble is True

    def test_toggle_requires_boolean(self, session):
        with pytest.raises(ValueError):
            session.toggle_mark(session.records[0].record_id, "notes")

    def test_keys_survive_edits(self, session, now):
        keys = [r.record_id for r in session.records]
        session.update_field(keys[2], "customerName", "鈴木工房（本店）", now)
        assert [r.record_id for r in session.records] == keys

    def test_snapshot_is_independent(self, session):
        snapshot = session.snapshot()
        snapshot[0].notes = "変更"
        assert session.records[0].notes == "展示会で名刺交換"
        assert snapshot[0].record_id == session.records[0].record_id


class RecordingSave:
    def __init__(self, pause=0.0, error=None):
        self.calls = []
        self.pause = pause
        self.error = error

    def __call__(self, records):
        if self.pause:
            time.sleep(self.pause)
        if self.error:
            raise self.error
        self.calls.append([r.notes for r in records])


class TestAutoSaver:

    @pytest.mark.asyncio
    async def test_debounces_bursts(self, session):
        save = RecordingSave()
        saver = AutoSaver(session.snapshot, save, delay=0.05)
        record_id = session.records[0].record_id

        for note in ("a", "ab", "abc"):
            session.update_field(record_id, "notes", note)
            saver.mark_dirty()
        assert saver.pending
        await asyncio.sleep(0.3)

        assert len(save.calls) == 1
        assert save.calls[0][0] == "abc"
        assert saver.dirty is False
        assert saver.status()["lastSavedAt"] is not None

    @pytest.mark.asyncio
    async def test_flush_saves_now(self, session):
        save = RecordingSave()
        saver = AutoSaver(session.snapshot, save, delay=10)

        saver.mark_dirty()
        assert await saver.flush() is True
        assert len(save.calls) == 1
        assert saver.pending is False

        assert await saver.flush() is False
        assert len(save.calls) == 1

    @pytest.mark.asyncio
    async def test_failed_save_stays_dirty(self, session):
        saver = AutoSaver(session.snapshot, RecordingSave(error=OSError("disk full")), delay=10)

        saver.mark_dirty()
        assert await saver.flush() is False

        status = saver.status()
        assert status["dirty"] is True
        assert status["saving"] is False
        assert status["lastError"] == "disk full"

    @pytest.mark.asyncio
    async def test_edits_during_save_trigger_another_save(self, session):
        save = RecordingSave(pause=0.1)
        saver = AutoSaver(session.snapshot, save, delay=0.01)
        record_id = session.records[0].record_id

        saver.mark_dirty()
        await asyncio.sleep(0.05)
        assert saver.saving is True

        session.update_field(record_id, "notes", "保存中の編集")
        saver.mark_dirty()
        assert saver.pending is False

        await asyncio.sleep(0.5)
        assert len(save.calls) == 2
        assert save.calls[-1][0] == "保存中の編集"
        assert saver.dirty is False

    @pytest.mark.asyncio
    async def test_cancel(self, session):
        save = RecordingSave()
        saver = AutoSaver(session.snapshot, save, delay=0.02)

        saver.mark_dirty()
        saver.cancel()
        await asyncio.sleep(0.1)

        assert save.calls == []
        assert saver.dirty is True

    @pytest.mark.asyncio
    async def test_flush_waits_for_running_save(self, session):
        save = RecordingSave(pause=0.1)
        saver = AutoSaver(session.snapshot, save, delay=0.01)
        record_id = session.records[0].record_id

        saver.mark_dirty()
        await asyncio.sleep(0.05)
        assert saver.saving is True

        session.update_field(record_id, "notes", "終了直前の編集")
        saver.mark_dirty()

        assert await saver.flush() is True
        assert len(save.calls) == 2
        assert save.calls[-1][0] == "終了直前の編集"
        assert saver.dirty is False
        assert saver.pending is False

    @pytest.mark.asyncio
    async def test_explicit_list_lands_after_running_save(self, session):
        save = RecordingSave(pause=0.1)
        saver = AutoSaver(session.snapshot, save, delay=0.01)

        saver.mark_dirty()
        await asyncio.sleep(0.05)
        assert saver.saving is True

        await saver.save_records([CustomerRecord(customer_name="置換", notes="置換")])

        assert len(save.calls) == 2
        assert save.calls[-1] == ["置換"]
        assert saver.saving is False
        assert saver.dirty is False

    @pytest.mark.asyncio
    async def test_explicit_list_failure_raises(self, session):
        saver = AutoSaver(session.snapshot, RecordingSave(error=OSError("disk full")), delay=10)

        with pytest.raises(OSError):
            await saver.save_records([])

        assert saver.saving is False
