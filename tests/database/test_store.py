"""Tests for CustomerStore persistence"""
from types import SimpleNamespace

import pytest

from database import CustomerStore
from database.markdown import TABLE_HEADER, build_markdown_table


class TestLoading:

    def test_missing_file_is_empty(self, store):
        assert store.load_customers() == []
        assert store.load_templates() == []

    def test_load_seeded(self, seeded_store, sample_records):
        records = seeded_store.load_customers()

        assert records == sample_records
        assert len({r.record_id for r in records}) == len(records)
        assert len(seeded_store.load_templates()) == 4

    def test_byte_order_mark(self, store, sample_records):
        store.customers_path.write_text("\ufeff" + build_markdown_table(sample_records), encoding="utf-8")
        assert [r.customer_name for r in store.load_customers()][0] == "山田商事"

    def test_fresh_keys_per_load(self, seeded_store):
        first = [r.record_id for r in seeded_store.load_customers()]
        second = [r.record_id for r in seeded_store.load_customers()]
        assert set(first).isdisjoint(second)


class TestSaving:

    def test_writes_primary_table(self, store, sample_records):
        store.save_customers(sample_records)

        text = store.customers_path.read_text(encoding="utf-8")
        assert text == build_markdown_table(sample_records) + "\n"
        assert store.load_customers() == sample_records

    def test_last_write_wins(self, store, sample_records):
        store.save_customers(sample_records)
        store.save_customers(sample_records[:1])
        assert len(store.load_customers()) == 1

    def test_merges_into_document(self, store, sample_records):
        store.document_path.write_text(
            f"# 顧客管理\n\n{TABLE_HEADER}\n| 旧 |\n\n## 運用メモ\n\n毎週月曜に確認\n", encoding="utf-8"
        )

        store.save_customers(sample_records)

        document = store.document_path.read_text(encoding="utf-8")
        assert document.startswith("# 顧客管理\n" + TABLE_HEADER)
        assert "| 旧 |" not in document
        assert "佐藤デザイン" in document
        assert document.endswith("## 運用メモ\n\n毎週月曜に確認\n")

    def test_creates_missing_document(self, store, sample_records):
        store.save_customers(sample_records)
        document = store.document_path.read_text(encoding="utf-8")
        assert document == build_markdown_table(sample_records) + "\n"

    def test_without_document(self, tmp_path, sample_records):
        store = CustomerStore(tmp_path / "customers.md")
        store.save_customers(sample_records)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["customers.md"]

    def test_write_failure_raises(self, tmp_path, sample_records):
        target = tmp_path / "customers.md"
        target.mkdir()
        store = CustomerStore(target)

        with pytest.raises(OSError):
            store.save_customers(sample_records)


class TestBackups:

    def test_backup_holds_previous_table(self, store, sample_records):
        store.save_customers(sample_records)
        assert store.list_backups() == []

        store.save_customers(sample_records[:1])

        [backup] = store.list_backups()
        assert backup.read_text(encoding="utf-8") == build_markdown_table(sample_records) + "\n"

    def test_rotation_keeps_newest(self, store, sample_records):
        for count in range(1, 6):
            store.save_customers(sample_records[:count % 4 + 1])

        backups = store.list_backups()
        assert len(backups) == 3
        assert backups == sorted(backups)

    def test_keep_zero_keeps_all(self, tmp_path, sample_records):
        store = CustomerStore(tmp_path / "customers.md", backup_dir=tmp_path / "backups", backup_keep=0)
        for _ in range(5):
            store.save_customers(sample_records)
        assert len(store.list_backups()) == 4

    def test_non_utf8_primary_is_copied_and_replaced(self, store, sample_records):
        legacy = "| 顧客名 | 備考 |\n|---|---|\n| 旧顧客 | 手書き |\n".encode("shift_jis")
        store.customers_path.write_bytes(legacy)

        store.save_customers(sample_records)

        [backup] = store.list_backups()
        assert backup.read_bytes() == legacy
        assert store.customers_path.read_text(encoding="utf-8") == build_markdown_table(sample_records) + "\n"
        assert store.load_customers() == sample_records

    def test_backup_failure_does_not_block_save(self, tmp_path, sample_records):
        blocked = tmp_path / "backups"
        blocked.write_text("not a directory", encoding="utf-8")
        store = CustomerStore(tmp_path / "customers.md", backup_dir=blocked)
        store.save_customers(sample_records[:1])

        assert store.backup() is None

        store.save_customers(sample_records)
        assert store.load_customers() == sample_records

    def test_backup_disabled(self, tmp_path, sample_records):
        store = CustomerStore(tmp_path / "customers.md")
        store.save_customers(sample_records)
        assert store.backup() is None
        assert store.list_backups() == []


class TestFromSettings:

    def test_blank_paths_disable_features(self):
        settings = SimpleNamespace(
            customers_file="data/customers.md",
            document_file="",
            templates_file="",
            backup_dir="",
            backup_keep=5,
        )

        store = CustomerStore.from_settings(settings, customers_path="other.md")

        assert str(store.customers_path) == "other.md"
        assert store.document_path is None
        assert store.templates_path is None
        assert store.backup_dir is None
        assert store.backup_keep == 5
