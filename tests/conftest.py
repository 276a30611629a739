"""Shared fixtures: a fixed clock, record factory and temp-dir stores."""
from datetime import datetime

import pytest

from database import CustomerStore, CustomerRecord
from database.markdown import build_markdown_table

TEMPLATES_DOCUMENT = """# メッセージテンプレート

```json
[
  {
    "id": "recontact-formal",
    "actions": ["リコンタクト"],
    "variant": "formal",
    "title": "リコンタクト（丁寧）",
    "template": "{{顧客名}}様\\n{{挨拶文}}\\n{{不明な項目}}"
  },
  {
    "id": "recontact-casual",
    "actions": ["リコンタクト"],
    "variant": "casual",
    "title": "リコンタクト（カジュアル）",
    "template": "{{顧客名}}さん、{{関係性メモ}}の件どうでしょう？"
  },
  {
    "id": "proposal-new",
    "actions": ["新規提案"],
    "variant": "formal",
    "condition": {"existing": false},
    "title": "新規提案（初回）",
    "template": "初回: {{顧客名}}様"
  },
  {
    "id": "proposal-existing",
    "actions": ["新規提案"],
    "variant": "formal",
    "condition": {"existing": true},
    "title": "新規提案（既存）",
    "template": "既存: {{顧客名}}様 {{取引回数}}回"
  }
]
```
"""


@pytest.fixture
def now():
    """2025-11-20 10:00, a Thursday."""
    return datetime(2025, 11, 20, 10, 0)


@pytest.fixture
def make_record():
    def factory(**values):
        defaults = {"customer_name": "山田"}
        defaults.update(values)
        return CustomerRecord(**defaults)

    return factory


@pytest.fixture
def sample_records(make_record):
    return [
        make_record(
            customer_name="山田商事",
            next_action="リコンタクト",
            contact_url="[X](https://x.com/yamada)",
            is_favorite=True,
            last_contact_date="2025/11/17",
            transaction_count="3",
            total_amount="15万円",
            gender="男性",
            age="40代前半",
            notes="展示会で名刺交換",
        ),
        make_record(
            customer_name="佐藤デザイン",
            next_action="クロージング",
            contact_url="https://example.com/sato",
            has_trouble=True,
            last_contact_date="2025/11/01",
            transaction_count="1",
            total_amount="8万円",
            gender="女性",
            age="30代前半",
        ),
        make_record(
            customer_name="鈴木工房",
            next_action="新規提案",
            last_contact_date="2025/10/10",
            transaction_count="0",
            gender="男性",
            age="50代以上",
            notes="紹介経由",
        ),
        make_record(
            customer_name="伊藤スタジオ",
            next_action="完了",
            last_contact_date="2025/08/01",
            transaction_count="2",
            total_amount="12万円",
        ),
    ]


@pytest.fixture
def templates_document():
    return TEMPLATES_DOCUMENT


@pytest.fixture
def store(tmp_path):
    """Store over empty temp files, with backups and the secondary document."""
    return CustomerStore(
        customers_path=tmp_path / "customers.md",
        document_path=tmp_path / "顧客管理データ.md",
        templates_path=tmp_path / "templates.md",
        backup_dir=tmp_path / "backups",
        backup_keep=3,
    )


@pytest.fixture
def seeded_store(store, sample_records):
    """``store`` with the sample table and template document on disk."""
    store.customers_path.write_text(build_markdown_table(sample_records) + "\n", encoding="utf-8")
    store.templates_path.write_text(TEMPLATES_DOCUMENT, encoding="utf-8")
    return store
