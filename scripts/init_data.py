#!/usr/bin/env python3
"""サンプルデータの作成

顧客表とメッセージテンプレートのサンプルを書き出します（既存ファイルは上書きしません）。

使い方：
    python scripts/init_data.py
    python scripts/init_data.py --force   # 既存ファイルも上書き
"""
import argparse
import json
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from business.dates import format_date
from business.schedule import refresh_scheduled_dates
from config.settings import settings
from database.markdown import build_markdown_table
from database.models import CustomerRecord

SAMPLE_TEMPLATES = [
    {
        "id": "recontact-formal",
        "actions": ["リコンタクト", "フォローアップ"],
        "variant": "formal",
        "title": "リコンタクト（丁寧）",
        "template": "{{顧客名}}様\n\n{{挨拶文}}\n{{関係性メモ}}について、その後いかがでしょうか。\n"
                    "ご不明な点がございましたらお気軽にお知らせください。",
    },
    {
        "id": "recontact-casual",
        "actions": ["リコンタクト", "フォローアップ"],
        "variant": "casual",
        "title": "リコンタクト（カジュアル）",
        "template": "{{顧客名}}さん\n\n{{挨拶文}}\n{{関係性メモ}}の件、その後どうでしょう？",
    },
    {
        "id": "proposal-new",
        "actions": ["新規提案"],
        "variant": "formal",
        "condition": {"existing": False},
        "title": "新規提案（初回）",
        "template": "{{顧客名}}様\n\n{{挨拶文}}\n資料をお送りします: {{資料URL}}\n"
                    "{{候補日時}}にお打ち合わせは可能でしょうか。",
    },
    {
        "id": "proposal-repeat",
        "actions": ["新規提案", "リピート提案"],
        "variant": "formal",
        "condition": {"existing": True},
        "title": "新規提案（既存顧客）",
        "template": "{{顧客名}}様\n\n{{挨拶文}}\nこれまで{{取引回数}}回のお取引ありがとうございます。\n"
                    "新しいプラン「{{提案プラン名}}」のご案内です: {{サービスURL}}",
    },
    {
        "id": "closing",
        "actions": ["クロージング", "リマインド"],
        "title": "クロージング",
        "template": "{{顧客名}}様\n\n{{挨拶文}}\nご検討状況はいかがでしょうか。{{目安日程}}までにご返信いただけますと幸いです。",
    },
]


def sample_customers(now: datetime):
    def days_ago(days: int) -> str:
        return format_date((now - timedelta(days=days)).date())

    rows = [
        ("山田商事", "リコンタクト", "[X](https://x.com/yamada)", days_ago(3), "3", "15万円", "男性", "40代前半", "展示会で名刺交換"),
        ("佐藤デザイン", "クロージング", "https://example.com/sato", days_ago(10), "1", "8万円", "女性", "30代前半", ""),
        ("鈴木工房", "新規提案", "", days_ago(40), "0", "", "男性", "50代以上", "紹介経由"),
        ("高橋企画", "フォローアップ", "https://example.com/takahashi", days_ago(1), "5", "40万〜60万円", "女性", "20代後半", "定期案件"),
        ("伊藤スタジオ", "完了", "", days_ago(90), "2", "12万円", "", "", ""),
    ]
    records = [
        CustomerRecord(
            customer_name=name,
            next_action=action,
            contact_url=contact,
            last_contact_date=last_contact,
            transaction_count=count,
            total_amount=amount,
            gender=gender,
            age=age,
            notes=notes,
            is_favorite=index == 0,
        )
        for index, (name, action, contact, last_contact, count, amount, gender, age, notes) in enumerate(rows)
    ]
    return refresh_scheduled_dates(records, now)


def write_file(path: Path, content: str, force: bool) -> bool:
    if path.exists() and not force:
        logger.warning(f"既に存在するためスキップしました: {path}")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info(f"作成しました: {path}")
    return True


def init_data(force: bool = False):
    """Write sample customers and templates to the configured paths."""
    now = datetime.now()
    table = build_markdown_table(sample_customers(now))
    write_file(Path(settings.customers_file), table + "\n", force)

    if settings.templates_file:
        document = (
            "# メッセージテンプレート\n\n"
            "```json\n"
            f"{json.dumps(SAMPLE_TEMPLATES, ensure_ascii=False, indent=2)}\n"
            "```\n"
        )
        write_file(Path(settings.templates_file), document, force)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="サンプルデータの作成")
    parser.add_argument("--force", action="store_true", help="既存ファイルを上書きする")
    init_data(parser.parse_args().force)
