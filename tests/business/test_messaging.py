"""Tests for template selection and message rendering"""
from datetime import timedelta

import pytest

from business.messaging import (
    SenderProfile,
    build_greeting,
    format_person_name,
    greeting_prefix,
    infer_memo,
    render_messages,
    replace_placeholders,
    select_template,
)
from database.markdown import parse_template_markdown


@pytest.fixture
def templates(templates_document):
    return parse_template_markdown(templates_document)


@pytest.fixture
def profile():
    return SenderProfile(
        company_name="サンプル株式会社",
        person_name="営業太郎",
        person_name_reading="えいぎょう たろう",
    )


def days_before(now, days):
    return (now - timedelta(days=days)).strftime("%Y/%m/%d")


class TestSelectTemplate:

    def test_variant(self, make_record, templates):
        record = make_record(next_action="リコンタクト")
        assert select_template(record, templates, "formal").id == "recontact-formal"
        assert select_template(record, templates, "casual").id == "recontact-casual"

    def test_existing_condition(self, make_record, templates):
        new = make_record(next_action="新規提案", transaction_count="0")
        existing = make_record(next_action="新規提案", transaction_count="3")
        paid_once = make_record(next_action="新規提案", total_amount="3万円")

        assert select_template(new, templates, "formal").id == "proposal-new"
        assert select_template(existing, templates, "formal").id == "proposal-existing"
        assert select_template(paid_once, templates, "formal").id == "proposal-existing"

    def test_no_template_for_action(self, make_record, templates):
        assert select_template(make_record(next_action="完了"), templates) is None
        assert select_template(make_record(next_action="リコンタクト"), []) is None


class TestGreeting:

    @pytest.mark.parametrize("count,days,expected", [
        ("3", 3, "いつもありがとうございます"),
        ("2", 60, "いつもお世話になっております"),
        ("2", 200, "お久しぶりです"),
        ("1", 5, "先日はありがとうございました"),
        ("1", 20, "この度はありがとうございました"),
        ("1", 60, "以前はありがとうございました"),
        ("1", 100, "ご無沙汰しております"),
        ("", 200, "お久しぶりです"),
        ("0", 400, "大変ご無沙汰しております"),
    ])
    def test_prefix_by_elapsed_days(self, make_record, now, count, days, expected):
        record = make_record(transaction_count=count, last_contact_date=days_before(now, days))
        assert greeting_prefix(record, now) == expected

    def test_unknown_last_contact(self, make_record, now):
        assert greeting_prefix(make_record(transaction_count="5"), now) == "いつもお世話になっております"
        assert greeting_prefix(make_record(), now) == "以前はありがとうございました"

    def test_full_greeting(self, make_record, profile, now):
        record = make_record(transaction_count="1", last_contact_date=days_before(now, 2))
        assert build_greeting(record, profile, now) == (
            "先日はありがとうございました、サンプル株式会社の営業太郎（えいぎょう たろう）です。"
        )

    def test_person_name(self):
        assert format_person_name("営業太郎", "えいぎょう たろう") == "営業太郎（えいぎょう たろう）"
        assert format_person_name(" 営業（えいぎょう） ", "x") == "営業（えいぎょう）"
        assert format_person_name("営業", "") == "営業"


class TestRendering:

    def test_unknown_placeholders_kept(self):
        assert replace_placeholders("{{a}} {{b}}", {"a": "1"}) == "1 {{b}}"

    def test_memo_inference(self, make_record):
        assert infer_memo(make_record(notes="紹介")) == "紹介"
        assert infer_memo(make_record(next_action="フォローアップ")) == "現在進行中の案件"
        assert infer_memo(make_record(next_action="新規提案")) == "これまでのやり取り"
        assert infer_memo(make_record(next_action="リマインド")) == "これまでの案件"

    def test_render_messages(self, sample_records, templates, profile, now):
        messages = render_messages(sample_records[0], templates, profile, now)

        assert messages["formal"]["templateId"] == "recontact-formal"
        assert messages["formal"]["message"] == (
            "山田商事様\n"
            "いつもありがとうございます、サンプル株式会社の営業太郎（えいぎょう たろう）です。\n"
            "{{不明な項目}}"
        )
        assert messages["casual"]["message"] == "山田商事さん、展示会で名刺交換の件どうでしょう？"

    def test_no_template(self, sample_records, templates, profile, now):
        messages = render_messages(sample_records[3], templates, profile, now)
        assert messages == {"formal": None, "casual": None}

    def test_now_defaults(self, sample_records, templates, profile):
        messages = render_messages(sample_records[0], templates, profile)
        assert messages["formal"]["title"] == "リコンタクト（丁寧）"
