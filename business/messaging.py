"""Outreach message rendering from the template document.

Template choice goes by action keyword, then variant (formal / casual), then
the ``condition.existing`` gate. The greeting line is picked from the days
elapsed since the last contact:

=====================================  ==============================
situation                              greeting
=====================================  ==============================
2+ transactions, under 30 days         いつもありがとうございます
2+ transactions, 30-119 days           いつもお世話になっております
unknown last contact                   お世話になっております / 以前は...
0-7 days                               先日はありがとうございました
8-30 days                              この度はありがとうございました
31-90 days                             以前はありがとうございました
91-180 days                            ご無沙汰しております
181-365 days                           お久しぶりです
over 365 days                          大変ご無沙汰しております
=====================================  ==============================
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from config.business_config import ACTION_OPTIONS, UNSET_ACTION
from database.models import CustomerRecord, TemplateDefinition

from .amounts import parse_amount, parse_contact, parse_int
from .dates import parse_date

FORMAL = "formal"
CASUAL = "casual"

_PLACEHOLDER = re.compile(r"{{([^{}]+)}}")


@dataclass
class SenderProfile:
    """Who the message is from."""
    company_name: str
    person_name: str
    person_name_reading: str = ""
    material_url: str = ""
    service_url: str = ""

    @classmethod
    def from_settings(cls, settings) -> "SenderProfile":
        return cls(
            company_name=settings.company_name,
            person_name=settings.person_name,
            person_name_reading=settings.person_name_reading,
            material_url=settings.material_url,
            service_url=settings.service_url,
        )


def action_keyword(action: str) -> str:
    """First vocabulary action contained in the label, else the label itself."""
    for keyword in ACTION_OPTIONS:
        if keyword in (action or ""):
            return keyword
    return action or ""


def is_existing_customer(record: CustomerRecord) -> bool:
    count = parse_int(record.transaction_count)
    return (count is not None and count > 0) or parse_amount(record.total_amount) > 0


def _condition_matches(template: TemplateDefinition, existing: bool) -> bool:
    return bool(template.condition) and "existing" in template.condition and (
        template.condition["existing"] == existing
    )


def select_template(
    record: CustomerRecord,
    templates: List[TemplateDefinition],
    variant: Optional[str] = None,
) -> Optional[TemplateDefinition]:
    """Best template for a customer, or None when no template covers its action."""
    action = action_keyword(record.next_action)
    candidates = [
        template
        for template in templates
        if any(candidate in action for candidate in template.actions)
    ]
    if not candidates:
        return None

    existing = is_existing_customer(record)

    if variant:
        variant_candidates = [t for t in candidates if t.variant == variant]
        for template in variant_candidates:
            if _condition_matches(template, existing):
                return template
        for template in variant_candidates:
            if not template.condition:
                return template
        if variant_candidates:
            return variant_candidates[0]

    for template in candidates:
        if _condition_matches(template, existing):
            return template
    for template in candidates:
        if not template.condition:
            return template
    return candidates[0]


def select_templates(
    record: CustomerRecord, templates: List[TemplateDefinition]
) -> Dict[str, Optional[TemplateDefinition]]:
    return {
        FORMAL: select_template(record, templates, FORMAL),
        CASUAL: select_template(record, templates, CASUAL),
    }


def format_person_name(name: str, reading: str) -> str:
    """Name followed by its reading in full-width brackets."""
    trimmed = name.strip()
    if "（" in trimmed and "）" in trimmed:
        return trimmed
    return f"{trimmed}（{reading}）" if reading else trimmed


def greeting_prefix(record: CustomerRecord, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    count = parse_int(record.transaction_count)
    last_contact = parse_date(record.last_contact_date, today=now.date())
    days = max(0, (now.date() - last_contact).days) if last_contact else None
    regular = count is not None and count >= 2

    if regular and days is not None and days < 120:
        return "いつもありがとうございます" if days < 30 else "いつもお世話になっております"
    if days is None:
        return "いつもお世話になっております" if regular else "以前はありがとうございました"
    if days <= 7:
        return "先日はありがとうございました"
    if days <= 30:
        return "この度はありがとうございました"
    if days <= 90:
        return "以前はありがとうございました"
    if days <= 180:
        return "ご無沙汰しております"
    if days <= 365:
        return "お久しぶりです"
    return "大変ご無沙汰しております"


def build_greeting(
    record: CustomerRecord,
    profile: SenderProfile,
    now: Optional[datetime] = None,
) -> str:
    person = format_person_name(profile.person_name, profile.person_name_reading)
    return f"{greeting_prefix(record, now)}、{profile.company_name}の{person}です。"


def infer_memo(record: CustomerRecord) -> str:
    if record.notes and record.notes != "-":
        return record.notes
    if "フォローアップ" in record.next_action:
        return "現在進行中の案件"
    if "新規提案" in record.next_action:
        return "これまでのやり取り"
    return "これまでの案件"


def replace_placeholders(text: str, replacements: Dict[str, str]) -> str:
    """Substitute known ``{{name}}`` tokens; unknown tokens stay as written."""
    def substitute(match):
        return replacements.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(substitute, text)


def render_message(
    record: CustomerRecord,
    template: TemplateDefinition,
    profile: SenderProfile,
    now: Optional[datetime] = None,
) -> str:
    person = format_person_name(profile.person_name, profile.person_name_reading)
    contact = parse_contact(record.contact_url)
    contact_url = contact[1] if contact else record.contact_url
    replacements = {
        "顧客名": record.customer_name,
        "自社名": profile.company_name,
        "事業名": profile.company_name,
        "担当者名": person,
        "氏名": profile.person_name,
        "氏名読み": profile.person_name_reading,
        "資料URL": profile.material_url,
        "サービスURL": profile.service_url,
        "最終連絡日": record.last_contact_date or UNSET_ACTION,
        "次のアクション": record.next_action or UNSET_ACTION,
        "実行予定日": record.scheduled_date or UNSET_ACTION,
        "連絡先": contact_url or "",
        "取引回数": record.transaction_count or "0",
        "総額": record.total_amount or "0円",
        "関係性メモ": infer_memo(record),
        "目安日程": "＜目安日程をご記入ください＞",
        "候補日時": "＜候補日時をご記入ください＞",
        "提案プラン名": "＜提案プラン名をご記入ください＞",
        "挨拶文": build_greeting(record, profile, now),
        "署名": "",
    }
    return replace_placeholders(template.template, replacements)


def render_messages(
    record: CustomerRecord,
    templates: List[TemplateDefinition],
    profile: SenderProfile,
    now: Optional[datetime] = None,
) -> Dict[str, Optional[Dict[str, str]]]:
    """Formal and casual messages for one customer (None when no template fits)."""
    rendered: Dict[str, Optional[Dict[str, str]]] = {}
    for variant, template in select_templates(record, templates).items():
        if template is None:
            rendered[variant] = None
            continue
        rendered[variant] = {
            "templateId": template.id,
            "title": template.title,
            "message": render_message(record, template, profile, now),
        }
    return rendered
