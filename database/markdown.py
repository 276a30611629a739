"""Markdown codec for the customer table and the template document.

The customer table is a pipe table whose columns are located by header label,
so both the current layout and the legacy ten-column layout can be read::

    | 顧客名 | 次のアクション | 連絡先 | ♥ | ✗ | ⭐ | 最終連絡日 | ... |
    |--------|-------------|--------|----|----|----|------------| ... |
    | 山田 | リコンタクト | - | ✓ | - | - | 2025/11/17 | ... |

Writing is lossy for cell text: newlines collapse to spaces and surrounding
whitespace is trimmed. Pipes are escaped and restored on read.
"""
import json
import re
from typing import Dict, List, Optional

from loguru import logger

from .models import BOOLEAN_FIELDS, CustomerRecord, TemplateDefinition

TABLE_HEADER = (
    "| 顧客名 | 次のアクション | 連絡先 | ♥ | ✗ | ⭐ | 最終連絡日 | 実行予定日 "
    "| 取引回数 | 総額 | 性別 | 年齢 | 関係性/メモ |"
)
TABLE_SEPARATOR = (
    "|--------|-------------|--------|----|----|----|------------|----------"
    "|----------|------|------|------|-------------|"
)
LEGACY_TABLE_HEADER = (
    "| 顧客名 | 最終連絡日 | 次のアクション | 実行予定日 | 連絡先 "
    "| 取引回数 | 総額 | 性別 | 年齢 | 関係性/メモ |"
)

COLUMN_FIELDS: List[str] = [
    "customer_name",
    "next_action",
    "contact_url",
    "has_heart",
    "has_trouble",
    "is_favorite",
    "last_contact_date",
    "scheduled_date",
    "transaction_count",
    "total_amount",
    "gender",
    "age",
    "notes",
]

HEADER_LABELS: Dict[str, str] = {
    "顧客名": "customer_name",
    "次のアクション": "next_action",
    "連絡先": "contact_url",
    "♥": "has_heart",
    "✗": "has_trouble",
    "⭐": "is_favorite",
    "最終連絡日": "last_contact_date",
    "実行予定日": "scheduled_date",
    "取引回数": "transaction_count",
    "総額": "total_amount",
    "性別": "gender",
    "年齢": "age",
    "関係性/メモ": "notes",
}

EMPTY_CELL = "-"
CHECK_MARK = "✓"

_UNESCAPED_PIPE = re.compile(r"(?<!\\)\|")
_JSON_BLOCK = re.compile(r"```json([\s\S]*?)```")
_NEXT_SECTION = re.compile(r"\n#{1,2} ")


def split_row(line: str) -> List[str]:
    """Split a table row on unescaped pipes, dropping the outer borders."""
    cells = _UNESCAPED_PIPE.split(line.strip())
    if cells and cells[0].strip() == "":
        cells = cells[1:]
    if cells and cells[-1].strip() == "":
        cells = cells[:-1]
    return [cell.strip().replace("\\|", "|") for cell in cells]


def _columns_for_header(line: str) -> Optional[List[Optional[str]]]:
    labels = split_row(line)
    if "顧客名" not in labels:
        return None
    return [HEADER_LABELS.get(label) for label in labels]


def parse_customer_markdown(markdown_text: str) -> List[CustomerRecord]:
    """Read customer records from the first table whose header names 顧客名.

    Rows with fewer cells than the header are skipped; the table ends at the
    first non-blank line that does not start with a pipe.
    """
    if markdown_text.startswith("\ufeff"):
        markdown_text = markdown_text[1:]

    records: List[CustomerRecord] = []
    columns: Optional[List[Optional[str]]] = None

    for raw_line in markdown_text.splitlines():
        line = raw_line.strip()

        if columns is None:
            if line.startswith("|"):
                columns = _columns_for_header(line)
            continue

        if line.startswith("|---") or line == "":
            continue
        if not line.startswith("|"):
            break

        cells = split_row(line)
        if len(cells) < len(columns):
            continue

        values: Dict[str, object] = {}
        for name, cell in zip(columns, cells):
            if name is None:
                continue
            if name in BOOLEAN_FIELDS:
                values[name] = cell in (CHECK_MARK, "true")
            else:
                values[name] = "" if cell == EMPTY_CELL else cell
        records.append(CustomerRecord(**values))

    return records


def format_cell(value) -> str:
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return CHECK_MARK if value else EMPTY_CELL
    text = str(value)
    if not text.strip():
        return EMPTY_CELL
    text = re.sub(r"\r?\n", " ", text).replace("|", "\\|").strip()
    return text or EMPTY_CELL


def build_markdown_table(records: List[CustomerRecord]) -> str:
    rows = [
        "| " + " | ".join(format_cell(getattr(record, name)) for name in COLUMN_FIELDS) + " |"
        for record in records
    ]
    return "\n".join([TABLE_HEADER, TABLE_SEPARATOR, *rows])


def merge_table_contents(original: str, table: str) -> str:
    """Splice a freshly rendered table into a larger document.

    The current header is searched first, then the legacy one. The old table
    extends to the next level-1 or level-2 heading (or the end of the
    document); the text around it is kept. Without any header the table is
    put in front of the document.

    The result is normalized: blank lines at the two splice edges collapse to
    a single newline, the document ends with one newline, and CRLF line
    endings become LF throughout.
    """
    header_index = original.find(TABLE_HEADER)
    header = TABLE_HEADER
    if header_index == -1:
        header_index = original.find(LEGACY_TABLE_HEADER)
        header = LEGACY_TABLE_HEADER

    if header_index == -1:
        rest = original.lstrip()
        return (table + "\n" + rest).rstrip() + "\n"

    before = original[:header_index].rstrip()
    match = _NEXT_SECTION.search(original, header_index + len(header))
    after = original[match.start():] if match else ""
    after = after.lstrip()

    prefix = before + "\n" if before else ""
    suffix = "\n" + after if after else "\n"
    return (prefix + table + suffix).replace("\r\n", "\n")


def parse_template_markdown(markdown_text: str) -> List[TemplateDefinition]:
    """Parse the ```json block of the template document.

    Missing or malformed JSON yields an empty list.
    """
    match = _JSON_BLOCK.search(markdown_text)
    if not match:
        return []
    try:
        parsed = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning(f"テンプレートJSONの解析に失敗しました: {e}")
        return []
    if not isinstance(parsed, list):
        logger.warning("テンプレートJSONが配列ではありません")
        return []
    return [TemplateDefinition.from_dict(item) for item in parsed if isinstance(item, dict)]
