"""Customer store - unified facade over the Markdown files.

CustomerStore is the single entry point of the database module. The backing
files are the only durable source of truth:

1. **Primary table** (``customers_path``): the bare pipe table read by the
   dashboard and the notification check.
2. **Secondary document** (``document_path``): a human-readable document that
   embeds the same table between other sections; saves splice the new table in.
3. **Templates** (``templates_path``): a document with one ```json block.

Saving replaces the whole table (last write wins). A timestamped copy of the
previous primary table is written to ``backup_dir`` first; backup problems are
logged and never block the save.

Example::

    store = CustomerStore("data/customers.md", document_path="顧客管理データ.md")
    records = store.load_customers()
    records[0].notes = "展示会で名刺交換"
    store.save_customers(records)
"""
import shutil
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from .markdown import (
    build_markdown_table,
    merge_table_contents,
    parse_customer_markdown,
    parse_template_markdown,
)
from .models import CustomerRecord, TemplateDefinition

PathLike = Union[str, Path]

BACKUP_PREFIX = "customers-"


class CustomerStore:
    """Markdown-backed customer store.

    Attributes:
        customers_path: primary table file.
        document_path: secondary document, or None to skip the merge.
        templates_path: template document, or None when templates are unused.
        backup_dir: directory for timestamped backups, or None to disable.
        backup_keep: newest backups to keep; 0 keeps all of them.
    """

    def __init__(
        self,
        customers_path: PathLike,
        document_path: Optional[PathLike] = None,
        templates_path: Optional[PathLike] = None,
        backup_dir: Optional[PathLike] = None,
        backup_keep: int = 0,
    ) -> None:
        self.customers_path = Path(customers_path)
        self.document_path = Path(document_path) if document_path else None
        self.templates_path = Path(templates_path) if templates_path else None
        self.backup_dir = Path(backup_dir) if backup_dir else None
        self.backup_keep = backup_keep

    @classmethod
    def from_settings(cls, settings, customers_path: Optional[PathLike] = None) -> "CustomerStore":
        return cls(
            customers_path=customers_path or settings.customers_file,
            document_path=settings.document_file or None,
            templates_path=settings.templates_file or None,
            backup_dir=settings.backup_dir or None,
            backup_keep=settings.backup_keep,
        )

    # ==================== Reading ====================

    @staticmethod
    def _read_text(path: Path) -> str:
        # utf-8-sig drops a leading byte-order mark
        return path.read_text(encoding="utf-8-sig")

    def load_customers(self) -> List[CustomerRecord]:
        """Load every customer row; a missing file is an empty table."""
        if not self.customers_path.exists():
            logger.warning(f"顧客データファイルが見つかりません: {self.customers_path}")
            return []
        return parse_customer_markdown(self._read_text(self.customers_path))

    def load_templates(self) -> List[TemplateDefinition]:
        if self.templates_path is None or not self.templates_path.exists():
            return []
        return parse_template_markdown(self._read_text(self.templates_path))

    # ==================== Writing ====================

    def backup(self) -> Optional[Path]:
        """Copy the current primary table to a timestamped backup file.

        Returns:
            The backup path, or None when there was nothing to back up or the
            copy failed.
        """
        if self.backup_dir is None or not self.customers_path.exists():
            return None
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
            backup_path = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}.md"
            # byte copy; the previous file may not be valid UTF-8
            shutil.copy2(self.customers_path, backup_path)
            logger.info(f"バックアップを作成しました: {backup_path}")
        except OSError as e:
            logger.warning(f"バックアップの作成に失敗しました: {e}")
            return None
        self._prune_backups()
        return backup_path

    def list_backups(self) -> List[Path]:
        if self.backup_dir is None or not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.md"))

    def _prune_backups(self) -> None:
        if self.backup_keep <= 0:
            return
        stale = self.list_backups()[:-self.backup_keep]
        for path in stale:
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"古いバックアップを削除できませんでした {path}: {e}")

    def save_customers(self, records: List[CustomerRecord]) -> None:
        """Replace the whole table in the primary file and the secondary document.

        Raises:
            OSError: when the primary or secondary file cannot be written.
        """
        table = build_markdown_table(records)
        self.backup()

        self.customers_path.parent.mkdir(parents=True, exist_ok=True)
        self.customers_path.write_text(f"{table}\n", encoding="utf-8")

        if self.document_path is not None:
            original = ""
            try:
                original = self._read_text(self.document_path)
            except FileNotFoundError:
                logger.warning(f"{self.document_path} が無いため新規作成します")
            merged = merge_table_contents(original, table)
            self.document_path.parent.mkdir(parents=True, exist_ok=True)
            self.document_path.write_text(merged, encoding="utf-8")

        logger.info(f"顧客データを保存しました: {len(records)}件")
