"""
Business vocabulary - the fixed action list and the rules keyed on it.

Scheduling offsets and notification priorities both live here so the
dashboard, the autosave path and the notification check read one table.
"""
from typing import Dict, List, Tuple

UNSET_ACTION = "未設定"
DONE_ACTION = "完了"

# (keyword, day offset); first keyword contained in the label wins
ACTION_OFFSETS: List[Tuple[str, int]] = [
    ("リコンタクト", 5),
    ("フォローアップ", 9),
    ("新規提案", 14),
    ("リマインド", 14),
    ("クロージング", 7),
]
DEFAULT_OFFSET_DAYS = 14

# Lower rank is notified first
ACTION_PRIORITY: Dict[str, int] = {
    "リコンタクト": 1,
    "クロージング": 2,
    "フォローアップ": 3,
    "リマインド": 4,
    "新規提案": 5,
    "リピート提案": 6,
    "取引中": 7,
}
UNRANKED_PRIORITY = 999

URGENT_ACTIONS = {"リコンタクト", "フォローアップ"}

ACTION_DEFINITIONS: List[Dict[str, str]] = [
    {
        "name": "新規提案",
        "description": "新規リードへの提案営業。初めてのコンタクトや未取引顧客へのサービス提案。",
        "priority": "通常",
    },
    {
        "name": "リコンタクト",
        "description": "初回返信・急ぎ対応が必要な案件。顧客からの問い合わせへの返信や緊急対応（5日以内実行）。",
        "priority": "緊急",
    },
    {
        "name": "フォローアップ",
        "description": "進行中案件の継続対応。提案後のフォローや迷っている顧客への情報提供・サポート（7-10日間隔）。",
        "priority": "通常",
    },
    {
        "name": "リマインド",
        "description": "迷っている見積もりへの再アプローチ。既存提案の進捗確認・催促。",
        "priority": "通常",
    },
    {
        "name": "クロージング",
        "description": "決断を促す最終営業段階。契約に向けた最終的な提案や交渉。",
        "priority": "重要",
    },
    {
        "name": "取引中",
        "description": "契約が完了し、現在進行中の案件。開発・サポート中。",
        "priority": "重要",
    },
    {
        "name": "リピート提案",
        "description": "取引完了後の顧客への新サービス・クーポン提案。",
        "priority": "通常",
    },
    {
        "name": DONE_ACTION,
        "description": "取引終了・当面アクション不要。アフターサポートも含む完了状態。",
        "priority": "低",
    },
]

ACTION_OPTIONS: List[str] = [item["name"] for item in ACTION_DEFINITIONS]

GENDER_OPTIONS = ["男性", "女性", "不明", "その他"]
AGE_OPTIONS = [
    "10代",
    "20代前半",
    "20代後半",
    "30代前半",
    "30代後半",
    "40代前半",
    "40代後半",
    "50代以上",
    "不明",
]
TRANSACTION_OPTIONS = [str(n) for n in range(16)] + ["15以上"]


def get_options() -> Dict[str, List]:
    """Option lists rendered by the dashboard selects"""
    return {
        "actions": ACTION_DEFINITIONS,
        "genders": GENDER_OPTIONS,
        "ages": AGE_OPTIONS,
        "transactions": TRANSACTION_OPTIONS,
    }
