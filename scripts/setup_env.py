#!/usr/bin/env python3
"""対話形式で .env 設定ファイルを生成します

使い方：
    python scripts/setup_env.py

必要な設定項目を順に質問し、.env ファイルを書き出します。
"""
import os

# プロジェクトのルート
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_FILE = os.path.join(PROJECT_ROOT, ".env")


# 設定項目: (環境変数名, 説明, 既定値, 必須か)
CONFIG_ITEMS = [
    # === データファイル ===
    ("CUSTOMERS_FILE", "顧客表 Markdown ファイル", "data/customers.md", False),
    ("DOCUMENT_FILE", "顧客表を差し込む管理ドキュメント（空なら無効）", "顧客管理データ.md", False),
    ("TEMPLATES_FILE", "メッセージテンプレート Markdown", "data/templates.md", False),
    ("BACKUP_DIR", "保存前バックアップの保存先（空なら無効）", "backups", False),
    ("BACKUP_KEEP", "残すバックアップの数（0 は無制限）", "50", False),

    # === Discord 通知 ===
    ("DISCORD_WEBHOOK_URL", "Discord Webhook URL（通知送信に必須）", "", True),
    ("DISCORD_USERNAME", "通知の表示名", "営業通知Bot", False),

    # === 通知チェック ===
    ("NOTIFY_HORIZON_DAYS", "何日先までの予定を通知するか", "1", False),
    ("NOTIFY_DAILY_TIME", "毎日の通知チェック時刻 HH:MM（空なら無効）", "", False),

    # === 差出人 ===
    ("COMPANY_NAME", "会社名（メッセージ署名）", "サンプル株式会社", False),
    ("PERSON_NAME", "担当者名", "営業太郎", False),
    ("PERSON_NAME_READING", "担当者名の読み", "えいぎょう たろう", False),
    ("MATERIAL_URL", "資料 URL（テンプレートの {{資料URL}}）", "", False),
    ("SERVICE_URL", "サービス URL（テンプレートの {{サービスURL}}）", "", False),

    # === Web ===
    ("WEB_HOST", "Web 待ち受けアドレス", "127.0.0.1", False),
    ("WEB_PORT", "Web 待ち受けポート", "8080", False),
    ("AUTOSAVE_DELAY", "自動保存までの待ち時間（秒）", "2", False),
]

SECTION_NAMES = {
    "CUSTOMERS": "# === データファイル ===",
    "DISCORD": "# === Discord 通知 ===",
    "NOTIFY": "# === 通知チェック ===",
    "COMPANY": "# === 差出人 ===",
    "WEB": "# === Web ===",
}


def main():
    print()
    print("=" * 60)
    print("  顧客管理ダッシュボード 設定ウィザード")
    print("  .env ファイルを生成します")
    print("=" * 60)
    print()

    if os.path.exists(ENV_FILE):
        print(f"⚠️  既存の .env があります: {ENV_FILE}")
        choice = input("上書きしますか？(y/N): ").strip().lower()
        if choice != "y":
            print("中止しました。")
            return
        print()

    env_lines = [
        "# 顧客管理ダッシュボード 設定ファイル",
        "# scripts/setup_env.py で生成",
    ]

    for key, desc, default, required in CONFIG_ITEMS:
        header = SECTION_NAMES.get(key.split("_")[0])
        if header:
            env_lines.append("")
            env_lines.append(header)

        req_tag = " [必須]" if required else ""
        default_hint = f" (既定: {default})" if default else ""
        print(f"📝 {desc}{req_tag}")

        while True:
            value = input(f"  {key}={default_hint}: ").strip()
            if not value:
                value = default
            if required and not value:
                print(f"  ❌ {key} は必須です。値を入力してください。")
                continue
            break

        env_lines.append(f"{key}={value}")
        print()

    with open(ENV_FILE, "w", encoding="utf-8") as f:
        f.write("\n".join(env_lines) + "\n")

    print("=" * 60)
    print(f"  ✅ 設定ファイルを生成しました: {ENV_FILE}")
    print()
    print("  サンプルデータの作成：")
    print("    python scripts/init_data.py")
    print()
    print("  起動：")
    print("    python app.py")
    print("=" * 60)


if __name__ == "__main__":
    main()
