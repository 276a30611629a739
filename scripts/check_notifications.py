#!/usr/bin/env python3
"""営業アクション通知チェック（1 回実行）

顧客表を読み込み、実行予定日が近い顧客を Discord に通知します。
cron などから定期実行する用途を想定しています。

使い方：
    python scripts/check_notifications.py
    python scripts/check_notifications.py --test        # 送信せず対象だけ表示
    python scripts/check_notifications.py --horizon 3   # 3 日先まで対象にする
"""
import argparse
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from loguru import logger

from business.notifications import run_notification_check
from config.settings import settings
from database import CustomerStore
from interface.discord.channel import DiscordChannel, NotificationError


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="営業アクション通知チェック")
    parser.add_argument("--test", action="store_true", help="送信せずに通知対象を表示する")
    parser.add_argument("--horizon", type=int, default=settings.notify_horizon_days,
                        help=f"何日先までを対象にするか (既定: {settings.notify_horizon_days})")
    parser.add_argument("--customers", default=settings.customers_file, help="顧客表 Markdown ファイル")
    args = parser.parse_args(argv)

    store = CustomerStore.from_settings(settings, customers_path=args.customers)
    discord = DiscordChannel(
        webhook_url=settings.discord_webhook_url,
        username=settings.discord_username,
        timeout=settings.discord_timeout,
    )

    try:
        result = run_notification_check(store, discord, horizon_days=args.horizon, test_mode=args.test)
    except (NotificationError, OSError, UnicodeDecodeError) as e:
        logger.error(f"通知チェックエラー: {e}")
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
