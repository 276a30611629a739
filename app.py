#!/usr/bin/env python3
"""顧客管理ダッシュボード - Web アプリ起動スクリプト

起動するもの：
1. 顧客表ダッシュボード（閲覧・フィルタ・並べ替え・インライン編集・自動保存）
2. Discord への営業アクション通知（NOTIFY_DAILY_TIME 設定時は毎日定時に実行）

使い方：
    python app.py

    # ポート指定
    python app.py --port 8080

    # 顧客表ファイル指定
    python app.py --customers data/customers.md

環境変数（.env に記述。python scripts/setup_env.py で生成できます）：
    CUSTOMERS_FILE        顧客表 Markdown（既定 data/customers.md）
    DOCUMENT_FILE         表を差し込む管理ドキュメント（空なら無効）
    TEMPLATES_FILE        メッセージテンプレート Markdown
    DISCORD_WEBHOOK_URL   Discord Webhook URL（通知送信に必須）
    NOTIFY_DAILY_TIME     毎日の通知チェック時刻 HH:MM（空なら無効）
    WEB_HOST / WEB_PORT   待ち受けアドレス / ポート
"""
import argparse
import asyncio
import signal

from loguru import logger


async def _cleanup(manager, scheduler):
    """Stop the scheduler and every channel.

    The web channel saves pending edits before its server stops.
    """
    logger.info("リソースを解放しています...")

    if scheduler is not None:
        try:
            scheduler.stop()
        except Exception as e:
            logger.warning(f"スケジューラ停止時にエラー: {e}")

    if manager is not None:
        await manager.stop_all()

    logger.info("サービスを停止しました")


async def main():
    from config.settings import settings

    parser = argparse.ArgumentParser(description="顧客管理ダッシュボード")
    parser.add_argument("--host", default=settings.web_host,
                        help=f"待ち受けアドレス (既定: {settings.web_host})")
    parser.add_argument("--port", type=int, default=settings.web_port,
                        help=f"待ち受けポート (既定: {settings.web_port})")
    parser.add_argument("--customers", default=settings.customers_file,
                        help="顧客表 Markdown ファイル")
    parser.add_argument("--no-scheduler", action="store_true",
                        help="定時の通知チェックを起動しない")
    args = parser.parse_args()

    manager = None
    scheduler = None

    try:
        from business.messaging import SenderProfile
        from business.notifications import run_notification_check
        from business.scheduler import Scheduler
        from database import CustomerStore
        from interface import ChannelManager, DiscordChannel, WebChannel

        store = CustomerStore.from_settings(settings, customers_path=args.customers)
        logger.info(f"顧客表: {store.customers_path}")

        discord = DiscordChannel(
            webhook_url=settings.discord_webhook_url,
            username=settings.discord_username,
            timeout=settings.discord_timeout,
        )
        web = WebChannel(
            store=store,
            notifier=discord,
            host=args.host,
            port=args.port,
            autosave_delay=settings.autosave_delay,
            horizon_days=settings.notify_horizon_days,
            profile=SenderProfile.from_settings(settings),
        )

        manager = ChannelManager()
        manager.register(discord)
        manager.register(web)
        await manager.start_all()

        scheduled = False
        if not args.no_scheduler and settings.notify_daily_time:
            scheduler = Scheduler()

            async def notification_job():
                loop = asyncio.get_running_loop()
                try:
                    result = await loop.run_in_executor(
                        None,
                        lambda: run_notification_check(
                            store, discord, horizon_days=settings.notify_horizon_days
                        ),
                    )
                    logger.info(f"定時通知チェック: {result['message']}")
                except Exception as e:
                    logger.error(f"定時通知チェックに失敗しました: {e}")

            scheduled = scheduler.add_notification_check(notification_job, settings.notify_daily_time)
            if scheduled:
                scheduler.start()
            else:
                scheduler = None

        print()
        print("=" * 60)
        print("  顧客管理ダッシュボードを起動しました")
        print(f"  アクセス: http://localhost:{args.port}")
        print(f"  顧客表: {store.customers_path}")
        print(f"  Discord 通知: {'設定済み' if settings.discord_webhook_url else '未設定（DISCORD_WEBHOOK_URL）'}")
        print(f"  定時チェック: {settings.notify_daily_time if scheduled else '無効'}")
        print("=" * 60)
        print("  Ctrl+C で停止")
        print()

        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()
        _shutdown_requested = False

        def signal_handler(signum):
            nonlocal _shutdown_requested
            if _shutdown_requested:
                logger.warning("再度終了シグナルを受信したため強制終了します...")
                for task in asyncio.all_tasks(loop):
                    task.cancel()
                return
            _shutdown_requested = True
            logger.info(f"シグナル {signum} を受信しました。停止します...")
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)

        await shutdown_event.wait()

    except asyncio.CancelledError:
        logger.info("タスクがキャンセルされました。後片付けをします...")
    except KeyboardInterrupt:
        logger.info("キーボード割り込みを受信しました")
    finally:
        await _cleanup(manager, scheduler)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        print("\n停止しました。")
