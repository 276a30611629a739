"""Discord webhook channel - outbound sales-action notifications

Usage:
    ```python
    discord = DiscordChannel(webhook_url=settings.discord_webhook_url)
    discord.send("📢 **営業アクション通知** ...")
    ```

A missing webhook URL or a non-2xx response fails the single call; there is
no retry.
"""
from typing import Optional

import requests
from loguru import logger

from interface.base import Channel, OutboundMessage


class NotificationError(RuntimeError):
    """Sending a notification failed."""


class NotificationConfigError(NotificationError):
    """The webhook URL is not configured."""


class DiscordChannel(Channel):
    """Posts messages to a Discord webhook."""

    def __init__(
        self,
        webhook_url: str = "",
        username: str = "営業通知Bot",
        timeout: float = 10.0,
    ):
        super().__init__("discord")
        self.webhook_url = webhook_url
        self.username = username
        self.timeout = timeout

    async def startup(self):
        if not self.webhook_url:
            logger.warning("DISCORD_WEBHOOK_URL が未設定です。通知は送信できません")
        self.running = True

    async def shutdown(self):
        self.running = False

    def ensure_configured(self) -> None:
        if not self.webhook_url:
            raise NotificationConfigError("DISCORD_WEBHOOK_URL環境変数が設定されていません")

    def send(self, content: str, username: Optional[str] = None) -> None:
        """POST one message to the webhook.

        Raises:
            NotificationConfigError: no webhook URL.
            NotificationError: network failure or non-success response.
        """
        self.ensure_configured()
        message = OutboundMessage(content=content, username=username or self.username)
        try:
            response = requests.post(
                self.webhook_url,
                json={"content": message.content, "username": message.username},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(f"Discord通知送信に失敗: {e}") from e

        if not response.ok:
            raise NotificationError(
                f"Discord通知送信に失敗: {response.status_code} {response.reason} - {response.text}"
            )
        logger.debug(f"Discord 送信完了: status={response.status_code}")
