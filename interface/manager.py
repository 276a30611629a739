"""Channel manager - starts and stops every registered channel together"""
from typing import Dict, List, Optional

from loguru import logger

from interface.base import Channel


class ChannelManager:
    """Channel manager

    Usage:
        ```python
        manager = ChannelManager()
        manager.register(DiscordChannel(webhook_url=url))
        manager.register(WebChannel(store=store, port=8080))
        await manager.start_all()
        ```
    """

    def __init__(self):
        self.channels: Dict[str, Channel] = {}

    def register(self, channel: Channel):
        """Register a channel, replacing one with the same name."""
        name = channel.name
        if name in self.channels:
            logger.warning(f"チャネル {name} は登録済みのため置き換えます")
        self.channels[name] = channel
        logger.info(f"チャネルを登録しました: {name}")

    def get_channel(self, name: str) -> Optional[Channel]:
        return self.channels.get(name)

    async def start_all(self):
        """Start every channel; one failing channel does not stop the others."""
        for name, channel in self.channels.items():
            try:
                await channel.startup()
                logger.info(f"チャネルを起動しました: {name}")
            except Exception as e:
                logger.error(f"チャネルの起動に失敗しました {name}: {e}")

    async def stop_all(self):
        """Stop every running channel."""
        for name, channel in self.channels.items():
            try:
                if channel.is_running:
                    await channel.shutdown()
                    logger.info(f"チャネルを停止しました: {name}")
            except Exception as e:
                logger.error(f"チャネルの停止に失敗しました {name}: {e}")

    def list_channels(self) -> List[str]:
        return list(self.channels.keys())

    def get_running_channels(self) -> List[str]:
        return [name for name, ch in self.channels.items() if ch.is_running]
