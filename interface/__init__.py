"""User-facing channels - web dashboard and Discord notifications

Channels:
- WebChannel: dashboard over the customer table (FastAPI + uvicorn)
- DiscordChannel: outbound webhook notifications

Core:
- Channel: abstract base
- ChannelManager: starts / stops every registered channel
- OutboundMessage: one notification message

Usage:
    ```python
    from interface import ChannelManager, DiscordChannel, WebChannel

    discord = DiscordChannel(webhook_url=settings.discord_webhook_url)
    manager = ChannelManager()
    manager.register(discord)
    manager.register(WebChannel(store=store, notifier=discord, port=8080))
    await manager.start_all()
    ```
"""
from interface.base import Channel, OutboundMessage
from interface.discord.channel import DiscordChannel, NotificationConfigError, NotificationError
from interface.manager import ChannelManager
from interface.web.channel import WebChannel

__all__ = [
    # core
    "Channel",
    "ChannelManager",
    "OutboundMessage",
    # channels
    "DiscordChannel",
    "WebChannel",
    # errors
    "NotificationError",
    "NotificationConfigError",
]
