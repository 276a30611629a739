"""Channel abstraction - common lifecycle for user-facing channels.

A Channel is one way the system talks to the operator: the web dashboard
(inbound HTTP) or the Discord webhook (outbound notifications).

Core concepts:
- Channel: abstract base with startup / shutdown
- OutboundMessage: text pushed to the operator by an outbound channel

Design:
- Channels only move data; business rules live in ``business``
- Channels are independent and can run side by side
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class OutboundMessage:
    """Message pushed to the operator.

    Attributes:
        content: rendered text
        username: display name shown by the receiving service
    """
    content: str
    username: str = ""


class Channel(ABC):
    """Channel base class.

    Usage:
        ```python
        channel = WebChannel(store=store, port=8080)
        await channel.startup()
        ...
        await channel.shutdown()
        ```
    """

    def __init__(self, name: str):
        """
        Args:
            name: channel identifier ('web', 'discord')
        """
        self.name = name
        self.running = False

    @abstractmethod
    async def startup(self):
        """Start the channel; implementations set ``self.running = True``."""
        pass

    @abstractmethod
    async def shutdown(self):
        """Stop the channel; implementations set ``self.running = False``."""
        pass

    @property
    def is_running(self) -> bool:
        return self.running
