"""
Messaging Backend Contract

The core never talks to a chat library directly. A backend provides:

    Backend.connect(token)            -> Connection   (AuthenticationError)
    Connection.fetch_channel(id)      -> Channel      (ChannelNotFound)
    Connection.close()
    Channel.send(attachment, filename, caption) -> Message   (BackendError)
    Channel.history(before, limit)    -> one page of Messages, newest first

Adapters translate their library's exceptions into chunkcord exceptions at
this boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


class Attachment(ABC):
    """A file attached to a message."""
    filename: str
    size: int

    @abstractmethod
    async def read(self) -> bytes:
        """Download the attachment's bytes."""


@dataclass
class Message:
    """A channel message as seen by the core."""
    id: int
    caption: str
    attachment: Optional[Attachment] = None


class Channel(ABC):
    """A destination for chunk messages."""
    id: str

    @abstractmethod
    async def send(self, attachment: bytes, filename: str, caption: str) -> Message:
        """Post one attachment with a caption."""

    @abstractmethod
    async def history(self, before: Optional[int] = None,
                      limit: int = 100) -> List[Message]:
        """
        Fetch one page of history, newest first.

        Args:
            before: Only return messages older than this message id
            limit: Maximum number of messages in the page

        Returns:
            List of messages; empty when the start of the channel is reached
        """


class Connection(ABC):
    """An authenticated connection to the backend."""

    @abstractmethod
    async def fetch_channel(self, channel_id: str) -> Channel:
        """Resolve a channel id."""

    @abstractmethod
    async def close(self):
        """Release the connection."""


class Backend(ABC):
    """Factory for connections."""
    name: str = ''

    @abstractmethod
    async def connect(self, token: str) -> Connection:
        """Authenticate and return a ready connection."""
