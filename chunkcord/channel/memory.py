"""
In-Memory Backend

A process-local stand-in for a messaging service. Used for local runs
(``backend = "memory"``) and as the test double for the transfer layer.

Modes:
- strict (default): only registered tokens connect, only created channels
  resolve. Tests use this to exercise AuthenticationError and ChannelNotFound
- open: any token connects and unknown channel ids are created on first
  fetch. ``create_backend("memory")`` returns an open backend

Failure injection:
    backend.fail_sends(lambda channel_id, filename: filename == 'chunk-2.txt')
makes matching sends raise BackendError after a short delay, while the others
still complete.
"""

import asyncio
import itertools
import logging
from typing import Callable, Dict, List, Optional, Set

from .base import Attachment, Backend, Channel, Connection, Message
from ..exceptions import AuthenticationError, BackendError, ChannelNotFound

logger = logging.getLogger(__name__)

SendFailurePredicate = Callable[[str, str], bool]


class MemoryAttachment(Attachment):

    def __init__(self, filename: str, data: bytes):
        self.filename = filename
        self.size = len(data)
        self._data = data

    async def read(self) -> bytes:
        await asyncio.sleep(0)
        return self._data


class MemoryChannel(Channel):
    """Channel whose messages live in a list (oldest first)."""

    def __init__(self, backend: 'MemoryBackend', channel_id: str):
        self.id = channel_id
        self._backend = backend
        self.messages: List[Message] = []

    async def send(self, attachment: bytes, filename: str, caption: str) -> Message:
        self._backend.send_attempts += 1
        predicate = self._backend.send_failure
        if predicate is not None and predicate(self.id, filename):
            await asyncio.sleep(0)
            raise BackendError(f"Injected send failure for {filename}")
        await asyncio.sleep(self._backend.send_delay)
        return self.post(caption, MemoryAttachment(filename, bytes(attachment)))

    def post(self, caption: str, attachment: Optional[Attachment] = None) -> Message:
        """Append a message without going through send (for seeding history)."""
        message = Message(
            id=next(self._backend.message_ids),
            caption=caption,
            attachment=attachment,
        )
        self.messages.append(message)
        return message

    async def history(self, before: Optional[int] = None,
                      limit: int = 100) -> List[Message]:
        self._backend.history_calls += 1
        await asyncio.sleep(0)
        newest_first = sorted(self.messages, key=lambda m: m.id, reverse=True)
        if before is not None:
            newest_first = [m for m in newest_first if m.id < before]
        return newest_first[:limit]


class MemoryConnection(Connection):

    def __init__(self, backend: 'MemoryBackend', token: str):
        self._backend = backend
        self.token = token
        self.closed = False

    async def fetch_channel(self, channel_id: str) -> Channel:
        if self.closed:
            raise BackendError("Connection closed")
        if self._backend.open_access:
            return self._backend.create_channel(str(channel_id))
        allowed = self._backend.tokens.get(self.token)
        channel = self._backend.channels.get(str(channel_id))
        if channel is None or (allowed is not None and str(channel_id) not in allowed):
            raise ChannelNotFound(str(channel_id))
        return channel

    async def close(self):
        if not self.closed:
            self.closed = True
            self._backend.open_connections -= 1


class MemoryBackend(Backend):
    """
    In-memory messaging service.

    Tokens map to the set of channel ids they may access (``None`` = all).
    With ``open_access`` the token registry and channel list are ignored.
    """
    name = 'memory'

    def __init__(self, send_delay: float = 0.0, open_access: bool = False):
        self.open_access = open_access
        self.tokens: Dict[str, Optional[Set[str]]] = {}
        self.channels: Dict[str, MemoryChannel] = {}
        self.message_ids = itertools.count(1)
        self.send_delay = send_delay
        self.send_failure: Optional[SendFailurePredicate] = None

        # Statistics
        self.send_attempts = 0
        self.history_calls = 0
        self.open_connections = 0
        self.connections_opened = 0

    def add_token(self, token: str, channel_ids: Optional[Set[str]] = None):
        self.tokens[token] = set(channel_ids) if channel_ids is not None else None

    def create_channel(self, channel_id: str) -> MemoryChannel:
        channel = self.channels.get(channel_id)
        if channel is None:
            channel = MemoryChannel(self, channel_id)
            self.channels[channel_id] = channel
        return channel

    def fail_sends(self, predicate: Optional[SendFailurePredicate]):
        self.send_failure = predicate

    async def connect(self, token: str) -> Connection:
        await asyncio.sleep(0)
        if not self.open_access and token not in self.tokens:
            raise AuthenticationError("Improper token has been passed.")
        self.open_connections += 1
        self.connections_opened += 1
        logger.debug("Memory backend connection opened")
        return MemoryConnection(self, token)
