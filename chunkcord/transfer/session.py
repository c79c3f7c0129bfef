"""
Backend Session

Design Decision: One Session Per Call
=====================================

Options Considered:
1. Global client shared by all requests
   - Saves a login per call
   - Bot tokens differ per request, so one client cannot serve them all
2. Pooled connections keyed by token
   - Fast repeated calls
   - Idle connections, token lifetime and eviction to manage
3. Fresh connection per upload/retrieve call
   - One login per call (a few hundred ms)
   - Nothing outlives the request

Decision: Fresh connection per call
- The caller opens a Session and passes it to the Uploader/Locator
- Sessions are never shared; a pool could hand them out later without
  touching the transfer code

Usage:
    async with Session(backend, token) as session:
        channel = await session.resolve_channel(channel_id)
        ...
"""

import logging
from typing import Optional

from ..channel import Backend, Channel, Connection
from ..exceptions import BackendError

logger = logging.getLogger(__name__)


class Session:
    """
    One authenticated backend connection, scoped to a single call.

    close() is idempotent and always runs on exit from ``async with``.
    """

    def __init__(self, backend: Backend, token: str):
        self.backend = backend
        self._token = token
        self._connection: Optional[Connection] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._closed

    async def open(self) -> 'Session':
        """
        Authenticate against the backend.

        Raises:
            AuthenticationError: the token was rejected
        """
        if self._closed:
            raise BackendError("Session already closed")
        if self._connection is None:
            self._connection = await self.backend.connect(self._token)
            logger.info(f"Session opened ({self.backend.name})")
        return self

    async def resolve_channel(self, channel_id: str) -> Channel:
        """
        Resolve a channel id to a channel handle.

        Raises:
            ChannelNotFound: the channel does not exist or is inaccessible
        """
        if not self.is_open:
            raise BackendError("Session is not open")
        return await self._connection.fetch_channel(channel_id)

    async def close(self):
        """Release the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._connection is not None:
            try:
                await self._connection.close()
            finally:
                logger.info(f"Session closed ({self.backend.name})")

    async def __aenter__(self) -> 'Session':
        try:
            return await self.open()
        except BaseException:
            await self.close()
            raise

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
