"""
Discord Backend

Design Decision: Connecting Without the Gateway
===============================================

Options Considered:
1. client.start(token) + wait for the "ready" event
   - Opens a websocket gateway session we never use
   - Readiness arrives through a callback, failures are easy to lose
2. client.login(token) only
   - HTTP authentication, returns or raises
   - Enough for fetch_channel / send / history / attachment download

Decision: login() only
- connect() is a single awaitable that yields a usable connection or raises
  AuthenticationError
- No intents or event handlers needed
"""

import io
import logging
from typing import List, Optional

import discord

from .base import Attachment, Backend, Channel, Connection, Message
from ..exceptions import AuthenticationError, BackendError, ChannelNotFound

logger = logging.getLogger(__name__)


class DiscordAttachment(Attachment):

    def __init__(self, attachment: discord.Attachment):
        self._attachment = attachment
        self.filename = attachment.filename
        self.size = attachment.size

    async def read(self) -> bytes:
        try:
            return await self._attachment.read()
        except discord.HTTPException as e:
            raise BackendError(f"Failed to download {self.filename}: {e}") from e


def _to_message(message: discord.Message) -> Message:
    attachment = None
    if message.attachments:
        attachment = DiscordAttachment(message.attachments[0])
    return Message(id=message.id, caption=message.content or '', attachment=attachment)


class DiscordChannel(Channel):

    def __init__(self, channel: discord.abc.Messageable, channel_id: str):
        self._channel = channel
        self.id = channel_id

    async def send(self, attachment: bytes, filename: str, caption: str) -> Message:
        file = discord.File(io.BytesIO(attachment), filename=filename)
        try:
            sent = await self._channel.send(content=caption, file=file)
        except discord.HTTPException as e:
            raise BackendError(f"Failed to send {filename}: {e}") from e
        return _to_message(sent)

    async def history(self, before: Optional[int] = None,
                      limit: int = 100) -> List[Message]:
        before_obj = discord.Object(id=before) if before is not None else None
        try:
            return [
                _to_message(m)
                async for m in self._channel.history(limit=limit, before=before_obj)
            ]
        except discord.HTTPException as e:
            raise BackendError(f"Failed to read history of {self.id}: {e}") from e


class DiscordConnection(Connection):

    def __init__(self, client: discord.Client):
        self._client = client

    async def fetch_channel(self, channel_id: str) -> Channel:
        try:
            snowflake = int(channel_id)
        except (TypeError, ValueError):
            raise ChannelNotFound(str(channel_id), "not a channel id")

        try:
            channel = await self._client.fetch_channel(snowflake)
        except discord.NotFound:
            raise ChannelNotFound(str(channel_id), "unknown channel")
        except discord.Forbidden:
            raise ChannelNotFound(str(channel_id), "missing access")
        except (discord.InvalidData, discord.HTTPException) as e:
            raise BackendError(f"Failed to fetch channel {channel_id}: {e}") from e

        if not isinstance(channel, discord.abc.Messageable):
            raise ChannelNotFound(str(channel_id), "not a text channel")
        return DiscordChannel(channel, str(channel_id))

    async def close(self):
        await self._client.close()


class DiscordBackend(Backend):
    """Backend that stores chunks as Discord message attachments."""
    name = 'discord'

    async def connect(self, token: str) -> Connection:
        client = discord.Client(intents=discord.Intents.none())
        try:
            await client.login(token)
        except discord.LoginFailure as e:
            await client.close()
            raise AuthenticationError(str(e)) from e
        except discord.HTTPException as e:
            await client.close()
            raise BackendError(f"Login failed: {e}") from e
        logger.debug(f"Logged in as {client.user}")
        return DiscordConnection(client)
