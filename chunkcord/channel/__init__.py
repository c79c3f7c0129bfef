"""
Channel Module - Messaging Backends

Adapters that expose a chat service as a place to put attachments.
"""

from .base import Attachment, Backend, Channel, Connection, Message
from .memory import MemoryBackend
from ..exceptions import InvalidArgument


def create_backend(name: str) -> Backend:
    """Create a backend by name ('discord' or 'memory')."""
    if name == 'discord':
        from .discord_backend import DiscordBackend
        return DiscordBackend()
    if name == 'memory':
        return MemoryBackend(open_access=True)
    raise InvalidArgument(f"Unknown backend: {name}")


__all__ = [
    'Attachment',
    'Backend',
    'Channel',
    'Connection',
    'Message',
    'MemoryBackend',
    'create_backend',
]
