"""
Channel Vault - Main Controller

Orchestrates one upload or one retrieval against a messaging channel:

    store:    chunk -> open Session -> resolve channel -> upload -> close Session
    retrieve: open Session -> resolve channel -> locate -> close Session -> reassemble

Every call opens its own Session and closes it on every exit path.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .channel import Backend, create_backend
from .config import Config
from .file import ChunkSet, FileChunker, reassemble
from .transfer import ChunkLocator, ChunkUploader, Session

logger = logging.getLogger(__name__)


@dataclass
class StoredFile:
    """Result of a successful store."""
    file_hash: str
    size: int
    chunk_count: int
    channel_id: str


class ChannelVault:
    """
    Stores and retrieves files in a messaging channel.

    The vault holds no connection between calls; the bot token and channel
    are supplied per call.
    """

    def __init__(self, config: Config = None, backend: Backend = None):
        self.config = config or Config()
        self.backend = backend or create_backend(self.config.backend)

        self.chunker = FileChunker(chunk_size=self.config.chunk_size)
        self.uploader = ChunkUploader(
            max_concurrent=self.config.max_concurrent_uploads,
            extension=self.config.attachment_extension,
        )
        self.locator = ChunkLocator(
            max_concurrent=self.config.max_concurrent_downloads,
            page_size=self.config.history_page_size,
            history_limit=self.config.history_limit,
        )

        # Statistics
        self.files_stored = 0
        self.files_retrieved = 0

    def open_session(self, token: str) -> Session:
        """Create an unopened session; use with ``async with``."""
        return Session(self.backend, token)

    async def store(self, data: bytes, token: str, channel_id: str) -> StoredFile:
        """
        Upload a buffer to a channel.

        Raises:
            AuthenticationError, ChannelNotFound, UploadError
        """
        return await self._store(self.chunker.chunk_bytes(data), token, channel_id)

    async def store_file(self, file_path: Path, token: str, channel_id: str) -> StoredFile:
        """Read a file from disk and upload it to a channel."""
        chunk_set = await self.chunker.chunk_file(file_path)
        return await self._store(chunk_set, token, channel_id)

    async def _store(self, chunk_set: ChunkSet, token: str, channel_id: str) -> StoredFile:
        logger.info(f"Storing {chunk_set.size:,} bytes as {chunk_set.count} chunks "
                    f"in channel {channel_id}")

        async with self.open_session(token) as session:
            channel = await session.resolve_channel(channel_id)
            file_hash = await self.uploader.upload(channel, chunk_set)

        self.files_stored += 1
        return StoredFile(
            file_hash=file_hash,
            size=chunk_set.size,
            chunk_count=chunk_set.count,
            channel_id=str(channel_id),
        )

    async def retrieve(self, file_hash: str, token: str, channel_id: str,
                       expected_size: Optional[int] = None) -> bytes:
        """
        Fetch a file from a channel by content hash.

        Raises:
            AuthenticationError, ChannelNotFound, NotFound, IncompleteSet,
            IntegrityError
        """
        logger.info(f"Retrieving {file_hash[:16]}... from channel {channel_id}")

        async with self.open_session(token) as session:
            channel = await session.resolve_channel(channel_id)
            chunk_set = await self.locator.locate(channel, file_hash,
                                                    expected_size=expected_size)

        data = reassemble(chunk_set, expected_size=expected_size,
                          verify_hash=self.config.verify_hash)

        self.files_retrieved += 1
        logger.info(f"Retrieved {file_hash[:16]}... ({len(data):,} bytes)")
        return data

    def get_stats(self) -> dict:
        """Get vault statistics."""
        return {
            'backend': self.backend.name,
            'chunk_size': self.chunker.chunk_size,
            'files_stored': self.files_stored,
            'files_retrieved': self.files_retrieved,
            'uploader': self.uploader.get_stats(),
            'locator': self.locator.get_stats(),
        }
