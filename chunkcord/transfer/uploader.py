"""
Chunk Uploader

Design Decision: Upload Strategy
================================

Options Considered:
1. Sequential sends
   - Simple, failure stops the upload at a known point
   - Slow for large files
2. Launch everything, fail on the first error
   - Fast
   - The remaining sends keep running unobserved; the caller cannot tell
     which chunks made it into the channel
3. Bounded concurrent sends, collect every outcome
   - Fast, limited in-flight requests
   - The failure report lists exactly which chunks were delivered

Decision: Bounded concurrency with full outcome collection
- No chunk depends on another, so all sends are issued concurrently
  (at most ``max_concurrent`` in flight)
- No retries and no cancellation of in-flight sends
- Any failure raises UploadError; chunks already sent stay in the channel
  (there is no delete), and UploadError.sent lists them
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from ..channel import Channel
from ..exceptions import UploadError
from ..file.chunker import Chunk, ChunkSet
from ..file.tags import DEFAULT_EXTENSION, encode_tag

logger = logging.getLogger(__name__)


@dataclass
class UploadReport:
    """Outcome of every send in one upload."""
    file_hash: str
    total_chunks: int
    sent: List[int] = field(default_factory=list)
    failures: Dict[int, BaseException] = field(default_factory=dict)
    bytes_sent: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures and len(self.sent) == self.total_chunks


class ChunkUploader:
    """
    Posts every chunk of a chunk set to a channel.

    Each message carries the file hash in its caption and the chunk's
    sequence number in the attachment filename.
    """

    def __init__(self, max_concurrent: int = 5,
                 extension: str = DEFAULT_EXTENSION):
        self.max_concurrent = max(1, max_concurrent)
        self.extension = extension

        # Statistics
        self.chunks_sent = 0
        self.bytes_uploaded = 0
        self.failed_sends = 0

    async def upload(self, channel: Channel, chunk_set: ChunkSet) -> str:
        """
        Upload a chunk set.

        Returns:
            The chunk set's content hash

        Raises:
            UploadError: one or more sends failed (after all sends finished)
        """
        report = await self.send_all(channel, chunk_set)
        if not report.ok:
            raise UploadError(report.file_hash, report.sent, report.failures)
        return chunk_set.file_hash

    async def send_all(self, channel: Channel, chunk_set: ChunkSet) -> UploadReport:
        """Send every chunk and report each outcome. Never raises for send failures."""
        report = UploadReport(file_hash=chunk_set.file_hash,
                              total_chunks=chunk_set.count)
        semaphore = asyncio.Semaphore(self.max_concurrent)

        logger.info(f"Uploading {chunk_set.file_hash[:16]}...: "
                    f"{chunk_set.count} chunks, {chunk_set.size:,} bytes")

        async def send_chunk(chunk: Chunk):
            caption, filename = encode_tag(chunk_set.file_hash, chunk.sequence,
                                           self.extension)
            async with semaphore:
                await channel.send(chunk.data, filename, caption)
            logger.debug(f"Sent chunk {chunk.sequence} ({chunk.size:,} bytes)")

        results = await asyncio.gather(
            *(send_chunk(chunk) for chunk in chunk_set.chunks),
            return_exceptions=True,
        )

        for chunk, result in zip(chunk_set.chunks, results):
            if isinstance(result, BaseException):
                report.failures[chunk.sequence] = result
                logger.error(f"Chunk {chunk.sequence} of "
                             f"{chunk_set.file_hash[:16]}... failed: {result}")
            else:
                report.sent.append(chunk.sequence)
                report.bytes_sent += chunk.size

        report.sent.sort()
        self.chunks_sent += len(report.sent)
        self.bytes_uploaded += report.bytes_sent
        self.failed_sends += len(report.failures)

        if report.failures:
            logger.error(f"Upload of {chunk_set.file_hash[:16]}... failed: "
                         f"{len(report.failures)}/{report.total_chunks} chunks not sent, "
                         f"{len(report.sent)} left in channel")
        else:
            logger.info(f"Uploaded {chunk_set.file_hash[:16]}... "
                        f"({report.bytes_sent:,} bytes)")
        return report

    def get_stats(self) -> dict:
        """Get uploader statistics."""
        return {
            'chunks_sent': self.chunks_sent,
            'bytes_uploaded': self.bytes_uploaded,
            'failed_sends': self.failed_sends,
        }
