"""
Chunk Locator

Design Decision: Finding Chunks
===============================

The backend offers no grouping or search, only paged history (newest first).
Chunks are found by scanning history and decoding each message's tag.

Scan Flow:
1. Page through history (``page_size`` messages per request) until the
   start of the channel or the search budget (``history_limit``) is reached
2. Skip messages without an attachment or without a chunk tag
3. Keep attachments whose caption carries the target hash, keyed by the
   sequence number from the filename
4. Check the sequence numbers form 1..n before downloading anything
5. Download the matching attachments concurrently

Nothing is assumed about message order: chunks were sent concurrently and
history comes back newest first, so sequence numbers arrive in any order.

Design Decision: Copies at Different Chunk Sizes
================================================

The content hash does not depend on the chunk size, so uploads of one file
made with different chunk sizes share a hash, and so do leftovers of a
failed upload. Copies made with the same chunk size carry identical bytes
per sequence and can be mixed freely. When they cannot (sizes disagree):

1. Build candidate sets, newest copies first. A candidate uses one chunk
   size ``s`` for sequences 1..n-1 and ends with a chunk of at most ``s``
2. Download a candidate (attachments are fetched once and cached) and
   accept it when its bytes hash to the target
3. If none matches, report the gap (IncompleteSet) or hand back the newest
   candidate so the reassembler reports the mismatch
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..channel import Attachment, Channel
from ..exceptions import BackendError, IncompleteSet, InvalidArgument, NotFound, TagParseError
from ..file.chunker import Chunk, ChunkSet, EMPTY_HASH, compute_hash
from ..file.tags import decode_caption, decode_filename, is_valid_hash

logger = logging.getLogger(__name__)

Layout = List[Tuple[int, Attachment]]


@dataclass
class ScanResult:
    """Attachments matching one hash, found in channel history."""
    file_hash: str
    attachments: Dict[int, Attachment] = field(default_factory=dict)
    candidates: Dict[int, List[Attachment]] = field(default_factory=dict)
    scanned: int = 0
    pages: int = 0
    duplicates: int = 0

    @property
    def sequences(self) -> List[int]:
        return sorted(self.attachments)

    @property
    def missing(self) -> List[int]:
        if not self.attachments:
            return []
        present = set(self.attachments)
        return [seq for seq in range(1, max(present) + 1) if seq not in present]

    @property
    def uniform(self) -> bool:
        """True when every copy fits a single chunk size."""
        if not self.candidates:
            return True
        last = max(self.candidates)
        body = {a.size for seq, copies in self.candidates.items()
                if seq != last for a in copies}
        tail = {a.size for a in self.candidates[last]}
        if len(body) > 1 or len(tail) > 1:
            return False
        return not body or max(tail) <= min(body)


class ChunkLocator:
    """
    Locates and downloads the chunk set for a content hash.
    """

    def __init__(self, max_concurrent: int = 5, page_size: int = 100,
                 history_limit: Optional[int] = None, max_candidates: int = 16):
        """
        Args:
            max_concurrent: Maximum concurrent attachment downloads
            page_size: Messages requested per history page
            history_limit: Maximum messages to scan (None = whole channel)
            max_candidates: Candidate sets tried when copies disagree on chunk size
        """
        if page_size <= 0:
            raise InvalidArgument(f"page_size must be positive, got {page_size}")
        self.max_concurrent = max(1, max_concurrent)
        self.page_size = page_size
        self.history_limit = history_limit or None
        self.max_candidates = max(1, max_candidates)

        # Statistics
        self.messages_scanned = 0
        self.chunks_downloaded = 0
        self.bytes_downloaded = 0

    async def locate(self, channel: Channel, target_hash: str,
                     expected_size: Optional[int] = None) -> ChunkSet:
        """
        Find and download every chunk tagged with ``target_hash``.

        Args:
            expected_size: Known file size, used to rule out candidate sets

        Raises:
            NotFound: no message carries the hash
            IncompleteSet: the sequence numbers found are not 1..n
            BackendError: a history page or attachment download failed
        """
        target_hash = target_hash.strip().lower()
        if not is_valid_hash(target_hash):
            raise InvalidArgument(f"Invalid file hash: {target_hash[:20]!r}")

        if target_hash == EMPTY_HASH:
            logger.info("Empty file requested, nothing to fetch")
            return ChunkSet(file_hash=EMPTY_HASH)

        scan = await self.scan(channel, target_hash)

        if not scan.attachments:
            raise NotFound(target_hash, scan.scanned)

        if scan.uniform:
            if scan.missing:
                raise IncompleteSet(target_hash, scan.sequences, scan.missing)
            return await self.download(scan)

        return await self.resolve(scan, expected_size)

    async def scan(self, channel: Channel, target_hash: str) -> ScanResult:
        """Walk channel history collecting attachments tagged with the hash."""
        result = ScanResult(file_hash=target_hash)
        before: Optional[int] = None

        while True:
            limit = self.page_size
            if self.history_limit is not None:
                limit = min(limit, self.history_limit - result.scanned)
                if limit <= 0:
                    logger.info(f"Search budget of {self.history_limit} messages exhausted")
                    break

            page = await channel.history(before=before, limit=limit)
            result.pages += 1
            if not page:
                break

            for message in page:
                result.scanned += 1
                self._inspect(message, result)

            before = page[-1].id
            if len(page) < limit:
                break

        self.messages_scanned += result.scanned
        logger.info(f"Scanned {result.scanned} messages in {result.pages} pages, "
                    f"{len(result.attachments)} chunks match {target_hash[:16]}...")
        return result

    def _inspect(self, message, result: ScanResult):
        if message.attachment is None:
            return

        try:
            file_hash = decode_caption(message.caption)
        except TagParseError:
            logger.debug(f"Skipping message {message.id}: no chunk tag")
            return

        if file_hash != result.file_hash:
            return

        try:
            sequence = decode_filename(message.attachment.filename)
        except TagParseError as e:
            logger.warning(f"Message {message.id} carries {file_hash[:16]}... "
                           f"but has a malformed filename: {e}")
            return

        result.candidates.setdefault(sequence, []).append(message.attachment)

        if sequence in result.attachments:
            result.duplicates += 1
            logger.warning(f"Duplicate chunk {sequence} for {file_hash[:16]}... "
                           f"in message {message.id}")
            return

        # Newest copy first
        result.attachments[sequence] = message.attachment

    def layouts(self, scan: ScanResult,
                expected_size: Optional[int] = None) -> Iterator[Layout]:
        """
        Yield candidate sets built from the scanned copies, newest copies first.

        Each set uses one chunk size for sequences 1..n-1 and ends with a
        chunk no larger than that. Dead ends are abandoned after a bounded
        number of steps.
        """
        candidates = scan.candidates
        sizes: List[int] = []
        for attachment in candidates.get(1, []):
            if attachment.size > 0 and attachment.size not in sizes:
                sizes.append(attachment.size)

        budget = 64 * (sum(len(c) for c in candidates.values()) + 1)

        for size in sizes:
            # (sequence, bytes so far, chosen chain, complete)
            stack = [(1, 0, None, False)]
            while stack:
                budget -= 1
                if budget < 0:
                    logger.warning(f"Gave up searching candidate sets for "
                                   f"{scan.file_hash[:16]}...")
                    return

                sequence, total, chain, complete = stack.pop()
                if complete:
                    if expected_size is None or total == expected_size:
                        layout: Layout = []
                        while chain is not None:
                            layout.append(chain[0])
                            chain = chain[1]
                        layout.reverse()
                        yield layout
                    continue

                copies = candidates.get(sequence, [])
                options = []
                if sequence + 1 in candidates:
                    options += [(a, False) for a in copies if a.size == size]
                options += [(a, True) for a in copies if a.size == size]
                if sequence > 1:
                    options += [(a, True) for a in copies if 0 < a.size < size]

                for attachment, last in reversed(options):
                    link = ((sequence, attachment), chain)
                    stack.append((sequence + 1, total + attachment.size, link, last))

    async def resolve(self, scan: ScanResult,
                      expected_size: Optional[int] = None) -> ChunkSet:
        """Pick the candidate set whose bytes hash to the target."""
        logger.info(f"Copies of {scan.file_hash[:16]}... disagree on chunk size, "
                    f"checking candidate sets")
        cache: Dict[int, bytes] = {}
        first: Optional[ChunkSet] = None
        tried = 0

        for layout in self.layouts(scan, expected_size):
            if tried >= self.max_candidates:
                break
            tried += 1

            chunk_set = await self._fetch(scan.file_hash, layout, cache)
            if first is None:
                first = chunk_set

            ordered = sorted(chunk_set.chunks, key=lambda c: c.sequence)
            if compute_hash(b''.join(c.data for c in ordered)) == scan.file_hash:
                logger.info(f"Candidate {tried} matches {scan.file_hash[:16]}... "
                            f"({chunk_set.count} chunks)")
                return chunk_set

        if scan.missing:
            raise IncompleteSet(scan.file_hash, scan.sequences, scan.missing)
        if first is not None:
            return first
        return await self.download(scan)

    async def download(self, scan: ScanResult) -> ChunkSet:
        """Download every located attachment; chunks land in completion order."""
        return await self._fetch(scan.file_hash, list(scan.attachments.items()))

    async def _fetch(self, file_hash: str, layout: Layout,
                     cache: Optional[Dict[int, bytes]] = None) -> ChunkSet:
        chunk_set = ChunkSet(file_hash=file_hash)
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def fetch(sequence: int, attachment: Attachment):
            key = id(attachment)
            if cache is not None and key in cache:
                data = cache[key]
            else:
                async with semaphore:
                    data = await attachment.read()
                if cache is not None:
                    cache[key] = data
                self.chunks_downloaded += 1
                self.bytes_downloaded += len(data)
            chunk_set.chunks.append(Chunk(sequence=sequence, data=data))
            logger.debug(f"Downloaded chunk {sequence} ({len(data):,} bytes)")

        results = await asyncio.gather(
            *(fetch(seq, att) for seq, att in layout),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            logger.error(f"{len(errors)} chunk download(s) failed for {file_hash[:16]}...")
            if isinstance(errors[0], BackendError):
                raise errors[0]
            raise BackendError(f"Chunk download failed: {errors[0]}") from errors[0]

        return chunk_set

    def get_stats(self) -> dict:
        """Get locator statistics."""
        return {
            'messages_scanned': self.messages_scanned,
            'chunks_downloaded': self.chunks_downloaded,
            'bytes_downloaded': self.bytes_downloaded,
        }
