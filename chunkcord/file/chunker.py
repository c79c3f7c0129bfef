"""
File Chunker

Design Decision: Chunk Size
===========================

Options Considered:
| Size    | Pros                          | Cons                              |
|---------|-------------------------------|-----------------------------------|
| 1MB     | Fine-grained, fast retries    | Many messages, slow history scans |
| 8MB     | Fits every attachment tier    | More messages than needed         |
| 10MB    | Few messages per file         | Must stay under attachment limit  |
| 25MB    | Fewest messages               | Rejected on smaller limits        |

Decision: 10MB (10,485,760 bytes)
- Every chunk is one channel message, so fewer chunks means fewer sends and
  shorter history scans on retrieval
- Stays under the backend's attachment size limit
- Configurable, but fixed per deployment (not negotiated per call)

Chunking Strategy: Fixed-Size
- The content hash is computed over the whole buffer before chunking, so
  the file identity does not depend on the chunk size
- Chunk i (1-based) holds bytes [(i-1)*size, i*size); the last one may be short
"""

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import aiofiles

from ..exceptions import InvalidArgument

# Chunk size: 10MB
CHUNK_SIZE = 10 * 1024 * 1024  # 10,485,760 bytes

# Hash of the empty buffer; an empty file has no chunks in the channel
EMPTY_HASH = hashlib.sha256(b'').hexdigest()


@dataclass
class Chunk:
    """One slice of a file. Sequence numbers start at 1."""
    sequence: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ChunkSet:
    """
    All chunks belonging to one content hash.

    Members are kept in whatever order they were produced or located;
    use ``sequences`` or the reassembler for ordered access.
    """
    file_hash: str
    chunks: List[Chunk] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.chunks)

    @property
    def size(self) -> int:
        return sum(c.size for c in self.chunks)

    @property
    def sequences(self) -> List[int]:
        return sorted(c.sequence for c in self.chunks)


def compute_hash(data: bytes) -> str:
    """SHA-256 of the entire, unsplit buffer as hex."""
    return hashlib.sha256(data).hexdigest()


def chunk_count(size: int, chunk_size: int) -> int:
    """Number of chunks for a buffer of ``size`` bytes."""
    if chunk_size <= 0:
        raise InvalidArgument(f"chunk_size must be positive, got {chunk_size}")
    return (size + chunk_size - 1) // chunk_size


def split(data: bytes, chunk_size: int) -> List[Chunk]:
    """
    Split a buffer into ordered, contiguous, non-overlapping chunks.

    An empty buffer yields no chunks.
    """
    count = chunk_count(len(data), chunk_size)
    view = memoryview(data)
    return [
        Chunk(sequence=i + 1, data=bytes(view[i * chunk_size:(i + 1) * chunk_size]))
        for i in range(count)
    ]


class FileChunker:
    """
    Turns byte buffers and files into tagged chunk sets.

    Features:
    - Fixed-size chunks (10MB by default)
    - SHA-256 content hash of the whole file
    - Async file reading
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        if chunk_size <= 0:
            raise InvalidArgument(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size

    def get_chunk_count(self, file_size: int) -> int:
        """Calculate number of chunks for a file of given size."""
        return chunk_count(file_size, self.chunk_size)

    def chunk_bytes(self, data: bytes) -> ChunkSet:
        """Hash the buffer, then split it."""
        file_hash = compute_hash(data)
        return ChunkSet(file_hash=file_hash, chunks=split(data, self.chunk_size))

    async def chunk_file(self, file_path: Path) -> ChunkSet:
        """Read a file from disk and build its chunk set."""
        async with aiofiles.open(file_path, 'rb') as f:
            data = await f.read()
        return self.chunk_bytes(data)
