"""
Reassembler

Chunks are located and downloaded concurrently, so the order they arrive in
says nothing about where they belong. Reassembly sorts strictly by sequence
number before concatenating.

Integrity checks:
- size, when the caller knows it (compatible with older catalog records)
- SHA-256 of the result against the chunk set's hash (on by default)
"""

import logging
from collections import Counter
from typing import Optional

from .chunker import ChunkSet, compute_hash
from ..exceptions import IncompleteSet, IntegrityError

logger = logging.getLogger(__name__)


def missing_sequences(chunk_set: ChunkSet) -> list:
    """Sequence numbers absent from 1..max(sequence)."""
    present = set(chunk_set.sequences)
    if not present:
        return []
    return [seq for seq in range(1, max(present) + 1) if seq not in present]


def duplicate_sequences(chunk_set: ChunkSet) -> list:
    """Sequence numbers that appear more than once."""
    counts = Counter(chunk_set.sequences)
    return sorted(seq for seq, n in counts.items() if n > 1)


def reassemble(chunk_set: ChunkSet, expected_size: Optional[int] = None,
               verify_hash: bool = True) -> bytes:
    """
    Concatenate a chunk set in sequence order.

    Raises:
        IncompleteSet: sequences are not exactly 1..n (gaps or repeats)
        IntegrityError: size or hash of the result is wrong
    """
    ordered = sorted(chunk_set.chunks, key=lambda c: c.sequence)

    sequences = [c.sequence for c in ordered]
    if sequences != list(range(1, len(ordered) + 1)):
        raise IncompleteSet(chunk_set.file_hash, sorted(set(sequences)),
                            missing_sequences(chunk_set),
                            duplicate_sequences(chunk_set))

    data = b''.join(c.data for c in ordered)

    if expected_size is not None and len(data) != expected_size:
        raise IntegrityError('size', expected_size, len(data))

    if verify_hash:
        actual_hash = compute_hash(data)
        if actual_hash != chunk_set.file_hash:
            raise IntegrityError('hash', chunk_set.file_hash, actual_hash)

    logger.debug(f"Reassembled {chunk_set.file_hash[:16]}... "
                 f"from {len(ordered)} chunks ({len(data):,} bytes)")
    return data
