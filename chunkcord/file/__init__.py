"""
File Module - Chunking, Tagging, and Reassembly

This module handles the pure byte-level side of chunked storage.
"""

from .chunker import (
    FileChunker, Chunk, ChunkSet, CHUNK_SIZE, EMPTY_HASH,
    chunk_count, compute_hash, split,
)
from .tags import TransportTag, encode_tag, decode_tag
from .reassembler import reassemble

__all__ = [
    'FileChunker',
    'Chunk',
    'ChunkSet',
    'CHUNK_SIZE',
    'EMPTY_HASH',
    'chunk_count',
    'compute_hash',
    'split',
    'TransportTag',
    'encode_tag',
    'decode_tag',
    'reassemble',
]
