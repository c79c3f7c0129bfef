"""
Transport Tags

The messaging backend has no notion of grouping, so every chunk message
carries its own (file hash, sequence) pair:

    caption:  "**File Hash:** <64 hex chars>"    (same for every chunk of a file)
    filename: "chunk-<sequence>.<ext>"           (sequence is 1-based decimal)

The caption format matches what earlier deployments wrote, so chunks already
sitting in a channel stay retrievable.

Channels may contain anything else (chat, other bots), so decoding is strict
and raises TagParseError instead of guessing.
"""

import re
from dataclasses import dataclass
from typing import Tuple

from ..exceptions import TagParseError

CAPTION_PREFIX = "**File Hash:** "
DEFAULT_EXTENSION = "txt"

_CAPTION_RE = re.compile(r'^\*\*File Hash:\*\*\s*([0-9a-fA-F]{64})\s*$')
_FILENAME_RE = re.compile(r'^chunk-([1-9][0-9]*)(?:\.[A-Za-z0-9]+)?$')
_HEX64_RE = re.compile(r'^[0-9a-fA-F]{64}$')


@dataclass(frozen=True)
class TransportTag:
    """The (file hash, sequence) pair attached to one chunk message."""
    file_hash: str
    sequence: int


def is_valid_hash(value: str) -> bool:
    """Check for a 64 character hex string."""
    return bool(_HEX64_RE.match(value))


def encode_caption(file_hash: str) -> str:
    if not is_valid_hash(file_hash):
        raise TagParseError(f"Not a SHA-256 hex digest: {file_hash!r}")
    return f"{CAPTION_PREFIX}{file_hash.lower()}"


def decode_caption(caption: str) -> str:
    match = _CAPTION_RE.match(caption or "")
    if not match:
        raise TagParseError(f"Caption carries no file hash: {(caption or '')[:40]!r}")
    return match.group(1).lower()


def encode_filename(sequence: int, extension: str = DEFAULT_EXTENSION) -> str:
    if sequence < 1:
        raise TagParseError(f"Sequence numbers start at 1, got {sequence}")
    return f"chunk-{sequence}.{extension}"


def decode_filename(filename: str) -> int:
    match = _FILENAME_RE.match(filename or "")
    if not match:
        raise TagParseError(f"Not a chunk filename: {filename!r}")
    return int(match.group(1))


def encode_tag(file_hash: str, sequence: int,
               extension: str = DEFAULT_EXTENSION) -> Tuple[str, str]:
    """
    Encode a tag for transport.

    Returns:
        (caption, filename) tuple
    """
    return encode_caption(file_hash), encode_filename(sequence, extension)


def decode_tag(caption: str, filename: str) -> TransportTag:
    """Decode a tag from a message caption and its attachment filename."""
    return TransportTag(
        file_hash=decode_caption(caption),
        sequence=decode_filename(filename),
    )
