"""
chunkcord - chunked content-addressable file storage on top of a messaging channel.

Files are split into fixed-size chunks, every chunk is posted to a channel as an
attachment tagged with the file's SHA-256 hash and its sequence number, and the
chunks can later be located, ordered and reassembled into the original bytes.
"""

__version__ = "1.0.0"
