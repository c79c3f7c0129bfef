"""Exception classes for chunkcord."""

from typing import Dict, List, Optional


class ChunkcordError(Exception):
    """
    Base exception class for all chunkcord errors.
    """

    @property
    def kind(self) -> str:
        """Stable name of the error kind, used in API error bodies."""
        return type(self).__name__


class InvalidArgument(ChunkcordError, ValueError):
    """
    Raised when an operation is called with an argument outside its domain
    (e.g. a chunk size that is not positive).
    """
    pass


class AuthenticationError(ChunkcordError):
    """
    Raised when the messaging backend rejects the bot token.
    """
    pass


class ChannelNotFound(ChunkcordError):
    """
    Raised when a channel does not exist or is not accessible with the given token.
    """

    def __init__(self, channel_id: str, reason: str = ""):
        self.channel_id = channel_id
        message = f"Channel not found: {channel_id}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class BackendError(ChunkcordError):
    """
    Raised when a single request to the messaging backend fails.
    """
    pass


class TagParseError(ChunkcordError):
    """
    Raised when a caption or filename does not carry a valid transport tag.
    """
    pass


class UploadError(ChunkcordError):
    """
    Raised when one or more chunk sends failed.

    Chunks listed in ``sent`` were delivered before the failure was reported
    and remain in the channel; nothing is rolled back.
    """

    def __init__(self, file_hash: str, sent: List[int],
                 failures: Dict[int, BaseException]):
        self.file_hash = file_hash
        self.sent = sorted(sent)
        self.failures = dict(sorted(failures.items()))
        first_seq, first_exc = next(iter(self.failures.items()))
        super().__init__(
            f"Upload of {file_hash[:16]}... failed: {len(self.failures)} chunk(s) not sent "
            f"(first: chunk {first_seq}: {first_exc}); "
            f"{len(self.sent)} chunk(s) already in the channel"
        )


class NotFound(ChunkcordError):
    """
    Raised when no chunk in the channel carries the requested hash.
    """

    def __init__(self, file_hash: str, scanned: int = 0):
        self.file_hash = file_hash
        self.scanned = scanned
        super().__init__(f"No chunks found for {file_hash} ({scanned} messages scanned)")


class IncompleteSet(ChunkcordError):
    """
    Raised when the located sequence numbers are not a contiguous 1..n range.

    ``missing`` lists gaps, ``duplicates`` lists sequences present more than once.
    """

    def __init__(self, file_hash: str, found: List[int], missing: List[int],
                 duplicates: Optional[List[int]] = None):
        self.file_hash = file_hash
        self.found = sorted(found)
        self.missing = sorted(missing)
        self.duplicates = sorted(duplicates or [])
        problems = []
        if self.missing:
            problems.append(f"missing sequence(s) {self.missing}")
        if self.duplicates:
            problems.append(f"duplicate sequence(s) {self.duplicates}")
        super().__init__(
            f"Incomplete chunk set for {file_hash[:16]}...: " + ", ".join(problems)
        )


class IntegrityError(ChunkcordError):
    """
    Raised when reassembled bytes disagree with the expected size or hash.
    """

    def __init__(self, what: str, expected, actual):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"Reassembled {what} mismatch: expected {expected}, got {actual}")
