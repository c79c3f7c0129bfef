"""End-to-end tests for storing and retrieving files through the vault."""

import pytest

from chunkcord.channel import MemoryBackend
from chunkcord.channel.memory import MemoryChannel
from chunkcord.config import Config
from chunkcord.exceptions import (
    AuthenticationError, ChannelNotFound, IncompleteSet, IntegrityError,
    NotFound, UploadError,
)
from chunkcord.file import compute_hash
from chunkcord.vault import ChannelVault

CHUNK = 4


class TestRoundTrip:
    """retrieve(store(data)) == data."""

    @pytest.mark.parametrize("data,chunks", [
        (b"", 0),
        (b"x" * CHUNK, 1),
        (b"x" * CHUNK + b"y", 2),
        (b"abcd" * 3, 3),
        (bytes(range(256)), 64),
    ])
    async def test_round_trip(self, vault: ChannelVault, channel: MemoryChannel,
                              token: str, channel_id: str, data: bytes,
                              chunks: int) -> None:
        stored = await vault.store(data, token, channel_id)

        assert stored.file_hash == compute_hash(data)
        assert stored.chunk_count == chunks
        assert stored.size == len(data)
        assert len(channel.messages) == chunks

        assert await vault.retrieve(stored.file_hash, token, channel_id) == data

    async def test_round_trip_with_size(self, vault: ChannelVault, token: str,
                                        channel_id: str) -> None:
        data = b"size checked"
        stored = await vault.store(data, token, channel_id)
        result = await vault.retrieve(stored.file_hash, token, channel_id,
                                      expected_size=len(data))
        assert result == data

    async def test_store_file(self, vault: ChannelVault, token: str,
                              channel_id: str, tmp_path) -> None:
        path = tmp_path / "report.bin"
        path.write_bytes(b"read from disk")

        stored = await vault.store_file(path, token, channel_id)

        assert stored.size == 14
        assert stored.chunk_count == 4
        assert await vault.retrieve(stored.file_hash, token, channel_id) == b"read from disk"

    async def test_rechunked_copy_in_same_channel(self, backend: MemoryBackend,
                                                  token: str, channel_id: str,
                                                  tmp_path) -> None:
        data = b"aaaabbbbcccc"
        small = ChannelVault(Config(chunk_size=4, data_dir=tmp_path), backend)
        large = ChannelVault(Config(chunk_size=8, data_dir=tmp_path), backend)
        await small.store(data, token, channel_id)
        stored = await large.store(data, token, channel_id)

        assert await small.retrieve(stored.file_hash, token, channel_id,
                                    expected_size=len(data)) == data

    async def test_second_chunk_of_size_one(self, vault: ChannelVault,
                                            channel: MemoryChannel, token: str,
                                            channel_id: str) -> None:
        await vault.store(b"abcde", token, channel_id)
        sizes = sorted(m.attachment.size for m in channel.messages)
        assert sizes == [1, 4]

    async def test_many_files_share_a_channel(self, vault: ChannelVault,
                                              token: str, channel_id: str) -> None:
        files = [b"first file", b"second file!", b"third"]
        hashes = [(await vault.store(f, token, channel_id)).file_hash for f in files]
        for data, file_hash in zip(reversed(files), reversed(hashes)):
            assert await vault.retrieve(file_hash, token, channel_id) == data


class TestSessions:
    """Each call opens and closes exactly one session."""

    async def test_one_session_per_call(self, vault: ChannelVault,
                                        backend: MemoryBackend, token: str,
                                        channel_id: str) -> None:
        stored = await vault.store(b"payload", token, channel_id)
        assert backend.connections_opened == 1
        await vault.retrieve(stored.file_hash, token, channel_id)
        assert backend.connections_opened == 2
        assert backend.open_connections == 0

    async def test_session_closed_after_upload_failure(
            self, vault: ChannelVault, backend: MemoryBackend, token: str,
            channel_id: str) -> None:
        backend.fail_sends(lambda channel_id, filename: True)
        with pytest.raises(UploadError):
            await vault.store(b"will not make it", token, channel_id)
        assert backend.open_connections == 0

    async def test_session_closed_after_retrieve_failure(
            self, vault: ChannelVault, backend: MemoryBackend, token: str,
            channel_id: str) -> None:
        with pytest.raises(NotFound):
            await vault.retrieve(compute_hash(b"absent"), token, channel_id)
        assert backend.open_connections == 0


class TestErrors:
    """Each failure surfaces as its own exception type."""

    async def test_bad_token(self, vault: ChannelVault, channel_id: str) -> None:
        with pytest.raises(AuthenticationError):
            await vault.store(b"data", "bad-token", channel_id)

    async def test_unknown_channel(self, vault: ChannelVault, token: str) -> None:
        with pytest.raises(ChannelNotFound):
            await vault.store(b"data", token, "404")

    async def test_wrong_size(self, vault: ChannelVault, token: str,
                              channel_id: str) -> None:
        stored = await vault.store(b"exactly", token, channel_id)
        with pytest.raises(IntegrityError):
            await vault.retrieve(stored.file_hash, token, channel_id, expected_size=3)

    async def test_tampered_chunk(self, vault: ChannelVault, channel: MemoryChannel,
                                  token: str, channel_id: str) -> None:
        stored = await vault.store(b"aaaabbbb", token, channel_id)
        channel.messages[0].attachment._data = b"XXXX"
        with pytest.raises(IntegrityError):
            await vault.retrieve(stored.file_hash, token, channel_id)

    async def test_missing_chunk(self, vault: ChannelVault, channel: MemoryChannel,
                                 token: str, channel_id: str) -> None:
        stored = await vault.store(b"aaaabbbbcccc", token, channel_id)
        channel.messages[:] = [
            m for m in channel.messages if m.attachment.filename != "chunk-2.txt"
        ]
        with pytest.raises(IncompleteSet):
            await vault.retrieve(stored.file_hash, token, channel_id)

    async def test_hash_check_disabled(self, backend: MemoryBackend,
                                       channel: MemoryChannel, token: str,
                                       channel_id: str, tmp_path) -> None:
        vault = ChannelVault(Config(chunk_size=4, verify_hash=False,
                                    data_dir=tmp_path), backend)
        stored = await vault.store(b"aaaabbbb", token, channel_id)
        channel.messages[0].attachment._data = b"XXXX"
        data = await vault.retrieve(stored.file_hash, token, channel_id)
        assert len(data) == 8


class TestStats:

    async def test_stats(self, vault: ChannelVault, token: str, channel_id: str) -> None:
        stored = await vault.store(b"abcdefgh", token, channel_id)
        await vault.retrieve(stored.file_hash, token, channel_id)

        stats = vault.get_stats()
        assert stats['backend'] == 'memory'
        assert stats['files_stored'] == 1
        assert stats['files_retrieved'] == 1
        assert stats['uploader']['chunks_sent'] == 2
        assert stats['locator']['chunks_downloaded'] == 2
