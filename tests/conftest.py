"""Shared pytest fixtures for all tests."""

from pathlib import Path

import pytest

from chunkcord.channel import MemoryBackend
from chunkcord.channel.memory import MemoryChannel
from chunkcord.config import Config
from chunkcord.vault import ChannelVault


@pytest.fixture
def token() -> str:
    """Bot token accepted by the memory backend."""
    return "test-bot-token"


@pytest.fixture
def channel_id() -> str:
    """Id of the channel chunks are stored in."""
    return "1001"


@pytest.fixture
def backend(token: str, channel_id: str) -> MemoryBackend:
    """In-memory messaging backend with one token and one channel."""
    backend = MemoryBackend()
    backend.add_token(token)
    backend.create_channel(channel_id)
    return backend


@pytest.fixture
def channel(backend: MemoryBackend, channel_id: str) -> MemoryChannel:
    """The channel behind ``channel_id``."""
    return backend.channels[channel_id]


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """
    Config with tiny chunks and pages so small buffers exercise
    multi-chunk uploads and multi-page history scans.
    """
    return Config(
        backend='memory',
        chunk_size=4,
        history_page_size=3,
        data_dir=tmp_path / 'data',
    )


@pytest.fixture
def vault(config: Config, backend: MemoryBackend) -> ChannelVault:
    """Vault wired to the memory backend."""
    return ChannelVault(config, backend)
