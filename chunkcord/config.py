"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Optional
import json

from dotenv import load_dotenv

from .file.chunker import CHUNK_SIZE
from .file.tags import DEFAULT_EXTENSION


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, 'true' if default else 'false').lower() in ('1', 'true', 'yes')


@dataclass
class Config:
    """
    chunkcord Configuration.
    
    Configuration priority (highest to lowest):
    1. Environment variables (CHUNKCORD_*)
    2. Config file (config.json)
    3. Default values
    """
    # Network
    host: str = '0.0.0.0'
    api_port: int = 1234
    cors_origins: List[str] = field(default_factory=lambda: ['*'])
    
    # Messaging backend
    backend: str = 'discord'
    
    # Chunking
    chunk_size: int = CHUNK_SIZE
    attachment_extension: str = DEFAULT_EXTENSION
    
    # Performance
    max_concurrent_uploads: int = 5
    max_concurrent_downloads: int = 5
    history_page_size: int = 100
    history_limit: int = 0  # messages scanned per retrieve, 0 = unbounded
    
    # Integrity
    verify_hash: bool = True
    
    # Storage
    data_dir: Path = field(default_factory=lambda: Path('./chunkcord_data'))
    
    # Logging
    log_level: str = 'INFO'
    
    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()
        
        config = cls()
        
        # Network
        config.host = os.getenv('CHUNKCORD_HOST', config.host)
        config.api_port = int(os.getenv('CHUNKCORD_API_PORT', config.api_port))
        origins = os.getenv('CHUNKCORD_CORS_ORIGINS')
        if origins:
            config.cors_origins = [o.strip() for o in origins.split(',') if o.strip()]
        
        # Messaging backend
        config.backend = os.getenv('CHUNKCORD_BACKEND', config.backend)
        
        # Chunking
        config.chunk_size = int(os.getenv('CHUNKCORD_CHUNK_SIZE', config.chunk_size))
        config.attachment_extension = os.getenv(
            'CHUNKCORD_ATTACHMENT_EXTENSION', config.attachment_extension
        )
        
        # Performance
        config.max_concurrent_uploads = int(
            os.getenv('CHUNKCORD_MAX_CONCURRENT_UPLOADS', config.max_concurrent_uploads)
        )
        config.max_concurrent_downloads = int(
            os.getenv('CHUNKCORD_MAX_CONCURRENT_DOWNLOADS', config.max_concurrent_downloads)
        )
        config.history_page_size = int(
            os.getenv('CHUNKCORD_HISTORY_PAGE_SIZE', config.history_page_size)
        )
        config.history_limit = int(os.getenv('CHUNKCORD_HISTORY_LIMIT', config.history_limit))
        
        # Integrity
        config.verify_hash = _env_bool('CHUNKCORD_VERIFY_HASH', config.verify_hash)
        
        # Storage
        data_dir = os.getenv('CHUNKCORD_DATA_DIR')
        if data_dir:
            config.data_dir = Path(data_dir)
        
        # Logging
        config.log_level = os.getenv('CHUNKCORD_LOG_LEVEL', config.log_level)
        
        return config
    
    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()
        
        with open(path) as f:
            data = json.load(f)
        
        config = cls()
        
        # Network
        config.host = data.get('host', config.host)
        config.api_port = data.get('api_port', config.api_port)
        config.cors_origins = data.get('cors_origins', config.cors_origins)
        
        # Messaging backend
        config.backend = data.get('backend', config.backend)
        
        # Chunking
        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.attachment_extension = data.get(
            'attachment_extension', config.attachment_extension
        )
        
        # Performance
        config.max_concurrent_uploads = data.get(
            'max_concurrent_uploads', config.max_concurrent_uploads
        )
        config.max_concurrent_downloads = data.get(
            'max_concurrent_downloads', config.max_concurrent_downloads
        )
        config.history_page_size = data.get('history_page_size', config.history_page_size)
        config.history_limit = data.get('history_limit', config.history_limit)
        
        # Integrity
        config.verify_hash = data.get('verify_hash', config.verify_hash)
        
        # Storage
        if 'data_dir' in data:
            config.data_dir = Path(data['data_dir'])
        
        # Logging
        config.log_level = data.get('log_level', config.log_level)
        
        return config
    
    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'api_port': self.api_port,
            'cors_origins': list(self.cors_origins),
            'backend': self.backend,
            'chunk_size': self.chunk_size,
            'attachment_extension': self.attachment_extension,
            'max_concurrent_uploads': self.max_concurrent_uploads,
            'max_concurrent_downloads': self.max_concurrent_downloads,
            'history_page_size': self.history_page_size,
            'history_limit': self.history_limit,
            'verify_hash': self.verify_hash,
            'data_dir': str(self.data_dir),
            'log_level': self.log_level,
        }
    
    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.
    
    Environment variables override file settings.
    """
    # Start with defaults
    config = Config()
    
    # Load from file if provided
    if config_path and config_path.exists():
        config = Config.from_file(config_path)
    
    # Override with environment variables
    env_config = Config.from_env()
    
    # Merge (every variable that is set wins, even when it equals the default)
    for key in env_config.to_dict():
        if os.getenv(f'CHUNKCORD_{key.upper()}') is not None:
            setattr(config, key, getattr(env_config, key))
    
    return config


# Example config file template
EXAMPLE_CONFIG = """
{
  "host": "0.0.0.0",
  "api_port": 1234,
  "backend": "discord",
  "chunk_size": 10485760,
  "max_concurrent_uploads": 5,
  "max_concurrent_downloads": 5,
  "history_page_size": 100,
  "history_limit": 0,
  "verify_hash": true,
  "data_dir": "./chunkcord_data",
  "log_level": "INFO"
}
"""
