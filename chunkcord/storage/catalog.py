"""
File Catalog

Design Decision: Why SQLite?
============================

The channel holds the bytes; the catalog only remembers what was stored
where, so users can list and retrieve their files without knowing hashes.

Options Considered:
1. SQLite - Embedded, no server, ACID compliant
2. JSON file - Simple, but no querying and unsafe under concurrent writes
3. Hosted document store - Extra service and credentials to manage

Decision: SQLite with aiosqlite
- Zero configuration
- Async support via aiosqlite, fits the event loop used by the API

The core transfer layer never reads the catalog. Removing a record does not
remove any chunk from the channel. Bot tokens are never stored.

Tables:
- files: one row per stored file, keyed by content hash
"""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, List

import aiosqlite

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1


@dataclass
class FileRecord:
    """Catalog entry for a stored file."""
    file_hash: str
    file_name: str
    size: int
    mime_type: str
    channel_id: str
    chunk_count: int = 0
    uploaded_at: Optional[str] = None
    
    def to_dict(self) -> dict:
        return asdict(self)


class FileCatalog:
    """
    SQLite catalog of stored files.
    """
    
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._connection: Optional[aiosqlite.Connection] = None
    
    async def connect(self):
        """Open database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        
        await self._init_schema()
        
        logger.info(f"Catalog connected: {self.db_path}")
    
    async def close(self):
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
    
    async def _init_schema(self):
        """Initialize database schema."""
        await self._connection.executescript(f"""
            CREATE TABLE IF NOT EXISTS files (
                file_hash TEXT PRIMARY KEY,
                file_name TEXT NOT NULL,
                size INTEGER NOT NULL,
                mime_type TEXT NOT NULL DEFAULT '',
                channel_id TEXT NOT NULL,
                chunk_count INTEGER NOT NULL DEFAULT 0,
                uploaded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            
            CREATE INDEX IF NOT EXISTS idx_files_uploaded_at ON files(uploaded_at);
            
            PRAGMA user_version = {SCHEMA_VERSION};
        """)
        
        await self._connection.commit()
    
    @staticmethod
    def _to_record(row) -> FileRecord:
        return FileRecord(
            file_hash=row['file_hash'],
            file_name=row['file_name'],
            size=row['size'],
            mime_type=row['mime_type'],
            channel_id=row['channel_id'],
            chunk_count=row['chunk_count'],
            uploaded_at=row['uploaded_at'],
        )
    
    async def add_file(self, record: FileRecord):
        """Add or update a file record."""
        await self._connection.execute(
            """INSERT INTO files (file_hash, file_name, size, mime_type, channel_id, chunk_count)
               VALUES (?, ?, ?, ?, ?, ?)
               ON CONFLICT(file_hash) DO UPDATE SET
                   file_name = excluded.file_name,
                   size = excluded.size,
                   mime_type = excluded.mime_type,
                   channel_id = excluded.channel_id,
                   chunk_count = excluded.chunk_count,
                   uploaded_at = CURRENT_TIMESTAMP""",
            (record.file_hash, record.file_name, record.size, record.mime_type,
             record.channel_id, record.chunk_count)
        )
        await self._connection.commit()
    
    async def list_files(self) -> List[FileRecord]:
        """Get all file records, most recent first."""
        async with self._connection.execute(
            "SELECT * FROM files ORDER BY uploaded_at DESC, rowid DESC"
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._to_record(row) for row in rows]
    
    async def get_file(self, file_hash: str) -> Optional[FileRecord]:
        """Get a file record by hash."""
        async with self._connection.execute(
            "SELECT * FROM files WHERE file_hash = ?", (file_hash.lower(),)
        ) as cursor:
            row = await cursor.fetchone()
            return self._to_record(row) if row else None
    
    async def remove_file(self, file_hash: str) -> bool:
        """Remove a file record. Returns False if there was none."""
        cursor = await self._connection.execute(
            "DELETE FROM files WHERE file_hash = ?", (file_hash.lower(),)
        )
        await self._connection.commit()
        return cursor.rowcount > 0


async def init_catalog(data_dir: Path) -> FileCatalog:
    """Initialize and return a catalog instance."""
    catalog = FileCatalog(Path(data_dir) / "catalog.db")
    await catalog.connect()
    return catalog
