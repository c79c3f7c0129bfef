"""
Storage Module - File Catalog

Uses SQLite for remembering which files were stored in which channel.
"""

from .catalog import FileCatalog, FileRecord, init_catalog

__all__ = ['FileCatalog', 'FileRecord', 'init_catalog']
