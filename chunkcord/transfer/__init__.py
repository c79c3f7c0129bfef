"""
Transfer Module - Channel Upload/Download

Moves chunk sets in and out of a messaging channel.
"""

from .session import Session
from .uploader import ChunkUploader, UploadReport
from .locator import ChunkLocator, ScanResult

__all__ = [
    'Session',
    'ChunkUploader',
    'UploadReport',
    'ChunkLocator',
    'ScanResult',
]
