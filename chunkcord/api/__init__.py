"""
API Module - HTTP gateway for chunkcord

Provides HTTP endpoints for uploading and retrieving files.
"""

from .rest import create_app, run_api_server

__all__ = ['create_app', 'run_api_server']
