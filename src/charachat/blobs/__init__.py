"""Blob storage for uploaded images."""

from .base import BlobStore
from .filesystem import FilesystemBlobStore

__all__ = ["BlobStore", "FilesystemBlobStore"]
