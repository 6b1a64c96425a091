"""Request-scoped access to the shared collaborators stored on ``app.state``."""

from fastapi import Request

from ..blobs import BlobStore
from ..chat import MultimodalFormatter
from ..config import Settings
from ..llm import ProviderAdapter
from ..store import ChatStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ChatStore:
    return request.app.state.store


def get_blobs(request: Request) -> BlobStore:
    return request.app.state.blobs


def get_adapter(request: Request) -> ProviderAdapter:
    return request.app.state.adapter


def get_formatter(request: Request) -> MultimodalFormatter:
    return MultimodalFormatter(request.app.state.blobs)
