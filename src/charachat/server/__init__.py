"""HTTP API: the streaming chat endpoint plus thin persistence routes."""

from .app import create_app

__all__ = ["create_app"]
