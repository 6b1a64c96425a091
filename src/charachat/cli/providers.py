"""Settings, logging and client construction for CLI commands.

Hides configuration details from command implementations.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from ..client import ChatApiClient
from ..config import Settings, load_settings
from ..llm import BackendKind, BackendRegistry

# Log output goes to stderr so streamed replies on stdout stay clean
_log_console = Console(stderr=True)


def get_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment and an optional .env file."""
    return load_settings(env_file)


def configure_logging(level: str) -> None:
    """Route standard logging through a rich handler at the given level."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_log_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_api_client(settings: Settings, api_url: str | None = None) -> ChatApiClient:
    """Create an API client for the configured (or overridden) server address."""
    return ChatApiClient(api_url or settings.api_url)


def credential_status(settings: Settings) -> dict[BackendKind, bool]:
    """Whether each backend kind has the credential it needs."""
    return {
        BackendKind.OPENAI_COMPATIBLE: bool(settings.deepseek_api_key),
        BackendKind.LOCAL: bool(settings.local_api_key and settings.local_base_url),
        BackendKind.FLATTENED_REST: bool(settings.gemini_api_key),
    }


def get_registry(settings: Settings) -> BackendRegistry:
    return BackendRegistry.from_settings(settings)
