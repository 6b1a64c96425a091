from .adapter import ProviderAdapter
from .base import LLMProvider
from .factory import create_llm_provider
from .models import ChatMessage, ContentBlock, ImageBlock, StreamingResponse, TextBlock
from .providers import DeepSeekProvider, GeminiProvider, OpenAICompatibleProvider
from .registry import BackendEndpoint, BackendKind, BackendRegistry, Route

__all__ = [
    "BackendEndpoint",
    "BackendKind",
    "BackendRegistry",
    "ChatMessage",
    "ContentBlock",
    "DeepSeekProvider",
    "GeminiProvider",
    "ImageBlock",
    "LLMProvider",
    "OpenAICompatibleProvider",
    "ProviderAdapter",
    "Route",
    "StreamingResponse",
    "TextBlock",
    "create_llm_provider",
]
