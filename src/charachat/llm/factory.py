from typing import Any

from ..errors import ConfigurationError
from .base import LLMProvider
from .providers import DeepSeekProvider, GeminiProvider, OpenAICompatibleProvider
from .registry import BackendKind


def create_llm_provider(kind: BackendKind | str, **config: Any) -> LLMProvider:
    """Create an LLM provider instance for a backend kind.

    This factory function hides the instantiation logic for different backends.

    Args:
        kind: Backend kind ('openai_compatible', 'local', 'flattened_rest')
        **config: Provider-specific configuration
            For openai_compatible (DeepSeek):
                - api_key: str (required)
                - model: str (default: 'deepseek-chat')
                - base_url: str (default: 'https://api.deepseek.com/v1')
            For local:
                - api_key: str (required)
                - base_url: str (required)
                - model: str
            For flattened_rest (Gemini):
                - api_key: str (required)
                - model: str (default: 'gemini-2.0-flash')
                - base_url: str | None

    Returns:
        Initialized LLM provider instance

    Raises:
        ConfigurationError: If the credential or endpoint is missing
        ValueError: If the backend kind is not supported

    Examples:
        >>> provider = create_llm_provider(
        ...     "openai_compatible",
        ...     api_key="sk-...",
        ...     model="deepseek-chat"
        ... )

        >>> provider = create_llm_provider(
        ...     "local",
        ...     api_key="sk-local",
        ...     base_url="http://127.0.0.1:8045/v1",
        ...     model="gemini-3-flash"
        ... )
    """
    try:
        kind = BackendKind(kind)
    except ValueError:
        raise ValueError(
            f"Unsupported backend kind: {kind}. "
            f"Supported kinds: {', '.join(k.value for k in BackendKind)}"
        ) from None

    config = {key: value for key, value in config.items() if value is not None}

    if kind is BackendKind.OPENAI_COMPATIBLE:
        if not config.get("api_key"):
            raise ConfigurationError(
                "Missing DeepSeek API key: set DEEPSEEK_API_KEY in the environment or .env"
            )
        return DeepSeekProvider(**config)

    if kind is BackendKind.LOCAL:
        if not config.get("api_key"):
            raise ConfigurationError("Missing local API key: set LOCAL_API_KEY")
        if not config.get("base_url"):
            raise ConfigurationError("Missing local API endpoint: set LOCAL_API_BASE_URL")
        return OpenAICompatibleProvider(**config)

    if not config.get("api_key"):
        raise ConfigurationError("Missing Gemini API key: set GEMINI_API_KEY")
    return GeminiProvider(**config)
