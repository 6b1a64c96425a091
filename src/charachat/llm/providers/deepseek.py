import re
from typing import Any

from .openai import OpenAICompatibleProvider

DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"


def normalize_base_url(base_url: str) -> str:
    """Ensure the base URL ends with ``/v1`` as the OpenAI SDK expects.

    >>> normalize_base_url("https://api.deepseek.com")
    'https://api.deepseek.com/v1'
    >>> normalize_base_url("https://api.deepseek.com/v1/")
    'https://api.deepseek.com/v1/'
    """
    if re.search(r"/v1/?$", base_url):
        return base_url
    return base_url.rstrip("/") + "/v1"


class DeepSeekProvider(OpenAICompatibleProvider):
    """DeepSeek provider using the OpenAI-compatible API.

    Hidden design decisions:
    - DeepSeek base URL normalization (bare host or ``/v1`` both accepted)
    - Default model selection
    """

    def __init__(
        self,
        api_key: str,
        model: str = "deepseek-chat",
        base_url: str = DEEPSEEK_BASE_URL,
        **client_kwargs: Any
    ):
        """Initialize DeepSeek provider.

        Args:
            api_key: DeepSeek API key
            model: Default model to use ('deepseek-chat' or 'deepseek-reasoner')
            base_url: DeepSeek API base URL, with or without the ``/v1`` suffix
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        super().__init__(
            api_key=api_key,
            model=model,
            base_url=normalize_base_url(base_url),
            **client_kwargs
        )
