from .deepseek import DeepSeekProvider
from .gemini import GeminiProvider
from .openai import OpenAICompatibleProvider

__all__ = ["DeepSeekProvider", "GeminiProvider", "OpenAICompatibleProvider"]
