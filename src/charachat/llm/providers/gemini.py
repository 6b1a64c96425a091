"""Google Gemini provider using a single flattened prompt.

Uses the official Google GenAI SDK for one non-streamed completion.
Reference: https://github.com/googleapis/python-genai

The whole conversation is flattened into one text block (system prompt
first, then each turn prefixed with its role label) instead of role-tagged
contents. The single completion is presented upstream as a one-fragment
stream so callers see the same contract as the streaming backends.

Note: Gemini can return empty responses due to safety filtering. An empty
completion closes the stream with zero fragments rather than failing.
"""

import json
import logging
import re
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ...errors import ProviderError
from ..base import LLMProvider
from ..models import ChatMessage, StreamingResponse

logger = logging.getLogger(__name__)

ROLE_LABELS = {"user": "User", "assistant": "Assistant"}

# Leading "Assistant:" / "Model:" the model sometimes echoes back
_ROLE_ECHO = re.compile(r"^\s*(?:assistant|model)\s*[:：]\s*", re.IGNORECASE)

# Relaxed to avoid blocking fictional role-play content
DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category="HARM_CATEGORY_HARASSMENT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_HATE_SPEECH", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_SEXUALLY_EXPLICIT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH"),
]


def flatten_messages(messages: list[ChatMessage]) -> str:
    """Flatten a role-tagged history into one newline-joined prompt.

    System messages are emitted verbatim; every other turn is prefixed with
    its role label. Image blocks are dropped since the prompt is text only.
    """
    lines: list[str] = []
    for msg in messages:
        if msg.role == "system":
            if msg.text.strip():
                lines.append(msg.text)
            continue
        label = ROLE_LABELS.get(msg.role, msg.role.capitalize())
        lines.append(f"{label}: {msg.text}")
    return "\n".join(lines)


def strip_role_echo(text: str) -> str:
    """Remove a redundant leading role label echoed by the model."""
    return _ROLE_ECHO.sub("", text, count=1)


def _field(obj: Any, name: str) -> Any:
    """Read a field from either an SDK object or a raw JSON mapping."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except (ValueError, AttributeError):
        # SDK convenience properties raise when the response has no text
        return None


def extract_candidate_text(response: Any) -> str:
    """Extract the first candidate's text from a Gemini response.

    Tolerates the shapes seen in practice:
    - ``candidates[0].content.parts[*].text`` (SDK objects or raw JSON)
    - ``candidates[0].content`` as a plain string
    - ``candidates[0].output`` / ``candidates[0].text``
    - a top-level ``text`` field or property

    Returns:
        Text content or empty string
    """
    candidates = _field(response, "candidates")
    if candidates:
        first = candidates[0]
        content = _field(first, "content")

        if isinstance(content, str) and content:
            return content

        parts = _field(content, "parts")
        if parts:
            texts = [text for part in parts if (text := _field(part, "text"))]
            if texts:
                return "".join(texts)

        for name in ("output", "text"):
            value = _field(first, name)
            if isinstance(value, str) and value:
                return value

    text = _field(response, "text")
    return text if isinstance(text, str) else ""


class GeminiProvider(LLMProvider):
    """Gemini provider for the flattened single-prompt protocol.

    Hidden design decisions:
    - Google GenAI client initialization (optionally against a custom endpoint)
    - Flattening of the role-tagged history into one prompt
    - Response shape tolerance and role-echo stripping
    - Presenting one completion as a single-fragment stream
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        base_url: str | None = None,
        client: Any | None = None,
        **client_kwargs: Any
    ):
        """Initialize Gemini provider.

        Args:
            api_key: Google AI API key
            model: Default model
            base_url: Optional custom endpoint (None uses the SDK default)
            client: Pre-built client, mainly for tests
            **client_kwargs: Additional kwargs for Client
        """
        self._model = model
        if client is not None:
            self._client = client
        else:
            if base_url:
                client_kwargs.setdefault("http_options", types.HttpOptions(base_url=base_url))
            self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a completion and present it as a one-fragment stream.

        Args:
            messages: Conversation history, system message first
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional GenerateContentConfig fields

        Returns:
            StreamingResponse yielding at most one fragment
        """
        model_to_use = model or self._model
        prompt = flatten_messages(messages)

        config = types.GenerateContentConfig(
            temperature=temperature,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            **kwargs
        )
        if max_tokens is not None:
            config.max_output_tokens = max_tokens

        return StreamingResponse(self._single_shot_generator(model_to_use, prompt, config))

    async def _single_shot_generator(
        self,
        model: str,
        prompt: str,
        config: types.GenerateContentConfig,
    ) -> AsyncIterator[str]:
        """Issue one request and yield its text as a single fragment."""
        logger.info("Flattened request: model=%s prompt_chars=%d", model, len(prompt))

        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            body = json.dumps(e.details, ensure_ascii=False) if e.details else str(e.message or "")
            raise ProviderError(
                f"Gemini rejected request for model '{model}'",
                status=e.code,
                body=body,
            ) from e
        except httpx.TransportError as e:
            raise ProviderError(
                f"Could not reach Gemini for model '{model}': {e}",
                status=None,
                body=str(e),
            ) from e

        text = strip_role_echo(extract_candidate_text(response))
        if not text:
            logger.warning("Gemini returned no text for model=%s; closing stream empty", model)
            return

        yield text

    async def close(self) -> None:
        """Close the Gemini client.

        Note: The Google GenAI client doesn't require explicit closing,
        but we implement this for interface consistency.
        """
        pass
