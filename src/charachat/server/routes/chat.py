"""``POST /api/chat``: history in, event stream out."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from ...chat import MultimodalFormatter
from ...config import Settings
from ...errors import ConfigurationError, ProviderError
from ...llm import ProviderAdapter
from ...llm import StreamingResponse as FragmentStream
from ...streaming import EVENT_STREAM_HEADERS, EVENT_STREAM_MEDIA_TYPE, encode_stream
from ..dependencies import get_adapter, get_formatter, get_settings
from ..schemas import ChatRequest

router = APIRouter(prefix="/api", tags=["chat"])

logger = logging.getLogger(__name__)


async def _chain(first: str | None, rest: FragmentStream) -> AsyncIterator[str]:
    try:
        if first is not None:
            yield first
        async for fragment in rest:
            yield fragment
    finally:
        await rest.aclose()


@router.post("/chat")
async def chat(
    body: ChatRequest,
    settings: Settings = Depends(get_settings),
    adapter: ProviderAdapter = Depends(get_adapter),
    formatter: MultimodalFormatter = Depends(get_formatter),
):
    """Stream one assistant reply as ``data: {"content": ...}`` events.

    The first fragment is awaited before headers are sent so that errors
    raised up front come back as JSON with a proper status code.
    """
    model = body.effective_model(settings.default_model)
    system_prompt = body.character.prompt or settings.system_prompt
    history = await formatter.format_history([turn.to_entry() for turn in body.messages])

    try:
        stream = await adapter.stream_reply(model, system_prompt, history)
        first = await anext(stream, None)
    except ConfigurationError as e:
        logger.error("Chat request for model=%s is not configured: %s", model, e)
        return JSONResponse(
            status_code=500,
            content={"error": str(e), "kind": "configuration"},
        )
    except ProviderError as e:
        logger.error("Backend error for model=%s: %s", model, e)
        return JSONResponse(
            status_code=502,
            content={"error": str(e), "kind": "provider", "status": e.status, "body": e.body},
        )

    return StreamingResponse(
        encode_stream(_chain(first, stream)),
        media_type=EVENT_STREAM_MEDIA_TYPE,
        headers=EVENT_STREAM_HEADERS,
    )
