"""Message persistence routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from ...store import ChatStore
from ...store.models import DEFAULT_USER_ID
from ..dependencies import get_store
from ..schemas import MessageCreate

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("")
async def list_messages(
    character_id: str = Query(alias="characterId"),
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    conversation_id: str | None = Query(default=None, alias="conversationId"),
    limit: int = Query(default=50, ge=1),
    store: ChatStore = Depends(get_store),
):
    messages = await store.get_messages(user_id, character_id, conversation_id or None, limit)
    return {
        "success": True,
        "messages": [m.model_dump(mode="json", by_alias=True) for m in messages],
    }


@router.post("")
async def create_message(body: MessageCreate, store: ChatStore = Depends(get_store)):
    """Persist one message. Image-only messages are allowed."""
    if not body.content and not body.images:
        raise HTTPException(status_code=400, detail="Message needs content or images")

    message = await store.create_message(
        content=body.content,
        role=body.role,
        character_id=body.character_id,
        conversation_id=body.conversation_id,
        user_id=body.user_id,
        images=body.images,
    )
    return {"success": True, "message": message.model_dump(mode="json", by_alias=True)}


@router.delete("")
async def clear_messages(
    character_id: str = Query(alias="characterId"),
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    conversation_id: str | None = Query(default=None, alias="conversationId"),
    store: ChatStore = Depends(get_store),
):
    removed = await store.clear_messages(user_id, character_id, conversation_id or None)
    return {"success": True, "removed": removed}


@router.delete("/{message_id}")
async def delete_message(message_id: str, store: ChatStore = Depends(get_store)):
    if not await store.delete_message(message_id):
        raise HTTPException(status_code=404, detail="Message not found")
    return {"success": True}
