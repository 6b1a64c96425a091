"""Conversation routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from ...store import ChatStore
from ...store.models import DEFAULT_USER_ID
from ..dependencies import get_store
from ..schemas import ConversationCreate, ConversationUpdate

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("")
async def list_conversations(
    character_id: str = Query(alias="characterId"),
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    store: ChatStore = Depends(get_store),
):
    conversations = await store.list_conversations(character_id, user_id)
    return {
        "success": True,
        "conversations": [c.model_dump(mode="json", by_alias=True) for c in conversations],
    }


@router.post("")
async def create_conversation(body: ConversationCreate, store: ChatStore = Depends(get_store)):
    conversation = await store.create_conversation(body.character_id, body.title, body.user_id)
    return {"success": True, "conversation": conversation.model_dump(mode="json", by_alias=True)}


@router.patch("/{conversation_id}")
async def rename_conversation(
    conversation_id: str,
    body: ConversationUpdate,
    store: ChatStore = Depends(get_store),
):
    conversation = await store.rename_conversation(conversation_id, body.title)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True, "conversation": conversation.model_dump(mode="json", by_alias=True)}


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, store: ChatStore = Depends(get_store)):
    if not await store.delete_conversation(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True}
