"""Character routes.

The first listing for a user with no characters seeds two starter personas.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from ...store import CharacterDraft, ChatStore
from ...store.models import DEFAULT_USER_ID
from ..dependencies import get_store
from ..schemas import CharacterCreate

router = APIRouter(prefix="/api/characters", tags=["characters"])

STARTER_CHARACTERS = (
    CharacterDraft(
        name="AI Assistant",
        avatar="/ai-assistant-avatar.png",
        prompt=(
            "You are a friendly, helpful AI assistant. Answer clearly and concisely "
            "and offer practical suggestions where you can."
        ),
    ),
    CharacterDraft(
        name="Programming Expert",
        avatar="/programmer-avatar.png",
        prompt=(
            "You are an experienced programmer fluent in many languages and stacks. "
            "Help the user solve programming problems with clear code examples."
        ),
    ),
)


async def ensure_starter_characters(store: ChatStore, user_id: str) -> None:
    if await store.list_characters(user_id):
        return
    for draft in STARTER_CHARACTERS:
        await store.create_character(draft, user_id)


@router.get("")
async def list_characters(
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    store: ChatStore = Depends(get_store),
):
    await ensure_starter_characters(store, user_id)
    characters = await store.list_characters(user_id)
    return {
        "success": True,
        "characters": [c.model_dump(mode="json", by_alias=True) for c in characters],
    }


@router.post("")
async def create_character(body: CharacterCreate, store: ChatStore = Depends(get_store)):
    if not body.name.strip() or not body.prompt.strip():
        raise HTTPException(status_code=400, detail="Character needs a name and a prompt")
    character = await store.create_character(body.to_draft(), body.user_id)
    return {"success": True, "character": character.model_dump(mode="json", by_alias=True)}


@router.put("/{character_id}")
async def update_character(
    character_id: str,
    body: CharacterDraft,
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    store: ChatStore = Depends(get_store),
):
    character = await store.update_character(character_id, body, user_id)
    if character is None:
        raise HTTPException(status_code=404, detail="Character not found")
    return {"success": True, "character": character.model_dump(mode="json", by_alias=True)}


@router.delete("/{character_id}")
async def delete_character(
    character_id: str,
    user_id: str = Query(default=DEFAULT_USER_ID, alias="userId"),
    store: ChatStore = Depends(get_store),
):
    if not await store.delete_character(character_id, user_id):
        raise HTTPException(status_code=404, detail="Character not found")
    return {"success": True}
