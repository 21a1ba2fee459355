from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from ..services.messages import MessageStore, get_message_store
from ..types import Message, MessageCreate

router = APIRouter(prefix="/api")


@router.get("/messages")
async def list_messages(store: MessageStore = Depends(get_message_store)) -> List[Message]:
    """All chat messages in the order they were posted."""
    return await store.list_messages()


@router.post("/messages")
async def create_message(
    payload: Any = Body(None),
    store: MessageStore = Depends(get_message_store),
) -> Message:
    try:
        data = MessageCreate.model_validate(payload)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid message data")
    return await store.create_message(data)
