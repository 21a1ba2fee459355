"""In-memory chat message store backing ``/api/messages``."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timezone
from functools import lru_cache
from typing import List

from ..types import Message, MessageCreate


class MessageStore:
    """Insertion-ordered message list with increasing ids. Lost on restart."""

    def __init__(self) -> None:
        self._messages: List[Message] = []
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def list_messages(self) -> List[Message]:
        async with self._lock:
            return list(self._messages)

    async def create_message(self, data: MessageCreate) -> Message:
        async with self._lock:
            message = Message(
                id=next(self._ids),
                walletAddress=data.walletAddress,
                content=data.content,
                timestamp=datetime.now(timezone.utc),
            )
            self._messages.append(message)
            return message


@lru_cache(maxsize=1)
def get_message_store() -> MessageStore:
    return MessageStore()
