from .requests import MessageCreate, ParseTransactionRequest
from .responses import Message

__all__ = [
    "MessageCreate",
    "ParseTransactionRequest",
    "Message",
]
