from datetime import datetime

from pydantic import BaseModel


class Message(BaseModel):
    id: int
    walletAddress: str
    content: str
    timestamp: datetime
