from typing import Any, Optional

from pydantic import BaseModel, Field


class ParseTransactionRequest(BaseModel):
    # Left untyped; the route answers 400 for anything but a non-empty string.
    prompt: Optional[Any] = Field(default=None, description="Natural-language transfer instruction")

    @property
    def valid_prompt(self) -> Optional[str]:
        if isinstance(self.prompt, str) and self.prompt.strip():
            return self.prompt
        return None


class MessageCreate(BaseModel):
    walletAddress: str = Field(min_length=1, description="Address of the wallet that sent the message")
    content: str = Field(min_length=1, description="Message text")
