from pydantic import BaseModel, Field
from datetime import datetime

class MessageSendRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)

class MessageEditRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)

class MessageResponse(BaseModel):
    id: int
    chat_id: int
    sender: str
    text: str
    timestamp: datetime

class MessageCreatedResponse(BaseModel):
    id: int
    status: str = "sent"

class PageResponse(BaseModel):
    messages: list[MessageResponse]
    offset: int
    next_offset: int | None = None
    exhausted: bool
