from pydantic import BaseModel, Field

from messenger.core.database import ChatType


class AddMemberRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=50)

class ChatResponse(BaseModel):
    id: int
    chat_type: ChatType
    initiator: str
    members: list[str] | None = None

class ChatsResponse(BaseModel):
    chat_ids: list[int]
