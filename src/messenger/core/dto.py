from pydantic import BaseModel
from datetime import datetime
from typing import NewType

from .database import ChatType

ListId = NewType("ListId", int)

class UserDTO(BaseModel):
    login: str
    phone: str | None = None
    status: str | None = None
    contact_list: int
    block_list: int

class ChatDTO(BaseModel):
    id: int
    chat_type: ChatType
    initiator: str

class MessageDTO(BaseModel):
    id: int
    chat_id: int
    sender: str
    text: str
    timestamp: datetime

class PageDTO(BaseModel):
    items: list[MessageDTO]
    offset: int
    next_offset: int | None = None
    exhausted: bool
