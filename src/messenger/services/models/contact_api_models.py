from pydantic import BaseModel, Field


class ListMemberRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=50)

class ListEntryResponse(BaseModel):
    login: str
    status: str | None = None

class ListMembersResponse(BaseModel):
    members: list[ListEntryResponse]
