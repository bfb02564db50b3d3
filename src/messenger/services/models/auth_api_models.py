from pydantic import BaseModel, Field, field_validator
import re

class UserRegisterRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=50, pattern="^[a-zA-Z0-9_.]+$")
    password: str = Field(..., min_length=1, max_length=50)
    phone: str | None = Field(None, max_length=16)
    status: str | None = Field(None, max_length=140)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v is not None and not re.match(r"^\+?[0-9\- ]+$", v):
            raise ValueError('Phone must contain digits, spaces or dashes only')
        return v

class UserResponse(BaseModel):
    login: str
    phone: str | None = None
    status: str | None = None

class StatusUpdateRequest(BaseModel):
    status: str | None = Field(None, max_length=140)

class StatusResponse(BaseModel):
    status: str
