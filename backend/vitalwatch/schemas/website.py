"""Website and user schemas for API."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class UserUpsert(BaseModel):
    """Identity details from the external identity provider."""
    open_id: str = Field(..., min_length=1, max_length=64)
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserResponse(BaseModel):
    """Schema for user in API responses."""
    id: int
    open_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class WebsiteCreate(BaseModel):
    """Schema for registering a website."""
    url: str = Field(..., max_length=512, pattern=r"^https?://[^\s/$.?#][^\s]*$")
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class WebsiteResponse(BaseModel):
    """Schema for website in API responses."""
    id: int
    user_id: int
    url: str
    name: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
