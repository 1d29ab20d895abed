"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID

from .config import settings


class UserRegister(BaseModel):
    """User registration request"""
    username: str = Field(..., min_length=1, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8)


class UserLogin(BaseModel):
    """User login request, by email or by username"""
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserPublic(BaseModel):
    """User profile response, never carries the password hash"""
    id: UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImageResponse(BaseModel):
    """Image attached to a post"""
    id: UUID
    url: str
    post_id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PostResponse(BaseModel):
    """Post response"""
    id: UUID
    title: str
    body: str
    is_private: bool
    metadata: Dict[str, Any] = {}
    tags: List[str] = []
    user_id: UUID
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserPublic] = None
    images: List[ImageResponse] = []

    class Config:
        from_attributes = True


class PostUpdate(BaseModel):
    """Update post request"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    body: Optional[str] = Field(None, min_length=1)
    is_private: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None

    @validator('title', 'body', 'is_private', 'metadata', 'tags')
    def not_null(cls, v):
        """Fields may be omitted but not nulled"""
        if v is None:
            raise ValueError('Field cannot be null')
        return v


class PostPrivacyUpdate(BaseModel):
    """Update post privacy request"""
    is_private: bool


class MessageCreate(BaseModel):
    """Create message request"""
    content: str = Field(..., min_length=1)
    ttl_seconds: Optional[int] = Field(None, ge=0, le=settings.MESSAGE_MAX_TTL_SECONDS)


class MessageUpdate(BaseModel):
    """Update message request"""
    content: Optional[str] = Field(None, min_length=1)
    ttl_seconds: Optional[int] = Field(None, ge=0, le=settings.MESSAGE_MAX_TTL_SECONDS)


class MessageResponse(BaseModel):
    """Message response"""
    id: UUID
    content: str
    user_id: UUID
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[UserPublic] = None

    class Config:
        from_attributes = True


class UserCredentialsResponse(UserPublic):
    """User profile together with the content it owns"""
    posts: List[PostResponse] = []
    messages: List[MessageResponse] = []


class DeletedResponse(BaseModel):
    """Delete confirmation"""
    deleted: bool = True


class ErrorResponse(BaseModel):
    """Error response"""
    code: str
    message: str
