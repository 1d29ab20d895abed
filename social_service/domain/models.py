"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any
from uuid import UUID


@dataclass
class User:
    """User domain model"""
    id: UUID
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owner(self, user_id: UUID) -> bool:
        """Check if the given user_id is this user"""
        return self.id == user_id

    def to_public(self) -> Dict[str, Any]:
        """Redacted view, safe to hand to untrusted callers"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Image:
    """Image attached to a post"""
    id: UUID
    url: str
    post_id: UUID
    created_at: Optional[datetime] = None


@dataclass
class Post:
    """Post domain model"""
    id: UUID
    title: str
    body: str
    user_id: UUID
    is_private: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[User] = None
    images: List[Image] = field(default_factory=list)

    def is_owner(self, user_id: UUID) -> bool:
        """Check if the given user_id is the owner of this post"""
        return self.user_id == user_id

    def is_live(self) -> bool:
        """A post is live until it is soft-deleted"""
        return self.deleted_at is None

    def is_visible_to(self, viewer: Optional["Identity"]) -> bool:
        """Anonymous viewers only see public posts; any signed-in viewer sees all"""
        if not self.is_live():
            return False
        return viewer is not None or not self.is_private

    def can_restore(self, now: datetime, window: timedelta) -> bool:
        """Deleted exactly `window` ago is still restorable, older is not"""
        if self.deleted_at is None:
            return True
        return self.deleted_at >= now - window


@dataclass
class Message:
    """Ephemeral message domain model"""
    id: UUID
    content: str
    user_id: UUID
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Optional[User] = None

    def is_expired(self, now: datetime) -> bool:
        """Check if the message is past its expiry"""
        if self.expires_at is None:
            return False
        return self.expires_at <= now


@dataclass
class MediaFile:
    """Raw file handed to the media uploader"""
    filename: str
    content_type: str
    data: bytes


@dataclass
class Identity:
    """Verified identity claim carried by an access token"""
    id: UUID
    username: str


@dataclass
class AccessToken:
    """Issued credential"""
    access_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass
class UserProfile:
    """User together with the content it owns"""
    user: User
    posts: List[Post] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)


def expiry_from_ttl(now: datetime, ttl_seconds: Optional[int]) -> Optional[datetime]:
    """Convert a time-to-live into an absolute expiry; a falsy ttl never expires"""
    if not ttl_seconds:
        return None
    return now + timedelta(seconds=ttl_seconds)
