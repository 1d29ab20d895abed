"""
Repository interfaces - Define contracts for data access
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID

from .models import User, Post, Image, Message, MediaFile


class IUserRepository(ABC):
    """User repository interface"""

    @abstractmethod
    async def create(self, username: str, email: str, password_hash: str,
                     first_name: Optional[str] = None,
                     last_name: Optional[str] = None) -> User:
        """Create a new user"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        """Find user by ID"""
        pass

    @abstractmethod
    async def find_by_login(self, email: Optional[str] = None,
                            username: Optional[str] = None) -> Optional[User]:
        """Find user matching every identifier given"""
        pass

    @abstractmethod
    async def find_all(self) -> List[User]:
        """List every user"""
        pass

    @abstractmethod
    async def exists_by_username_or_email(self, username: str, email: str) -> bool:
        """Check if user exists by username or email"""
        pass

    @abstractmethod
    async def delete_by_username(self, username: str) -> int:
        """Delete a user, returns the number of rows removed"""
        pass


class IPostRepository(ABC):
    """Post repository interface

    Every read except find_by_id_with_deleted only returns live posts.
    """

    @abstractmethod
    async def create(self, user_id: UUID, title: str, body: str, is_private: bool,
                     metadata: Dict[str, Any], tags: List[str]) -> Post:
        """Create a new post"""
        pass

    @abstractmethod
    async def find_by_id(self, post_id: UUID, include_private: bool = True) -> Optional[Post]:
        """Find a live post by ID, with owner and images"""
        pass

    @abstractmethod
    async def find_by_id_with_deleted(self, post_id: UUID) -> Optional[Post]:
        """Find a post by ID whether or not it is soft-deleted"""
        pass

    @abstractmethod
    async def find_public(self) -> List[Post]:
        """List live public posts"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Post]:
        """List a user's live posts regardless of privacy"""
        pass

    @abstractmethod
    async def update(self, post_id: UUID, updates: Dict[str, Any]) -> int:
        """Update a live post, returns the number of rows affected"""
        pass

    @abstractmethod
    async def soft_delete(self, post_id: UUID, deleted_at: datetime) -> int:
        """Mark a live post as deleted, returns the number of rows affected"""
        pass

    @abstractmethod
    async def restore(self, post_id: UUID) -> int:
        """Clear the delete timestamp, returns the number of rows affected"""
        pass


class IImageRepository(ABC):
    """Image repository interface"""

    @abstractmethod
    async def create(self, post_id: UUID, url: str) -> Image:
        """Attach an image URL to a post"""
        pass


class IMessageRepository(ABC):
    """Message repository interface"""

    @abstractmethod
    async def create(self, user_id: UUID, content: str,
                     expires_at: Optional[datetime]) -> Message:
        """Create a new message"""
        pass

    @abstractmethod
    async def find_by_id(self, message_id: UUID) -> Optional[Message]:
        """Find message by ID, expired or not"""
        pass

    @abstractmethod
    async def find_active(self, now: datetime) -> List[Message]:
        """List messages that have not expired at `now`"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Message]:
        """List every message of a user"""
        pass

    @abstractmethod
    async def update(self, message_id: UUID, updates: Dict[str, Any]) -> int:
        """Update a message, returns the number of rows affected"""
        pass

    @abstractmethod
    async def delete(self, message_id: UUID) -> int:
        """Delete a message, returns the number of rows affected"""
        pass


class IMediaUploader(ABC):
    """Durable media storage"""

    @abstractmethod
    async def upload_batch(self, files: List[MediaFile]) -> List[str]:
        """Upload files and return their URLs in input order

        Raises MediaUploadError if any upload fails.
        """
        pass
