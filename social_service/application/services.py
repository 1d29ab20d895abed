"""
Application services - Business logic layer

Each public method lets ServiceError subclasses through unchanged and turns
any other failure into InternalError, so callers only ever see domain errors.
"""
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Callable
from uuid import UUID
import logging

import asyncpg

from ..config import settings
from ..domain.exceptions import (
    ServiceError,
    ValidationError,
    ConflictError,
    UnauthorizedError,
    NotFoundError,
    RestoreWindowExpiredError,
    InternalError,
)
from ..domain.models import (
    User, Post, Message, MediaFile, Identity, AccessToken, UserProfile,
    expiry_from_ttl,
)
from ..domain.repositories import (
    IUserRepository,
    IPostRepository,
    IImageRepository,
    IMessageRepository,
    IMediaUploader,
)
from ..infrastructure.auth import (
    hash_password,
    verify_password,
    create_access_token,
    validate_password_strength,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

POST_FIELDS = ("title", "body", "is_private", "metadata", "tags")


class UserService:
    """User service - registration, login and account lookups"""

    def __init__(
        self,
        user_repository: IUserRepository,
        post_repository: IPostRepository,
        message_repository: IMessageRepository
    ):
        self.user_repo = user_repository
        self.post_repo = post_repository
        self.message_repo = message_repository

    async def register(
        self,
        username: str,
        email: str,
        first_name: str,
        last_name: str,
        password: str
    ) -> User:
        """
        Register a new user

        Returns the stored record, password hash included. Use
        User.to_public() before exposing it.
        """
        is_valid, error_msg = validate_password_strength(password)
        if not is_valid:
            raise ValidationError(error_msg)

        try:
            if await self.user_repo.exists_by_username_or_email(username, email):
                raise ConflictError(
                    "User with similar email address or username already exists"
                )

            password_hash = hash_password(password)

            user = await self.user_repo.create(
                username=username,
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name
            )
        except ServiceError:
            raise
        except asyncpg.UniqueViolationError:
            raise ConflictError(
                "User with similar email address or username already exists"
            )
        except Exception as e:
            logger.error(f"Failed to register user: {e}")
            raise InternalError("Failed to register user") from e

        logger.info(f"Registered user {user.username}")
        return user

    async def authenticate(
        self,
        password: str,
        email: Optional[str] = None,
        username: Optional[str] = None
    ) -> AccessToken:
        """Check credentials and issue an access token"""
        if not email and not username:
            raise ValidationError("Either email or username must be provided")

        try:
            user = await self.user_repo.find_by_login(email=email, username=username)
        except Exception as e:
            logger.error(f"Failed to look up user for login: {e}")
            raise InternalError("Failed to log in") from e

        if not user:
            raise NotFoundError("User with credentials not found")

        if not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials were provided")

        access_token = create_access_token(
            data={"sub": str(user.id), "username": user.username}
        )
        return AccessToken(
            access_token=access_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID"""
        try:
            user = await self.user_repo.find_by_id(user_id)
        except Exception as e:
            logger.error(f"Failed to retrieve user {user_id}: {e}")
            raise InternalError("Failed to retrieve user") from e

        if not user:
            raise NotFoundError(f"User with ID {user_id} not found")
        return user

    async def list_users(self) -> List[User]:
        """List every user"""
        try:
            return await self.user_repo.find_all()
        except Exception as e:
            logger.error(f"Failed to retrieve users: {e}")
            raise InternalError("Failed to retrieve users") from e

    async def get_credentials(self, user_id: UUID) -> UserProfile:
        """Get a user together with its posts and messages"""
        user = await self.get_user(user_id)
        try:
            posts = await self.post_repo.find_by_user_id(user_id)
            messages = await self.message_repo.find_by_user_id(user_id)
        except Exception as e:
            logger.error(f"Failed to load content of user {user_id}: {e}")
            raise InternalError("Failed to retrieve user") from e
        return UserProfile(user=user, posts=posts, messages=messages)

    async def delete_user(self, username: str) -> None:
        """Delete a user by username; unknown usernames are ignored"""
        try:
            deleted = await self.user_repo.delete_by_username(username)
        except Exception as e:
            logger.error(f"Failed to delete user {username}: {e}")
            raise InternalError("Failed to delete user") from e

        if deleted:
            logger.info(f"Deleted user {username}")


class PostService:
    """Post service - lifecycle, visibility and restore window of posts"""

    def __init__(
        self,
        post_repository: IPostRepository,
        image_repository: IImageRepository,
        media_uploader: IMediaUploader,
        clock: Clock = datetime.utcnow,
        restore_window: Optional[timedelta] = None
    ):
        self.post_repo = post_repository
        self.image_repo = image_repository
        self.media_uploader = media_uploader
        self.clock = clock
        self.restore_window = restore_window or timedelta(
            hours=settings.POST_RESTORE_WINDOW_HOURS
        )

    async def _load(self, post_id: UUID) -> Post:
        """Re-fetch a live post regardless of privacy"""
        post = await self.post_repo.find_by_id(post_id, include_private=True)
        if not post:
            raise NotFoundError(f"Post with ID {post_id} not found")
        return post

    async def create_post(
        self,
        owner_id: UUID,
        title: str,
        body: str,
        is_private: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
        tags: Optional[List[str]] = None,
        images: Optional[List[MediaFile]] = None
    ) -> Post:
        """
        Create a post, then upload and attach its images

        The post row is written first and is kept even when the upload fails.
        """
        try:
            record = await self.post_repo.create(
                user_id=owner_id,
                title=title,
                body=body,
                is_private=is_private,
                metadata=metadata or {},
                tags=tags or []
            )

            if images:
                urls = await self.media_uploader.upload_batch(images)
                for url in urls:
                    await self.image_repo.create(post_id=record.id, url=url)

            return await self._load(record.id)
        except ServiceError as e:
            logger.error(f"Failed to create post: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create post: {e}")
            raise InternalError("Failed to create post") from e

    async def list_posts(self) -> List[Post]:
        """List public live posts"""
        try:
            return await self.post_repo.find_public()
        except Exception as e:
            logger.error(f"Failed to retrieve posts: {e}")
            raise InternalError("Failed to retrieve posts") from e

    async def list_user_posts(self, owner_id: UUID) -> List[Post]:
        """List all live posts of a user, private ones included"""
        try:
            return await self.post_repo.find_by_user_id(owner_id)
        except Exception as e:
            logger.error(f"Failed to retrieve posts of user {owner_id}: {e}")
            raise InternalError("Failed to retrieve posts") from e

    async def get_post(self, post_id: UUID, viewer: Optional[Identity] = None) -> Post:
        """
        Get a live post

        Anonymous callers only see public posts. Any authenticated viewer can
        read private posts too, owner or not.
        """
        try:
            post = await self.post_repo.find_by_id(
                post_id, include_private=viewer is not None
            )
        except Exception as e:
            logger.error(f"Failed to find post {post_id}: {e}")
            raise InternalError(f"Failed to find post with ID {post_id}") from e

        if not post:
            raise NotFoundError(f"Post with ID {post_id} not found")
        return post

    async def update_post(self, post_id: UUID, fields: Dict[str, Any]) -> Post:
        """Partially update a live post"""
        unknown = set(fields) - set(POST_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise ValidationError("No fields to update")

        try:
            affected = await self.post_repo.update(post_id, fields)
            if affected == 0:
                raise NotFoundError(f"Post with ID {post_id} not found")
            return await self._load(post_id)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to update post {post_id}: {e}")
            raise InternalError(f"Failed to update post with ID {post_id}") from e

    async def set_privacy(self, post_id: UUID, is_private: bool) -> Post:
        """Toggle the private flag of a live post"""
        return await self.update_post(post_id, {"is_private": is_private})

    async def soft_delete(self, post_id: UUID) -> Dict[str, bool]:
        """Hide a live post until it is restored"""
        try:
            affected = await self.post_repo.soft_delete(post_id, self.clock())
        except Exception as e:
            logger.error(f"Failed to remove post {post_id}: {e}")
            raise InternalError(f"Failed to remove post with ID {post_id}") from e

        if affected == 0:
            raise NotFoundError(f"Post with ID {post_id} not found")

        logger.info(f"Soft-deleted post {post_id}")
        return {"deleted": True}

    async def restore(self, post_id: UUID) -> Post:
        """
        Bring a soft-deleted post back

        Raises:
            NotFoundError: If no post has that ID
            RestoreWindowExpiredError: If it was deleted more than the
                restore window ago
        """
        try:
            post = await self.post_repo.find_by_id_with_deleted(post_id)
            if not post:
                raise NotFoundError(f"Post with ID {post_id} not found")

            if not post.can_restore(self.clock(), self.restore_window):
                raise RestoreWindowExpiredError(
                    f"Cannot restore post with ID {post_id} because it was deleted "
                    f"more than {self.restore_window} ago"
                )

            if not post.is_live():
                await self.post_repo.restore(post_id)
                logger.info(f"Restored post {post_id}")

            return await self._load(post_id)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to restore post {post_id}: {e}")
            raise InternalError(f"Failed to restore post with ID {post_id}") from e


class MessageService:
    """Message service - ephemeral messages with a time-to-live"""

    def __init__(
        self,
        message_repository: IMessageRepository,
        clock: Clock = datetime.utcnow
    ):
        self.message_repo = message_repository
        self.clock = clock

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[datetime]:
        """Absolute expiry for a ttl counted from now"""
        try:
            return expiry_from_ttl(self.clock(), ttl_seconds)
        except OverflowError:
            raise ValidationError(f"ttl_seconds {ttl_seconds} is out of range")

    async def create_message(
        self,
        owner_id: UUID,
        content: str,
        ttl_seconds: Optional[int] = None
    ) -> Message:
        """Create a message; the ttl is turned into an absolute expiry now"""
        expires_at = self._expiry(ttl_seconds)
        try:
            record = await self.message_repo.create(
                user_id=owner_id,
                content=content,
                expires_at=expires_at
            )
            return await self.get_message(record.id)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to create message: {e}")
            raise InternalError("Failed to create message") from e

    async def list_messages(self) -> List[Message]:
        """List messages that have not expired yet"""
        try:
            return await self.message_repo.find_active(self.clock())
        except Exception as e:
            logger.error(f"Failed to retrieve messages: {e}")
            raise InternalError("Failed to retrieve messages") from e

    async def get_message(self, message_id: UUID) -> Message:
        """Get a message by ID; expired messages are still returned"""
        try:
            message = await self.message_repo.find_by_id(message_id)
        except Exception as e:
            logger.error(f"Failed to find message {message_id}: {e}")
            raise InternalError(f"Failed to find message with ID {message_id}") from e

        if not message:
            raise NotFoundError(f"Message with ID {message_id} not found")
        return message

    async def update_message(self, message_id: UUID, fields: Dict[str, Any]) -> Message:
        """
        Partially update a message

        Passing ttl_seconds recomputes the expiry from now, the same way
        create_message does.
        """
        updates: Dict[str, Any] = {}
        if fields.get("content") is not None:
            updates["content"] = fields["content"]
        if "ttl_seconds" in fields:
            updates["expires_at"] = self._expiry(fields["ttl_seconds"])
        if not updates:
            raise ValidationError("No fields to update")

        try:
            affected = await self.message_repo.update(message_id, updates)
            if affected == 0:
                raise NotFoundError(f"Message with ID {message_id} not found")
            return await self.get_message(message_id)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to update message {message_id}: {e}")
            raise InternalError(f"Failed to update message with ID {message_id}") from e

    async def delete_message(self, message_id: UUID) -> Dict[str, bool]:
        """Delete a message for good"""
        try:
            affected = await self.message_repo.delete(message_id)
        except Exception as e:
            logger.error(f"Failed to remove message {message_id}: {e}")
            raise InternalError(f"Failed to remove message with ID {message_id}") from e

        if affected == 0:
            raise NotFoundError(f"Message with ID {message_id} not found")
        return {"deleted": True}
