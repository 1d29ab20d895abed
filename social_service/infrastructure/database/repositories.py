"""
Repository implementations - Data access layer
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID, uuid4
import asyncpg

from ...domain.models import User, Post, Image, Message
from ...domain.repositories import (
    IUserRepository,
    IPostRepository,
    IImageRepository,
    IMessageRepository,
)
from .connection import DatabaseConnection, affected_rows


USER_COLUMNS = "id, username, email, first_name, last_name, password_hash, created_at, updated_at"

OWNER_COLUMNS = """
    u.username AS owner_username, u.email AS owner_email,
    u.first_name AS owner_first_name, u.last_name AS owner_last_name,
    u.created_at AS owner_created_at, u.updated_at AS owner_updated_at
"""

POST_COLUMNS = """
    p.id, p.title, p.body, p.is_private, p.metadata, p.tags, p.user_id,
    p.deleted_at, p.created_at, p.updated_at
"""

MESSAGE_COLUMNS = "m.id, m.content, m.user_id, m.expires_at, m.created_at, m.updated_at"

POST_UPDATABLE_FIELDS = frozenset({"title", "body", "is_private", "metadata", "tags"})
MESSAGE_UPDATABLE_FIELDS = frozenset({"content", "expires_at"})


def _owner_from_row(data: Dict[str, Any]) -> User:
    """Pop the joined owner columns off a row dict"""
    return User(
        id=data["user_id"],
        username=data.pop("owner_username"),
        email=data.pop("owner_email"),
        first_name=data.pop("owner_first_name"),
        last_name=data.pop("owner_last_name"),
        created_at=data.pop("owner_created_at"),
        updated_at=data.pop("owner_updated_at"),
    )


def _build_set_clause(updates: Dict[str, Any], allowed: frozenset, now: datetime):
    """Build a dynamic SET clause, returns (clause, values)"""
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    update_fields = []
    values = []
    param_count = 1

    for field, value in updates.items():
        update_fields.append(f"{field} = ${param_count}")
        values.append(value)
        param_count += 1

    update_fields.append(f"updated_at = ${param_count}")
    values.append(now)

    return ", ".join(update_fields), values


class UserRepository(IUserRepository):
    """User repository implementation using PostgreSQL"""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def _row_to_user(self, row: Optional[asyncpg.Record]) -> Optional[User]:
        """Convert database row to User model"""
        if not row:
            return None
        return User(**dict(row))

    async def create(self, username: str, email: str, password_hash: str,
                     first_name: Optional[str] = None,
                     last_name: Optional[str] = None) -> User:
        """Create a new user"""
        row = await self.db.fetch_one(
            f"""
            INSERT INTO users (id, username, email, first_name, last_name, password_hash)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {USER_COLUMNS}
            """,
            uuid4(),
            username,
            email,
            first_name,
            last_name,
            password_hash
        )
        return self._row_to_user(row)

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        """Find user by ID"""
        row = await self.db.fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id
        )
        return self._row_to_user(row)

    async def find_by_login(self, email: Optional[str] = None,
                            username: Optional[str] = None) -> Optional[User]:
        """Find user matching every identifier given"""
        conditions = []
        values = []
        if email:
            values.append(email)
            conditions.append(f"email = ${len(values)}")
        if username:
            values.append(username)
            conditions.append(f"username = ${len(values)}")
        if not conditions:
            return None

        row = await self.db.fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE {' AND '.join(conditions)}",
            *values
        )
        return self._row_to_user(row)

    async def find_all(self) -> List[User]:
        """List every user"""
        rows = await self.db.fetch_all(
            f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at ASC"
        )
        return [self._row_to_user(row) for row in rows]

    async def exists_by_username_or_email(self, username: str, email: str) -> bool:
        """Check if user exists by username or email"""
        row = await self.db.fetch_one(
            "SELECT id FROM users WHERE username = $1 OR email = $2",
            username,
            email
        )
        return row is not None

    async def delete_by_username(self, username: str) -> int:
        """Delete a user, posts and messages go with it"""
        status = await self.db.execute(
            "DELETE FROM users WHERE username = $1",
            username
        )
        return affected_rows(status)


class ImageRepository(IImageRepository):
    """Image repository implementation using PostgreSQL"""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def _row_to_image(self, row: Optional[asyncpg.Record]) -> Optional[Image]:
        """Convert database row to Image model"""
        if not row:
            return None
        return Image(**dict(row))

    async def create(self, post_id: UUID, url: str) -> Image:
        """Attach an image URL to a post"""
        row = await self.db.fetch_one(
            """
            INSERT INTO images (id, url, post_id)
            VALUES ($1, $2, $3)
            RETURNING id, url, post_id, created_at
            """,
            uuid4(),
            url,
            post_id
        )
        return self._row_to_image(row)

    async def find_by_post_ids(self, post_ids: List[UUID]) -> Dict[UUID, List[Image]]:
        """Find images for several posts, grouped by post ID"""
        grouped: Dict[UUID, List[Image]] = {post_id: [] for post_id in post_ids}
        if not post_ids:
            return grouped

        rows = await self.db.fetch_all(
            """
            SELECT id, url, post_id, created_at
            FROM images
            WHERE post_id = ANY($1::uuid[])
            ORDER BY created_at ASC
            """,
            post_ids
        )
        for row in rows:
            image = self._row_to_image(row)
            grouped.setdefault(image.post_id, []).append(image)
        return grouped


class PostRepository(IPostRepository):
    """Post repository implementation using PostgreSQL

    Soft-deleted posts are filtered with an explicit `deleted_at IS NULL`
    at every read except find_by_id_with_deleted.
    """

    def __init__(self, db: DatabaseConnection):
        self.db = db
        self.images = ImageRepository(db)

    def _row_to_post(self, row: Optional[asyncpg.Record]) -> Optional[Post]:
        """Convert a posts/users join row to Post model"""
        if not row:
            return None
        data = dict(row)
        owner = _owner_from_row(data)
        data["tags"] = list(data["tags"] or [])
        data["metadata"] = data["metadata"] or {}
        return Post(owner=owner, **data)

    async def _select(self, where: str, *args) -> List[Post]:
        """Load posts with owner and images"""
        rows = await self.db.fetch_all(
            f"""
            SELECT {POST_COLUMNS}, {OWNER_COLUMNS}
            FROM posts p
            JOIN users u ON u.id = p.user_id
            WHERE {where}
            ORDER BY p.created_at DESC
            """,
            *args
        )
        posts = [self._row_to_post(row) for row in rows]

        images = await self.images.find_by_post_ids([post.id for post in posts])
        for post in posts:
            post.images = images.get(post.id, [])
        return posts

    async def create(self, user_id: UUID, title: str, body: str, is_private: bool,
                     metadata: Dict[str, Any], tags: List[str]) -> Post:
        """Create a new post"""
        row = await self.db.fetch_one(
            """
            INSERT INTO posts (id, title, body, is_private, metadata, tags, user_id)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING id, title, body, is_private, metadata, tags, user_id,
                      deleted_at, created_at, updated_at
            """,
            uuid4(),
            title,
            body,
            is_private,
            metadata,
            tags,
            user_id
        )
        data = dict(row)
        data["tags"] = list(data["tags"] or [])
        return Post(**data)

    async def find_by_id(self, post_id: UUID, include_private: bool = True) -> Optional[Post]:
        """Find a live post by ID, with owner and images"""
        where = "p.id = $1 AND p.deleted_at IS NULL"
        if not include_private:
            where += " AND p.is_private = false"
        posts = await self._select(where, post_id)
        return posts[0] if posts else None

    async def find_by_id_with_deleted(self, post_id: UUID) -> Optional[Post]:
        """Find a post by ID whether or not it is soft-deleted"""
        posts = await self._select("p.id = $1", post_id)
        return posts[0] if posts else None

    async def find_public(self) -> List[Post]:
        """List live public posts"""
        return await self._select("p.is_private = false AND p.deleted_at IS NULL")

    async def find_by_user_id(self, user_id: UUID) -> List[Post]:
        """List a user's live posts regardless of privacy"""
        return await self._select("p.user_id = $1 AND p.deleted_at IS NULL", user_id)

    async def update(self, post_id: UUID, updates: Dict[str, Any]) -> int:
        """Update a live post"""
        set_clause, values = _build_set_clause(
            updates, POST_UPDATABLE_FIELDS, datetime.utcnow()
        )
        values.append(post_id)
        status = await self.db.execute(
            f"UPDATE posts SET {set_clause} WHERE id = ${len(values)} AND deleted_at IS NULL",
            *values
        )
        return affected_rows(status)

    async def soft_delete(self, post_id: UUID, deleted_at: datetime) -> int:
        """Mark a live post as deleted"""
        status = await self.db.execute(
            "UPDATE posts SET deleted_at = $1 WHERE id = $2 AND deleted_at IS NULL",
            deleted_at,
            post_id
        )
        return affected_rows(status)

    async def restore(self, post_id: UUID) -> int:
        """Clear the delete timestamp"""
        status = await self.db.execute(
            "UPDATE posts SET deleted_at = NULL WHERE id = $1",
            post_id
        )
        return affected_rows(status)


class MessageRepository(IMessageRepository):
    """Message repository implementation using PostgreSQL"""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def _row_to_message(self, row: Optional[asyncpg.Record]) -> Optional[Message]:
        """Convert a messages/users join row to Message model"""
        if not row:
            return None
        data = dict(row)
        owner = _owner_from_row(data)
        return Message(owner=owner, **data)

    async def _select(self, where: str, *args) -> List[Message]:
        """Load messages with their owner"""
        rows = await self.db.fetch_all(
            f"""
            SELECT {MESSAGE_COLUMNS}, {OWNER_COLUMNS}
            FROM messages m
            JOIN users u ON u.id = m.user_id
            WHERE {where}
            ORDER BY m.created_at ASC
            """,
            *args
        )
        return [self._row_to_message(row) for row in rows]

    async def create(self, user_id: UUID, content: str,
                     expires_at: Optional[datetime]) -> Message:
        """Create a new message"""
        row = await self.db.fetch_one(
            """
            INSERT INTO messages (id, content, expires_at, user_id)
            VALUES ($1, $2, $3, $4)
            RETURNING id, content, user_id, expires_at, created_at, updated_at
            """,
            uuid4(),
            content,
            expires_at,
            user_id
        )
        return Message(**dict(row))

    async def find_by_id(self, message_id: UUID) -> Optional[Message]:
        """Find message by ID, expired or not"""
        messages = await self._select("m.id = $1", message_id)
        return messages[0] if messages else None

    async def find_active(self, now: datetime) -> List[Message]:
        """List messages that have not expired at `now`"""
        return await self._select("(m.expires_at IS NULL OR m.expires_at > $1)", now)

    async def find_by_user_id(self, user_id: UUID) -> List[Message]:
        """List every message of a user"""
        return await self._select("m.user_id = $1", user_id)

    async def update(self, message_id: UUID, updates: Dict[str, Any]) -> int:
        """Update a message"""
        set_clause, values = _build_set_clause(
            updates, MESSAGE_UPDATABLE_FIELDS, datetime.utcnow()
        )
        values.append(message_id)
        status = await self.db.execute(
            f"UPDATE messages SET {set_clause} WHERE id = ${len(values)}",
            *values
        )
        return affected_rows(status)

    async def delete(self, message_id: UUID) -> int:
        """Delete a message"""
        status = await self.db.execute("DELETE FROM messages WHERE id = $1", message_id)
        return affected_rows(status)
