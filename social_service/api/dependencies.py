"""
FastAPI dependencies
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..application.access import resolve_identity
from ..application.services import UserService, PostService, MessageService
from ..domain.models import Identity
from ..infrastructure.database.connection import db_connection, DatabaseConnection
from ..infrastructure.database.repositories import (
    UserRepository,
    PostRepository,
    ImageRepository,
    MessageRepository,
)
from ..infrastructure.storage import StorageManager, S3MediaUploader


# Security scheme
security = HTTPBearer(auto_error=False)

_storage: Optional[StorageManager] = None


def get_storage() -> StorageManager:
    """Shared storage client, created on first use"""
    global _storage
    if _storage is None:
        _storage = StorageManager()
    return _storage


async def get_db_connection_dep() -> DatabaseConnection:
    """Get database connection dependency"""
    return db_connection


async def get_user_service(
    db: DatabaseConnection = Depends(get_db_connection_dep)
) -> UserService:
    """Get user service dependency"""
    return UserService(UserRepository(db), PostRepository(db), MessageRepository(db))


async def get_post_service(
    db: DatabaseConnection = Depends(get_db_connection_dep)
) -> PostService:
    """Get post service dependency"""
    return PostService(
        PostRepository(db),
        ImageRepository(db),
        S3MediaUploader(get_storage())
    )


async def get_message_service(
    db: DatabaseConnection = Depends(get_db_connection_dep)
) -> MessageService:
    """Get message service dependency"""
    return MessageService(MessageRepository(db))


def _token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if not credentials:
        return None
    return credentials.credentials


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Identity:
    """
    Get current authenticated identity from JWT token

    Raises:
        UnauthenticatedError: If the token is missing, invalid or expired
    """
    return resolve_identity(_token(credentials), optional=False)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Identity]:
    """
    Get current authenticated identity from JWT token (optional)

    Returns None when no token is sent; a bad token is still rejected.
    """
    return resolve_identity(_token(credentials), optional=True)
