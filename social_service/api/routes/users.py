"""
User routes
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ...schemas import (
    UserRegister, UserLogin, TokenResponse, UserPublic,
    UserCredentialsResponse, PostResponse, MessageResponse,
)
from ...application.services import UserService
from ...domain.models import Identity
from ..dependencies import get_user_service, get_current_user


router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/registration", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    user_service: UserService = Depends(get_user_service)
):
    """
    Register a new user

    - **username**: Unique username
    - **email**: Unique email address
    - **first_name** / **last_name**: Names
    - **password**: Strong password (min 8 characters, upper and lower case, and a digit or symbol)
    """
    user = await user_service.register(
        username=user_data.username,
        email=user_data.email,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        password=user_data.password
    )
    return user.to_public()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    user_service: UserService = Depends(get_user_service)
):
    """
    Login with email or username and password

    - **email** or **username**: At least one is required
    - **password**: User password
    """
    token = await user_service.authenticate(
        password=credentials.password,
        email=credentials.email,
        username=credentials.username
    )
    return TokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in
    )


@router.get("/credentials", response_model=UserCredentialsResponse)
async def get_credentials(
    current_user: Identity = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """
    Get the current user with its posts and messages

    - Requires authentication
    """
    profile = await user_service.get_credentials(current_user.id)
    return UserCredentialsResponse(
        **profile.user.to_public(),
        posts=[PostResponse.model_validate(post) for post in profile.posts],
        messages=[MessageResponse.model_validate(message) for message in profile.messages]
    )


@router.get("", response_model=List[UserPublic])
async def list_users(user_service: UserService = Depends(get_user_service)):
    """List all users"""
    users = await user_service.list_users()
    return [user.to_public() for user in users]


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: UUID,
    user_service: UserService = Depends(get_user_service)
):
    """Get a user by ID"""
    user = await user_service.get_user(user_id)
    return user.to_public()


@router.post("/delete/{username}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    username: str,
    user_service: UserService = Depends(get_user_service)
):
    """Delete a user and everything it owns; unknown usernames are ignored"""
    await user_service.delete_user(username)
