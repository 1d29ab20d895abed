"""
Post routes
"""
import json
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ...config import settings
from ...schemas import PostResponse, PostUpdate, PostPrivacyUpdate, DeletedResponse
from ...application.services import PostService
from ...domain.exceptions import ValidationError
from ...domain.models import Identity, MediaFile
from ..dependencies import get_post_service, get_current_user, get_current_user_optional


router = APIRouter(prefix="/posts", tags=["Posts"])


def get_file_extension(filename: str) -> str:
    """Get file extension"""
    return f".{filename.rsplit('.', 1)[-1].lower()}" if '.' in filename else ""


def parse_metadata(raw: Optional[str]) -> dict:
    """Parse the JSON object sent in the metadata form field"""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError("metadata must be a JSON object")
    if not isinstance(value, dict):
        raise ValidationError("metadata must be a JSON object")
    return value


async def read_images(images: List[UploadFile]) -> List[MediaFile]:
    """Validate uploaded images and read them into memory"""
    if len(images) > settings.MAX_IMAGES_PER_POST:
        raise ValidationError(
            f"A post can have at most {settings.MAX_IMAGES_PER_POST} images"
        )

    files = []
    for image in images:
        filename = image.filename or ""
        if get_file_extension(filename) not in settings.ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(
                f"Unsupported file type. Allowed: {settings.ALLOWED_IMAGE_EXTENSIONS}"
            )
        files.append(MediaFile(
            filename=filename,
            content_type=image.content_type or "application/octet-stream",
            data=await image.read()
        ))
    return files


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    title: str = Form(..., min_length=1),
    body: str = Form(..., min_length=1),
    is_private: bool = Form(False),
    metadata: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: Identity = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    Create a new post

    - **title** / **body**: Post content
    - **is_private**: Hide the post from anonymous readers
    - **metadata**: Optional JSON object
    - **tags**: Optional list of tags
    - **images**: Up to 4 image files
    - Requires authentication
    """
    post = await post_service.create_post(
        owner_id=current_user.id,
        title=title,
        body=body,
        is_private=is_private,
        metadata=parse_metadata(metadata),
        tags=tags or [],
        images=await read_images(images or [])
    )
    return PostResponse.model_validate(post)


@router.get("", response_model=List[PostResponse])
async def list_posts(post_service: PostService = Depends(get_post_service)):
    """List public posts"""
    posts = await post_service.list_posts()
    return [PostResponse.model_validate(post) for post in posts]


@router.get("/user", response_model=List[PostResponse])
async def list_my_posts(
    current_user: Identity = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    List the current user's posts, private ones included

    - Requires authentication
    """
    posts = await post_service.list_user_posts(current_user.id)
    return [PostResponse.model_validate(post) for post in posts]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: UUID,
    current_user: Optional[Identity] = Depends(get_current_user_optional),
    post_service: PostService = Depends(get_post_service)
):
    """
    Get post by ID

    - Authentication optional; anonymous readers only see public posts
    """
    post = await post_service.get_post(post_id, viewer=current_user)
    return PostResponse.model_validate(post)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: UUID,
    post_data: PostUpdate,
    post_service: PostService = Depends(get_post_service)
):
    """Update title, body, privacy, metadata or tags of a post"""
    post = await post_service.update_post(
        post_id, post_data.model_dump(exclude_unset=True)
    )
    return PostResponse.model_validate(post)


@router.delete("/{post_id}", response_model=DeletedResponse)
async def delete_post(
    post_id: UUID,
    post_service: PostService = Depends(get_post_service)
):
    """Soft-delete a post; it can be restored for 24 hours"""
    return await post_service.soft_delete(post_id)


@router.put("/{post_id}/restore", response_model=PostResponse)
async def restore_post(
    post_id: UUID,
    current_user: Identity = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    Restore a soft-deleted post

    - Requires authentication
    """
    post = await post_service.restore(post_id)
    return PostResponse.model_validate(post)


@router.put("/{post_id}/private", response_model=PostResponse)
async def update_post_privacy(
    post_id: UUID,
    privacy: PostPrivacyUpdate,
    current_user: Identity = Depends(get_current_user),
    post_service: PostService = Depends(get_post_service)
):
    """
    Make a post private or public

    - Requires authentication
    """
    post = await post_service.set_privacy(post_id, privacy.is_private)
    return PostResponse.model_validate(post)
