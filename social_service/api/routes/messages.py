"""
Message routes
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ...schemas import MessageCreate, MessageUpdate, MessageResponse, DeletedResponse
from ...application.services import MessageService
from ...domain.models import Identity
from ..dependencies import get_message_service, get_current_user


router = APIRouter(prefix="/messages", tags=["Messages"])


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(
    message_data: MessageCreate,
    current_user: Identity = Depends(get_current_user),
    message_service: MessageService = Depends(get_message_service)
):
    """
    Create a message

    - **content**: Message text
    - **ttl_seconds**: Optional lifetime; omitted or 0 never expires
    - Requires authentication
    """
    message = await message_service.create_message(
        owner_id=current_user.id,
        content=message_data.content,
        ttl_seconds=message_data.ttl_seconds
    )
    return MessageResponse.model_validate(message)


@router.get("", response_model=List[MessageResponse])
async def list_messages(message_service: MessageService = Depends(get_message_service)):
    """List messages that have not expired"""
    messages = await message_service.list_messages()
    return [MessageResponse.model_validate(message) for message in messages]


@router.get("/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    message_service: MessageService = Depends(get_message_service)
):
    """Get a message by ID"""
    message = await message_service.get_message(message_id)
    return MessageResponse.model_validate(message)


@router.put("/{message_id}", response_model=MessageResponse)
async def update_message(
    message_id: UUID,
    message_data: MessageUpdate,
    message_service: MessageService = Depends(get_message_service)
):
    """
    Update a message

    - **content**: New text
    - **ttl_seconds**: New lifetime counted from now
    """
    message = await message_service.update_message(
        message_id, message_data.model_dump(exclude_unset=True)
    )
    return MessageResponse.model_validate(message)


@router.delete("/{message_id}", response_model=DeletedResponse)
async def delete_message(
    message_id: UUID,
    message_service: MessageService = Depends(get_message_service)
):
    """Delete a message"""
    return await message_service.delete_message(message_id)
