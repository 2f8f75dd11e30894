"""Message router — user-facing /api/v1/messages/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.service import get_user_by_email
from gcx.database import get_session
from gcx.db.models import SENDER_USER, User
from gcx.errors import ForbiddenError, NotFoundError
from gcx.messages.schemas import MessageCreateRequest, MessageResponse
from gcx.messages.service import create_message, list_conversation
from gcx.otp.guard import AuthContext, require_user_otp
from gcx.responses import ApiResponse, ok

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


async def _owner(db: AsyncSession, auth: AuthContext, user_id: int) -> User:
    """Resolve the caller fresh from the store and check they own user_id."""
    user = await get_user_by_email(db, auth.email or "")
    if user is None:
        raise NotFoundError("User not found")
    if user.id != user_id:
        raise ForbiddenError("You can only access your own messages")
    return user


@router.get("/{user_id}", response_model=ApiResponse[list[MessageResponse]])
async def read_conversation(
    user_id: int,
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[MessageResponse]]:
    """The caller's conversation, oldest first."""
    await _owner(db, auth, user_id)
    messages = await list_conversation(db, user_id)
    return ok([MessageResponse.model_validate(m) for m in messages])


@router.post("/{user_id}", response_model=ApiResponse[MessageResponse], status_code=201)
async def send_message(
    user_id: int,
    body: MessageCreateRequest,
    auth: AuthContext = Depends(require_user_otp),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[MessageResponse]:
    await _owner(db, auth, user_id)
    message = await create_message(db, user_id, body.content, SENDER_USER)
    await db.commit()
    return ok(MessageResponse.model_validate(message))
