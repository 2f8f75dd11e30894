"""Operator router — all /api/v1/admin/* endpoints.

Status updates and deletions always consume an admin OTP. Listings and
replies go through operator_access, which is open unless GCX_ADMIN_GATE_ALL
is set.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.auth.schemas import UserResponse
from gcx.auth.service import delete_user, get_user_by_id, list_users
from gcx.database import get_session
from gcx.db.models import SENDER_ADMIN
from gcx.dependencies import get_broadcaster
from gcx.errors import NotFoundError
from gcx.events.broadcaster import EventBroadcaster
from gcx.events.schemas import EVENT_INFO
from gcx.messages.schemas import MessageCreateRequest, MessageResponse
from gcx.messages.service import create_message, delete_message, list_all_messages, list_conversation
from gcx.otp.guard import AuthContext, operator_access, require_admin_otp
from gcx.responses import ApiResponse, ok
from gcx.submissions.schemas import StatusUpdateRequest, SubmissionResponse
from gcx.submissions.service import (
    get_submission_with_email,
    list_all_submissions,
    set_submission_status,
)
from gcx.submissions.status import parse_status

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


def _submission_response(submission: Any, email: str | None) -> SubmissionResponse:
    return SubmissionResponse.model_validate(submission).model_copy(update={"user_email": email})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=ApiResponse[list[UserResponse]])
async def admin_list_users(
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[UserResponse]]:
    users = await list_users(db)
    return ok([UserResponse.model_validate(u) for u in users])


@router.delete("/users/{user_id}", response_model=ApiResponse[dict[str, int]])
async def admin_delete_user(
    user_id: int,
    _auth: AuthContext = Depends(require_admin_otp),
    db: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ApiResponse[dict[str, int]]:
    """Delete a user together with their messages and submissions."""
    if not await delete_user(db, user_id):
        raise NotFoundError("User not found")
    await db.commit()
    logger.info("user_deleted", user_id=user_id)
    await broadcaster.emit(EVENT_INFO, "User deleted", {"user_id": user_id}, source="admin")
    return ok({"id": user_id})


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


@router.get("/submissions", response_model=ApiResponse[list[SubmissionResponse]])
async def admin_list_submissions(
    status: str | None = Query(None),
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[SubmissionResponse]]:
    """All claims with owner email, newest first. Optional exact status filter."""
    status_filter = parse_status(status).value if status is not None else None
    rows = await list_all_submissions(db, status=status_filter)
    return ok([_submission_response(s, email) for s, email in rows])


@router.get("/submissions/{submission_id}", response_model=ApiResponse[SubmissionResponse])
async def admin_get_submission(
    submission_id: int,
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[SubmissionResponse]:
    row = await get_submission_with_email(db, submission_id)
    if row is None:
        raise NotFoundError("Submission not found")
    return ok(_submission_response(*row))


@router.patch("/submissions/{submission_id}/status", response_model=ApiResponse[SubmissionResponse])
async def admin_update_status(
    submission_id: int,
    body: StatusUpdateRequest,
    _auth: AuthContext = Depends(require_admin_otp),
    db: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ApiResponse[SubmissionResponse]:
    """Move a claim to any of the five statuses."""
    new_status = parse_status(body.status)

    existing = await get_submission_with_email(db, submission_id)
    if existing is None:
        raise NotFoundError("Submission not found")
    previous_status = existing[0].status

    submission = await set_submission_status(db, submission_id, new_status.value)
    if submission is None:
        raise NotFoundError("Submission not found")
    await db.commit()
    logger.info("submission_status_updated", submission_id=submission_id, status=new_status.value)

    await broadcaster.emit(
        EVENT_INFO,
        "Submission status updated",
        {"submission_id": submission_id, "from": previous_status, "to": new_status.value},
        source="admin",
    )
    return ok(_submission_response(submission, existing[1]))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@router.get("/messages", response_model=ApiResponse[list[MessageResponse]])
async def admin_list_messages(
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[MessageResponse]]:
    """Every message across users, newest first."""
    rows = await list_all_messages(db)
    return ok([
        MessageResponse.model_validate(m).model_copy(update={"user_email": email}) for m, email in rows
    ])


@router.get("/users/{user_id}/messages", response_model=ApiResponse[list[MessageResponse]])
async def admin_user_messages(
    user_id: int,
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
) -> ApiResponse[list[MessageResponse]]:
    """One user's conversation, newest first."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    messages = await list_conversation(db, user_id, newest_first=True)
    return ok([
        MessageResponse.model_validate(m).model_copy(update={"user_email": user.email}) for m in messages
    ])


@router.post("/users/{user_id}/messages", response_model=ApiResponse[MessageResponse], status_code=201)
async def admin_reply(
    user_id: int,
    body: MessageCreateRequest,
    _access: AuthContext | None = Depends(operator_access),
    db: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ApiResponse[MessageResponse]:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    message = await create_message(db, user_id, body.content, SENDER_ADMIN)
    await db.commit()
    await broadcaster.emit(
        EVENT_INFO, "Admin reply sent", {"user_id": user_id, "message_id": message.id}, source="admin"
    )
    return ok(MessageResponse.model_validate(message).model_copy(update={"user_email": user.email}))


@router.delete("/messages/{message_id}", response_model=ApiResponse[dict[str, int]])
async def admin_delete_message(
    message_id: int,
    _auth: AuthContext = Depends(require_admin_otp),
    db: AsyncSession = Depends(get_session),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
) -> ApiResponse[dict[str, int]]:
    if not await delete_message(db, message_id):
        raise NotFoundError("Message not found")
    await db.commit()
    await broadcaster.emit(EVENT_INFO, "Message deleted", {"message_id": message_id}, source="admin")
    return ok({"id": message_id})
