"""
Conversation storage.

A user's own view of their conversation is oldest first. Every operator
listing is newest first.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gcx.db.models import Message, User

logger = structlog.get_logger()


async def create_message(db: AsyncSession, user_id: int, content: str, sender: str) -> Message:
    message = Message(
        user_id=user_id,
        content=content,
        sender=sender,
        created_at=datetime.now(timezone.utc),
    )
    db.add(message)
    await db.flush()
    logger.info("message_created", message_id=message.id, user_id=user_id, sender=sender)
    return message


async def list_conversation(db: AsyncSession, user_id: int, *, newest_first: bool = False) -> list[Message]:
    """Messages belonging to one user. Oldest first unless newest_first."""
    if newest_first:
        order = (Message.created_at.desc(), Message.id.desc())
    else:
        order = (Message.created_at.asc(), Message.id.asc())
    result = await db.execute(select(Message).where(Message.user_id == user_id).order_by(*order))
    return list(result.scalars().all())


async def list_all_messages(db: AsyncSession) -> list[tuple[Message, str]]:
    """Every message with its owner's email, newest first."""
    result = await db.execute(
        select(Message, User.email)
        .join(User, User.id == Message.user_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def delete_message(db: AsyncSession, message_id: int) -> bool:
    """Returns False if there was no such message."""
    result = await db.execute(delete(Message).where(Message.id == message_id).returning(Message.id))
    deleted = result.scalar_one_or_none() is not None
    if deleted:
        logger.info("message_deleted", message_id=message_id)
    return deleted
