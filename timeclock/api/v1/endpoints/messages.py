"""
Broadcast messages — admins post, every employee reads.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from timeclock.api.v1.deps import get_current_active_employee, get_store, require_admin
from timeclock.schemas.employee import MessageCreate, MessageRead
from timeclock.store.document_store import DocumentStore
from timeclock.store.records import EmployeeData, MessageData

router = APIRouter(prefix="/messages", tags=["messages"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[MessageRead])
async def list_messages(
    store: DocumentStore = Depends(get_store),
    _employee: EmployeeData = Depends(get_current_active_employee),
) -> list[MessageData]:
    """All broadcast messages, newest first."""
    return await store.list_messages()


@router.post("", response_model=MessageRead, status_code=201)
async def create_message(
    body: MessageCreate,
    store: DocumentStore = Depends(get_store),
    _admin: EmployeeData = Depends(require_admin),
) -> MessageData:
    message = await store.add_message(
        MessageData(
            sender=(body.sender or "Admin").strip() or "Admin",
            message=body.message,
            timestamp=datetime.now(timezone.utc),
        )
    )
    logger.info("Broadcast message %s from %s", message.id, message.sender)
    return message
