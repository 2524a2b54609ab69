"""
Topic backlog API endpoints
"""
from fastapi import APIRouter, Depends
import logging

from app.api.deps import enforce_backlog_rate_limit, get_backlog_service
from app.schemas.backlog import (
    BacklogAddRequest,
    BacklogItemResponse,
    BacklogListResponse,
)
from app.schemas.quiz import MessageResponse
from app.services.backlog_service import BacklogService
from app.utils.clock import to_iso, utc_now

# Plain def handlers, run in the threadpool (redis-py is blocking)
router = APIRouter(prefix="/backlog", tags=["backlog"])
logger = logging.getLogger(__name__)


@router.post(
    "/add",
    response_model=BacklogItemResponse,
    dependencies=[Depends(enforce_backlog_rate_limit)]
)
def add_to_backlog(
    request: BacklogAddRequest,
    backlog: BacklogService = Depends(get_backlog_service)
):
    """
    Queue a topic for future quizzes

    - Rejects empty topics with 400
    - Rate limited per client
    """
    item = backlog.enqueue(request.topic, added_by=request.addedBy, priority=request.priority)

    return BacklogItemResponse(
        item=item,
        message=f"Added \"{item.topic}\" to quiz backlog",
        timestamp=to_iso(utc_now())
    )


@router.get("", response_model=BacklogListResponse)
def get_backlog(backlog: BacklogService = Depends(get_backlog_service)):
    """List pending topics, oldest first"""
    backlog_list = backlog.list()

    return BacklogListResponse(
        items=backlog_list.items,
        count=backlog_list.totalCount,
        timestamp=to_iso(utc_now())
    )


@router.get("/next", response_model=BacklogItemResponse)
def get_next_backlog_item(backlog: BacklogService = Depends(get_backlog_service)):
    """Oldest pending topic, or item: null when the backlog is empty"""
    return BacklogItemResponse(
        item=backlog.peek_oldest(),
        timestamp=to_iso(utc_now())
    )


@router.delete("/{item_id}", response_model=BacklogItemResponse)
def remove_backlog_item(
    item_id: str,
    backlog: BacklogService = Depends(get_backlog_service)
):
    item = backlog.remove_by_id(item_id)

    return BacklogItemResponse(
        item=item,
        message=f"Removed \"{item.topic}\" from quiz backlog",
        timestamp=to_iso(utc_now())
    )


@router.delete("", response_model=MessageResponse)
def clear_backlog(backlog: BacklogService = Depends(get_backlog_service)):
    backlog.clear()

    return MessageResponse(
        message="Cleared all backlog items",
        timestamp=to_iso(utc_now())
    )
