"""
Topic backlog stored as a single FIFO record in the cache
"""
import logging
import random
import string
from typing import Any, List, Optional

from pydantic import ValidationError as SchemaValidationError

from app.exceptions import NotFoundError, StoreError, ValidationError
from app.schemas.backlog import BacklogItem, BacklogList
from app.utils.cache import CacheStore
from app.utils.clock import Clock, epoch_millis, parse_iso, to_iso, utc_now

logger = logging.getLogger(__name__)


class BacklogService:
    """
    Pending quiz topics submitted by users and operators

    The whole list lives under one key and is rewritten on every change.
    Items are kept sorted by addedAt (oldest first) and totalCount is
    recomputed from the items on each write.
    """

    BACKLOG_KEY = "quiz_backlog"

    def __init__(self, store: CacheStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    @staticmethod
    def _new_id(now) -> str:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        return f"backlog_{epoch_millis(now)}_{suffix}"

    def _load(self, raw: Optional[Any]) -> BacklogList:
        if raw is None:
            return BacklogList()
        try:
            return BacklogList.model_validate(raw)
        except SchemaValidationError as e:
            raise StoreError(f"Corrupt backlog record under {self.BACKLOG_KEY}", details=str(e)) from e

    def _build(self, items: List[BacklogItem]) -> BacklogList:
        ordered = sorted(items, key=lambda item: parse_iso(item.addedAt))
        return BacklogList(
            items=ordered,
            totalCount=len(ordered),
            lastUpdated=to_iso(self.clock())
        )

    def enqueue(self, topic: str, added_by: str = "user", priority: int = 0) -> BacklogItem:
        """
        Append a topic to the backlog

        Raises:
            ValidationError: topic is empty after trimming
        """
        cleaned = (topic or "").strip()
        if not cleaned:
            raise ValidationError("Topic cannot be empty")

        now = self.clock()
        item = BacklogItem(
            id=self._new_id(now),
            topic=cleaned,
            addedBy=added_by,
            addedAt=to_iso(now),
            priority=priority
        )

        def append(current):
            backlog = self._load(current)
            return self._build(backlog.items + [item]).model_dump()

        self.store.update(self.BACKLOG_KEY, append)
        logger.info(f"Added to backlog: \"{cleaned}\" (by {added_by})")
        return item

    def list(self) -> BacklogList:
        """Current backlog; an absent record reads as an empty list"""
        return self._load(self.store.get(self.BACKLOG_KEY))

    def peek_oldest(self) -> Optional[BacklogItem]:
        backlog = self.list()
        if not backlog.items:
            return None
        return backlog.items[0]

    def remove_by_id(self, item_id: str) -> BacklogItem:
        """
        Remove one item

        Raises:
            NotFoundError: no backlog record, or no item with this id
        """
        removed = None

        def drop(current):
            nonlocal removed
            if current is None:
                raise NotFoundError("No backlog found")
            backlog = self._load(current)
            remaining = [item for item in backlog.items if item.id != item_id]
            if len(remaining) == len(backlog.items):
                raise NotFoundError(f"Backlog item {item_id} not found")
            removed = next(item for item in backlog.items if item.id == item_id)
            return self._build(remaining).model_dump()

        self.store.update(self.BACKLOG_KEY, drop)
        logger.info(f"Removed backlog item: \"{removed.topic}\"")
        return removed

    def clear(self) -> None:
        """Delete the backlog record; clearing an empty backlog is fine"""
        self.store.delete(self.BACKLOG_KEY)
        logger.info("Cleared all backlog items")
