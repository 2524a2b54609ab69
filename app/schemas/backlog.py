"""
Pydantic schemas for the topic backlog
"""
from pydantic import BaseModel, Field
from typing import List, Optional


class BacklogItem(BaseModel):
    """Pending quiz topic; addedAt is the only ordering key"""
    id: str
    topic: str
    addedBy: str
    addedAt: str
    priority: int = 0


class BacklogList(BaseModel):
    """Record stored under quiz_backlog"""
    items: List[BacklogItem] = Field(default_factory=list)
    totalCount: int = 0
    lastUpdated: Optional[str] = None


class BacklogAddRequest(BaseModel):
    """Body of POST /backlog/add"""
    topic: str = Field(..., max_length=200, description="Topic to queue")
    addedBy: str = Field("api", max_length=100, description="Who submitted the topic")
    priority: int = Field(0, description="Recorded with the item, not used for ordering")


class BacklogItemResponse(BaseModel):
    success: bool = True
    item: Optional[BacklogItem] = None
    message: Optional[str] = None
    timestamp: str


class BacklogListResponse(BaseModel):
    success: bool = True
    items: List[BacklogItem]
    count: int
    timestamp: str
