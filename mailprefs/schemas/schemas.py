"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal


# ---- Customer ----
class ActionResponse(BaseModel):
    success: bool
    message: str
    email: Optional[str] = None
    cio_id: Optional[str] = None
    action: Optional[str] = None


class SubscriptionUpdateRequest(BaseModel):
    email: str = Field(..., min_length=3)
    action: Optional[str] = None
    subscriptions: Dict[str, Literal["true", "false", "none"]] = Field(..., min_length=1)


class UnsubscribeAllRequest(BaseModel):
    email: str = Field(..., min_length=3)
    action: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ---- Admin ----
class RecordOut(BaseModel):
    date: str
    email: str
    action: str


class ResultsResponse(BaseModel):
    summary: Dict[str, int]
    total: int
    records: List[RecordOut]


class ClearResponse(MessageResponse):
    deleted: int = 0
