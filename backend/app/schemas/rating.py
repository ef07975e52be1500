"""
Pydantic schemas for event ratings.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RatingCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class RatingUpdate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


class RatingResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    rating: int
    comment: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingListResponse(BaseModel):
    items: list[RatingResponse]
    total: int
    page: int
    page_size: int


class RatingSummary(BaseModel):
    event_id: int
    count: int
    average: Optional[float] = None
    distribution: dict[int, int]
