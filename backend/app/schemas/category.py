"""
Pydantic schemas for event categories.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class CategoryWithCountResponse(CategoryResponse):
    events_count: int = 0


class CategoryListResponse(BaseModel):
    items: list[CategoryWithCountResponse]
