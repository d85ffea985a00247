"""Pydantic schemas for Category endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class CategoryCreateRequest(BaseModel):
    """Request body for POST /categories."""
    name: str = Field(min_length=1, max_length=100)
    color: str = Field("#3B82F6", pattern=HEX_COLOR)


class CategoryUpdateRequest(BaseModel):
    """Request body for PATCH /categories/{id}."""
    name: str | None = Field(None, min_length=1, max_length=100)
    color: str | None = Field(None, pattern=HEX_COLOR)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    color: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CategorySummary(BaseModel):
    """Category fields embedded in transaction listings."""
    id: uuid.UUID
    name: str
    color: str

    model_config = {"from_attributes": True}
