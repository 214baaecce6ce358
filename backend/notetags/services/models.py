"""
Data models for the tag engine.

Uses Pydantic for validation and serialization.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

TagSort = Literal["usage", "alphabetical", "recent"]


class TagRecord(BaseModel):
    """Stored per-user tag with its counters"""
    user_id: str
    tag: str = Field(..., min_length=1, max_length=50)
    first_used: datetime
    last_used: datetime
    usage_count: int = Field(..., ge=1)


class TagSuggestion(BaseModel):
    """Autocomplete suggestion"""
    tag: str
    usage_count: int = Field(..., ge=1)
    last_used: datetime


class TagStatistics(BaseModel):
    """Row of the per-user tag statistics view"""
    tag: str
    usage_count: int = Field(..., ge=1)
    first_used: datetime
    last_used: datetime
    is_inactive: bool = Field(description="Not used within the inactivity window")


class ItemCreate(BaseModel):
    """Payload for creating an item"""
    title: str = Field(..., min_length=1, max_length=500)
    notes: str = Field(default="", max_length=100_000)


class NotesUpdate(BaseModel):
    """Payload for replacing an item's notes"""
    notes: str = Field(..., max_length=100_000)


class Item(BaseModel):
    """Item with free-text notes"""
    id: str
    user_id: str = Field(..., description="Clerk user ID")
    title: str
    notes: str = ""
    created_at: datetime
    updated_at: datetime
    tags: Optional[list[str]] = Field(None, description="Hashtags found in notes")
