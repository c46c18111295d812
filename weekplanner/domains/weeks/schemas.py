"""Week schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class WeekCreate(BaseModel):
    year: int
    numweek: int
    color: str = Field(max_length=64)
    description: str
    priority: int
    link: str = Field(max_length=2048)


class WeekReplace(WeekCreate):
    """Updates rewrite every field, so they carry the full field set."""

    id: str = Field(min_length=1)


class WeekId(BaseModel):
    id: str = Field(min_length=1)


class WeekListFilter(BaseModel):
    year: Optional[int] = None


class WeekResponse(BaseModel):
    id: str
    year: int
    numweek: int
    color: str
    description: str
    priority: int
    link: str

    model_config = {"from_attributes": True}
