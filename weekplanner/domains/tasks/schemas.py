"""Task schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

_REQUIRED_FIELDS = (
    "yearweek",
    "dayofweek",
    "name",
    "description",
    "color",
    "time_start",
    "time_end",
    "finished",
    "priority",
)


class TaskCreate(BaseModel):
    yearweek: str = Field(min_length=1, max_length=16)
    dayofweek: str = Field(min_length=1, max_length=16)
    name: str = Field(min_length=1, max_length=255)
    description: str
    color: str = Field(max_length=64)
    time_start: str = Field(max_length=16)
    time_end: str = Field(max_length=16)
    finished: int
    priority: int
    file: Optional[str] = Field(default=None, max_length=255)


class TaskUpdate(BaseModel):
    """Partial update: only fields present in the input are applied."""

    yearweek: Optional[str] = Field(default=None, min_length=1, max_length=16)
    dayofweek: Optional[str] = Field(default=None, min_length=1, max_length=16)
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=64)
    time_start: Optional[str] = Field(default=None, max_length=16)
    time_end: Optional[str] = Field(default=None, max_length=16)
    finished: Optional[int] = None
    priority: Optional[int] = None
    file: Optional[str] = Field(default=None, max_length=255)

    @field_validator(*_REQUIRED_FIELDS)
    @classmethod
    def _not_null(cls, value):
        # Only ``file`` may be cleared; the rest can be omitted but not nulled.
        if value is None:
            raise ValueError("field cannot be null")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"id"})


class TaskPatch(TaskUpdate):
    id: str = Field(min_length=1)


class TaskId(BaseModel):
    id: str = Field(min_length=1)


class TaskListFilter(BaseModel):
    yearweek: Optional[str] = None
    dayofweek: Optional[str] = None


class TaskResponse(BaseModel):
    id: str
    yearweek: str
    dayofweek: str
    name: str
    description: str
    color: str
    time_start: str
    time_end: str
    finished: int
    priority: int
    file: Optional[str] = None

    model_config = {"from_attributes": True}
