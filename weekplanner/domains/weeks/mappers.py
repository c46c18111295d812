"""DTO mappers for weeks."""

from __future__ import annotations

from weekplanner.domains.weeks.models import Week
from weekplanner.domains.weeks.schemas import WeekResponse


def map_week(week: Week) -> dict:
    return WeekResponse.model_validate(week).model_dump()
