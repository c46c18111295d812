"""Week planner models."""

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column

from weekplanner.core.utils.ids import new_id
from weekplanner.extensions import db


class Week(db.Model):
    __tablename__ = "week"
    __table_args__ = (db.Index("ix_week_year_numweek", "year", "numweek"),)

    id: Mapped[str] = mapped_column(db.String(32), primary_key=True, default=new_id)
    year: Mapped[int] = mapped_column(nullable=False)
    numweek: Mapped[int] = mapped_column(nullable=False)
    color: Mapped[str] = mapped_column(db.String(64), nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False)
    priority: Mapped[int] = mapped_column(nullable=False)
    link: Mapped[str] = mapped_column(db.String(2048), nullable=False)
