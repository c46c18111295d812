"""Task models."""

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column

from weekplanner.core.utils.ids import new_id
from weekplanner.extensions import db


class Task(db.Model):
    __tablename__ = "task"
    __table_args__ = (db.Index("ix_task_yearweek_dayofweek", "yearweek", "dayofweek"),)

    id: Mapped[str] = mapped_column(db.String(32), primary_key=True, default=new_id)
    yearweek: Mapped[str] = mapped_column(db.String(16), nullable=False)
    dayofweek: Mapped[str] = mapped_column(db.String(16), nullable=False)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False)
    color: Mapped[str] = mapped_column(db.String(64), nullable=False)
    time_start: Mapped[str] = mapped_column(db.String(16), nullable=False)
    time_end: Mapped[str] = mapped_column(db.String(16), nullable=False)
    # Integer flag (0/1) rather than a boolean, as clients send it.
    finished: Mapped[int] = mapped_column(nullable=False, default=0)
    priority: Mapped[int] = mapped_column(nullable=False)
    file: Mapped[str | None] = mapped_column(db.String(255))
