"""Course and enrollment models."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import Column, ForeignKey, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_api.database import Base

if TYPE_CHECKING:
    from lms_api.models.db.tryout import Tryout
    from lms_api.models.db.user import User


course_members = Table(
    "course_members",
    Base.metadata,
    Column("course_id", ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Course(Base):
    """A course that owns tryouts; members are the enrolled users."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    class_code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    members: Mapped[list["User"]] = relationship(
        "User", secondary=course_members, back_populates="courses"
    )
    tryouts: Mapped[list["Tryout"]] = relationship(
        "Tryout", back_populates="course", cascade="all, delete-orphan"
    )
