import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from roomguard.db.base import Base

DEFAULT_ENTRY_COLOR = "#6366f1"
DEFAULT_ENTRY_TYPE = "Lecture"


class ClassGroup(Base):
    __tablename__ = "class_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    semester: Mapped[str | None] = mapped_column(String(20), nullable=True)
    branch_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True
    )
    professor_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    branch = relationship("Branch", back_populates="class_groups")
    professor = relationship("User", foreign_keys=[professor_id])
    entries = relationship(
        "TimetableEntry",
        back_populates="class_group",
        foreign_keys="TimetableEntry.class_group_id",
        cascade="all, delete-orphan",
        order_by="TimetableEntry.position",
    )


class TimetableEntry(Base):
    """A recurring weekly slot owned by a class group or, for synced copies, a professor."""

    __tablename__ = "timetable_entries"
    __table_args__ = (
        CheckConstraint(
            "(class_group_id IS NULL) <> (owner_user_id IS NULL)",
            name="ck_timetable_entries_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_group_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("class_groups.id", ondelete="CASCADE"), nullable=True, index=True
    )
    owner_user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # Set on a professor's synced copy to the class group it mirrors.
    source_class_group_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("class_groups.id", ondelete="CASCADE"), nullable=True, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    day: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    instructor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    color: Mapped[str] = mapped_column(String(20), nullable=False, default=DEFAULT_ENTRY_COLOR)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default=DEFAULT_ENTRY_TYPE)

    class_group = relationship("ClassGroup", back_populates="entries", foreign_keys=[class_group_id])
    owner = relationship("User", back_populates="personal_entries")
