"""
Volunteer API — User & Faculty Models
======================================

What:  ORM models for the `faculties` and `users` tables.
Why:   Users own activities, files and notifications; faculties group users.
How:   Inherits from the shared DeclarativeBase; tables are created by
       synchronize_schema() at startup.

Uniqueness:
    users.email, users.username and faculties.name carry UNIQUE constraints.
    Violations surface from the driver as IntegrityError and are translated
    to DuplicateError (HTTP 400 with per-field messages) by the data layer.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from volunteer_api.database import Base

ROLES = ("student", "staff", "admin")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Faculty(Base):
    __tablename__ = "faculties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)

    users: Mapped[list["User"]] = relationship(back_populates="faculty")

    def __repr__(self) -> str:
        return f"<Faculty(id={self.id}, name='{self.name}')>"


class User(Base):
    """
    An account that can sign in.

    Roles:
        student: default; joins activities, receives notifications
        staff:   plans activities for a faculty
        admin:   manages users, faculties, categories and broadcasts
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="student")
    faculty_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("faculties.id", ondelete="SET NULL"), nullable=True
    )
    # Relative to the uploads directory, served under /uploads
    profile_image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    faculty: Mapped[Optional[Faculty]] = relationship(back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
