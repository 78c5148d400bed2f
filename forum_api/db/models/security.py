from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum_api.db.base import Base, IntPkMixin, TimestampMixin, utcnow


MODERATE_FORUM_ROLE = "moderate_forum"


user_groups = Table(
    "user_groups",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
)


class User(IntPkMixin, TimestampMixin, Base):
    """Registered board user."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
    )

    username: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    registration_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    groups: Mapped[list["Group"]] = relationship(
        "Group",
        secondary=user_groups,
        back_populates="users",
        lazy="selectin",
    )


class Group(IntPkMixin, TimestampMixin, Base):
    """User group; roles are granted to groups, not to users."""
    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("name", name="uq_groups_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    users: Mapped[list["User"]] = relationship(
        "User",
        secondary=user_groups,
        back_populates="groups",
    )
    roles: Mapped[list["Role"]] = relationship("Role", back_populates="group", cascade="all, delete-orphan")


class Role(IntPkMixin, Base):
    """Named permission granted to a group, optionally scoped by role values."""
    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)

    group: Mapped["Group"] = relationship("Group", back_populates="roles")
    role_values: Mapped[list["RoleValue"]] = relationship(
        "RoleValue",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class RoleValue(IntPkMixin, Base):
    """Scope of a role; for moderate_forum the value is a forum id."""
    __tablename__ = "role_values"

    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    role: Mapped["Role"] = relationship("Role", back_populates="role_values")
