from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .db import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    email_key = Column(String(320), nullable=False, unique=True, index=True)
    role = Column(String(20), nullable=False, default="user", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
    created_by = Column(String(320), nullable=True)
    updated_by = Column(String(320), nullable=True)
    deleted_at = Column(BigInteger, nullable=True)
    deleted_by = Column(String(320), nullable=True)
    version = Column(Integer, nullable=False, default=1)


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    estimated_time = Column(Integer, nullable=False)
    elapsed_time = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="new", index=True)
    assigned_to = Column(String(320), nullable=False, index=True)
    created_by = Column(String(320), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)
    updated_by = Column(String(320), nullable=True)
    started_at = Column(BigInteger, nullable=True)
    completed_at = Column(BigInteger, nullable=True)
    deleted_at = Column(BigInteger, nullable=True)
    deleted_by = Column(String(320), nullable=True)
    url_link = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    logs = relationship(
        "TaskLogModel",
        order_by="TaskLogModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    notes = relationship(
        "TaskNoteModel",
        order_by="TaskNoteModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class TaskLogModel(Base):
    __tablename__ = "task_logs"

    id = Column(Integer, primary_key=True)
    task_id = Column(String(32), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    user_email = Column(String(320), nullable=False, index=True)
    description = Column(Text, nullable=False)


class TaskNoteModel(Base):
    __tablename__ = "task_notes"

    id = Column(Integer, primary_key=True)
    task_id = Column(String(32), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    user_email = Column(String(320), nullable=False, index=True)
    text = Column(Text, nullable=False)
