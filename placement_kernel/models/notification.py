"""
Module: placement_kernel.models.notification
Responsibility: ORM persistence for in-app user notifications.
Architecture position: Kernel > Models.

user_id is stored as a string: recipients may be staff, admins or students.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase
from placement_kernel.domain.dtos import NotificationInfo, NotificationRecord


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(TimestampedBase):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notifications_user", "user_id", "read"),
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=NotificationType.INFO.value)
    action_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def to_dto(self) -> NotificationInfo:
        return NotificationInfo(
            id=self.id,
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            type=self.type,
            action_required=self.action_required,
            read=self.read,
            link=self.link,
            created_at=self.created_at,
        )

    def to_record(self) -> NotificationRecord:
        return NotificationRecord(
            user_id=self.user_id,
            title=self.title,
            message=self.message,
            type=self.type,
            action_required=self.action_required,
        )
