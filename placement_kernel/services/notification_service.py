"""
Module: placement_kernel.services.notification_service
Responsibility: Persist in-app notifications and track read state.
Architecture position: Kernel > Services.

Notifications created in an operation are remembered in ``created`` so the
engine can forward them to its NotificationSink once the operation commits.
Emitting a notification never changes an engine decision.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update

from placement_kernel.logging_config import get_logger
from placement_kernel.models.notification import Notification, NotificationType
from placement_kernel.models.staff import Staff, StaffRole
from placement_kernel.services.base import BaseService

logger = get_logger("services.notification")


class NotificationService(BaseService):
    """Creates notifications and marks them read."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self.created: list[Notification] = []

    def notify(
        self,
        user_id: UUID | str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        action_required: bool = False,
        link: str | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=str(user_id),
            title=title,
            message=message,
            type=NotificationType(type).value,
            action_required=action_required,
            read=False,
            link=link,
            created_at=self.clock.now(),
        )
        self.session.add(notification)
        self.session.flush()
        self.created.append(notification)
        logger.debug(
            "notification_created",
            extra={"user_id": str(user_id), "title": title, "action_required": action_required},
        )
        return notification

    def notify_admins(
        self,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        action_required: bool = False,
        link: str | None = None,
    ) -> list[Notification]:
        admins = self.session.execute(
            select(Staff).where(Staff.role == StaffRole.ADMIN.value, Staff.is_active.is_(True))
        ).scalars().all()
        return [
            self.notify(admin.id, title, message, type, action_required, link)
            for admin in admins
        ]

    def mark_read(self, notification_id: UUID | str) -> Notification:
        notification = self._require(Notification, notification_id)
        if not notification.read:
            notification.read = True
            notification.updated_at = self.clock.now()
            self.session.flush()
        return notification

    def mark_all_read(self, user_id: UUID | str) -> int:
        """Mark every unread notification for ``user_id`` read; returns the count."""
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == str(user_id), Notification.read.is_(False))
            .values(read=True, updated_at=self.clock.now())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0
