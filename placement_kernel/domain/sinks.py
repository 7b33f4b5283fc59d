"""
Outbound sink protocols (``placement_kernel.domain.sinks``).

The engine persists audit and notification rows inside the operation's
own transaction.  Sinks are the optional outward hook: they receive the
same records only after that transaction has committed, so a rejected or
rolled-back operation never reaches them.  Sinks observe; they cannot
alter engine decisions.
"""

from __future__ import annotations

from typing import Protocol

from placement_kernel.domain.dtos import AuditRecord, NotificationRecord


class AuditSink(Protocol):
    def record(self, entry: AuditRecord) -> None: ...


class NotificationSink(Protocol):
    def notify(self, notification: NotificationRecord) -> None: ...


class RecordingAuditSink:
    """In-memory AuditSink that keeps every record it receives."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def record(self, entry: AuditRecord) -> None:
        self.records.append(entry)

    def actions(self) -> list[str]:
        return [r.action for r in self.records]


class RecordingNotificationSink:
    """In-memory NotificationSink that keeps every notification it receives."""

    def __init__(self) -> None:
        self.notifications: list[NotificationRecord] = []

    def notify(self, notification: NotificationRecord) -> None:
        self.notifications.append(notification)

    def for_user(self, user_id: str) -> list[NotificationRecord]:
        return [n for n in self.notifications if n.user_id == str(user_id)]
