"""
Idle detection queries.

A lead is idle when it is not terminal and its last activity
(``last_contact_at``, falling back to ``created_at``) is strictly older
than ``now - days``.  An application is idle when it has waited in
``pending_admin`` longer than the same kind of threshold.  Both are pure
reads; alerting lives in the workflow engine.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from placement_kernel.domain.clock import Clock, SystemClock
from placement_kernel.domain.dtos import ApplicationInfo, LeadInfo
from placement_kernel.domain.transitions import (
    TERMINAL_LEAD_STATUSES,
    ApplicationStatus,
)
from placement_kernel.models.application import UniversityApplication
from placement_kernel.models.lead import Lead
from placement_kernel.selectors.base import BaseSelector

_TERMINAL_LEAD_VALUES = [status.value for status in TERMINAL_LEAD_STATUSES]


class IdleSelector(BaseSelector):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self.clock = clock or SystemClock()

    def idle_leads(self, days: int) -> list[LeadInfo]:
        cutoff = self.clock.now() - timedelta(days=days)
        leads = self.session.execute(
            select(Lead)
            .where(Lead.status.not_in(_TERMINAL_LEAD_VALUES))
            .order_by(Lead.created_at)
        ).scalars().all()
        return [lead.to_dto() for lead in leads if lead.last_activity_at < cutoff]

    def idle_applications(self, days: int) -> list[ApplicationInfo]:
        cutoff = self.clock.now() - timedelta(days=days)
        applications = self.session.execute(
            select(UniversityApplication)
            .where(
                UniversityApplication.status == ApplicationStatus.PENDING_ADMIN.value,
                UniversityApplication.submitted_to_admin_at.is_not(None),
            )
            .order_by(UniversityApplication.submitted_to_admin_at)
        ).scalars().all()
        return [
            application.to_dto()
            for application in applications
            if application.submitted_to_admin_at < cutoff
        ]
