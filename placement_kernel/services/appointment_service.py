"""Appointment booking between a student and a staff member."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from placement_kernel.exceptions import InvalidTransitionError, PreconditionError
from placement_kernel.logging_config import get_logger
from placement_kernel.models.appointment import Appointment, AppointmentStatus, AppointmentType
from placement_kernel.models.staff import Staff
from placement_kernel.models.student import Student
from placement_kernel.services.base import BaseService

logger = get_logger("services.appointment")


class AppointmentService(BaseService):
    def book(
        self,
        student_id: UUID | str,
        staff_id: UUID | str,
        title: str,
        date_time: datetime,
        duration: int = 30,
        type: AppointmentType | str = AppointmentType.CONSULTATION,
        description: str | None = None,
        location: str | None = None,
    ) -> Appointment:
        student = self._require(Student, student_id)
        staff = self._require(Staff, staff_id)
        if duration <= 0:
            raise PreconditionError(f"Appointment duration must be positive, got {duration}")
        try:
            appointment_type = AppointmentType(type)
        except ValueError as exc:
            raise PreconditionError(f"Unknown appointment type: {type}") from exc

        appointment = Appointment(
            student_id=student.id,
            staff_id=staff.id,
            title=title,
            description=description,
            date_time=date_time,
            duration=duration,
            type=appointment_type.value,
            status=AppointmentStatus.SCHEDULED.value,
            location=location,
            created_at=self.clock.now(),
        )
        self.session.add(appointment)
        self.session.flush()
        logger.info(
            "appointment_booked",
            extra={
                "appointment_id": str(appointment.id),
                "student_id": str(student.id),
                "staff_id": str(staff.id),
                "date_time": date_time,
            },
        )
        return appointment

    def _finish(self, appointment_id: UUID | str, target: AppointmentStatus) -> Appointment:
        appointment = self._require(Appointment, appointment_id)
        # Only scheduled appointments can be closed out.
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise InvalidTransitionError(
                "Appointment", str(appointment.id), appointment.status, target.value
            )
        appointment.status = target.value
        appointment.updated_at = self.clock.now()
        self.session.flush()
        logger.info(
            "appointment_status_changed",
            extra={"appointment_id": str(appointment.id), "to_status": target.value},
        )
        return appointment

    def cancel(self, appointment_id: UUID | str) -> Appointment:
        return self._finish(appointment_id, AppointmentStatus.CANCELLED)

    def complete(self, appointment_id: UUID | str) -> Appointment:
        return self._finish(appointment_id, AppointmentStatus.COMPLETED)
