"""Notifications, appointments, fix requests, settings and setup operations."""

from datetime import datetime, timezone
from decimal import Decimal

from placement_kernel.models.audit_log import AuditAction


class TestNotifications:
    def test_add_and_read(self, engine, staff):
        first = engine.add_notification(staff.id, "Hello", "First")
        engine.add_notification(staff.id, "Hello again", "Second", type="warning")
        assert engine.get_unread_notification_count(staff.id) == 2

        assert engine.mark_notification_read(first.id)
        assert engine.get_unread_notification_count(staff.id) == 1
        assert engine.mark_all_notifications_read(staff.id) == 1
        assert engine.get_unread_notification_count(staff.id) == 0
        assert len(engine.get_notifications_by_user(staff.id)) == 2

    def test_unknown_type(self, engine, staff):
        assert engine.add_notification(staff.id, "Hi", "There", type="urgent") is None

    def test_newest_first(self, engine, clock, staff):
        engine.add_notification(staff.id, "Old", "1")
        clock.advance(60)
        engine.add_notification(staff.id, "New", "2")
        assert [n.title for n in engine.get_notifications_by_user(staff.id)] == ["New", "Old"]

    def test_sink_failure_does_not_undo_operation(self, clock, config, captured_logs):
        from placement_kernel.services.workflow_engine import WorkflowEngine

        class BrokenSink:
            def notify(self, notification):
                raise RuntimeError("smtp down")

        engine = WorkflowEngine.from_config(config=config, clock=clock, notification_sink=BrokenSink())
        staff = engine.add_staff("S", "s@agency.test")
        assert engine.add_notification(staff.id, "Hi", "There") is not None
        assert engine.get_unread_notification_count(staff.id) == 1
        assert any(r["message"] == "notification_sink_failed" for r in captured_logs())


class TestAppointments:
    def test_book_cancel_complete(self, engine, staff, student):
        when = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        first = engine.book_appointment(student.id, staff.id, "Intake call", when)
        second = engine.book_appointment(
            student.id, staff.id, "Docs review", when, duration=45, type="document_submission"
        )
        assert first.status == "scheduled"
        assert first.duration == 30

        assert engine.cancel_appointment(first.id)
        assert engine.complete_appointment(second.id)
        assert engine.complete_appointment(first.id) is False
        statuses = {a.id: a.status for a in engine.get_appointments_by_staff(staff.id)}
        assert statuses == {first.id: "cancelled", second.id: "completed"}

    def test_invalid_booking(self, engine, staff, student):
        when = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        assert engine.book_appointment(student.id, staff.id, "x", when, duration=0) is None
        assert engine.book_appointment(student.id, staff.id, "x", when, type="party") is None


class TestFixRequests:
    def test_approved_request_applies_to_unlocked_profile(self, engine, student):
        request = engine.submit_fix_request(student.id, "passport_number", "P999", "Typo")
        assert request.status == "pending"
        assert request.current_value is None

        assert engine.process_fix_request(request.id, processed_by="admin-1", approved=True)
        assert engine.get_student_by_id(student.id).profile["passport_number"] == "P999"
        assert engine.get_fix_request_by_id(request.id).status == "approved"

    def test_approval_respects_the_lock(self, engine, student):
        engine.lock_student_profile(student.id, locked_by="admin-1")
        request = engine.submit_fix_request(student.id, "passport_number", "P999", "Typo")
        assert engine.process_fix_request(request.id, processed_by="admin-1", approved=True)

        assert engine.get_student_by_id(student.id).profile["passport_number"] is None
        audit = [r for r in engine.get_audit_log("FixRequest", request.id)
                 if r.action == AuditAction.FIX_REQUEST_PROCESSED.value]
        assert audit[0].details["applied"] == []

    def test_rejection_and_reprocessing(self, engine, student):
        request = engine.submit_fix_request(student.id, "name", "New Name", "Legal change")
        assert engine.process_fix_request(request.id, processed_by="admin-1", approved=False)
        assert engine.get_student_by_id(student.id).name == student.name
        assert engine.process_fix_request(request.id, processed_by="admin-1", approved=True) is False

    def test_only_profile_fields(self, engine, student):
        assert engine.submit_fix_request(student.id, "status", "completed", "please") is None
        assert engine.get_fix_requests_by_student(student.id) == []


class TestSettingsAndSetup:
    def test_defaults_seeded_from_config(self, engine):
        settings = engine.get_system_settings()
        assert settings.commission_amount == Decimal("20000")
        assert settings.passport_expiry_months == 6

    def test_update(self, engine, audit_sink):
        assert engine.update_system_settings({"lead_idle_days": 14}, actor_id="admin-1")
        assert engine.get_system_settings().lead_idle_days == 14
        record = [r for r in audit_sink.records if r.action == AuditAction.SETTINGS_UPDATED.value][0]
        assert record.details["changes"]["lead_idle_days"] == {"from": 7, "to": 14}

    def test_bad_update_changes_nothing(self, engine):
        assert engine.update_system_settings({"lead_idle_days": 14, "bogus": 1}) is False
        assert engine.get_system_settings().lead_idle_days == 7

    def test_initialize_is_idempotent(self, engine):
        engine.update_system_settings({"lead_idle_days": 14})
        engine.initialize_store()
        assert engine.get_system_settings().lead_idle_days == 14

    def test_staff_email_unique(self, engine, staff):
        assert engine.add_staff("Dup", staff.email) is None

    def test_unknown_role(self, engine):
        assert engine.add_staff("X", "x@agency.test", role="owner") is None
