"""
University applications and the cascades they drive on the student.

The student used here has a signed contract and an active profile, which
is where application work starts.
"""

import pytest

from placement_kernel.models.audit_log import AuditAction


@pytest.fixture
def application(engine, signed_student, university):
    return engine.create_application(signed_student.id, university.id, "MBBS", batch=1)


@pytest.fixture
def submitted(engine, application):
    assert engine.submit_application_to_admin(application.id)
    return application


@pytest.fixture
def at_university(engine, submitted):
    assert engine.approve_application(submitted.id, approved_by="admin-1")
    assert engine.submit_to_university(submitted.id)
    return submitted


class TestBatchRule:
    def test_create(self, application):
        assert application.status == "draft"
        assert application.batch == 1
        assert application.returned_fields == ()

    def test_two_primary_then_three_backup(self, engine, signed_student, make_university):
        sid = signed_student.id
        assert engine.create_application(sid, make_university().id, "CS", batch=1)
        assert engine.create_application(sid, make_university().id, "CS", batch=1)
        assert engine.create_application(sid, make_university().id, "CS", batch=1) is None
        for _ in range(3):
            assert engine.create_application(sid, make_university().id, "CS", batch=2)
        assert engine.create_application(sid, make_university().id, "CS", batch=2) is None
        assert len(engine.get_applications_by_student(sid)) == 5

    def test_same_university_once(self, engine, signed_student, university):
        assert engine.create_application(signed_student.id, university.id, "CS", batch=1)
        assert engine.create_application(signed_student.id, university.id, "Law", batch=2) is None

    def test_unknown_batch(self, engine, signed_student, university):
        assert engine.create_application(signed_student.id, university.id, "CS", batch=3) is None


class TestAdminReview:
    def test_submit_locks_profile_and_advances(self, engine, admin, signed_student, application,
                                               notification_sink):
        assert engine.submit_application_to_admin(application.id)
        app = engine.get_application_by_id(application.id)
        assert app.status == "pending_admin"
        assert app.submitted_to_admin_at is not None

        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "submitted_to_admin"
        assert student.current_step == 3
        assert student.is_profile_locked is True
        assert len(notification_sink.for_user(str(admin.id))) == 1

    def test_submit_from_wrong_student_status_rolls_back(self, engine, student, university):
        # Still pending_contract: submitted_to_admin is not reachable.
        application = engine.create_application(student.id, university.id, "CS", batch=1)
        assert engine.submit_application_to_admin(application.id) is False

        assert engine.get_application_by_id(application.id).status == "draft"
        assert engine.get_student_by_id(student.id).is_profile_locked is False

    def test_reject_unlocks_and_returns(self, engine, staff, signed_student, submitted,
                                        notification_sink):
        assert engine.reject_application(submitted.id, "Missing transcript")

        app = engine.get_application_by_id(submitted.id)
        assert app.status == "rejected"
        assert app.admin_notes == "Missing transcript"
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "returned_by_admin"
        assert student.is_profile_locked is False
        assert len(notification_sink.for_user(str(staff.id))) == 1

    def test_resubmit_after_rejection(self, engine, signed_student, submitted):
        engine.reject_application(submitted.id, "Fix it")
        assert engine.submit_application_to_admin(submitted.id)
        assert engine.get_student_by_id(signed_student.id).status == "submitted_to_admin"
        assert engine.get_application_by_id(submitted.id).admin_notes is None

    def test_second_application_in_review_leaves_student_alone(
        self, engine, signed_student, submitted, make_university
    ):
        other = engine.create_application(signed_student.id, make_university().id, "CS", batch=1)
        assert engine.submit_application_to_admin(other.id)
        assert engine.get_student_by_id(signed_student.id).status == "submitted_to_admin"

    def test_backup_batch_review_while_primary_is_at_university(
        self, engine, signed_student, at_university, make_university
    ):
        backup = engine.create_application(signed_student.id, make_university().id, "CS", batch=2)

        assert engine.submit_application_to_admin(backup.id)
        assert engine.get_application_by_id(backup.id).status == "pending_admin"
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "submitted_to_uni"
        assert student.is_profile_locked is True

        assert engine.reject_application(backup.id, "Wrong program")
        assert engine.get_application_by_id(backup.id).status == "rejected"
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "submitted_to_uni"
        assert student.is_profile_locked is False

        assert engine.record_offer_received(at_university.id)
        assert engine.get_student_by_id(signed_student.id).status == "offer_received"

    def test_backup_batch_approved_and_sent_alongside_primary(
        self, engine, signed_student, at_university, make_university
    ):
        backup = engine.create_application(signed_student.id, make_university().id, "CS", batch=2)
        assert engine.submit_application_to_admin(backup.id)
        assert engine.approve_application(backup.id, approved_by="admin-1")
        assert engine.submit_to_university(backup.id)

        assert engine.get_application_by_id(backup.id).status == "submitted_to_uni"
        assert engine.get_student_by_id(signed_student.id).status == "submitted_to_uni"

    def test_approve_requires_pending(self, engine, application):
        assert engine.approve_application(application.id, approved_by="admin-1") is False

    def test_idle_applications(self, engine, clock, submitted):
        assert engine.get_idle_applications() == []
        clock.advance_days(4)
        assert [a.id for a in engine.get_idle_applications()] == [submitted.id]


class TestUniversity:
    def test_submission_locks_documents(self, engine, signed_student, submitted):
        document = engine.add_document(signed_student.id, "passport", "Passport")
        engine.approve_application(submitted.id, approved_by="admin-1")
        assert engine.submit_to_university(submitted.id)

        assert engine.get_document_by_id(document.id).is_locked is True
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "submitted_to_uni"

    def test_return_from_school_unlocks_only_named_fields(
        self, engine, staff, signed_student, at_university, notification_sink
    ):
        assert engine.return_from_school(at_university.id, "Passport unreadable", ["passport_number"])

        app = engine.get_application_by_id(at_university.id)
        assert app.status == "returned_by_school"
        assert app.returned_fields == ("passport_number",)
        assert app.return_reason == "Passport unreadable"
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "returned_by_school"
        assert student.is_profile_locked is True
        assert student.unlocked_fields == frozenset({"passport_number"})

        engine.update_student(signed_student.id, {"passport_number": "X1", "name": "Nope"})
        student = engine.get_student_by_id(signed_student.id)
        assert student.profile["passport_number"] == "X1"
        assert student.name == signed_student.name
        assert notification_sink.for_user(str(staff.id))

    def test_resubmit_to_university(self, engine, signed_student, at_university):
        engine.return_from_school(at_university.id, "fix", ["phone"])
        assert engine.submit_to_university(at_university.id)
        assert engine.get_student_by_id(signed_student.id).status == "submitted_to_uni"


class TestOffers:
    def test_offer_received_and_released(self, engine, signed_student, at_university,
                                         notification_sink, audit_sink):
        letter = engine.add_document(signed_student.id, "admission_letter", "Admission letter")
        assert letter.is_hidden is True

        assert engine.record_offer_received(at_university.id)
        assert engine.get_application_by_id(at_university.id).status == "accepted"
        assert engine.get_student_by_id(signed_student.id).status == "offer_received"

        assert engine.release_offer(signed_student.id)
        student = engine.get_student_by_id(signed_student.id)
        assert student.status == "offer_released"
        assert student.current_step == 5
        assert student.offers_unlocked is True
        assert engine.get_document_by_id(letter.id).is_hidden is False
        assert len(notification_sink.for_user(str(signed_student.id))) == 1
        assert AuditAction.OFFER_RELEASED.value in audit_sink.actions()

    def test_release_requires_offer(self, engine, signed_student, at_university):
        assert engine.release_offer(signed_student.id) is False
        assert engine.get_student_by_id(signed_student.id).offers_unlocked is False

    def test_declined_leaves_student_status(self, engine, signed_student, at_university):
        assert engine.record_offer_declined(at_university.id, "Quota full")
        app = engine.get_application_by_id(at_university.id)
        assert app.status == "declined"
        assert app.return_reason == "Quota full"
        assert engine.get_student_by_id(signed_student.id).status == "submitted_to_uni"

    def test_terminal_application(self, engine, at_university):
        engine.record_offer_declined(at_university.id)
        assert engine.record_offer_received(at_university.id) is False
