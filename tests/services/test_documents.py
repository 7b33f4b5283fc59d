"""Whole-record document locks, verification and offer-document visibility."""

from placement_kernel.models.audit_log import AuditAction


class TestDocumentLifecycle:
    def test_add_document(self, engine, student):
        document = engine.add_document(student.id, "passport", "Passport scan", "s3://p.pdf")
        assert document.status == "pending"
        assert document.is_locked is False
        assert document.is_hidden is False
        assert engine.get_documents_by_student(student.id) == [document]

    def test_unknown_type(self, engine, student):
        assert engine.add_document(student.id, "selfie", "Selfie") is None

    def test_verify(self, engine, student):
        document = engine.add_document(student.id, "photo", "Photo")
        assert engine.verify_document(document.id, verified_by="staff-1")
        verified = engine.get_document_by_id(document.id)
        assert verified.status == "verified"
        assert verified.verified_by == "staff-1"

    def test_mark_error_notifies_student(self, engine, student, notification_sink):
        document = engine.add_document(student.id, "transcript", "Transcript")
        assert engine.mark_document_error(document.id, "Blurry scan")

        errored = engine.get_document_by_id(document.id)
        assert errored.status == "error"
        assert errored.error_message == "Blurry scan"
        sent = notification_sink.for_user(str(student.id))
        assert len(sent) == 1
        assert sent[0].action_required is True

    def test_unknown_status_rejected(self, engine, student):
        document = engine.add_document(student.id, "photo", "Photo")
        assert engine.update_document(document.id, {"status": "shiny"}) is False


class TestDocumentLocks:
    def test_locked_document_rejects_any_update(self, engine, student):
        document = engine.add_document(student.id, "passport", "Passport")
        assert engine.lock_documents(student.id)

        assert engine.update_document(document.id, {"name": "Renamed"}) is False
        assert engine.verify_document(document.id, verified_by="staff-1") is False
        assert engine.get_document_by_id(document.id).name == "Passport"

    def test_unlock_in_the_same_update(self, engine, student):
        document = engine.add_document(student.id, "passport", "Passport")
        engine.lock_documents(student.id)

        assert engine.update_document(document.id, {"is_locked": False, "name": "Renamed"})
        updated = engine.get_document_by_id(document.id)
        assert updated.is_locked is False
        assert updated.locked_at is None
        assert updated.name == "Renamed"

    def test_unlock_documents(self, engine, student):
        document = engine.add_document(student.id, "passport", "Passport")
        engine.lock_documents(student.id)
        assert engine.unlock_documents(student.id)
        assert engine.update_document(document.id, {"name": "Renamed"})

    def test_lock_counts_are_audited(self, engine, student, audit_sink):
        engine.add_document(student.id, "passport", "Passport")
        engine.add_document(student.id, "photo", "Photo")
        engine.lock_documents(student.id)
        engine.lock_documents(student.id)
        counts = [
            r.details["count"]
            for r in audit_sink.records
            if r.action == AuditAction.DOCUMENTS_LOCKED.value
        ]
        assert counts == [2, 0]

    def test_blocked_update_is_logged(self, engine, student, captured_logs):
        document = engine.add_document(student.id, "passport", "Passport")
        engine.lock_documents(student.id)
        engine.update_document(document.id, {"name": "Renamed"})

        logs = captured_logs()
        blocked = [r for r in logs if r["message"] == "document_update_blocked"]
        rejected = [r for r in logs if r["message"] == "operation_rejected"]
        assert len(blocked) == 1
        assert rejected[-1]["error_code"] == "DOCUMENT_LOCKED"
        assert rejected[-1]["operation"] == "update_document"


class TestOfferDocuments:
    def test_offer_documents_hidden_until_released(self, engine, student):
        letter = engine.add_document(student.id, "admission_letter", "Admission letter")
        jw202 = engine.add_document(student.id, "jw202", "JW202")
        assert letter.is_hidden is True
        assert jw202.is_hidden is True
