"""Read-side accessors: DTO returns, misses and orderings."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from placement_kernel.selectors import parse_id


class TestParseId:
    def test_valid(self):
        uid = uuid4()
        assert parse_id(uid) == uid
        assert parse_id(str(uid)) == uid

    def test_invalid(self):
        assert parse_id("not-a-uuid") is None


class TestAccessors:
    def test_dtos_are_frozen(self, engine, student):
        found = engine.get_student_by_id(student.id)
        with pytest.raises(FrozenInstanceError):
            found.status = "completed"

    def test_misses(self, engine):
        assert engine.get_student_by_id(uuid4()) is None
        assert engine.get_lead_by_id("garbage") is None
        assert engine.get_documents_by_student("garbage") == []
        assert engine.get_ledger_entries("garbage") == []
        assert engine.get_student_balance(uuid4()) == Decimal("0")

    def test_applications_ordered_by_batch_then_priority(
        self, engine, signed_student, make_university
    ):
        sid = signed_student.id
        engine.create_application(sid, make_university().id, "B2", batch=2, priority=1)
        engine.create_application(sid, make_university().id, "B1-2", batch=1, priority=2)
        engine.create_application(sid, make_university().id, "B1-1", batch=1, priority=1)
        programs = [a.program for a in engine.get_applications_by_student(sid)]
        assert programs == ["B1-1", "B1-2", "B2"]

    def test_ledger_keeps_insertion_order_within_one_instant(self, engine, student, clock):
        invoices = [
            engine.create_invoice(student.id, "balance", "100", f"Instalment {n}")
            for n in range(1, 6)
        ]
        paid_order = [invoices[i] for i in (3, 0, 4, 1, 2)]
        for invoice in paid_order:
            assert engine.record_payment(invoice.id)
        refund = engine.submit_refund_request(
            student.id, "100", "other", "staff-1", invoice_id=invoices[2].id
        )
        assert engine.process_refund(refund.id, approved_by="admin-1", approved=True)

        entries = engine.get_ledger_entries(student.id)
        assert {e.created_at for e in entries} == {clock.now()}
        assert [e.description for e in entries] == [
            *(invoice.description for invoice in paid_order),
            "Refund: other",
        ]
        seqs = [e.seq for e in entries]
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == len(seqs)

    def test_audit_log_filters(self, engine, staff, make_lead):
        lead = make_lead()
        engine.change_lead_status(lead.id, "hot")
        records = engine.get_audit_log("Lead", lead.id)
        assert [r.action for r in records] == ["lead_created", "lead_status_changed"]
        assert records[1].details == {"from": "new", "to": "hot"}

    def test_reads_do_not_audit(self, engine, student):
        before = len(engine.get_audit_log())
        engine.get_student_by_id(student.id)
        engine.get_idle_leads()
        engine.calculate_final_balance(student.id)
        assert len(engine.get_audit_log()) == before


class TestPerStudentLists:
    def test_lists_follow_the_student(
        self, engine, staff, university, signed_student, pay_deposit, make_student
    ):
        sid = signed_student.id
        other = make_student()
        when = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)
        appointment = engine.book_appointment(sid, staff.id, "Intake call", when)
        pay_deposit(sid)
        refund = engine.submit_refund_request(sid, "750", "student_withdrawal", requested_by="staff-1")

        assert engine.get_university_by_id(university.id).name == university.name
        assert engine.get_appointment_by_id(appointment.id).title == "Intake call"
        assert [a.id for a in engine.get_appointments_by_student(sid)] == [appointment.id]
        assert [c.status for c in engine.get_contracts_by_student(sid)] == ["signed"]
        assert [r.id for r in engine.get_refund_requests_by_student(sid)] == [refund.id]
        assert len(engine.get_commissions_by_student(sid)) == 1

        assert engine.get_appointments_by_student(other.id) == []
        assert engine.get_contracts_by_student(other.id) == []
        assert engine.get_commissions_by_student(other.id) == []
