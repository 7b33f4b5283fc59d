"""Contracts, invoices, payments and refunds, checked against the ledger."""

from datetime import timedelta
from decimal import Decimal

from placement_kernel.models.audit_log import AuditAction


class TestContracts:
    def test_create_defaults(self, engine, staff, student, clock):
        contract = engine.create_contract(student.id, staff.id)
        assert contract.status == "pending_signature"
        assert contract.amount == Decimal("750")
        assert contract.deposit_amount == Decimal("750")
        assert contract.non_refundable_amount == Decimal("500")
        assert contract.pricing_version == 1
        assert contract.expires_at == clock.now() + timedelta(days=7)

    def test_amount_follows_scholarship_type(self, engine, staff, student):
        engine.set_scholarship_type(student.id, "full_a")
        contract = engine.create_contract(student.id, staff.id)
        assert contract.amount == Decimal("2000")

    def test_sign_advances_student(self, engine, staff, student):
        contract = engine.create_contract(student.id, staff.id)
        assert engine.sign_contract(contract.id, "data:image/png;base64,xyz")

        signed = engine.get_contract_by_id(contract.id)
        assert signed.status == "signed"
        assert signed.signature_data == "data:image/png;base64,xyz"
        student_after = engine.get_student_by_id(student.id)
        assert student_after.status == "contract_signed"
        assert student_after.current_step == 2

    def test_second_signature_rejected(self, engine, staff, student):
        contract = engine.create_contract(student.id, staff.id)
        engine.sign_contract(contract.id, "first")
        assert engine.sign_contract(contract.id, "second") is False
        assert engine.get_contract_by_id(contract.id).signature_data == "first"

    def test_expired_contract_cannot_be_signed(self, engine, staff, student, clock):
        contract = engine.create_contract(student.id, staff.id)
        clock.advance_days(8)
        assert engine.sign_contract(contract.id, "late") is False
        assert engine.get_student_by_id(student.id).status == "pending_contract"

    def test_cascade_failure_rolls_back_signature(self, engine, staff, student):
        contract = engine.create_contract(student.id, staff.id)
        engine.change_student_status(student.id, "cancelled")
        assert engine.sign_contract(contract.id, "sig") is False
        assert engine.get_contract_by_id(contract.id).status == "pending_signature"

    def test_expire_contracts(self, engine, staff, make_student, clock):
        first = engine.create_contract(make_student().id, staff.id)
        clock.advance_days(3)
        second = engine.create_contract(make_student().id, staff.id)
        clock.advance_days(5)

        assert engine.expire_contracts() == 1
        assert engine.get_contract_by_id(first.id).status == "expired"
        assert engine.get_contract_by_id(second.id).status == "pending_signature"


class TestInvoicesAndPayments:
    def test_create_invoice(self, engine, student, clock):
        invoice = engine.create_invoice(student.id, "opening_book", "50", "Opening book")
        assert invoice.status == "pending"
        assert invoice.currency == "USD"
        assert invoice.due_date == clock.now() + timedelta(days=14)

    def test_invalid_invoices(self, engine, student):
        assert engine.create_invoice(student.id, "deposit", "0") is None
        assert engine.create_invoice(student.id, "deposit", "750", currency="XXXX") is None
        assert engine.create_invoice(student.id, "tuition", "750") is None
        assert engine.create_invoice(student.id, "deposit", "lots") is None
        assert engine.create_invoice(student.id, "deposit", 750.5) is None
        assert engine.get_invoices_by_student(student.id) == []

    def test_payment_credits_ledger(self, engine, student, pay_deposit):
        invoice_id = pay_deposit(student.id)

        assert engine.get_invoice_by_id(invoice_id).status == "paid"
        assert engine.get_student_by_id(student.id).deposit_paid == Decimal("750")
        entries = engine.get_ledger_entries(student.id)
        assert len(entries) == 1
        assert entries[0].type == "credit"
        assert entries[0].category == "payment"
        assert engine.get_student_balance(student.id) == Decimal("750")

    def test_balance_invoice(self, engine, student):
        invoice = engine.create_invoice(student.id, "balance", "500", "Balance")
        engine.record_payment(invoice.id)
        updated = engine.get_student_by_id(student.id)
        assert updated.balance_paid == Decimal("500")
        assert updated.deposit_paid == Decimal("0")

    def test_double_payment_rejected(self, engine, student, pay_deposit):
        invoice_id = pay_deposit(student.id)
        assert engine.record_payment(invoice_id) is False
        assert len(engine.get_ledger_entries(student.id)) == 1

    def test_mark_overdue(self, engine, student, clock):
        invoice = engine.create_invoice(student.id, "deposit", "750", "Deposit")
        clock.advance_days(15)
        assert engine.mark_overdue_invoices() == 1
        assert engine.get_invoice_by_id(invoice.id).status == "overdue"
        # Overdue invoices can still be paid.
        assert engine.record_payment(invoice.id)


class TestRefunds:
    def test_refundable_amount(self, engine, student, pay_deposit):
        invoice_id = pay_deposit(student.id)
        refund = engine.submit_refund_request(
            student.id, "750", "university_rejection", "staff-1",
            invoice_id=invoice_id, retained_costs="500",
        )
        assert refund.refundable_amount == Decimal("250")
        assert refund.status == "pending"

    def test_retained_costs_above_amount(self, engine, student):
        refund = engine.submit_refund_request(
            student.id, "100", "other", "staff-1", retained_costs="500"
        )
        assert refund.refundable_amount == Decimal("0")

    def test_approval_debits_ledger(self, engine, student, pay_deposit):
        invoice_id = pay_deposit(student.id)
        refund = engine.submit_refund_request(
            student.id, "750", "student_withdrawal", "staff-1",
            invoice_id=invoice_id, retained_costs="500",
        )
        assert engine.process_refund(refund.id, approved_by="admin-1", approved=True)

        assert engine.get_refund_request_by_id(refund.id).status == "approved"
        assert engine.get_invoice_by_id(invoice_id).status == "refunded"
        debit = [e for e in engine.get_ledger_entries(student.id) if e.type == "debit"]
        assert len(debit) == 1
        assert debit[0].category == "refund"
        assert debit[0].is_reversal is True
        assert engine.get_student_balance(student.id) == Decimal("500")

    def test_rejection_writes_nothing(self, engine, student, pay_deposit):
        pay_deposit(student.id)
        refund = engine.submit_refund_request(student.id, "750", "other", "staff-1")
        assert engine.process_refund(refund.id, approved_by="admin-1", approved=False)
        assert engine.get_refund_request_by_id(refund.id).status == "rejected"
        assert len(engine.get_ledger_entries(student.id)) == 1

    def test_refund_processed_once(self, engine, student):
        refund = engine.submit_refund_request(student.id, "100", "other", "staff-1")
        engine.process_refund(refund.id, approved_by="admin-1", approved=False)
        assert engine.process_refund(refund.id, approved_by="admin-1", approved=True) is False

    def test_invoice_of_another_student(self, engine, make_student, pay_deposit):
        owner, other = make_student(), make_student()
        invoice_id = pay_deposit(owner.id)
        assert engine.submit_refund_request(
            other.id, "750", "other", "staff-1", invoice_id=invoice_id
        ) is None

    def test_unknown_reason(self, engine, student):
        assert engine.submit_refund_request(student.id, "100", "changed_mind", "staff-1") is None


class TestCommissions:
    def test_triggered_once_by_full_deposit(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        pay_deposit(signed_student.id, "100")

        commissions = engine.get_commissions_by_staff(staff.id)
        assert len(commissions) == 1
        assert commissions[0].amount == Decimal("20000")
        assert commissions[0].status == "pending"
        assert engine.get_staff_by_id(staff.id).pending_commission == Decimal("20000")

    def test_partial_deposits_accumulate(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id, "400")
        assert engine.get_commissions_by_staff(staff.id) == []
        pay_deposit(signed_student.id, "350")
        assert len(engine.get_commissions_by_staff(staff.id)) == 1

    def test_no_commission_without_signed_contract(self, engine, staff, student, pay_deposit):
        pay_deposit(student.id)
        assert engine.get_commissions_by_staff(staff.id) == []

    def test_amount_follows_settings(self, engine, staff, signed_student, pay_deposit):
        engine.update_system_settings({"commission_amount": "15000"})
        pay_deposit(signed_student.id)
        assert engine.get_commissions_by_staff(staff.id)[0].amount == Decimal("15000")

    def test_payment_audit_names_commission(self, engine, signed_student, pay_deposit, audit_sink):
        pay_deposit(signed_student.id)
        payment = [r for r in audit_sink.records if r.action == AuditAction.PAYMENT_RECORDED.value]
        assert payment[-1].details["commission_id"] is not None

    def test_pay(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        commission = engine.get_commissions_by_staff(staff.id)[0]
        assert engine.pay_commission(commission.id)

        paid_staff = engine.get_staff_by_id(staff.id)
        assert paid_staff.pending_commission == Decimal("0")
        assert paid_staff.paid_commission == Decimal("20000")
        assert paid_staff.total_commission == Decimal("20000")
        # Staff buckets carry the payout; the ledger keeps only the deposit.
        assert [e.category for e in engine.get_ledger_entries()] == ["payment"]
        assert engine.pay_commission(commission.id) is False

    def test_void_pending(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        commission = engine.get_commissions_by_staff(staff.id)[0]
        assert engine.void_commission(commission.id, "contract cancelled")

        voided = engine.get_commission_by_id(commission.id)
        assert voided.status == "voided"
        assert voided.void_reason == "contract cancelled"
        assert engine.get_staff_by_id(staff.id).pending_commission == Decimal("0")

    def test_clawback_creates_adjustment(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        commission = engine.get_commissions_by_staff(staff.id)[0]
        engine.pay_commission(commission.id)
        assert engine.void_commission(commission.id, "student refunded")

        clawed = engine.get_commission_by_id(commission.id)
        assert clawed.status == "clawback"
        assert clawed.clawback_reason == "student refunded"
        adjustments = [c for c in engine.get_commissions_by_staff(staff.id) if c.adjusts_commission_id]
        assert len(adjustments) == 1
        assert adjustments[0].amount == Decimal("-20000")
        assert adjustments[0].status == "pending"
        assert engine.get_staff_by_id(staff.id).pending_commission == Decimal("-20000")
        assert [e.category for e in engine.get_ledger_entries()] == ["payment"]

    def test_paying_the_adjustment_recovers(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        commission = engine.get_commissions_by_staff(staff.id)[0]
        engine.pay_commission(commission.id)
        engine.void_commission(commission.id, "student refunded")
        adjustment = [c for c in engine.get_commissions_by_staff(staff.id) if c.adjusts_commission_id][0]

        assert engine.pay_commission(adjustment.id)
        settled = engine.get_staff_by_id(staff.id)
        assert settled.pending_commission == Decimal("0")
        assert settled.paid_commission == Decimal("0")
        assert settled.total_commission == Decimal("0")
        assert [e.category for e in engine.get_ledger_entries()] == ["payment"]
        assert engine.get_student_balance(signed_student.id) == Decimal("750")

    def test_no_retrigger_after_void(self, engine, staff, signed_student, pay_deposit):
        pay_deposit(signed_student.id)
        commission = engine.get_commissions_by_staff(staff.id)[0]
        engine.void_commission(commission.id, "mistake")
        pay_deposit(signed_student.id, "10")
        assert len(engine.get_commissions_by_staff(staff.id)) == 1

    def test_void_unknown_is_noop(self, engine):
        from uuid import uuid4

        assert engine.void_commission(uuid4(), "nothing") is False
