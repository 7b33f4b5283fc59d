"""Lead capture, status changes, conversion and idle detection."""

from placement_kernel.models.audit_log import AuditAction


class TestAddAndUpdate:
    def test_add_lead(self, engine, staff):
        lead = engine.add_lead(
            "Grace", "grace@example.test", phone="+255700000000",
            source="referral", assigned_to=staff.id, study_goal="MBBS",
        )
        assert lead.status == "new"
        assert lead.assigned_to == staff.id
        assert lead.study_goal == "MBBS"
        assert engine.get_lead_by_id(lead.id) == lead

    def test_unknown_owner_rejected(self, engine):
        from uuid import uuid4

        assert engine.add_lead("Grace", "grace@example.test", assigned_to=uuid4()) is None
        assert engine.get_all_leads() == []

    def test_update_ignores_status(self, engine, make_lead):
        lead = make_lead()
        assert engine.update_lead(lead.id, {"notes": "called twice", "status": "hot"})
        refreshed = engine.get_lead_by_id(lead.id)
        assert refreshed.notes == "called twice"
        assert refreshed.status == "new"

    def test_record_contact(self, engine, clock, make_lead):
        lead = make_lead()
        clock.advance_days(2)
        assert engine.record_lead_contact(lead.id)
        assert engine.get_lead_by_id(lead.id).last_contact_at == clock.now()


class TestStatus:
    def test_allowed_change(self, engine, make_lead):
        lead = make_lead()
        assert engine.change_lead_status(lead.id, "hot")
        assert engine.change_lead_status(lead.id, "cold")
        assert engine.get_lead_by_id(lead.id).status == "cold"

    def test_lost_is_final(self, engine, make_lead):
        lead = make_lead()
        assert engine.change_lead_status(lead.id, "lost")
        assert engine.change_lead_status(lead.id, "hot") is False
        assert engine.get_lead_by_id(lead.id).status == "lost"

    def test_unknown_status(self, engine, make_lead):
        lead = make_lead()
        assert engine.change_lead_status(lead.id, "warm") is False

    def test_unknown_lead(self, engine):
        assert engine.change_lead_status("not-a-uuid", "hot") is False


class TestConversion:
    def test_convert_creates_student(self, engine, staff, make_lead):
        lead = make_lead()
        student = engine.convert_lead_to_student(lead.id, staff.id)

        assert student.status == "pending_contract"
        assert student.current_step == 1
        assert student.assigned_staff_id == staff.id
        assert student.lead_id == lead.id
        converted = engine.get_lead_by_id(lead.id)
        assert converted.status == "converted"
        assert converted.converted_to_student_id == student.id
        assert converted.converted_at is not None

    def test_double_conversion_rejected(self, engine, staff, make_lead):
        lead = make_lead()
        first = engine.convert_lead_to_student(lead.id, staff.id)
        second = engine.convert_lead_to_student(lead.id, staff.id)

        assert first is not None
        assert second is None
        assert [s.id for s in engine.get_all_students()] == [first.id]

    def test_lost_lead_cannot_convert(self, engine, staff, make_lead):
        lead = make_lead()
        engine.change_lead_status(lead.id, "lost")
        assert engine.convert_lead_to_student(lead.id, staff.id) is None
        assert engine.get_all_students() == []

    def test_unknown_staff_rolls_back(self, engine, make_lead):
        from uuid import uuid4

        lead = make_lead()
        assert engine.convert_lead_to_student(lead.id, uuid4()) is None
        assert engine.get_lead_by_id(lead.id).status == "new"

    def test_conversion_is_audited_once(self, engine, staff, make_lead, audit_sink):
        lead = make_lead()
        engine.convert_lead_to_student(lead.id, staff.id)
        converted = [r for r in audit_sink.records if r.action == AuditAction.LEAD_CONVERTED.value]
        assert len(converted) == 1
        assert converted[0].entity_id == str(lead.id)


class TestIdleLeads:
    def test_idle_after_threshold(self, engine, clock, make_lead):
        lead = make_lead()
        clock.advance_days(8)
        assert [l.id for l in engine.get_idle_leads()] == [lead.id]

    def test_contact_resets_idle_clock(self, engine, clock, make_lead):
        lead = make_lead()
        clock.advance_days(6)
        engine.record_lead_contact(lead.id)
        clock.advance_days(6)
        assert engine.get_idle_leads() == []

    def test_terminal_leads_never_idle(self, engine, clock, make_lead):
        lost = make_lead()
        engine.change_lead_status(lost.id, "lost")
        clock.advance_days(30)
        assert engine.get_idle_leads() == []

    def test_explicit_days(self, engine, clock, make_lead):
        make_lead()
        clock.advance_days(2)
        assert len(engine.get_idle_leads(days=1)) == 1
        assert engine.get_idle_leads() == []

    def test_emit_idle_alerts(self, engine, clock, staff, admin, make_lead, notification_sink):
        make_lead()
        clock.advance_days(8)
        count = engine.emit_idle_alerts()

        assert count == 2
        assert len(notification_sink.for_user(str(staff.id))) == 1
        assert len(notification_sink.for_user(str(admin.id))) == 1
        assert engine.get_unread_notification_count(staff.id) == 1
