from portal.extensions import socketio
from portal.utils.access import verify_meeting_access, verify_exam_access


class TestVerifyMeetingAccess:
    def test_known_participant_joins_and_is_registered_once(self, app_ctx, db, make_batch, make_participant):
        batch_id = make_batch("Live")
        make_participant("IITP001")

        first = verify_meeting_access("IITP001", str(batch_id))
        second = verify_meeting_access("IITP001", str(batch_id))

        assert first["success"] is True
        assert first["batch_id"] == str(batch_id)
        assert second["success"] is True
        assert second["registration"]["id"] == first["registration"]["id"]
        assert first["created"] is True
        assert second["created"] is False
        assert db.registrations.count_documents({"batch_id": batch_id}) == 1

    def test_unknown_identifier_fails_with_message(self, app_ctx, make_batch):
        batch_id = make_batch("Live")
        result = verify_meeting_access("NOPE", str(batch_id))
        assert result["success"] is False
        assert result["error"]

    def test_matching_is_case_sensitive(self, app_ctx, make_batch, make_participant):
        batch_id = make_batch("Live")
        make_participant("IITP001")
        assert verify_meeting_access("iitp001", str(batch_id))["success"] is False

    def test_surrounding_whitespace_is_ignored(self, app_ctx, make_batch, make_participant):
        batch_id = make_batch("Live")
        make_participant("IITP001")
        assert verify_meeting_access("  IITP001 ", str(batch_id))["success"] is True

    def test_inactive_batch_refuses(self, app_ctx, make_batch, make_participant):
        batch_id = make_batch("Paused", active=False)
        make_participant("IITP001")
        result = verify_meeting_access("IITP001", str(batch_id))
        assert result["success"] is False
        assert "not accepting" in result["error"]

    def test_cancelled_batch_refuses(self, app_ctx, make_batch, make_participant):
        batch_id = make_batch("Off", isCancelled=True, cancellationReason="Trainer unwell")
        make_participant("IITP001")
        result = verify_meeting_access("IITP001", str(batch_id))
        assert result["success"] is False
        assert "Trainer unwell" in result["error"]

    def test_unknown_batch(self, app_ctx, make_participant):
        make_participant("IITP001")
        result = verify_meeting_access("IITP001", "64b7f0000000000000000000")
        assert result["success"] is False
        assert result["error"]


class TestVerifyExamAccess:
    def test_enrolled_participant_gets_course_id(self, app_ctx, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["diploma"])
        result = verify_exam_access("IITP001", "exam1")
        assert result == {"success": True, "course_id": course_with_exam,
                          "participant_id": result["participant_id"]}

    def test_unknown_identifier(self, app_ctx, course_with_exam):
        result = verify_exam_access("NOPE", "exam1")
        assert result["success"] is False
        assert result["error"] == "No participant found with this IITP No."

    def test_unknown_exam(self, app_ctx, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["Diploma"])
        result = verify_exam_access("IITP001", "missing")
        assert result == {"success": False, "error": "Exam not found in any course."}

    def test_inactive_exam(self, app_ctx, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["Diploma"])
        result = verify_exam_access("IITP001", "exam2")
        assert result["success"] is False
        assert "not currently active" in result["error"]

    def test_not_enrolled(self, app_ctx, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["Advance Diploma"])
        result = verify_exam_access("IITP001", "exam1")
        assert result["success"] is False
        assert "(Diploma)" in result["error"]

    def test_denied_course(self, app_ctx, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["Diploma"], denied=[course_with_exam])
        result = verify_exam_access("IITP001", "exam1")
        assert result["success"] is False
        assert "revoked" in result["error"]


class TestAccessRoutes:
    def test_join_returns_meeting_link(self, client, db, make_batch, make_participant):
        trainer_id = db.trainers.insert_one({"name": "T", "meetingLink": "https://meet.example.com/t"}).inserted_id
        batch_id = make_batch("Live", trainerId=str(trainer_id))
        make_participant("IITP001")

        resp = client.post(f"/api/batches/{batch_id}/join", json={"iitpNo": "IITP001"})
        assert resp.status_code == 200
        assert resp.get_json()["meetingLink"] == "https://meet.example.com/t"

    def test_join_failure_is_a_value(self, client, make_batch):
        batch_id = make_batch("Live")
        resp = client.post(f"/api/batches/{batch_id}/join", json={"iitpNo": "NOPE"})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False and body["error"]

    def test_exam_verify_route(self, client, make_participant, course_with_exam):
        make_participant("IITP001", enrolled=["Diploma"])
        ok = client.post("/api/exams/exam1/verify", json={"iitpNo": "IITP001"})
        assert ok.status_code == 200
        assert ok.get_json()["course_id"] == course_with_exam

        denied = client.post("/api/exams/exam1/verify", json={"iitpNo": "OTHER"})
        assert denied.status_code == 403
        assert denied.get_json()["success"] is False

    def test_only_first_join_announces_registration(self, client, monkeypatch, make_batch, make_participant):
        events = []
        monkeypatch.setattr(socketio, "emit", lambda event, payload, **kw: events.append((event, payload)))
        batch_id = make_batch("Live")
        make_participant("IITP001")

        for _ in range(3):
            assert client.post(f"/api/batches/{batch_id}/join", json={"iitpNo": "IITP001"}).status_code == 200

        assert [e for e, _ in events] == ["registration_added"]
        assert events[0][1]["batch_id"] == str(batch_id)
