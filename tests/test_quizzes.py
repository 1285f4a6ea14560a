"""Integration tests for quiz authoring, publication and reads.

Covers:
  POST  /api/quizzes/
  PATCH /api/quizzes/{id}
  POST  /api/quizzes/{id}/publish
  GET   /api/quizzes/{id}
  GET   /api/quizzes/class/{class_id}
"""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from classquiz.db.models import Classroom, NotificationTypeEnum, Quiz, RoleEnum

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _questions() -> list[dict]:
    return [
        {
            "text": "Which organelle makes ATP?",
            "question_type": "multiple-choice",
            "options": ["Nucleus", "Mitochondria"],
            "correct_answer": "Mitochondria",
            "points": 2,
        },
        {
            "text": "Plants photosynthesize.",
            "question_type": "true-false",
            "correct_answer": "true",
            "points": 1,
        },
        {
            "text": "Explain osmosis.",
            "question_type": "short-answer",
            "points": 3,
        },
    ]


def _payload(classroom: Classroom, **overrides) -> dict:
    payload = {
        "class_id": str(classroom.id),
        "title": "Cells quiz",
        "description": "Chapter 2",
        "questions": _questions(),
        "duration_minutes": 30,
        "start_time": (T0 + timedelta(hours=1)).isoformat(),
        "end_time": (T0 + timedelta(hours=3)).isoformat(),
    }
    payload.update(overrides)
    return payload


def _create(client: TestClient, auth, teacher, classroom, **overrides) -> dict:
    resp = client.post("/api/quizzes/", json=_payload(classroom, **overrides), headers=auth(teacher))
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Create ─────────────────────────────────────────────────────────────────────


class TestCreateQuiz:
    def test_create_draft(self, client: TestClient, auth, teacher, classroom):
        data = _create(client, auth, teacher, classroom)
        assert data["is_published"] is False
        assert data["status"] == "draft"
        assert data["question_count"] == 3
        assert data["total_points"] == 6
        assert data["created_by"] == str(teacher.id)
        # creator sees keys; true-false key is stored as a real boolean
        assert data["questions"][0]["correct_answer"] == "Mitochondria"
        assert data["questions"][1]["correct_answer"] is True
        assert data["questions"][2]["correct_answer"] is None

    def test_student_cannot_create(self, client: TestClient, auth, student, classroom):
        resp = client.post("/api/quizzes/", json=_payload(classroom), headers=auth(student))
        assert resp.status_code == 403
        body = resp.json()
        assert body["success"] is False
        assert body["error_code"] == "forbidden"

    def test_teacher_of_another_class_cannot_create(self, client: TestClient, auth, make_user, classroom):
        other = make_user(RoleEnum.TEACHER)
        resp = client.post("/api/quizzes/", json=_payload(classroom), headers=auth(other))
        assert resp.status_code == 403

    def test_unknown_class(self, client: TestClient, auth, teacher, classroom):
        payload = _payload(classroom, class_id="00000000-0000-0000-0000-000000000000")
        resp = client.post("/api/quizzes/", json=payload, headers=auth(teacher))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Class not found"

    def test_start_must_precede_end(self, client: TestClient, auth, teacher, classroom):
        payload = _payload(classroom, end_time=(T0 + timedelta(minutes=30)).isoformat())
        resp = client.post("/api/quizzes/", json=payload, headers=auth(teacher))
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "validation_error"

    def test_invalid_question_rejected_without_side_effects(
        self, client: TestClient, db: Session, auth, teacher, classroom
    ):
        bad = _questions()
        bad[0]["correct_answer"] = "Golgi"
        resp = client.post("/api/quizzes/", json=_payload(classroom, questions=bad), headers=auth(teacher))
        assert resp.status_code == 422
        assert "Question 1" in resp.json()["message"]
        assert db.query(Quiz).count() == 0

    def test_loosely_typed_questions_rejected(
        self, client: TestClient, db: Session, auth, teacher, classroom
    ):
        bad_points = _questions()
        bad_points[0]["points"] = True
        resp = client.post("/api/quizzes/", json=_payload(classroom, questions=bad_points), headers=auth(teacher))
        assert resp.status_code == 422

        numeric_key = _questions()
        numeric_key[1]["correct_answer"] = 1
        resp = client.post("/api/quizzes/", json=_payload(classroom, questions=numeric_key), headers=auth(teacher))
        assert resp.status_code == 422
        assert db.query(Quiz).count() == 0

    def test_requires_token(self, client: TestClient, classroom):
        resp = client.post("/api/quizzes/", json=_payload(classroom))
        assert resp.status_code == 401


# ── Update ─────────────────────────────────────────────────────────────────────


class TestUpdateQuiz:
    def test_update_metadata(self, client: TestClient, auth, teacher, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}",
            json={"title": "Cells quiz (v2)", "duration_minutes": 45},
            headers=auth(teacher),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Cells quiz (v2)"
        assert data["duration_minutes"] == 45
        assert data["description"] == "Chapter 2"

    def test_replace_questions_while_draft(self, client: TestClient, auth, teacher, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}",
            json={"questions": _questions()[:1]},
            headers=auth(teacher),
        )
        assert resp.status_code == 200
        assert resp.json()["question_count"] == 1
        assert resp.json()["total_points"] == 2

    def test_merged_times_are_revalidated(self, client: TestClient, auth, teacher, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}",
            json={"start_time": (T0 + timedelta(hours=5)).isoformat()},
            headers=auth(teacher),
        )
        assert resp.status_code == 422

    def test_questions_locked_after_publish(self, client: TestClient, auth, teacher, classroom):
        quiz = _create(client, auth, teacher, classroom)
        client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}",
            json={"questions": _questions()[:1]},
            headers=auth(teacher),
        )
        assert resp.status_code == 409
        # metadata is still editable
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}", json={"description": "Updated"}, headers=auth(teacher)
        )
        assert resp.status_code == 200

    def test_only_creator_can_update(self, client: TestClient, auth, teacher, student, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.patch(f"/api/quizzes/{quiz['id']}", json={"title": "x"}, headers=auth(student))
        assert resp.status_code == 403

    def test_unknown_quiz(self, client: TestClient, auth, teacher, classroom):
        resp = client.patch(
            "/api/quizzes/00000000-0000-0000-0000-000000000000",
            json={"title": "x"},
            headers=auth(teacher),
        )
        assert resp.status_code == 404


# ── Publish ────────────────────────────────────────────────────────────────────


class TestPublishQuiz:
    def test_publish_notifies_every_enrolled_student(
        self, client: TestClient, auth, teacher, student, make_user, enroll, classroom, mock_deliver
    ):
        second = make_user(RoleEnum.STUDENT)
        enroll(classroom, second)
        quiz = _create(client, auth, teacher, classroom)

        resp = client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        assert resp.status_code == 200
        assert resp.json()["is_published"] is True
        assert resp.json()["status"] == "upcoming"

        assert mock_deliver.delay.call_count == 2
        recipients = {c.args[0] for c in mock_deliver.delay.call_args_list}
        assert recipients == {str(student.id), str(second.id)}
        args = mock_deliver.delay.call_args_list[0].args
        assert args[1] == NotificationTypeEnum.QUIZ_PUBLISHED.value
        assert args[2] == "New Quiz Available: Cells quiz"
        assert "Biology 101" in args[3]
        assert args[4] == quiz["id"]
        assert args[5] == "Quiz"

    def test_republish_is_a_noop(self, client: TestClient, auth, teacher, classroom, mock_deliver):
        quiz = _create(client, auth, teacher, classroom)
        client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        resp = client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        assert resp.status_code == 200
        assert mock_deliver.delay.call_count == 1

    def test_cannot_publish_empty_quiz(self, client: TestClient, auth, teacher, classroom, mock_deliver):
        quiz = _create(client, auth, teacher, classroom, questions=[])
        resp = client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "validation_error"
        mock_deliver.delay.assert_not_called()

    def test_publish_survives_notification_failure(
        self, client: TestClient, db: Session, auth, teacher, classroom, mock_deliver
    ):
        mock_deliver.delay.side_effect = ConnectionError("broker down")
        quiz = _create(client, auth, teacher, classroom)
        resp = client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        assert resp.status_code == 200
        db.expire_all()
        assert db.query(Quiz).one().is_published is True

    def test_only_creator_can_publish(self, client: TestClient, auth, teacher, student, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(student))
        assert resp.status_code == 403


# ── Reads & redaction ──────────────────────────────────────────────────────────


class TestQuizReads:
    def test_student_cannot_see_draft(self, client: TestClient, auth, teacher, student, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=auth(student))
        assert resp.status_code == 403

    def test_student_read_is_redacted(self, client: TestClient, auth, teacher, student, classroom):
        quiz = _create(client, auth, teacher, classroom)
        client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))

        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=auth(student))
        assert resp.status_code == 200
        for question in resp.json()["questions"]:
            assert "correct_answer" not in question
            assert "text" in question

    def test_creator_read_has_keys(self, client: TestClient, auth, teacher, classroom):
        quiz = _create(client, auth, teacher, classroom)
        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=auth(teacher))
        assert all("correct_answer" in q for q in resp.json()["questions"])

    def test_outsider_forbidden(self, client: TestClient, auth, teacher, make_user, classroom):
        quiz = _create(client, auth, teacher, classroom)
        client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))
        outsider = make_user(RoleEnum.STUDENT)
        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=auth(outsider))
        assert resp.status_code == 403

    def test_status_follows_clock(self, client: TestClient, auth, teacher, student, classroom, clock):
        quiz = _create(client, auth, teacher, classroom)
        client.post(f"/api/quizzes/{quiz['id']}/publish", headers=auth(teacher))

        clock.set(T0 + timedelta(hours=1))  # inclusive start
        assert client.get(f"/api/quizzes/{quiz['id']}", headers=auth(student)).json()["status"] == "active"
        clock.set(T0 + timedelta(hours=3))  # inclusive end
        assert client.get(f"/api/quizzes/{quiz['id']}", headers=auth(student)).json()["status"] == "active"
        clock.advance(seconds=1)
        assert client.get(f"/api/quizzes/{quiz['id']}", headers=auth(student)).json()["status"] == "ended"


class TestListClassQuizzes:
    def test_teacher_sees_drafts_student_does_not(
        self, client: TestClient, auth, teacher, student, classroom
    ):
        first = _create(client, auth, teacher, classroom, title="Published one")
        _create(client, auth, teacher, classroom, title="Draft one")
        client.post(f"/api/quizzes/{first['id']}/publish", headers=auth(teacher))

        teacher_view = client.get(f"/api/quizzes/class/{classroom.id}", headers=auth(teacher)).json()
        assert {q["title"] for q in teacher_view} == {"Published one", "Draft one"}
        assert all("correct_answer" in q for quiz in teacher_view for q in quiz["questions"])

        student_view = client.get(f"/api/quizzes/class/{classroom.id}", headers=auth(student)).json()
        assert [q["title"] for q in student_view] == ["Published one"]
        assert all("correct_answer" not in q for q in student_view[0]["questions"])

    def test_outsider_forbidden(self, client: TestClient, auth, make_user, classroom):
        outsider = make_user(RoleEnum.STUDENT)
        resp = client.get(f"/api/quizzes/class/{classroom.id}", headers=auth(outsider))
        assert resp.status_code == 403

    def test_unknown_class(self, client: TestClient, auth, teacher):
        resp = client.get(
            "/api/quizzes/class/00000000-0000-0000-0000-000000000000", headers=auth(teacher)
        )
        assert resp.status_code == 404
