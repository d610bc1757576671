import mongomock
import pytest
from datetime import datetime, timedelta

from portal import create_app
from portal.config import TestingConfig
from portal.models.staff import create_staff


@pytest.fixture
def app():
    app = create_app(TestingConfig, mongo_client=mongomock.MongoClient())
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return app.mongo.db


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def staff_headers(app, client, role, username, password="secret123", **extra):
    with app.app_context():
        create_staff(role, username.title(), username, password, **extra)
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return bearer(resp.get_json()["token"])


@pytest.fixture
def admin_headers(app, client):
    return staff_headers(app, client, "superadmin", "admin")


@pytest.fixture
def trainer_headers(app, client):
    return staff_headers(app, client, "trainer", "trainer1", meetingLink="https://meet.example.com/t1")


@pytest.fixture
def supervisor_headers(app, client):
    return staff_headers(app, client, "supervisor", "super1", organization="Belden India")


@pytest.fixture
def make_batch(db):
    def _make(name="Batch", created_at=None, active=True, **extra):
        doc = {
            "name": name,
            "createdAt": created_at or datetime(2024, 1, 1, 9, 0),
            "active": active,
            **extra,
        }
        return db.batches.insert_one(doc).inserted_id
    return _make


@pytest.fixture
def make_participant(db):
    def _make(iitp_no="IITP001", name="Asha Patil", mobile="9876543210",
              organization="Belden India", enrolled=None, denied=None):
        doc = {
            "name": name,
            "iitpNo": iitp_no,
            "mobile": mobile,
            "organization": organization,
            "enrolledCourses": enrolled or [],
            "deniedCourses": denied or [],
            "completedLessons": [],
            "examProgress": {},
            "createdAt": datetime(2024, 1, 1) + timedelta(minutes=len(iitp_no)),
        }
        return db.participants.insert_one(doc).inserted_id
    return _make


@pytest.fixture
def course_with_exam(db):
    db.courses.insert_one({
        "_id": "diploma",
        "name": "Diploma",
        "status": "active",
        "subjects": [],
        "exams": [
            {
                "id": "exam1",
                "title": "Safety Basics",
                "status": "active",
                "questions": [
                    {"id": "q1", "text": "Pick A", "type": "multiple-choice",
                     "options": ["A", "B"], "correctAnswers": ["A"]},
                    {"id": "q2", "text": "Pick A and C", "type": "checkbox",
                     "options": ["A", "B", "C"], "correctAnswers": ["A", "C"]},
                    {"id": "q3", "text": "Explain", "type": "paragraph"},
                ],
            },
            {"id": "exam2", "title": "Closed", "status": "inactive", "questions": []},
        ],
    })
    return "diploma"
