"""
Student portal test configuration and fixtures.

The college records API is replaced by ``FakeUpstream``, an in-process
``httpx.MockTransport`` handler, so no test touches the network.
"""
import json
import os
import time
from io import BytesIO

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-portal-secret"
os.environ["BACKEND_API_URL"] = "http://records.test/api"

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.main import app
from app.models.base import Base
from app.services.auth import get_backend_transport

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)

UPSTREAM_SECRET = "records-api-secret"


def upstream_token(roll_no: str, expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": roll_no, "exp": int(time.time()) + expires_in},
        UPSTREAM_SECRET,
        algorithm="HS256",
    )


def png_bytes(size=(40, 50), color=(30, 90, 160)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_course(index: int, credit: float = 4, grade_point: float = 8, **extra) -> dict:
    course = {
        "courseType": "CORE" if index % 2 else "AEC",
        "subjectName": f"Paper {index} Principles and Practice",
        "subjectCode": f"CC-{100 + index}",
        "credit": credit,
        "grade": "A",
        "gradePoint": grade_point,
        "creditPoint": credit * grade_point,
        "marks": 74,
        "theory": 52,
        "internal": 14,
        "practical": 8,
    }
    course.update(extra)
    return course


def make_marksheet(semester: int, courses: list[dict] | None = None, student: dict | None = None) -> dict:
    courses = courses if courses is not None else [make_course(i) for i in range(1, 5)]
    record = {
        "_id": f"ms-{semester}",
        "semester": semester,
        "courses": courses,
        "totalCredits": sum(c["credit"] for c in courses),
        "totalCreditPoints": sum(c["creditPoint"] for c in courses),
        "sgpa": 8.0,
        "percentage": 74.0,
        "classification": "First Class",
        "publishedAt": "2025-06-30",
    }
    if student is not None:
        record["student"] = student
    return record


BBA_STUDENT = {
    "autonomousRollNo": "03BBA24-001",
    "Name of the Students": "Asha Das",
    "Roll No": "2401001",
    "Department": "BBA",
    "dob": "15-07-2005",
    "CC-201": "Financial Accounting",
    "CC-202": "Business Statistics",
    "CC-203": "Organisational Behaviour",
    "Multi Disciplinary-201": "Indian Economy",
    "AEC-201": "Odia Communication",
    "SEC-201": "Digital Marketing",
    "VAC-201-I": {"C": "Environmental Studies"},
}

PG_STUDENT = {
    "autonomousRollNo": "111NAC24-017",
    "name": "Ravi Sahu",
    "rollNo": "PG24017",
    "department": "Physics",
    "dob": "02-02-2001",
    "ABC_ID": "ABC998877",
    "CP-101": "Classical Mechanics",
    "CP-102": "Mathematical Physics",
}


class FakeUpstream:
    """Just enough of the college records API for the portal's calls."""

    def __init__(self):
        self.students: dict[str, dict] = {}
        self.marksheets: dict[str, object] = {}
        self.revoked: set[str] = set()
        self.issued: dict[str, str] = {}
        self.token_lifetime = 3600
        self.down = False
        self.requests: list[httpx.Request] = []

    def add_student(self, record: dict, marksheets=None):
        self.students[record["autonomousRollNo"]] = dict(record)
        if marksheets is not None:
            self.marksheets[record["autonomousRollNo"]] = marksheets

    def _caller(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ").strip()
        if not token or token in self.revoked:
            return None
        return jwt.get_unverified_claims(token).get("sub")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path.removeprefix("/api")
        if request.method == "POST" and path == "/auth/login":
            return self._login(request)
        if path.startswith("/marksheet/autonomous/"):
            roll_no = path.rsplit("/", 1)[-1]
            if roll_no not in self.marksheets:
                return httpx.Response(404, json={"message": "No marksheets found"})
            return httpx.Response(200, json=self.marksheets[roll_no])

        roll_no = self._caller(request)
        if roll_no is None:
            return httpx.Response(401, json={"message": "Token is not valid"})
        student = self.students.get(roll_no)
        if student is None:
            return httpx.Response(404, json={})

        if path == "/students/admit-card":
            return httpx.Response(200, json=student)
        if path == "/students/profile":
            return httpx.Response(200, json={"student": student})
        if path == "/students/profile/photo":
            return httpx.Response(200, json={"message": "Photo updated"})
        if request.method == "POST" and path == "/abc-id/register":
            body = json.loads(request.content)
            student["ABC_ID"] = body["abcId"]
            return httpx.Response(200, json={"message": "ABC ID registered", "abcId": body["abcId"]})
        return httpx.Response(404, json={"message": "Not found"})

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        student = self.students.get(body.get("autonomousRollNo"))
        if student is None:
            return httpx.Response(404, json={})
        if student.get("dob") != body.get("dob"):
            return httpx.Response(401, json={"message": "Invalid date of birth"})
        token = upstream_token(student["autonomousRollNo"], self.token_lifetime)
        self.issued[student["autonomousRollNo"]] = token
        return httpx.Response(200, json={"token": token, "user": student})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def db_session():
    """Fresh schema for each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def upstream() -> FakeUpstream:
    fake = FakeUpstream()
    fake.add_student(BBA_STUDENT, marksheets=[make_marksheet(2), make_marksheet(1)])
    fake.add_student(PG_STUDENT)
    return fake


@pytest.fixture
def client(db_session, upstream):
    """Test client with the database and the records API overridden"""

    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_backend_transport] = upstream.transport
    yield TestClient(app)
    app.dependency_overrides.clear()


def login(client: TestClient, roll_no: str, dob: str) -> dict:
    response = client.post("/api/auth/login", json={"autonomousRollNo": roll_no, "dob": dob})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def bba_headers(client) -> dict:
    return login(client, BBA_STUDENT["autonomousRollNo"], BBA_STUDENT["dob"])


@pytest.fixture
def pg_headers(client) -> dict:
    return login(client, PG_STUDENT["autonomousRollNo"], PG_STUDENT["dob"])
