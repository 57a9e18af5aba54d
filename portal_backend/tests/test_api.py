"""
API tests: login, admit card, profile, photo, ABC ID and result documents
"""
from io import BytesIO

import httpx
from pypdf import PdfReader

from conftest import BBA_STUDENT, login, make_course, make_marksheet, png_bytes


def upload_photo(client, headers, data=None, content_type="image/png"):
    files = {"file": ("me.png", data if data is not None else png_bytes(), content_type)}
    return client.post("/api/students/profile/photo", headers=headers, files=files)


class TestLogin:
    """POST /api/auth/login and session lookup"""

    def test_login_returns_portal_token(self, client):
        response = client.post(
            "/api/auth/login",
            json={"autonomousRollNo": " 03BBA24-001 ", "dob": "15072005"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["autonomousRollNo"] == "03BBA24-001"

    def test_me(self, client, bba_headers):
        response = client.get("/api/me", headers=bba_headers)
        assert response.status_code == 200
        assert response.json()["autonomous_roll_no"] == "03BBA24-001"
        assert response.json()["user"]["Department"] == "BBA"

    def test_me_requires_token(self, client):
        response = client.get("/api/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Not authenticated."

    def test_garbage_token(self, client):
        response = client.get("/api/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_bad_dob_format(self, client):
        response = client.post("/api/auth/login", json={"autonomousRollNo": "03BBA24-001", "dob": "31-02-2005"})
        assert response.status_code == 422

    def test_unknown_student(self, client):
        response = client.post("/api/auth/login", json={"autonomousRollNo": "NOPE-1", "dob": "01-01-2005"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Student not found. Please check your Roll No and Date of Birth."
        assert response.json()["retry"] is False

    def test_wrong_dob(self, client):
        response = client.post("/api/auth/login", json={"autonomousRollNo": "03BBA24-001", "dob": "16-07-2005"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid date of birth"

    def test_upstream_down(self, client, upstream):
        upstream.down = True
        response = client.post("/api/auth/login", json={"autonomousRollNo": "03BBA24-001", "dob": "15-07-2005"})
        assert response.status_code == 502
        assert response.json()["retry"] is True

    def test_user_without_roll_number(self, client, upstream):
        upstream.add_student({"autonomousRollNo": "NAC24-050", "dob": "01-01-2004"})
        original = upstream._login

        def login_without_roll(request):
            response = original(request)
            body = response.json()
            body["user"] = {"name": "Nameless"}
            return httpx.Response(200, json=body)

        upstream._login = login_without_roll
        response = client.post("/api/auth/login", json={"autonomousRollNo": "NAC24-050", "dob": "01-01-2004"})
        assert response.status_code == 422
        assert response.json()["detail"] == "Unable to retrieve student information."

    def test_logout(self, client, bba_headers):
        assert client.post("/api/auth/logout", headers=bba_headers).status_code == 204
        assert client.get("/api/me", headers=bba_headers).status_code == 401


class TestSessionExpiry:
    """Upstream token expiry ends the portal session"""

    def test_upstream_rejection_clears_session(self, client, upstream, bba_headers):
        upstream.revoked.add(upstream.issued["03BBA24-001"])

        response = client.get("/api/students/admit-card", headers=bba_headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "Token is not valid"
        assert client.get("/api/me", headers=bba_headers).status_code == 401

    def test_expired_upstream_token(self, client, upstream):
        upstream.token_lifetime = -60
        headers = login(client, BBA_STUDENT["autonomousRollNo"], BBA_STUDENT["dob"])
        response = client.get("/api/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "Your session has expired. Please log in again."


class TestAdmitCard:
    """GET /api/students/admit-card and its PDF"""

    def test_bba_layout(self, client, bba_headers):
        response = client.get("/api/students/admit-card", headers=bba_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["classification"]["category"] == "BBA"
        assert data["classification"]["batch"] == 2024
        assert data["layout"]["rule"] == "bba-second-semester"
        headers = [c["header"] for c in data["layout"]["columns"]]
        assert headers[0] == "CC-201"
        assert data["layout"]["columns"][-1]["value"] == "Environmental Studies"
        assert data["header"][1] == "ADMIT CARD (BATCH -2024)"
        assert data["stream_label"] == "BBA"

    def test_gate_both_missing(self, client, bba_headers):
        eligibility = client.get("/api/students/admit-card", headers=bba_headers).json()["eligibility"]
        assert eligibility["can_export"] is False
        assert eligibility["restriction_message"] == (
            "Please upload your profile photo and Please register your ABC ID"
        )

    def test_pdf_blocked_without_requirements(self, client, bba_headers):
        response = client.get("/api/students/admit-card/pdf", headers=bba_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Please upload your profile photo and Please register your ABC ID"

    def test_pdf_blocked_without_photo(self, client, pg_headers):
        response = client.get("/api/students/admit-card/pdf", headers=pg_headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Please upload your profile photo"

    def test_pg_hides_stream(self, client, pg_headers):
        data = client.get("/api/students/admit-card", headers=pg_headers).json()
        assert data["classification"]["is_pg"] is True
        assert data["stream_label"] is None
        assert data["department_label"] == "Physics"
        assert data["layout"]["rule"] == "pg-legacy-papers"

    def test_pdf_after_photo_and_abc_id(self, client, bba_headers):
        assert upload_photo(client, bba_headers).status_code == 200
        response = client.post("/api/students/abc-id", headers=bba_headers, json={"abcId": "ABC555"})
        assert response.status_code == 200
        assert response.json()["abc_id"] == "ABC555"

        eligibility = client.get("/api/students/admit-card", headers=bba_headers).json()["eligibility"]
        assert eligibility == {
            "has_profile_photo": True,
            "has_external_id": True,
            "can_export": True,
            "restriction_message": "",
        }

        response = client.get("/api/students/admit-card/pdf", headers=bba_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="admit_card_03BBA24-001_' in response.headers["content-disposition"]
        pages = len(PdfReader(BytesIO(response.content)).pages)
        assert pages == int(response.headers["x-page-count"])

    def test_upstream_missing_record(self, client, upstream, bba_headers):
        del upstream.students["03BBA24-001"]
        response = client.get("/api/students/admit-card", headers=bba_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Admit card not found."


class TestProfileAndPhoto:
    """Profile view and photo management"""

    def test_profile(self, client, bba_headers):
        response = client.get("/api/students/profile", headers=bba_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["student_type"] == "BBA Student"
        personal = {row["label"]: row["value"] for row in data["personal"]}
        assert personal["Name"] == "Asha Das"
        assert personal["Exam Roll Number"] == "2401001"
        assert "Mobile" not in personal
        academic = {row["header"]: row["value"] for row in data["academic"]}
        assert academic["Multi Disciplinary"] == "Indian Economy"
        assert data["has_profile_photo"] is False

    def test_photo_round_trip(self, client, bba_headers):
        image = png_bytes()
        response = upload_photo(client, bba_headers, image)
        assert response.status_code == 200
        assert response.json()["size"] == len(image)

        fetched = client.get("/api/students/profile/photo", headers=bba_headers)
        assert fetched.status_code == 200
        assert fetched.content == image
        assert client.get("/api/students/profile", headers=bba_headers).json()["has_profile_photo"] is True

        assert client.delete("/api/students/profile/photo", headers=bba_headers).status_code == 204
        assert client.get("/api/students/profile/photo", headers=bba_headers).status_code == 404

    def test_photo_must_be_image(self, client, bba_headers):
        response = upload_photo(client, bba_headers, b"%PDF-1.4", "application/pdf")
        assert response.status_code == 415
        assert response.json()["detail"] == "Please select an image file"

    def test_photo_bytes_must_decode(self, client, bba_headers):
        response = upload_photo(client, bba_headers, b"not really a png", "image/png")
        assert response.status_code == 415

    def test_photo_kept_when_upstream_down(self, client, upstream, bba_headers):
        upstream.down = True
        assert upload_photo(client, bba_headers).status_code == 200
        upstream.down = False
        assert client.get("/api/students/profile/photo", headers=bba_headers).status_code == 200

    def test_abc_id_validation(self, client, bba_headers):
        response = client.post("/api/students/abc-id", headers=bba_headers, json={"abcId": ""})
        assert response.status_code == 422

    def test_blank_abc_id_rejected(self, client, upstream, bba_headers):
        response = client.post("/api/students/abc-id", headers=bba_headers, json={"abcId": "   "})
        assert response.status_code == 422
        assert "ABC_ID" not in upstream.students["03BBA24-001"]
        assert not [r for r in upstream.requests if r.url.path.endswith("/abc-id/register")]

    def test_abc_id_stripped(self, client, upstream, bba_headers):
        response = client.post("/api/students/abc-id", headers=bba_headers, json={"abcId": " ABC1 "})
        assert response.status_code == 200
        assert upstream.students["03BBA24-001"]["ABC_ID"] == "ABC1"


class TestResults:
    """Marksheets and grade sheets"""

    def test_marksheet_list_sorted(self, client, bba_headers):
        response = client.get("/api/marksheets", headers=bba_headers)
        assert response.status_code == 200
        data = response.json()
        assert [m["record"]["semester"] for m in data["marksheets"]] == [1, 2]
        first = data["marksheets"][0]
        assert first["section_variant"] == "theory-internal-practical"
        assert first["totals"]["consistent"] is True
        assert data["student"]["autonomous_roll_no"] == "03BBA24-001"

    def test_envelope_response(self, client, upstream, pg_headers):
        populated = {"Name of the Students": "Ravi Sahu", "Autonomous Roll No": "111NAC24-017", "ABC_ID": "ABC998877"}
        upstream.marksheets["111NAC24-017"] = {
            "student": {"name": "Ravi Sahu", "autonomousRollNo": "111NAC24-017"},
            "marksheets": [make_marksheet(1, student=populated)],
        }
        data = client.get("/api/marksheets", headers=pg_headers).json()
        assert data["student"]["abc_id"] == "ABC998877"

    def test_midsem_endsem_columns(self, client, upstream, pg_headers):
        courses = [make_course(i, midsem=18, endsem=56) for i in range(1, 4)]
        upstream.marksheets["111NAC24-017"] = [make_marksheet(1, courses)]
        view = client.get("/api/marksheets", headers=pg_headers).json()["marksheets"][0]
        assert view["section_variant"] == "midsem-endsem"
        assert "Mid Sem" in view["columns"]

    def test_no_marksheets(self, client, pg_headers):
        response = client.get("/api/marksheets", headers=pg_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "No marksheets found"

    def test_marksheet_pdf(self, client, upstream, bba_headers):
        courses = [make_course(i) for i in range(1, 9)]
        upstream.marksheets["03BBA24-001"] = [make_marksheet(1, courses)]
        response = client.get("/api/marksheets/1/pdf", headers=bba_headers)
        assert response.status_code == 200
        assert 'filename="marksheet_03BBA24-001_sem1.pdf"' in response.headers["content-disposition"]
        reader = PdfReader(BytesIO(response.content))
        assert len(reader.pages) == int(response.headers["x-page-count"])

    def test_grade_sheet(self, client, bba_headers):
        response = client.get("/api/grade-sheets/2", headers=bba_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["exam_title"] == "SEMESTER - 2 EXAMINATION - 2025"
        assert len(data["rows"]) == 4
        assert data["grading_system"][0] == {"grade": "O", "marks_range": "90-100", "grade_points": 10}
        assert data["columns"][0] == "SUBJECT CODE"
        assert data["section_variant"] == "grades"
        assert len(data["columns"]) == len(data["column_keys"])

    def test_numeric_upstream_values(self, client, upstream, bba_headers):
        populated = {"Autonomous Roll No": "03BBA24-001", "Roll No": 2401001, "Department": "BBA"}
        upstream.marksheets["03BBA24-001"] = [make_marksheet(1, [make_course(1, subjectCode=101)], student=populated)]
        response = client.get("/api/marksheets", headers=bba_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["student"]["roll_no"] == "2401001"
        assert data["marksheets"][0]["record"]["courses"][0]["subject_code"] == "101"

        sheet = client.get("/api/grade-sheets/1", headers=bba_headers)
        assert sheet.status_code == 200
        assert sheet.json()["student"]["roll_no"] == "2401001"

    def test_grade_sheet_pdf(self, client, bba_headers):
        response = client.get("/api/grade-sheets/1/pdf", headers=bba_headers)
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_unpublished_semester(self, client, bba_headers):
        response = client.get("/api/grade-sheets/6", headers=bba_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "No marksheet published for semester 6."


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
