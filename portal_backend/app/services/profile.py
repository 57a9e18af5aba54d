from sqlalchemy.orm import Session

from app.core.errors import RecordNotFoundError
from app.core.logging_config import get_logger
from app.models.portal_session import PortalSession
from app.schemas.student import ExternalIdResponse, ProfileResponse, ProfileRow
from app.services.auth import session_user
from app.services.backend_client import BackendClient
from app.services.classifier import classify
from app.services.documents import layout_out, student_out
from app.services.layout import DocumentType, resolve_layout
from app.services.normalizer import CanonicalStudent, normalize
from app.services.photos import has_photo

log = get_logger("profile")

# (label, canonical field, always shown)
_PERSONAL_ROWS = [
    ("Name", "name", True),
    ("College Roll Number", "autonomous_roll_no", True),
    ("Exam Roll Number", "exam_roll_no", True),
    ("Date of Birth", "dob", True),
    ("Department", "department", False),
    ("Course", "course", False),
    ("Father's Name", "father_name", False),
    ("Mother's Name", "mother_name", False),
    ("Mobile", "mobile", False),
    ("Email", "email", False),
]


def personal_rows(student: CanonicalStudent) -> list[ProfileRow]:
    rows = []
    for label, name, always in _PERSONAL_ROWS:
        value = student.known(name)
        if value:
            rows.append(ProfileRow(label=label, value=value))
        elif always:
            rows.append(ProfileRow(label=label, value="N/A"))
    return rows


def _profile_record(client: BackendClient, session: PortalSession) -> dict:
    try:
        return client.fetch_profile()
    except RecordNotFoundError:
        log.info("No upstream profile for %s; using login snapshot", session.autonomous_roll_no)
        return session_user(session)


def build_profile(db: Session, client: BackendClient, session: PortalSession) -> ProfileResponse:
    student = normalize(_profile_record(client, session))
    classification = classify(student)
    layout = resolve_layout(classification, DocumentType.PROFILE, student.available_fields)
    return ProfileResponse(
        student=student_out(student),
        student_type=classification.student_type_label,
        personal=personal_rows(student),
        academic=layout_out(layout, student, present_only=True).columns,
        has_profile_photo=has_photo(db, student.autonomous_roll_no),
    )


def register_external_id(client: BackendClient, roll_no: str, abc_id: str) -> ExternalIdResponse:
    ack = client.submit_external_id(roll_no, abc_id.strip())
    stored = abc_id.strip()
    message = None
    if isinstance(ack, dict):
        nested = ack.get("student") if isinstance(ack.get("student"), dict) else {}
        stored = ack.get("abcId") or ack.get("ABC_ID") or nested.get("ABC_ID") or nested.get("abcId") or stored
        message = ack.get("message")
    log.info("Registered external id for %s", roll_no)
    return ExternalIdResponse(autonomous_roll_no=roll_no, abc_id=str(stored), message=message)
