from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import BackendUnavailableError, RecordNotFoundError
from app.core.logging_config import get_logger
from app.schemas.marksheet import (
    GradeSheetResponse,
    GradingBand,
    MarksheetListResponse,
    MarksheetRecord,
    MarksheetView,
    StudentInfo,
    TotalsCheck,
)
from app.services.backend_client import BackendClient
from app.services.classifier import Classification, classify
from app.services.layout import DocumentType, resolve_layout
from app.services.normalizer import normalize

log = get_logger("marksheets")

GRADING_SYSTEM = [
    GradingBand(grade="O", marks_range="90-100", grade_points=10),
    GradingBand(grade="A+", marks_range="80-89", grade_points=9),
    GradingBand(grade="A", marks_range="70-79", grade_points=8),
    GradingBand(grade="B+", marks_range="60-69", grade_points=7),
    GradingBand(grade="B", marks_range="50-59", grade_points=6),
    GradingBand(grade="C", marks_range="40-49", grade_points=5),
    GradingBand(grade="P", marks_range="35-39", grade_points=4),
    GradingBand(grade="F", marks_range="Below 35", grade_points=0),
]

_TOTALS_TOLERANCE = 0.01


@dataclass
class MarksheetBundle:
    marksheets: list[dict] = field(default_factory=list)
    student: dict | None = None


def _student_from_populated(populated: dict) -> dict:
    return {
        "name": populated.get("Name of the Students") or populated.get("name"),
        "autonomousRollNo": populated.get("Autonomous Roll No") or populated.get("autonomousRollNo"),
        "rollNo": populated.get("Roll No") or populated.get("rollNo"),
        "department": populated.get("Department") or populated.get("department"),
        "abcId": populated.get("ABC_ID") or populated.get("abcId") or "",
    }


def adapt_marksheet_response(data: Any) -> MarksheetBundle:
    """Accept either a bare list of marksheets or a ``{student, marksheets}`` envelope.

    The external id only ever appears on the student object populated inside
    each marksheet, so that object is always consulted; top-level student
    values win where both are present.
    """
    if isinstance(data, list):
        marksheets = data
        top_level = None
    elif isinstance(data, dict) and isinstance(data.get("marksheets"), list):
        marksheets = data["marksheets"]
        top_level = data.get("student") if isinstance(data.get("student"), dict) else None
    else:
        log.warning("Unrecognised marksheet response shape: %s", type(data).__name__)
        raise BackendUnavailableError("Failed to fetch marksheets")

    populated = None
    if marksheets and isinstance(marksheets[0], dict) and isinstance(marksheets[0].get("student"), dict):
        populated = _student_from_populated(marksheets[0]["student"])

    if top_level is not None:
        top_level = _student_from_populated(top_level)

    if top_level is None:
        student = populated
    elif populated is None:
        student = top_level
    else:
        student = {key: top_level.get(key) or value for key, value in populated.items()}
        student["abcId"] = populated["abcId"] or top_level["abcId"]

    return MarksheetBundle(marksheets=marksheets, student=student)


def check_totals(record: MarksheetRecord) -> TotalsCheck:
    credits_sum = round(sum(c.credit or 0 for c in record.courses), 2)
    points_sum = round(sum(c.credit_point or 0 for c in record.courses), 2)
    consistent = True
    if record.total_credits is not None and abs(record.total_credits - credits_sum) > _TOTALS_TOLERANCE:
        consistent = False
    if (
        record.total_credit_points is not None
        and abs(record.total_credit_points - points_sum) > _TOTALS_TOLERANCE
    ):
        consistent = False
    if not consistent:
        log.warning(
            "Marksheet totals disagree with course rows (semester %s): credits %s vs %s, points %s vs %s",
            record.semester,
            record.total_credits,
            credits_sum,
            record.total_credit_points,
            points_sum,
        )
    return TotalsCheck(credits_sum=credits_sum, credit_points_sum=points_sum, consistent=consistent)


def _semester_key(record: MarksheetRecord):
    try:
        return 0, int(record.semester)
    except (TypeError, ValueError):
        return 1, str(record.semester)


def _parse_records(raw_marksheets: list[dict]) -> list[MarksheetRecord]:
    records = []
    for raw in raw_marksheets:
        try:
            records.append(MarksheetRecord.model_validate(raw))
        except ValidationError as exc:
            log.warning("Skipping malformed marksheet: %s", exc.errors()[:1])
    return sorted(records, key=_semester_key)


def _student_info(student: dict | None, roll_no: str) -> StudentInfo:
    student = student or {}
    return StudentInfo(
        name=student.get("name") or None,
        autonomous_roll_no=student.get("autonomousRollNo") or roll_no,
        roll_no=student.get("rollNo") or None,
        department=student.get("department") or None,
        abc_id=student.get("abcId") or None,
    )


def _course_fields(record: MarksheetRecord) -> set[str]:
    present = set()
    for course in record.courses:
        present.update(name for name, value in course.model_dump().items() if value not in (None, ""))
    # Layout rules speak the upstream (camelCase) vocabulary
    return {_camel(name) for name in present}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def classify_student_info(student: StudentInfo) -> Classification:
    return classify(normalize({"autonomousRollNo": student.autonomous_roll_no, "Department": student.department}))


def build_view(record: MarksheetRecord, classification: Classification) -> MarksheetView:
    layout = resolve_layout(classification, DocumentType.MARKSHEET, _course_fields(record))
    return MarksheetView(
        record=record,
        totals=check_totals(record),
        columns=[c.header for c in layout.columns],
        column_keys=layout.source_keys(),
        section_variant=layout.section_variant,
    )


def load_marksheets(client: BackendClient, roll_no: str) -> tuple[StudentInfo, list[MarksheetRecord]]:
    bundle = adapt_marksheet_response(client.fetch_marksheets(roll_no))
    return _student_info(bundle.student, roll_no), _parse_records(bundle.marksheets)


def list_marksheets(client: BackendClient, roll_no: str) -> MarksheetListResponse:
    student, records = load_marksheets(client, roll_no)
    classification = classify_student_info(student)
    return MarksheetListResponse(
        student=student,
        marksheets=[build_view(record, classification) for record in records],
    )


def find_semester(records: list[MarksheetRecord], semester: str) -> MarksheetRecord:
    for record in records:
        if str(record.semester) == str(semester):
            return record
    raise RecordNotFoundError(f"No marksheet published for semester {semester}.")


def build_grade_sheet(
    student: StudentInfo, record: MarksheetRecord, classification: Classification
) -> GradeSheetResponse:
    totals = check_totals(record)
    layout = resolve_layout(classification, DocumentType.GRADE_SHEET, _course_fields(record))
    return GradeSheetResponse(
        exam_title=f"SEMESTER - {record.semester} EXAMINATION - {settings.examination_year}",
        semester=record.semester,
        student=student,
        college=settings.institution_name,
        columns=[c.header for c in layout.columns],
        column_keys=layout.source_keys(),
        section_variant=layout.section_variant,
        rows=record.courses,
        total_credits=record.total_credits,
        total_credit_points=record.total_credit_points,
        totals_consistent=totals.consistent,
        result=record.classification,
        sgpa=record.sgpa,
        grading_system=GRADING_SYSTEM,
        publication_date=record.published_at,
    )
