"""
Document views: admit card, marksheet and grade sheet.

Each view runs the same pipeline: fetch the record, normalize it, classify
the student, resolve the layout and, for the admit card, apply the export
gate. Export renders the document to an image and paginates it into a PDF.
"""

from dataclasses import dataclass
from datetime import date

from PIL import Image
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ExportError, ExportNotPermittedError
from app.core.logging_config import get_logger
from app.schemas.marksheet import GradeSheetResponse
from app.schemas.student import (
    AdmitCardResponse,
    ClassificationOut,
    EligibilityOut,
    LayoutColumnOut,
    LayoutOut,
    StudentOut,
)
from app.services import renderer
from app.services.backend_client import BackendClient
from app.services.classifier import Classification, classify
from app.services.eligibility import EligibilityState
from app.services.exporter import ExportOptions, ExportResult, export
from app.services.layout import DocumentLayout, DocumentType, resolve_layout
from app.services.marksheets import (
    build_grade_sheet,
    build_view,
    classify_student_info,
    find_semester,
    load_marksheets,
)
from app.services.normalizer import CanonicalStudent, normalize
from app.services.photos import get_photo

log = get_logger("documents")


@dataclass
class AdmitCardContext:
    student: CanonicalStudent
    classification: Classification
    layout: DocumentLayout
    eligibility: EligibilityState
    photo: bytes | None


def student_out(student: CanonicalStudent) -> StudentOut:
    return StudentOut(
        autonomous_roll_no=student.autonomous_roll_no,
        exam_roll_no=student.known("exam_roll_no"),
        name=student.known("name"),
        department=student.known("department"),
        course=student.known("course"),
        dob=student.known("dob"),
        external_id=student.known("external_id"),
    )


def classification_out(classification: Classification) -> ClassificationOut:
    return ClassificationOut(
        category=classification.category.value,
        stream=classification.stream,
        batch=classification.batch,
        is_pg=classification.is_pg,
        student_type=classification.student_type_label,
    )


def layout_out(layout: DocumentLayout, student: CanonicalStudent, present_only: bool = False) -> LayoutOut:
    columns = [
        LayoutColumnOut(header=c.header, source_key=c.source_key, value=student.value(c.source_key))
        for c in layout.columns
    ]
    if present_only:
        columns = [c for c in columns if c.value]
    return LayoutOut(rule=layout.rule, section_variant=layout.section_variant, columns=columns)


def _export_options() -> ExportOptions:
    return ExportOptions(target_width_px=int(renderer.DESIGN_WIDTH * settings.render_scale))


def _render(render, *args, **kwargs) -> Image.Image:
    try:
        return render(*args, **kwargs)
    except (OSError, ValueError) as exc:
        log.exception("Rendering with %s failed", render.__name__)
        raise ExportError() from exc


# ── Admit card ────────────────────────────────────────────────────────────────

def admit_card_context(db: Session, client: BackendClient, roll_no: str) -> AdmitCardContext:
    student = normalize(client.fetch_admit_card(roll_no))
    classification = classify(student)
    layout = resolve_layout(classification, DocumentType.ADMIT_CARD, student.available_fields)
    photo = get_photo(db, student.autonomous_roll_no)
    eligibility = EligibilityState(
        has_profile_photo=photo is not None,
        has_external_id=student.known("external_id") is not None,
    )
    return AdmitCardContext(
        student=student,
        classification=classification,
        layout=layout,
        eligibility=eligibility,
        photo=photo.data if photo is not None else None,
    )


def build_admit_card(db: Session, client: BackendClient, roll_no: str) -> AdmitCardResponse:
    ctx = admit_card_context(db, client, roll_no)
    return AdmitCardResponse(
        student=student_out(ctx.student),
        classification=classification_out(ctx.classification),
        layout=layout_out(ctx.layout, ctx.student),
        eligibility=EligibilityOut(
            has_profile_photo=ctx.eligibility.has_profile_photo,
            has_external_id=ctx.eligibility.has_external_id,
            can_export=ctx.eligibility.can_export,
            restriction_message=ctx.eligibility.restriction_message,
        ),
        header=[
            settings.institution_name,
            f"ADMIT CARD (BATCH -{ctx.classification.batch or ''})",
            f"EXAMINATION-{settings.examination_year}",
        ],
        stream_label=None if ctx.classification.is_pg else ctx.classification.display_stream,
        department_label=ctx.student.known("department"),
    )


def export_admit_card(db: Session, client: BackendClient, roll_no: str) -> ExportResult:
    ctx = admit_card_context(db, client, roll_no)
    if not ctx.eligibility.can_export:
        raise ExportNotPermittedError(ctx.eligibility.restriction_message)
    surface = _render(renderer.render_admit_card, ctx.student, ctx.classification, ctx.layout, ctx.photo)
    return export(
        surface,
        "admit_card",
        ctx.student.autonomous_roll_no,
        date.today().isoformat(),
        _export_options(),
    )


# ── Marksheets and grade sheets ───────────────────────────────────────────────

def export_marksheet(client: BackendClient, roll_no: str, semester: str) -> ExportResult:
    student, records = load_marksheets(client, roll_no)
    record = find_semester(records, semester)
    classification = classify_student_info(student)
    view = build_view(record, classification)
    surface = _render(renderer.render_marksheet, student, view, classification.batch)
    return export(surface, "marksheet", student.autonomous_roll_no, f"sem{record.semester}", _export_options())


def grade_sheet(client: BackendClient, roll_no: str, semester: str) -> GradeSheetResponse:
    student, records = load_marksheets(client, roll_no)
    record = find_semester(records, semester)
    return build_grade_sheet(student, record, classify_student_info(student))


def export_grade_sheet(client: BackendClient, roll_no: str, semester: str) -> ExportResult:
    sheet = grade_sheet(client, roll_no, semester)
    surface = _render(renderer.render_grade_sheet, sheet)
    return export(surface, "grade_sheet", sheet.student.autonomous_roll_no, f"sem{sheet.semester}", _export_options())
