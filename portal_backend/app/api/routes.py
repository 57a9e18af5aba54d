from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.models.portal_session import PortalSession
from app.schemas.auth import LoginRequest, SessionOut, TokenResponse
from app.schemas.marksheet import GradeSheetResponse, MarksheetListResponse
from app.schemas.student import (
    AdmitCardResponse,
    ExternalIdRequest,
    ExternalIdResponse,
    PhotoResponse,
    ProfileResponse,
)
from app.services.auth import (
    describe_session,
    end_session,
    get_backend_client,
    get_current_session,
    get_public_client,
    login_user,
)
from app.services.backend_client import BackendClient
from app.services.documents import (
    build_admit_card,
    export_admit_card,
    export_grade_sheet,
    export_marksheet,
    grade_sheet,
)
from app.services.exporter import ExportResult
from app.services.marksheets import list_marksheets
from app.services.photos import delete_photo, get_photo, save_photo
from app.services.profile import build_profile, register_external_id

router = APIRouter(prefix="/api")


def _pdf_response(result: ExportResult) -> Response:
    return Response(
        content=result.pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Page-Count": str(result.page_count),
        },
    )


# ── Auth ──────────────────────────────────────────────────────────────────────

@router.post("/auth/login", response_model=TokenResponse)
def login_endpoint(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    client: BackendClient = Depends(get_public_client),
):
    return login_user(db, payload, client)


@router.post("/auth/logout", status_code=204)
def logout_endpoint(
    session: PortalSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    end_session(db, session)
    return Response(status_code=204)


@router.get("/me", response_model=SessionOut)
def me_endpoint(session: PortalSession = Depends(get_current_session)):
    return describe_session(session)


# ── Students ──────────────────────────────────────────────────────────────────

@router.get("/students/admit-card", response_model=AdmitCardResponse)
def admit_card_endpoint(
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
    db: Session = Depends(get_db),
):
    return build_admit_card(db, client, session.autonomous_roll_no)


@router.get("/students/admit-card/pdf")
def admit_card_pdf_endpoint(
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
    db: Session = Depends(get_db),
):
    return _pdf_response(export_admit_card(db, client, session.autonomous_roll_no))


@router.get("/students/profile", response_model=ProfileResponse)
def profile_endpoint(
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
    db: Session = Depends(get_db),
):
    return build_profile(db, client, session)


@router.post("/students/profile/photo", response_model=PhotoResponse)
def upload_photo_endpoint(
    file: UploadFile = File(...),
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
    db: Session = Depends(get_db),
):
    data = file.file.read(settings.max_photo_bytes + 1)
    photo = save_photo(db, session.autonomous_roll_no, file.filename, file.content_type, data, client)
    return PhotoResponse(
        autonomous_roll_no=photo.autonomous_roll_no,
        content_type=photo.content_type,
        size=len(photo.data),
        updated_at=photo.updated_at,
    )


@router.get("/students/profile/photo")
def get_photo_endpoint(
    session: PortalSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    photo = get_photo(db, session.autonomous_roll_no)
    if photo is None:
        raise HTTPException(status_code=404, detail="No photo uploaded.")
    return Response(content=photo.data, media_type=photo.content_type)


@router.delete("/students/profile/photo", status_code=204)
def delete_photo_endpoint(
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
    db: Session = Depends(get_db),
):
    delete_photo(db, session.autonomous_roll_no, client)
    return Response(status_code=204)


@router.post("/students/abc-id", response_model=ExternalIdResponse)
def register_external_id_endpoint(
    payload: ExternalIdRequest,
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
):
    return register_external_id(client, session.autonomous_roll_no, payload.abc_id)


# ── Marksheets ────────────────────────────────────────────────────────────────

@router.get("/marksheets", response_model=MarksheetListResponse)
def marksheets_endpoint(
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
):
    return list_marksheets(client, session.autonomous_roll_no)


@router.get("/marksheets/{semester}/pdf")
def marksheet_pdf_endpoint(
    semester: str,
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
):
    return _pdf_response(export_marksheet(client, session.autonomous_roll_no, semester))


@router.get("/grade-sheets/{semester}", response_model=GradeSheetResponse)
def grade_sheet_endpoint(
    semester: str,
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
):
    return grade_sheet(client, session.autonomous_roll_no, semester)


@router.get("/grade-sheets/{semester}/pdf")
def grade_sheet_pdf_endpoint(
    semester: str,
    session: PortalSession = Depends(get_current_session),
    client: BackendClient = Depends(get_backend_client),
):
    return _pdf_response(export_grade_sheet(client, session.autonomous_roll_no, semester))
