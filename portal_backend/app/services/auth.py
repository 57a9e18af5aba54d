import json

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import SessionExpiredError
from app.core.logging_config import get_logger
from app.core.security import create_access_token, decode_access_token, upstream_token_expired
from app.models.portal_session import PortalSession
from app.schemas.auth import LoginRequest, SessionOut, TokenResponse
from app.services.backend_client import BackendClient
from app.services.normalizer import normalize

log = get_logger("auth")

_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_backend_transport() -> httpx.BaseTransport | None:
    """Transport for upstream calls; ``None`` means real network I/O."""
    return None


def login_user(db: Session, payload: LoginRequest, client: BackendClient) -> TokenResponse:
    data = client.login(payload.autonomous_roll_no, payload.dob)
    user = data["user"]
    student = normalize(user)
    session = PortalSession(
        autonomous_roll_no=student.autonomous_roll_no,
        backend_token=data["token"],
        user_snapshot=json.dumps(user),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    log.info("Opened session %s for %s", session.id, student.autonomous_roll_no)
    return TokenResponse(access_token=create_access_token(session.id), user=user)


def end_session(db: Session, session: PortalSession):
    log.info("Closing session %s for %s", session.id, session.autonomous_roll_no)
    db.delete(session)
    db.commit()


def session_user(session: PortalSession) -> dict:
    try:
        user = json.loads(session.user_snapshot)
    except ValueError:
        return {}
    return user if isinstance(user, dict) else {}


def describe_session(session: PortalSession) -> SessionOut:
    return SessionOut(
        session_id=session.id,
        autonomous_roll_no=session.autonomous_roll_no,
        user=session_user(session),
    )


def get_current_session(
    token: str | None = Depends(_oauth2_scheme),
    db: Session = Depends(get_db),
) -> PortalSession:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")
    session_id = decode_access_token(token)
    if session_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.")
    session = db.get(PortalSession, session_id)
    if session is None:
        raise SessionExpiredError()
    if upstream_token_expired(session.backend_token):
        end_session(db, session)
        raise SessionExpiredError()
    return session


def get_public_client(transport: httpx.BaseTransport | None = Depends(get_backend_transport)):
    client = BackendClient(transport=transport)
    try:
        yield client
    finally:
        client.close()


def get_backend_client(
    session: PortalSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    transport: httpx.BaseTransport | None = Depends(get_backend_transport),
):
    # Upstream rejecting the token ends the portal session too
    client = BackendClient(
        token=session.backend_token,
        transport=transport,
        on_session_expired=lambda: end_session(db, session),
    )
    try:
        yield client
    finally:
        client.close()
