"""
Client for the college records API.

Every upstream call goes through ``BackendClient._request`` so status codes
map onto the portal's error types in one place.
"""

from typing import Any, Callable

import httpx

from app.core.config import settings
from app.core.errors import (
    BackendUnavailableError,
    InvalidCredentialsError,
    PortalError,
    RecordNotFoundError,
    SessionExpiredError,
)
from app.core.logging_config import get_logger
from app.core.security import upstream_token_expired

log = get_logger("backend")

LOGIN_PATH = "/auth/login"
ADMIT_CARD_PATH = "/students/admit-card"
PROFILE_PATH = "/students/profile"
PROFILE_PHOTO_PATH = "/students/profile/photo"
MARKSHEET_PATH = "/marksheet/autonomous/{roll_no}"
EXTERNAL_ID_PATH = "/abc-id/register"


def _message_from(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return None


class BackendClient:
    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ):
        self.token = token
        self._on_session_expired = on_session_expired
        self._client = httpx.Client(
            base_url=(base_url or settings.backend_api_url).rstrip("/"),
            timeout=timeout if timeout is not None else settings.backend_timeout_seconds,
            transport=transport,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _session_expired(self, message: str | None = None) -> SessionExpiredError:
        if self._on_session_expired is not None:
            self._on_session_expired()
        return SessionExpiredError(message)

    def _headers(self, auth: bool) -> dict[str, str]:
        if not auth:
            return {}
        if upstream_token_expired(self.token):
            raise self._session_expired()
        return {"Authorization": f"Bearer {self.token}"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        auth: bool = True,
        not_found: str | None = None,
        unauthorized: type[PortalError] = SessionExpiredError,
        **kwargs,
    ) -> Any:
        headers = self._headers(auth)
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            log.warning("Upstream %s %s timed out: %s", method, path, exc)
            raise BackendUnavailableError("The records server took too long to respond. Please try again.")
        except httpx.HTTPError as exc:
            log.error("Upstream %s %s failed: %s", method, path, exc)
            raise BackendUnavailableError()

        log.info("Upstream %s %s -> %s", method, path, response.status_code)
        if response.status_code == 404:
            raise RecordNotFoundError(_message_from(response) or not_found)
        if response.status_code == 401:
            if unauthorized is SessionExpiredError:
                raise self._session_expired(_message_from(response))
            raise unauthorized(_message_from(response))
        if response.is_error:
            raise BackendUnavailableError(_message_from(response))
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            log.error("Upstream %s %s returned non-JSON body", method, path)
            raise BackendUnavailableError()

    # ── Auth ──────────────────────────────────────────────────────────────────

    def login(self, autonomous_roll_no: str, dob: str) -> dict:
        payload = {"autonomousRollNo": autonomous_roll_no, "dob": dob}
        data = self._request(
            "POST",
            LOGIN_PATH,
            auth=False,
            json=payload,
            not_found="Student not found. Please check your Roll No and Date of Birth.",
            unauthorized=InvalidCredentialsError,
        )
        if not isinstance(data, dict):
            raise InvalidCredentialsError("Login failed")
        if not data.get("token") or not isinstance(data.get("user"), dict):
            raise InvalidCredentialsError(data.get("message") or "Login failed")
        return data

    # ── Students ──────────────────────────────────────────────────────────────

    def fetch_admit_card(self, autonomous_roll_no: str) -> dict:
        data = self._request(
            "GET",
            ADMIT_CARD_PATH,
            params={"autonomousRollNo": autonomous_roll_no},
            not_found="Admit card not found.",
        )
        if not isinstance(data, dict):
            raise BackendUnavailableError()
        return data

    def fetch_profile(self) -> dict:
        data = self._request("GET", PROFILE_PATH, not_found="Profile not found.")
        if isinstance(data, dict) and isinstance(data.get("student"), dict):
            return data["student"]
        return data

    def upload_photo(self, filename: str, content_type: str, data: bytes) -> dict:
        return self._request(
            "POST",
            PROFILE_PHOTO_PATH,
            files={"photo": (filename, data, content_type)},
        )

    def delete_photo(self) -> dict:
        try:
            return self._request("DELETE", PROFILE_PHOTO_PATH)
        except RecordNotFoundError:
            # Nothing stored upstream; the local copy is still removed
            return {}

    def submit_external_id(self, autonomous_roll_no: str, external_id: str) -> dict:
        return self._request(
            "POST",
            EXTERNAL_ID_PATH,
            json={"autonomousRollNo": autonomous_roll_no, "abcId": external_id},
        )

    # ── Marksheets ────────────────────────────────────────────────────────────

    def fetch_marksheets(self, autonomous_roll_no: str) -> Any:
        if not autonomous_roll_no:
            raise PortalError("Autonomous roll number is required")
        return self._request(
            "GET",
            MARKSHEET_PATH.format(roll_no=autonomous_roll_no),
            auth=False,
            not_found="Failed to fetch marksheets",
        )
