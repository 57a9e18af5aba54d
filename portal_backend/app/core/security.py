import time
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings
from app.core.logging_config import logger

_ALGORITHM = "HS256"
_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def create_access_token(subject: Any) -> str:
    expire = datetime.utcnow() + timedelta(minutes=_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(
        {"sub": str(subject), "exp": expire},
        settings.jwt_secret,
        algorithm=_ALGORITHM,
    )


def decode_access_token(token: str) -> int | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[_ALGORITHM])
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        return None


def read_unverified_claims(token: str | None) -> dict | None:
    """Decode an upstream token's payload without checking its signature.

    Only used to notice expiry before the upstream does. Not a security check.
    """
    if not token:
        return None
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        logger.warning("Upstream token is not a decodable JWT")
        return None


def upstream_token_expired(token: str | None, now: float | None = None) -> bool:
    claims = read_unverified_claims(token)
    if claims is None:
        return True
    exp = claims.get("exp")
    if exp is None:
        return False
    current = time.time() if now is None else now
    try:
        return float(exp) < current
    except (TypeError, ValueError):
        return True
