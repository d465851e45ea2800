import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.db.session import get_db
from kernelpanel.models import PanelSettings

logger = logging.getLogger(__name__)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
settings = get_settings()

PANEL_SETTINGS_ID = 1


@dataclass
class AdminContext:
    username: str
    token_version: int


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def session_lifetime() -> timedelta:
    return timedelta(minutes=settings.session_timeout_minutes)


def create_access_token(panel: PanelSettings) -> str:
    now = _now()
    claims = {
        "sub": panel.username,
        "typ": "access",
        "v": panel.token_version,
        "iat": int(now.timestamp()),
        "exp": int((now + session_lifetime()).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="session_expired") from exc
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc


def load_panel(db: Session) -> PanelSettings:
    panel = db.get(PanelSettings, PANEL_SETTINGS_ID)
    if panel is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="panel_not_initialized")
    return panel


def authenticate_admin(db: Session, username: str, password: str) -> PanelSettings:
    panel = load_panel(db)
    if username != panel.username or not verify_password(password, panel.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_credentials")
    return panel


def resolve_admin(db: Session, authorization: Optional[str]) -> AdminContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="auth_required")

    claims = decode_token(authorization.removeprefix("Bearer ").strip())
    if claims.get("typ") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token_type")

    panel = load_panel(db)
    if claims.get("sub") != panel.username or claims.get("v") != panel.token_version:
        logger.info("Rejected revoked session for %s", claims.get("sub"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="session_revoked")
    return AdminContext(username=panel.username, token_version=panel.token_version)


def get_current_admin(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None),
) -> AdminContext:
    return resolve_admin(db, authorization)


def revoke_sessions(panel: PanelSettings) -> None:
    panel.token_version += 1
