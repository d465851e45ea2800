from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.core.rate_limit import login_throttle
from kernelpanel.db.session import get_db
from kernelpanel.schemas.auth import (
    AdminResponse,
    ChangePasswordRequest,
    ChangeUsernameRequest,
    LoginRequest,
    TokenResponse,
)
from kernelpanel.services.audit import write_audit
from kernelpanel.services.auth import (
    AdminContext,
    authenticate_admin,
    create_access_token,
    get_current_admin,
    hash_password,
    load_panel,
    revoke_sessions,
    verify_password,
)
from kernelpanel.services.validation import ConfigValidationError, invalid_value

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _token_response(token: str) -> TokenResponse:
    return TokenResponse(access_token=token, expires_in=settings.session_timeout_minutes * 60)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)) -> TokenResponse:
    client_host = request.client.host if request.client else "unknown"
    throttle_key = login_throttle.key(client_host, payload.username)
    if login_throttle.is_locked(throttle_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="too_many_login_attempts")

    try:
        panel = authenticate_admin(db, payload.username, payload.password)
    except HTTPException:
        login_throttle.record_failure(throttle_key)
        raise

    login_throttle.record_success(throttle_key)
    write_audit(db, panel.username, "auth.login", "panel_settings", str(panel.id))
    db.commit()
    return _token_response(create_access_token(panel))


@router.post("/refresh", response_model=TokenResponse)
def refresh(db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> TokenResponse:
    return _token_response(create_access_token(load_panel(db)))


@router.get("/me", response_model=AdminResponse)
def me(admin: AdminContext = Depends(get_current_admin)) -> AdminResponse:
    return AdminResponse(username=admin.username, session_timeout_minutes=settings.session_timeout_minutes)


@router.post("/change-username", response_model=TokenResponse)
def change_username(
    payload: ChangeUsernameRequest,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> TokenResponse:
    panel = load_panel(db)
    if not verify_password(payload.current_password, panel.password_hash):
        raise ConfigValidationError([invalid_value("currentPassword", "current password is incorrect")])

    panel.username = payload.new_username
    revoke_sessions(panel)
    write_audit(db, admin.username, "auth.username_changed", "panel_settings", str(panel.id), {"username": panel.username})
    db.commit()
    return _token_response(create_access_token(panel))


@router.post("/change-password", response_model=TokenResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> TokenResponse:
    panel = load_panel(db)
    if not verify_password(payload.current_password, panel.password_hash):
        raise ConfigValidationError([invalid_value("currentPassword", "current password is incorrect")])

    panel.password_hash = hash_password(payload.new_password)
    revoke_sessions(panel)
    write_audit(db, admin.username, "auth.password_changed", "panel_settings", str(panel.id))
    db.commit()
    return _token_response(create_access_token(panel))
