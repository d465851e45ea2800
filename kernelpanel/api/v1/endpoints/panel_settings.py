import copy

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import InboundProtocol, PanelSettings, XrayInbound
from kernelpanel.schemas.panel_settings import (
    BlockedCountriesUpdate,
    DomainSettingsUpdate,
    FakeSiteUpdate,
    PanelSettingsResponse,
    SystemSettingsUpdate,
    TelegramSettingsUpdate,
    TorServiceUpdate,
    WarpSettingsUpdate,
    XrayInboundCreate,
    XrayInboundResponse,
    XrayInboundUpdate,
)
from kernelpanel.services.audit import write_audit
from kernelpanel.services.auth import PANEL_SETTINGS_ID, AdminContext, get_current_admin, load_panel
from kernelpanel.services.catalog import SECTION_DEFAULTS
from kernelpanel.services.telegram import verify_bot_token

router = APIRouter(prefix="/panel-settings", tags=["panel-settings"], dependencies=[Depends(get_current_admin)])


def _save_section(db: Session, admin: AdminContext, section: str, changes: dict) -> PanelSettings:
    panel = load_panel(db)
    for key, value in changes.items():
        setattr(panel, key, value)
    write_audit(db, admin.username, f"panel_settings.{section}_updated", "panel_settings", str(panel.id), {"fields": sorted(changes)})
    db.commit()
    db.refresh(panel)
    return panel


@router.get("", response_model=PanelSettingsResponse)
def get_panel_settings(db: Session = Depends(get_db)) -> PanelSettings:
    return load_panel(db)


@router.put("/system", response_model=PanelSettingsResponse)
def update_system(
    payload: SystemSettingsUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    return _save_section(db, admin, "system", payload.model_dump())


@router.put("/domain", response_model=PanelSettingsResponse)
def update_domain(
    payload: DomainSettingsUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    return _save_section(db, admin, "domain", payload.model_dump())


@router.put("/telegram", response_model=PanelSettingsResponse)
def update_telegram(
    payload: TelegramSettingsUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    changes = payload.model_dump()
    if changes["telegram_bot_token"] != load_panel(db).telegram_bot_token:
        changes["is_telegram_bot_connected"] = False
    return _save_section(db, admin, "telegram", changes)


@router.post("/telegram/connect", response_model=PanelSettingsResponse)
def connect_telegram(db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> PanelSettings:
    panel = load_panel(db)
    bot = verify_bot_token(panel.telegram_bot_token)
    changes = {"is_telegram_bot_connected": True}
    if bot.get("username"):
        changes["telegram_bot_username"] = bot["username"]
    return _save_section(db, admin, "telegram_connection", changes)


@router.post("/telegram/disconnect", response_model=PanelSettingsResponse)
def disconnect_telegram(db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> PanelSettings:
    return _save_section(db, admin, "telegram_connection", {"is_telegram_bot_connected": False})


@router.put("/blocked-countries", response_model=PanelSettingsResponse)
def update_blocked_countries(
    payload: BlockedCountriesUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    return _save_section(db, admin, "blocked_countries", payload.model_dump())


@router.put("/tor-service", response_model=PanelSettingsResponse)
def update_tor_service(
    payload: TorServiceUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    return _save_section(db, admin, "tor_service", payload.model_dump())


@router.put("/warp", response_model=PanelSettingsResponse)
def update_warp(
    payload: WarpSettingsUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    return _save_section(db, admin, "warp", payload.model_dump())


@router.put("/fake-site", response_model=PanelSettingsResponse)
def update_fake_site(
    payload: FakeSiteUpdate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> PanelSettings:
    fake_site = dict(load_panel(db).fake_site or {})
    fake_site.update(payload.model_dump(by_alias=True))
    fake_site.setdefault("isValidated", False)
    return _save_section(db, admin, "fake_site", {"fake_site": fake_site})


@router.get("/xray-inbounds", response_model=list[XrayInboundResponse])
def list_inbounds(db: Session = Depends(get_db)) -> list[XrayInbound]:
    return Repository(db, XrayInbound).list(order_by=[XrayInbound.port])


@router.post("/xray-inbounds", response_model=XrayInboundResponse, status_code=status.HTTP_201_CREATED)
def create_inbound(
    payload: XrayInboundCreate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> XrayInbound:
    data = payload.model_dump()
    data["protocol"] = InboundProtocol(data["protocol"])
    inbound = Repository(db, XrayInbound).put(XrayInbound(panel_settings_id=PANEL_SETTINGS_ID, **data))
    write_audit(db, admin.username, "xray_inbound.created", "xray_inbound", inbound.id, {"tag": inbound.tag})
    db.commit()
    db.refresh(inbound)
    return inbound


@router.put("/xray-inbounds/{inbound_id}", response_model=XrayInboundResponse)
def update_inbound(
    inbound_id: str,
    payload: XrayInboundUpdate,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> XrayInbound:
    inbounds = Repository(db, XrayInbound)
    inbound = inbounds.get_or_404(inbound_id, "xray_inbound_not_found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(inbound, key, InboundProtocol(value) if key == "protocol" else value)
    inbounds.put(inbound)
    write_audit(db, admin.username, "xray_inbound.updated", "xray_inbound", inbound.id, {"fields": sorted(changes)})
    db.commit()
    db.refresh(inbound)
    return inbound


@router.delete("/xray-inbounds/{inbound_id}")
def delete_inbound(inbound_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> dict:
    inbounds = Repository(db, XrayInbound)
    inbound = inbounds.get_or_404(inbound_id, "xray_inbound_not_found")
    tag = inbound.tag
    inbounds.delete(inbound_id)
    write_audit(db, admin.username, "xray_inbound.deleted", "xray_inbound", inbound_id, {"tag": tag})
    db.commit()
    return {"ok": True}


@router.post("/{section}/reset", response_model=PanelSettingsResponse)
def reset_section(section: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> PanelSettings:
    defaults = SECTION_DEFAULTS.get(section)
    if defaults is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown_settings_section")
    return _save_section(db, admin, f"{section.replace('-', '_')}_reset", copy.deepcopy(defaults))
