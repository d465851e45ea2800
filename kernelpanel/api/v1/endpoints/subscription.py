from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from kernelpanel.core.config import get_settings
from kernelpanel.db.session import get_db
from kernelpanel.schemas.users import SubscriptionResponse
from kernelpanel.services.subscription import (
    build_subscription_payload,
    render_subscription_page,
    resolve_user_by_sublink,
    subscription_links,
)

router = APIRouter(tags=["subscription"])
settings = get_settings()


@router.get("/subscriptions/{sublink}", response_model=SubscriptionResponse)
def subscription(sublink: str, db: Session = Depends(get_db)) -> dict:
    user = resolve_user_by_sublink(db, sublink)
    return build_subscription_payload(db, user)


@router.get("/subscriptions/{sublink}/links")
def subscription_client_links(sublink: str, db: Session = Depends(get_db)) -> dict:
    user = resolve_user_by_sublink(db, sublink)
    return subscription_links(settings.public_base_url, user.sublink_path)


@router.get("/sub/{sublink}", response_class=HTMLResponse)
def subscription_page(sublink: str, db: Session = Depends(get_db)) -> HTMLResponse:
    user = resolve_user_by_sublink(db, sublink)
    payload = build_subscription_payload(db, user)
    return HTMLResponse(render_subscription_page(payload, subscription_links(settings.public_base_url, sublink)))
