from html import escape
from urllib.parse import quote

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from kernelpanel.models import Kernel, User
from kernelpanel.services.users import find_by_sublink


def resolve_user_by_sublink(db: Session, sublink: str) -> User:
    user = find_by_sublink(db, sublink)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="subscription_not_found")
    return user


def build_subscription_payload(db: Session, user: User) -> dict:
    kernel = db.get(Kernel, user.kernel_id)
    return {
        "username": user.username,
        "status": user.status.value,
        "kernel_name": kernel.name if kernel else user.kernel_id,
        "protocol": user.protocol,
        "data_allowance_gb": user.data_allowance_gb,
        "data_used_gb": user.data_used_gb,
        "remaining_gb": user.remaining_gb,
        "usage_state": user.usage_state,
        "expires_at": user.expires_at,
        "is_expired": user.is_expired,
        "sublink_path": user.sublink_path,
    }


def subscription_links(base_url: str, sublink: str) -> dict:
    sub_url = f"{base_url.rstrip('/')}/api/v1/subscriptions/{sublink}"
    encoded = quote(sub_url, safe="")
    return {
        "subscription_url": sub_url,
        "page_url": f"{base_url.rstrip('/')}/api/v1/sub/{sublink}",
        "sing_box": f"sing-box://import-remote-profile?url={encoded}",
        "v2rayng": f"v2rayng://install-config?url={encoded}",
    }


USAGE_COLOURS = {"ok": "#3fb950", "low": "#d29922", "critical": "#f85149", "full": "#f85149", "n/a": "#8b949e"}


def render_subscription_page(payload: dict, links: dict) -> str:
    links_html = "".join(
        f'<a style="display:block;padding:9px 10px;background:#263143;color:#f4f6fb;text-decoration:none;border-radius:8px;" href="{escape(url)}">{escape(name)}</a>'
        for name, url in links.items()
    )
    allowance = payload["data_allowance_gb"]
    usage = f"{payload['data_used_gb']:g} / {allowance:g} GB" if allowance > 0 else f"{payload['data_used_gb']:g} GB (unlimited)"
    colour = USAGE_COLOURS.get(payload["usage_state"], "#8b949e")
    expiry = "expired" if payload["is_expired"] else payload["expires_at"].strftime("%Y-%m-%d")

    return f"""
<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Subscription · {escape(payload["username"])}</title>
</head>
<body style="margin:0;background:#0f141b;color:#f0f4fb;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',sans-serif;">
  <div style="max-width:720px;margin:0 auto;padding:20px;">
    <div style="border:1px solid #2d3748;border-radius:14px;padding:18px;background:#161e28;">
      <h1 style="margin:0 0 10px 0;">{escape(payload["username"])}</h1>
      <p style="margin:0 0 4px 0;color:#a9b6c9;">Status: {escape(payload["status"])}</p>
      <p style="margin:0 0 4px 0;color:#a9b6c9;">Kernel: {escape(payload["kernel_name"])} · {escape(payload["protocol"])}</p>
      <p style="margin:0 0 4px 0;color:{colour};">Usage: {escape(usage)}</p>
      <p style="margin:0 0 12px 0;color:#a9b6c9;">Expires: {escape(expiry)}</p>
      <div style="display:grid;grid-template-columns:repeat(auto-fit,minmax(180px,1fr));gap:8px;">{links_html}</div>
    </div>
  </div>
</body>
</html>
"""
