from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import AuditLog
from kernelpanel.schemas.base import MAX_INT32
from kernelpanel.services.auth import get_current_admin

router = APIRouter(prefix="/audit", tags=["audit"], dependencies=[Depends(get_current_admin)])


@router.get("/logs")
def list_audit_logs(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0, le=MAX_INT32),
    action: Optional[str] = Query(default=None),
    entity_type: Optional[str] = Query(default=None),
    entity_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    criteria = []
    if action:
        criteria.append(AuditLog.action == action)
    if entity_type:
        criteria.append(AuditLog.entity_type == entity_type)
    if entity_id:
        criteria.append(AuditLog.entity_id == entity_id)

    logs = Repository(db, AuditLog)
    items = logs.list(*criteria, order_by=[desc(AuditLog.created_at)], offset=offset, limit=limit)
    return {
        "items": [
            {
                "id": item.id,
                "actor": item.actor,
                "action": item.action,
                "entityType": item.entity_type,
                "entityId": item.entity_id,
                "payload": item.payload,
                "createdAt": item.created_at,
            }
            for item in items
        ],
        "total": logs.count(*criteria),
    }
