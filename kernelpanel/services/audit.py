import logging
from typing import Optional

from sqlalchemy.orm import Session

from kernelpanel.models import AuditLog

logger = logging.getLogger(__name__)


def write_audit(
    db: Session, actor: str, action: str, entity_type: str, entity_id: str, payload: Optional[dict] = None
) -> AuditLog:
    record = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else "pending",
        payload=payload or {},
    )
    db.add(record)
    logger.info("%s %s %s/%s", actor, action, entity_type, record.entity_id)
    return record
