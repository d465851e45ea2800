from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kernelpanel.db.session import get_db
from kernelpanel.models import Kernel, KernelStatus, NodeStatus, ServerNode, User, UserStatus, as_utc, utcnow
from kernelpanel.services.auth import get_current_admin

router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(get_current_admin)])


def _counts_by_status(db: Session, column, statuses) -> dict[str, int]:
    rows = db.execute(select(column, func.count()).group_by(column)).all()
    counts = {status.value: 0 for status in statuses}
    counts.update({status.value: total for status, total in rows})
    return counts


@router.get("/overview")
def overview(db: Session = Depends(get_db)) -> dict:
    users_by_status = _counts_by_status(db, User.status, UserStatus)
    now = utcnow()
    lapsed = sum(
        1
        for created_at, days in db.execute(select(User.created_at, User.validity_period_days)).all()
        if as_utc(created_at) + timedelta(days=days) <= now
    )
    data_used, data_allowance = db.execute(
        select(func.coalesce(func.sum(User.data_used_gb), 0), func.coalesce(func.sum(User.data_allowance_gb), 0))
    ).one()
    kernels_by_status = _counts_by_status(db, Kernel.status, KernelStatus)
    nodes_total = db.scalar(select(func.count(ServerNode.id))) or 0
    nodes_online = db.scalar(select(func.count(ServerNode.id)).where(ServerNode.status == NodeStatus.online)) or 0

    return {
        "users": {"total": sum(users_by_status.values()), "byStatus": users_by_status, "lapsed": lapsed},
        "kernels": {"total": sum(kernels_by_status.values()), "byStatus": kernels_by_status},
        "bandwidth": {"usedGB": float(data_used), "allowanceGB": float(data_allowance)},
        "serverNodes": {"total": nodes_total, "online": nodes_online},
    }
