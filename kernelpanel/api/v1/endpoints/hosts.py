from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import ManagedHost
from kernelpanel.schemas.hosts import ManagedHostCreate, ManagedHostResponse, ManagedHostUpdate
from kernelpanel.services.audit import write_audit
from kernelpanel.services.auth import AdminContext, get_current_admin

router = APIRouter(prefix="/hosts", tags=["hosts"], dependencies=[Depends(get_current_admin)])


@router.post("", response_model=ManagedHostResponse, status_code=status.HTTP_201_CREATED)
def create_host(
    payload: ManagedHostCreate, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)
) -> ManagedHost:
    host = Repository(db, ManagedHost).put(ManagedHost(**payload.model_dump()))
    write_audit(db, admin.username, "host.created", "managed_host", host.id, {"name": host.name})
    db.commit()
    db.refresh(host)
    return host


@router.get("", response_model=list[ManagedHostResponse])
def list_hosts(db: Session = Depends(get_db)) -> list[ManagedHost]:
    return Repository(db, ManagedHost).list(order_by=[ManagedHost.name])


@router.get("/{host_id}", response_model=ManagedHostResponse)
def get_host(host_id: str, db: Session = Depends(get_db)) -> ManagedHost:
    return Repository(db, ManagedHost).get_or_404(host_id, "host_not_found")


@router.put("/{host_id}", response_model=ManagedHostResponse)
def update_host(
    host_id: str,
    payload: ManagedHostUpdate,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> ManagedHost:
    hosts = Repository(db, ManagedHost)
    host = hosts.get_or_404(host_id, "host_not_found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in changes.items():
        setattr(host, key, value)
    hosts.put(host)
    write_audit(db, admin.username, "host.updated", "managed_host", host.id, {"fields": sorted(changes)})
    db.commit()
    db.refresh(host)
    return host


@router.delete("/{host_id}")
def delete_host(host_id: str, db: Session = Depends(get_db), admin: AdminContext = Depends(get_current_admin)) -> dict:
    hosts = Repository(db, ManagedHost)
    hosts.get_or_404(host_id, "host_not_found")
    hosts.delete(host_id)
    write_audit(db, admin.username, "host.deleted", "managed_host", host_id)
    db.commit()
    return {"ok": True}
