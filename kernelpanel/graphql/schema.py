from datetime import datetime
from typing import Optional

import strawberry
from fastapi import Depends
from sqlalchemy import desc
from strawberry.scalars import JSON

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import SessionLocal
from kernelpanel.models import AuditLog, Kernel, KernelCategory, ManagedHost, User, UserStatus
from kernelpanel.services.auth import AdminContext, get_current_admin

MAX_PAGE_SIZE = 500


def _page(limit: int, offset: int = 0) -> tuple[int, int]:
    return min(max(limit, 1), MAX_PAGE_SIZE), max(offset, 0)


@strawberry.type
class ProtocolType:
    name: str
    label: str


@strawberry.type
class KernelType:
    id: str
    name: str
    category: str
    kernel_type: str
    status: str
    config_version: int
    config: JSON
    protocols: list[ProtocolType]


@strawberry.type
class UserType:
    id: str
    username: str
    status: str
    kernel_id: str
    protocol: str
    data_allowance_gb: float
    data_used_gb: float
    usage_state: str
    sublink_path: str
    expires_at: datetime


@strawberry.type
class HostType:
    id: str
    name: str
    address: str
    port: int


@strawberry.type
class AuditEventType:
    id: str
    actor: str
    action: str
    entity_type: str
    entity_id: str
    created_at: datetime


def _kernel(kernel: Kernel) -> KernelType:
    return KernelType(
        id=kernel.id,
        name=kernel.name,
        category=kernel.category.value,
        kernel_type=kernel.kernel_type,
        status=kernel.status.value,
        config_version=kernel.config_version,
        config=kernel.config,
        protocols=[ProtocolType(name=item["name"], label=item["label"]) for item in kernel.protocols or []],
    )


@strawberry.type
class Query:
    @strawberry.field
    def kernels(self, category: Optional[str] = None) -> list[KernelType]:
        with SessionLocal() as db:
            criteria = [Kernel.category == KernelCategory(category)] if category else []
            return [_kernel(kernel) for kernel in Repository(db, Kernel).list(*criteria, order_by=[Kernel.name])]

    @strawberry.field
    def kernel(self, id: str) -> Optional[KernelType]:
        with SessionLocal() as db:
            kernel = Repository(db, Kernel).get(id)
            return _kernel(kernel) if kernel else None

    @strawberry.field
    def users(self, limit: int = 50, offset: int = 0, status: Optional[str] = None) -> list[UserType]:
        limit, offset = _page(limit, offset)
        with SessionLocal() as db:
            criteria = [User.status == UserStatus(status)] if status else []
            users = Repository(db, User).list(*criteria, order_by=[desc(User.created_at)], offset=offset, limit=limit)
            return [
                UserType(
                    id=user.id,
                    username=user.username,
                    status=user.status.value,
                    kernel_id=user.kernel_id,
                    protocol=user.protocol,
                    data_allowance_gb=user.data_allowance_gb,
                    data_used_gb=user.data_used_gb,
                    usage_state=user.usage_state,
                    sublink_path=user.sublink_path,
                    expires_at=user.expires_at,
                )
                for user in users
            ]

    @strawberry.field
    def hosts(self) -> list[HostType]:
        with SessionLocal() as db:
            hosts = Repository(db, ManagedHost).list(order_by=[ManagedHost.name])
            return [HostType(id=host.id, name=host.name, address=host.address, port=host.port) for host in hosts]

    @strawberry.field
    def audit_events(self, limit: int = 50) -> list[AuditEventType]:
        limit, _ = _page(limit)
        with SessionLocal() as db:
            events = Repository(db, AuditLog).list(order_by=[desc(AuditLog.created_at)], limit=limit)
            return [
                AuditEventType(
                    id=event.id,
                    actor=event.actor,
                    action=event.action,
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    created_at=event.created_at,
                )
                for event in events
            ]


async def get_context(admin: AdminContext = Depends(get_current_admin)) -> dict:
    return {"admin": admin}


schema = strawberry.Schema(query=Query)
