import logging
from typing import Optional

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.models import Kernel, KernelConfigRevision, KernelStatus
from kernelpanel.services.audit import write_audit
from kernelpanel.services.kernel_config import to_storage

logger = logging.getLogger(__name__)

ACTION_STATUS = {
    "start": KernelStatus.running,
    "stop": KernelStatus.stopped,
    "restart": KernelStatus.running,
}


def get_kernel(db: Session, kernel_id: str) -> Kernel:
    return Repository(db, Kernel).get_or_404(kernel_id, "kernel_not_found")


def etag(kernel: Kernel) -> str:
    return f'"{kernel.config_version}"'


def check_version(kernel: Kernel, if_match: Optional[str]) -> None:
    if if_match is None or if_match.strip() == "*":
        return
    expected = if_match.strip().removeprefix("W/").strip('"')
    if expected != str(kernel.config_version):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="config_version_conflict")


def save_config(
    db: Session,
    kernel: Kernel,
    config: BaseModel,
    actor: str,
    action: str,
    rolled_back_from: Optional[int] = None,
) -> KernelConfigRevision:
    stored = to_storage(config)
    kernel.config = stored
    kernel.config_version += 1
    revision = KernelConfigRevision(
        kernel_id=kernel.id,
        revision=kernel.config_version,
        config=stored,
        actor=actor,
        rolled_back_from=rolled_back_from,
    )
    db.add(revision)
    write_audit(
        db,
        actor,
        action,
        "kernel",
        kernel.id,
        {"config_version": kernel.config_version, "rolled_back_from": rolled_back_from},
    )
    logger.info("Kernel %s config saved as version %d", kernel.id, kernel.config_version)
    return revision


def find_revision(db: Session, kernel: Kernel, revision: int) -> KernelConfigRevision:
    found = Repository(db, KernelConfigRevision).find_one(
        KernelConfigRevision.kernel_id == kernel.id, KernelConfigRevision.revision == revision
    )
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="revision_not_found")
    return found


def apply_action(db: Session, kernel: Kernel, action: str, actor: str) -> Kernel:
    target = ACTION_STATUS.get(action)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown_kernel_action")
    previous = kernel.status
    kernel.status = target
    write_audit(db, actor, f"kernel.{action}", "kernel", kernel.id, {"from": previous.value, "to": target.value})
    return kernel
