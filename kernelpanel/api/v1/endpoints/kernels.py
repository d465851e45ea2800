from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Response
from sqlalchemy.orm import Session

from kernelpanel.db.repository import Repository
from kernelpanel.db.session import get_db
from kernelpanel.models import Kernel, KernelCategory, KernelConfigRevision
from kernelpanel.schemas.kernels import (
    KernelConfigFormResponse,
    KernelConfigResponse,
    KernelConfigRevisionResponse,
    KernelResponse,
    RollbackRequest,
)
from kernelpanel.services.auth import AdminContext, get_current_admin
from kernelpanel.services.kernel_config import (
    default_config,
    merge_config,
    to_display,
    validate_config,
    validate_patch,
)
from kernelpanel.services.kernels import apply_action, check_version, etag, find_revision, get_kernel, save_config

router = APIRouter(prefix="/kernels", tags=["kernels"], dependencies=[Depends(get_current_admin)])


def _config_response(kernel: Kernel, response: Response) -> KernelConfigResponse:
    response.headers["ETag"] = etag(kernel)
    return KernelConfigResponse(
        kernel_id=kernel.id,
        kernel_type=kernel.kernel_type,
        config_version=kernel.config_version,
        config=kernel.config,
    )


@router.get("", response_model=list[KernelResponse])
def list_kernels(
    category: Optional[str] = Query(default=None, pattern="^(engine|node)$"),
    db: Session = Depends(get_db),
) -> list[Kernel]:
    criteria = [Kernel.category == KernelCategory(category)] if category else []
    return Repository(db, Kernel).list(*criteria, order_by=[Kernel.category, Kernel.name])


@router.get("/{kernel_id}", response_model=KernelResponse)
def get_kernel_detail(kernel_id: str, db: Session = Depends(get_db)) -> Kernel:
    return get_kernel(db, kernel_id)


@router.get("/{kernel_id}/config", response_model=KernelConfigResponse)
def get_config(kernel_id: str, response: Response, db: Session = Depends(get_db)) -> KernelConfigResponse:
    return _config_response(get_kernel(db, kernel_id), response)


@router.get("/{kernel_id}/config/form", response_model=KernelConfigFormResponse)
def get_config_form(kernel_id: str, response: Response, db: Session = Depends(get_db)) -> KernelConfigFormResponse:
    kernel = get_kernel(db, kernel_id)
    response.headers["ETag"] = etag(kernel)
    return KernelConfigFormResponse(
        kernel_id=kernel.id,
        kernel_type=kernel.kernel_type,
        config_version=kernel.config_version,
        form=to_display(kernel.kernel_type, kernel.config),
    )


@router.put("/{kernel_id}/config", response_model=KernelConfigResponse)
def replace_config(
    kernel_id: str,
    response: Response,
    payload: dict = Body(...),
    if_match: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> KernelConfigResponse:
    kernel = get_kernel(db, kernel_id)
    check_version(kernel, if_match)
    config = validate_config(kernel.kernel_type, payload)
    save_config(db, kernel, config, admin.username, "kernel.config_replaced")
    db.commit()
    db.refresh(kernel)
    return _config_response(kernel, response)


@router.patch("/{kernel_id}/config", response_model=KernelConfigResponse)
def patch_config(
    kernel_id: str,
    response: Response,
    payload: dict = Body(...),
    if_match: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> KernelConfigResponse:
    kernel = get_kernel(db, kernel_id)
    check_version(kernel, if_match)
    changes = validate_patch(kernel.kernel_type, payload)
    config = merge_config(kernel.kernel_type, kernel.config, changes)
    save_config(db, kernel, config, admin.username, "kernel.config_patched")
    db.commit()
    db.refresh(kernel)
    return _config_response(kernel, response)


@router.post("/{kernel_id}/config/reset", response_model=KernelConfigResponse)
def reset_config(
    kernel_id: str,
    response: Response,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> KernelConfigResponse:
    kernel = get_kernel(db, kernel_id)
    save_config(db, kernel, default_config(kernel.kernel_type), admin.username, "kernel.config_reset")
    db.commit()
    db.refresh(kernel)
    return _config_response(kernel, response)


@router.get("/{kernel_id}/config/revisions", response_model=list[KernelConfigRevisionResponse])
def list_revisions(
    kernel_id: str,
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[KernelConfigRevision]:
    kernel = get_kernel(db, kernel_id)
    return Repository(db, KernelConfigRevision).list(
        KernelConfigRevision.kernel_id == kernel.id,
        order_by=[KernelConfigRevision.revision.desc()],
        limit=limit,
    )


@router.post("/{kernel_id}/config/rollback", response_model=KernelConfigResponse)
def rollback_config(
    kernel_id: str,
    payload: RollbackRequest,
    response: Response,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> KernelConfigResponse:
    kernel = get_kernel(db, kernel_id)
    target = find_revision(db, kernel, payload.to_revision)
    config = validate_config(kernel.kernel_type, target.config)
    save_config(db, kernel, config, admin.username, "kernel.config_rolled_back", rolled_back_from=target.revision)
    db.commit()
    db.refresh(kernel)
    return _config_response(kernel, response)


@router.post("/{kernel_id}/actions/{action}", response_model=KernelResponse)
def kernel_action(
    kernel_id: str,
    action: str,
    db: Session = Depends(get_db),
    admin: AdminContext = Depends(get_current_admin),
) -> Kernel:
    kernel = apply_action(db, get_kernel(db, kernel_id), action, admin.username)
    db.commit()
    db.refresh(kernel)
    return kernel
