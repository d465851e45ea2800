from datetime import datetime
from typing import Optional

from pydantic import Field

from kernelpanel.schemas.base import MAX_INT32, CamelModel


class ProtocolResponse(CamelModel):
    name: str
    label: str


class KernelResponse(CamelModel):
    id: str
    name: str
    description: str
    category: str
    kernel_type: str
    protocols: list[ProtocolResponse]
    status: str
    source_url: str
    config_version: int
    updated_at: Optional[datetime] = None


class KernelConfigResponse(CamelModel):
    kernel_id: str
    kernel_type: str
    config_version: int
    config: dict


class KernelConfigFormResponse(CamelModel):
    kernel_id: str
    kernel_type: str
    config_version: int
    form: dict


class KernelConfigRevisionResponse(CamelModel):
    revision: int
    config: dict
    actor: str
    rolled_back_from: Optional[int] = None
    created_at: datetime


class RollbackRequest(CamelModel):
    to_revision: int = Field(ge=1, le=MAX_INT32)
