from datetime import datetime
from typing import Annotated, Optional

from pydantic import Field

from kernelpanel.schemas.base import CamelModel, one_of

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

UserStatusField = Annotated[str, one_of("active", "inactive", "expired", "banned")]

MAX_VALIDITY_DAYS = 36500
MAX_CONCURRENT_IPS = 10000


class UserCreate(CamelModel):
    username: str = Field(min_length=3, max_length=128)
    full_name: str = ""
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    status: UserStatusField = "active"
    kernel_id: str = Field(min_length=1)
    protocol: str = Field(min_length=1)
    data_allowance_gb: float = Field(default=0, ge=0, allow_inf_nan=False, alias="dataAllowanceGB")
    data_used_gb: float = Field(default=0, ge=0, allow_inf_nan=False, alias="dataUsedGB")
    max_concurrent_ips: int = Field(default=1, ge=1, le=MAX_CONCURRENT_IPS, alias="maxConcurrentIPs")
    validity_period_days: int = Field(default=30, ge=1, le=MAX_VALIDITY_DAYS)
    sublink_path: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9_-]{3,128}$")
    notes: str = ""


class UserUpdate(CamelModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=128)
    full_name: Optional[str] = None
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    status: Optional[UserStatusField] = None
    kernel_id: Optional[str] = Field(default=None, min_length=1)
    protocol: Optional[str] = Field(default=None, min_length=1)
    data_allowance_gb: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, alias="dataAllowanceGB")
    data_used_gb: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, alias="dataUsedGB")
    max_concurrent_ips: Optional[int] = Field(default=None, ge=1, le=MAX_CONCURRENT_IPS, alias="maxConcurrentIPs")
    validity_period_days: Optional[int] = Field(default=None, ge=1, le=MAX_VALIDITY_DAYS)
    notes: Optional[str] = None


class UserResponse(CamelModel):
    id: str
    username: str
    full_name: str
    email: Optional[str]
    status: str
    kernel_id: str
    protocol: str
    data_allowance_gb: float = Field(alias="dataAllowanceGB")
    data_used_gb: float = Field(alias="dataUsedGB")
    max_concurrent_ips: int = Field(alias="maxConcurrentIPs")
    validity_period_days: int
    sublink_path: str
    notes: str
    created_at: datetime
    expires_at: datetime
    is_expired: bool
    remaining_gb: float = Field(alias="remainingGB")
    usage_state: str


class UserListResponse(CamelModel):
    items: list[UserResponse]
    total: int


class SubscriptionResponse(CamelModel):
    username: str
    status: str
    kernel_name: str
    protocol: str
    data_allowance_gb: float = Field(alias="dataAllowanceGB")
    data_used_gb: float = Field(alias="dataUsedGB")
    remaining_gb: float = Field(alias="remainingGB")
    usage_state: str
    expires_at: datetime
    is_expired: bool
    sublink_path: str
