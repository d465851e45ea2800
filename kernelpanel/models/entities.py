import enum
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class KernelCategory(str, enum.Enum):
    engine = "engine"
    node = "node"


class KernelStatus(str, enum.Enum):
    running = "running"
    stopped = "stopped"
    error = "error"
    starting = "starting"
    degraded = "degraded"


class UserStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    expired = "expired"
    banned = "banned"


class ConnectionType(str, enum.Enum):
    grpclib = "grpclib"
    websocket = "websocket"
    tcp = "tcp"
    other = "other"


class NodeStatus(str, enum.Enum):
    online = "online"
    offline = "offline"
    error = "error"
    connecting = "connecting"


class InboundProtocol(str, enum.Enum):
    vless = "vless"
    vmess = "vmess"
    trojan = "trojan"
    shadowsocks = "shadowsocks"
    http = "http"
    socks = "socks"


class Kernel(Base):
    __tablename__ = "kernels"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[KernelCategory] = mapped_column(Enum(KernelCategory), default=KernelCategory.engine)
    kernel_type: Mapped[str] = mapped_column(String(32), index=True)
    protocols: Mapped[list[dict]] = mapped_column(JSON, default=list)
    status: Mapped[KernelStatus] = mapped_column(Enum(KernelStatus), default=KernelStatus.stopped)
    source_url: Mapped[str] = mapped_column(String(1024), default="")
    config: Mapped[dict] = mapped_column(JSON, default=dict)
    config_version: Mapped[int] = mapped_column(Integer, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    revisions: Mapped[list["KernelConfigRevision"]] = relationship(
        back_populates="kernel", cascade="all, delete-orphan", order_by="KernelConfigRevision.revision"
    )
    users: Mapped[list["User"]] = relationship(back_populates="kernel")

    @property
    def protocol_names(self) -> list[str]:
        return [item["name"] for item in self.protocols or []]


class KernelConfigRevision(Base):
    __tablename__ = "kernel_config_revisions"
    __table_args__ = (UniqueConstraint("kernel_id", "revision"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    kernel_id: Mapped[str] = mapped_column(ForeignKey("kernels.id"), index=True)
    revision: Mapped[int] = mapped_column(Integer)
    config: Mapped[dict] = mapped_column(JSON, default=dict)
    actor: Mapped[str] = mapped_column(String(128), default="system")
    rolled_back_from: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    kernel: Mapped["Kernel"] = relationship(back_populates="revisions")


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), default="")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[UserStatus] = mapped_column(Enum(UserStatus), default=UserStatus.active)
    kernel_id: Mapped[str] = mapped_column(ForeignKey("kernels.id"), index=True)
    protocol: Mapped[str] = mapped_column(String(64))
    data_allowance_gb: Mapped[float] = mapped_column(Float, default=0)
    data_used_gb: Mapped[float] = mapped_column(Float, default=0)
    max_concurrent_ips: Mapped[int] = mapped_column(Integer, default=1)
    validity_period_days: Mapped[int] = mapped_column(Integer, default=30)
    sublink_path: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    kernel: Mapped["Kernel"] = relationship(back_populates="users")

    @property
    def expires_at(self) -> datetime:
        return as_utc(self.created_at or utcnow()) + timedelta(days=self.validity_period_days)

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= utcnow()

    @property
    def remaining_gb(self) -> float:
        return max((self.data_allowance_gb or 0) - (self.data_used_gb or 0), 0.0)

    @property
    def usage_state(self) -> str:
        allowance = self.data_allowance_gb or 0
        if allowance <= 0:
            return "n/a"
        if (self.data_used_gb or 0) >= allowance:
            return "full"
        if self.remaining_gb <= 1:
            return "critical"
        if self.remaining_gb <= 5:
            return "low"
        return "ok"


class ManagedHost(Base):
    __tablename__ = "managed_hosts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(128))
    host_name: Mapped[str] = mapped_column(String(255), default="")
    address: Mapped[str] = mapped_column(String(255))
    port: Mapped[int] = mapped_column(Integer)
    network_config: Mapped[str] = mapped_column(Text, default="{}")
    stream_security_config: Mapped[str] = mapped_column(Text, default="{}")
    mux_config: Mapped[str] = mapped_column(Text, default="{}")
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ServerNode(Base):
    __tablename__ = "server_nodes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(128), index=True)
    address: Mapped[str] = mapped_column(String(255))
    port: Mapped[int] = mapped_column(Integer)
    connection_type: Mapped[ConnectionType] = mapped_column(Enum(ConnectionType), default=ConnectionType.grpclib)
    consumption_factor: Mapped[float] = mapped_column(Float, default=1.0)
    status: Mapped[NodeStatus] = mapped_column(Enum(NodeStatus), default=NodeStatus.offline)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PanelSettings(Base):
    __tablename__ = "panel_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    username: Mapped[str] = mapped_column(String(128))
    password_hash: Mapped[str] = mapped_column(String(255))
    token_version: Mapped[int] = mapped_column(Integer, default=1)
    ip_address: Mapped[str] = mapped_column(String(64), default="")
    login_port: Mapped[int] = mapped_column(Integer, default=3000)
    login_path: Mapped[str] = mapped_column(String(255), default="/login")
    domain_name: Mapped[str] = mapped_column(String(255), default="")
    ssl_private_key: Mapped[str] = mapped_column(Text, default="")
    ssl_certificate: Mapped[str] = mapped_column(Text, default="")
    telegram_bot_token: Mapped[str] = mapped_column(String(255), default="")
    telegram_admin_chat_id: Mapped[str] = mapped_column(String(64), default="")
    telegram_bot_username: Mapped[str] = mapped_column(String(128), default="")
    telegram_admin_username: Mapped[str] = mapped_column(String(128), default="")
    is_telegram_bot_connected: Mapped[bool] = mapped_column(Boolean, default=False)
    blocked_countries: Mapped[list[str]] = mapped_column(JSON, default=list)
    tor_service_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    warp_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    warp_license_key: Mapped[str] = mapped_column(String(255), default="")
    fake_site: Mapped[dict] = mapped_column(JSON, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    xray_inbounds: Mapped[list["XrayInbound"]] = relationship(
        back_populates="panel_settings", cascade="all, delete-orphan", order_by="XrayInbound.port"
    )


class XrayInbound(Base):
    __tablename__ = "xray_inbounds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    panel_settings_id: Mapped[int] = mapped_column(ForeignKey("panel_settings.id"), default=1, index=True)
    tag: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    port: Mapped[int] = mapped_column(Integer)
    protocol: Mapped[InboundProtocol] = mapped_column(Enum(InboundProtocol))
    settings: Mapped[str] = mapped_column(Text, default="{}")
    stream_settings: Mapped[str] = mapped_column(Text, default="{}")
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    panel_settings: Mapped["PanelSettings"] = relationship(back_populates="xray_inbounds")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor: Mapped[str] = mapped_column(String(128), default="system")
    action: Mapped[str] = mapped_column(String(128), index=True)
    entity_type: Mapped[str] = mapped_column(String(128), index=True)
    entity_id: Mapped[str] = mapped_column(String(64), index=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
