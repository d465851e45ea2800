from kernelpanel.models.entities import (
    AuditLog,
    Base,
    ConnectionType,
    InboundProtocol,
    Kernel,
    KernelCategory,
    KernelConfigRevision,
    KernelStatus,
    ManagedHost,
    NodeStatus,
    PanelSettings,
    ServerNode,
    User,
    UserStatus,
    XrayInbound,
    as_utc,
    utcnow,
)

__all__ = [
    "AuditLog",
    "Base",
    "ConnectionType",
    "InboundProtocol",
    "Kernel",
    "KernelCategory",
    "KernelConfigRevision",
    "KernelStatus",
    "ManagedHost",
    "NodeStatus",
    "PanelSettings",
    "ServerNode",
    "User",
    "UserStatus",
    "XrayInbound",
    "as_utc",
    "utcnow",
]
