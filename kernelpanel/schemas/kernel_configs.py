from typing import Any, Literal, Optional, Union

from pydantic import Field

from kernelpanel.schemas.base import CamelModel, Port

XRAY_LOG_LEVELS = ("debug", "info", "warning", "error", "none")
SING_BOX_LOG_LEVELS = ("debug", "info", "warn", "error", "fatal", "panic")
OPENVPN_PROTOS = ("tcp", "udp")
OPENVPN_DEVICES = ("tun", "tap")
PSIPHON_TRANSPORT_MODES = ("SSH", "OBFUSCATED_SSH", "HTTP_PROXY")


class XrayConfig(CamelModel):
    log_level: Literal[XRAY_LOG_LEVELS]
    dns_servers: list[str] = Field(default_factory=list)
    inbounds: list[Any] = Field(default_factory=list)
    outbounds: list[Any] = Field(default_factory=list)


class OpenVPNConfig(CamelModel):
    port: Port
    proto: Literal[OPENVPN_PROTOS]
    cipher: str = Field(min_length=3)
    auth: str = "SHA256"
    dev: Literal[OPENVPN_DEVICES] = "tun"
    server_ip: str = ""
    server_netmask: str = ""
    additional_directives: str = ""


class WireGuardConfig(CamelModel):
    private_key: str = ""
    address: str = Field(min_length=7)
    listen_port: Port
    dns_servers: list[str] = Field(default_factory=list)
    peers: list[Any] = Field(default_factory=list)


class SingBoxDns(CamelModel):
    servers: list[str] = Field(default_factory=list)


class SingBoxConfig(CamelModel):
    log_level: Literal[SING_BOX_LOG_LEVELS]
    dns: SingBoxDns
    inbounds: list[Any] = Field(default_factory=list)
    outbounds: list[Any] = Field(default_factory=list)


class TorWarpFakeSiteConfig(CamelModel):
    ports: list[Port] = Field(default_factory=list)
    fake_domain: str = Field(min_length=3)
    enable_country_selection: bool = False
    selected_countries: list[str] = Field(default_factory=list)


class PsiphonProConfig(CamelModel):
    ports: list[Port] = Field(default_factory=list)
    transport_mode: Literal[PSIPHON_TRANSPORT_MODES]
    enable_country_selection: bool = False
    selected_countries: list[str] = Field(default_factory=list)
    custom_server_list: Optional[str] = None
    bandwidth_limit_mbps: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


KernelConfig = Union[XrayConfig, OpenVPNConfig, WireGuardConfig, SingBoxConfig, TorWarpFakeSiteConfig, PsiphonProConfig]
