from typing import Annotated, Optional

from pydantic import Field, field_validator

from kernelpanel.schemas.base import CamelModel, JsonText, Port, as_pydantic_error, one_of
from kernelpanel.services.catalog import COUNTRY_CODES
from kernelpanel.services.validation import ConfigValidationError, parse_code_list

InboundProtocolField = Annotated[str, one_of("vless", "vmess", "trojan", "shadowsocks", "http", "socks")]


class SystemSettingsUpdate(CamelModel):
    ip_address: str = ""
    login_port: Port
    login_path: str = Field(default="/login", max_length=255)

    @field_validator("login_path")
    @classmethod
    def path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("login path must start with /")
        return value


class DomainSettingsUpdate(CamelModel):
    domain_name: str = Field(default="", max_length=255)
    ssl_private_key: str = ""
    ssl_certificate: str = ""


class TelegramSettingsUpdate(CamelModel):
    telegram_bot_token: str = ""
    telegram_admin_chat_id: str = ""
    telegram_bot_username: str = ""
    telegram_admin_username: str = ""


class BlockedCountriesUpdate(CamelModel):
    blocked_countries: list[str]

    @field_validator("blocked_countries", mode="before")
    @classmethod
    def known_countries(cls, value):
        try:
            return parse_code_list(value, "blockedCountries", COUNTRY_CODES)
        except ConfigValidationError as exc:
            raise as_pydantic_error(exc) from exc


class TorServiceUpdate(CamelModel):
    tor_service_enabled: bool


class WarpSettingsUpdate(CamelModel):
    warp_enabled: bool
    warp_license_key: str = ""


class FakeSiteSettings(CamelModel):
    is_enabled: bool = False
    decoy_domain: str = ""
    nginx_config_snippet: str = ""
    is_validated: bool = False


class FakeSiteUpdate(CamelModel):
    is_enabled: bool
    decoy_domain: str = Field(min_length=3, max_length=255)
    nginx_config_snippet: str = Field(min_length=20)


class XrayInboundCreate(CamelModel):
    tag: str = Field(min_length=1, max_length=128)
    port: Port
    protocol: InboundProtocolField
    settings: JsonText = "{}"
    stream_settings: JsonText = "{}"
    is_enabled: bool = True


class XrayInboundUpdate(CamelModel):
    tag: Optional[str] = Field(default=None, min_length=1, max_length=128)
    port: Optional[Port] = None
    protocol: Optional[InboundProtocolField] = None
    settings: Optional[JsonText] = None
    stream_settings: Optional[JsonText] = None
    is_enabled: Optional[bool] = None


class XrayInboundResponse(CamelModel):
    id: str
    tag: str
    port: int
    protocol: str
    settings: str
    stream_settings: str
    is_enabled: bool


class PanelSettingsResponse(CamelModel):
    username: str
    ip_address: str
    login_port: int
    login_path: str
    domain_name: str
    ssl_private_key: str
    ssl_certificate: str
    telegram_bot_token: str
    telegram_admin_chat_id: str
    telegram_bot_username: str
    telegram_admin_username: str
    is_telegram_bot_connected: bool
    blocked_countries: list[str]
    tor_service_enabled: bool
    warp_enabled: bool
    warp_license_key: str
    fake_site: FakeSiteSettings
    xray_inbounds: list[XrayInboundResponse]
