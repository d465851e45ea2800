"""Typed configuration for every kernel type.

Each kernel type owns one pydantic model and one ordered table of field rules.
Rules parse raw form input (strings from an HTML form or already typed JSON)
into normalized values, and render stored values back into the editable form
shape. All rule failures for a submission are collected and raised together.
"""

import enum
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from kernelpanel.schemas.kernel_configs import (
    OPENVPN_DEVICES,
    OPENVPN_PROTOS,
    PSIPHON_TRANSPORT_MODES,
    SING_BOX_LOG_LEVELS,
    XRAY_LOG_LEVELS,
    KernelConfig,
    OpenVPNConfig,
    PsiphonProConfig,
    SingBoxConfig,
    TorWarpFakeSiteConfig,
    WireGuardConfig,
    XrayConfig,
)
from kernelpanel.services.catalog import COUNTRY_CODES, DEFAULT_CONFIGS
from kernelpanel.services.validation import (
    ConfigError,
    ConfigValidationError,
    check_enum,
    check_number,
    check_port,
    check_text,
    errors_from_pydantic,
    fail,
    invalid_enum,
    invalid_value,
    is_blank,
    join_list,
    missing_field,
    parse_bool,
    parse_code_list,
    parse_json_value,
    parse_port_list,
    parse_string_list,
)


class KernelType(str, enum.Enum):
    xray = "xray"
    openvpn = "openvpn"
    wireguard = "wireguard"
    sing_box = "sing-box"
    tor_service = "tor-service"
    psiphon_pro = "psiphon-pro"


def _identity(value: Any) -> Any:
    return value


def _render_json(value: Any) -> str:
    return json.dumps(value, indent=2)


def _render_optional(value: Any) -> Any:
    return "" if value is None else value


@dataclass(frozen=True)
class FieldRule:
    name: str
    parse: Callable[[Any, str], Any]
    render: Callable[[Any], Any] = _identity
    required: bool = False
    default: Optional[Callable[[], Any]] = None


@dataclass(frozen=True)
class ConfigVariant:
    kernel_type: KernelType
    model: type[BaseModel]
    rules: tuple[FieldRule, ...]
    prepare: Optional[Callable[[dict, list[ConfigError]], dict]] = None
    decorate: Optional[Callable[[BaseModel, dict], dict]] = None
    rule_names: frozenset = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rule_names", frozenset(rule.name for rule in self.rules))


def text(min_length: int = 0) -> Callable[[Any, str], str]:
    return partial(_text, min_length=min_length)


def _text(value: Any, field_name: str, min_length: int) -> str:
    return check_text(value, field_name, min_length)


def enum_of(allowed: tuple[str, ...]) -> Callable[[Any, str], str]:
    return lambda value, field_name: check_enum(value, field_name, allowed)


def json_array(value: Any, field_name: str) -> list:
    return parse_json_value(value, field_name, expect=list)


def country_list(value: Any, field_name: str) -> list[str]:
    return parse_code_list(value, field_name, COUNTRY_CODES)


def bandwidth(value: Any, field_name: str) -> float:
    return check_number(value, field_name, minimum=0)


def list_rule(name: str, parse: Callable[[Any, str], list]) -> FieldRule:
    return FieldRule(name, parse, render=join_list, default=list)


def json_rule(name: str) -> FieldRule:
    return FieldRule(name, json_array, render=_render_json, default=list)


def sing_box_dns(value: Any, field_name: str) -> dict:
    if not isinstance(value, dict):
        fail(invalid_value(field_name, "must be an object with a servers list", value))
    servers = parse_string_list(value.get("servers") or [], f"{field_name}.servers")
    if not servers:
        fail(missing_field(f"{field_name}.servers"))
    return {"servers": servers}


def _prepare_sing_box(raw: dict, errors: list[ConfigError]) -> dict:
    # dnsServers beats primaryDns, which beats a submitted dns object
    data = dict(raw)
    submitted = "dnsServers" in data or "primaryDns" in data
    dns_servers = data.pop("dnsServers", None)
    primary_dns = data.pop("primaryDns", None)
    if not is_blank(dns_servers):
        data["dns"] = {"servers": dns_servers}
    elif not is_blank(primary_dns):
        try:
            data["dns"] = {"servers": [check_text(primary_dns, "primaryDns", 7)]}
        except ConfigValidationError as exc:
            errors.extend(exc.errors)
    elif submitted and is_blank(data.get("dns")):
        # cleared form fields with no dns object to fall back on
        errors.append(missing_field("dnsServers"))
    return data


def _decorate_sing_box(config: BaseModel, display: dict) -> dict:
    servers = config.dns.servers
    display["dnsServers"] = join_list(servers)
    display["primaryDns"] = servers[0] if servers else ""
    return display


VARIANTS: dict[KernelType, ConfigVariant] = {
    KernelType.xray: ConfigVariant(
        KernelType.xray,
        XrayConfig,
        (
            FieldRule("logLevel", enum_of(XRAY_LOG_LEVELS), required=True),
            list_rule("dnsServers", parse_string_list),
            json_rule("inbounds"),
            json_rule("outbounds"),
        ),
    ),
    KernelType.openvpn: ConfigVariant(
        KernelType.openvpn,
        OpenVPNConfig,
        (
            FieldRule("port", check_port, required=True),
            FieldRule("proto", enum_of(OPENVPN_PROTOS), required=True),
            FieldRule("cipher", text(3), required=True),
            FieldRule("auth", text(), default=lambda: "SHA256"),
            FieldRule("dev", enum_of(OPENVPN_DEVICES), default=lambda: "tun"),
            FieldRule("serverIp", text(), default=str),
            FieldRule("serverNetmask", text(), default=str),
            FieldRule("additionalDirectives", text(), default=str),
        ),
    ),
    KernelType.wireguard: ConfigVariant(
        KernelType.wireguard,
        WireGuardConfig,
        (
            FieldRule("listenPort", check_port, required=True),
            FieldRule("address", text(7), required=True),
            FieldRule("privateKey", text(), default=str),
            list_rule("dnsServers", parse_string_list),
            json_rule("peers"),
        ),
    ),
    KernelType.sing_box: ConfigVariant(
        KernelType.sing_box,
        SingBoxConfig,
        (
            FieldRule("logLevel", enum_of(SING_BOX_LOG_LEVELS), required=True),
            FieldRule("dns", sing_box_dns, required=True),
            json_rule("inbounds"),
            json_rule("outbounds"),
        ),
        prepare=_prepare_sing_box,
        decorate=_decorate_sing_box,
    ),
    KernelType.tor_service: ConfigVariant(
        KernelType.tor_service,
        TorWarpFakeSiteConfig,
        (
            list_rule("ports", parse_port_list),
            FieldRule("fakeDomain", text(3), required=True),
            FieldRule("enableCountrySelection", parse_bool, default=lambda: False),
            list_rule("selectedCountries", country_list),
        ),
    ),
    KernelType.psiphon_pro: ConfigVariant(
        KernelType.psiphon_pro,
        PsiphonProConfig,
        (
            list_rule("ports", parse_port_list),
            FieldRule("transportMode", enum_of(PSIPHON_TRANSPORT_MODES), required=True),
            FieldRule("enableCountrySelection", parse_bool, default=lambda: False),
            list_rule("selectedCountries", country_list),
            FieldRule("customServerList", text(), render=_render_optional),
            FieldRule("bandwidthLimitMbps", bandwidth, render=_render_optional),
        ),
    ),
}

_unhandled = set(KernelType) - set(VARIANTS)
if _unhandled:
    raise RuntimeError(f"no config variant registered for kernel types: {sorted(t.value for t in _unhandled)}")
_undefaulted = {t.value for t in KernelType} - set(DEFAULT_CONFIGS)
if _undefaulted:
    raise RuntimeError(f"no default config for kernel types: {sorted(_undefaulted)}")


def variant_for(kernel_type: Union[KernelType, str]) -> ConfigVariant:
    try:
        return VARIANTS[KernelType(kernel_type)]
    except ValueError:
        raise ConfigValidationError([invalid_enum("kernelType", kernel_type, [t.value for t in KernelType])]) from None


def _apply_rules(variant: ConfigVariant, raw: Any, partial_update: bool) -> dict:
    if not isinstance(raw, dict):
        raise ConfigValidationError([invalid_value("config", "must be a JSON object", raw)])

    errors: list[ConfigError] = []
    data = variant.prepare(raw, errors) if variant.prepare else raw
    clean: dict[str, Any] = {}
    for rule in variant.rules:
        value = data.get(rule.name)
        if is_blank(value):
            if partial_update and rule.name not in data:
                continue
            if rule.required:
                errors.append(missing_field(rule.name))
                continue
            clean[rule.name] = rule.default() if rule.default else None
            continue
        try:
            clean[rule.name] = rule.parse(value, rule.name)
        except ConfigValidationError as exc:
            errors.extend(exc.errors)

    if errors:
        raise ConfigValidationError(errors)
    return clean


def _build(variant: ConfigVariant, data: dict) -> KernelConfig:
    try:
        return variant.model.model_validate(data)
    except ValidationError as exc:
        raise ConfigValidationError(errors_from_pydantic(exc.errors())) from exc


def _coerce(variant: ConfigVariant, config: Union[BaseModel, dict]) -> KernelConfig:
    if isinstance(config, variant.model):
        return config
    if isinstance(config, BaseModel):
        config = config.model_dump(by_alias=True)
    return _build(variant, config)


def validate_config(kernel_type: Union[KernelType, str], raw: Any) -> KernelConfig:
    variant = variant_for(kernel_type)
    return _build(variant, _apply_rules(variant, raw, partial_update=False))


def validate_patch(kernel_type: Union[KernelType, str], raw: Any) -> dict:
    """Validate only the fields present in `raw`; returns them normalized."""
    return _apply_rules(variant_for(kernel_type), raw, partial_update=True)


def merge_config(kernel_type: Union[KernelType, str], existing: Union[BaseModel, dict], patch: dict) -> KernelConfig:
    variant = variant_for(kernel_type)
    current = _coerce(variant, existing).model_dump(by_alias=True)
    # top-level replace: arrays and objects in the patch never append
    current.update({key: value for key, value in patch.items() if key in variant.rule_names})
    return _build(variant, current)


def to_display(kernel_type: Union[KernelType, str], config: Union[BaseModel, dict]) -> dict:
    variant = variant_for(kernel_type)
    model = _coerce(variant, config)
    stored = model.model_dump(by_alias=True)
    display = {rule.name: rule.render(stored.get(rule.name)) for rule in variant.rules}
    if variant.decorate:
        display = variant.decorate(model, display)
    return display


def to_storage(config: BaseModel) -> dict:
    return config.model_dump(by_alias=True, mode="json")


def default_config(kernel_type: Union[KernelType, str]) -> KernelConfig:
    variant = variant_for(kernel_type)
    return validate_config(variant.kernel_type, DEFAULT_CONFIGS[variant.kernel_type.value])
