import pytest

from kernelpanel.schemas.kernel_configs import PsiphonProConfig, SingBoxConfig, XrayConfig
from kernelpanel.services.kernel_config import (
    VARIANTS,
    KernelType,
    default_config,
    merge_config,
    to_display,
    validate_config,
    validate_patch,
)
from kernelpanel.services.validation import (
    ConfigValidationError,
    ErrorCode,
    check_number,
    check_port,
    parse_delimited_list,
    parse_port_list,
    parse_string_list,
)


def error_for(exc_info, field):
    return next(error for error in exc_info.value.errors if error.field == field)


def test_every_kernel_type_has_a_variant():
    assert set(VARIANTS) == set(KernelType)


def test_string_list_splits_and_trims():
    assert parse_string_list("1.1.1.1, 8.8.8.8", "dnsServers") == ["1.1.1.1", "8.8.8.8"]


def test_port_list_drops_empty_and_non_numeric_entries():
    assert parse_port_list("9050,,abc,9150", "ports") == [9050, 9150]


def test_delimited_list_keeps_order_and_duplicates():
    assert parse_delimited_list(" b, a ,b,, ") == ["b", "a", "b"]
    assert parse_delimited_list(["3", 1, "x"], int) == [3, 1]
    assert parse_delimited_list("1,2,3,4", int, lambda value: value % 2 == 0) == [2, 4]


def test_port_list_rejects_numeric_out_of_range_entry():
    with pytest.raises(ConfigValidationError) as exc_info:
        parse_port_list("9050, 70000", "ports")
    error = error_for(exc_info, "ports")
    assert error.code == ErrorCode.port_out_of_range
    assert error.value == 70000


@pytest.mark.parametrize("value", [1, 65535, "443", " 8080 "])
def test_port_boundaries_accepted(value):
    assert 1 <= check_port(value) <= 65535


@pytest.mark.parametrize("value", [0, 65536, -1, "65536"])
def test_port_outside_range_rejected(value):
    with pytest.raises(ConfigValidationError) as exc_info:
        check_port(value, "listenPort")
    assert exc_info.value.errors[0].code == ErrorCode.port_out_of_range
    assert exc_info.value.errors[0].field == "listenPort"


def test_port_must_be_integer():
    with pytest.raises(ConfigValidationError) as exc_info:
        check_port("http", "port")
    assert exc_info.value.errors[0].code == ErrorCode.invalid_value


def test_xray_unknown_log_level_is_invalid_enum():
    raw = to_display("xray", default_config("xray"))
    raw["logLevel"] = "verbose"
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("xray", raw)
    error = error_for(exc_info, "logLevel")
    assert error.code == ErrorCode.invalid_enum
    assert error.value == "verbose"
    assert list(error.allowed) == ["debug", "info", "warning", "error", "none"]


def test_all_field_errors_are_reported_together():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("openvpn", {"port": 0, "proto": "icmp", "cipher": "x", "dev": "tun"})
    codes = {error.field: error.code for error in exc_info.value.errors}
    assert codes == {
        "port": ErrorCode.port_out_of_range,
        "proto": ErrorCode.invalid_enum,
        "cipher": ErrorCode.invalid_value,
    }


def test_required_field_missing():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("wireguard", {"address": "10.0.0.1/24"})
    assert error_for(exc_info, "listenPort").code == ErrorCode.missing_field


def test_json_fields_accept_text_and_decoded_values():
    config = validate_config("xray", {"logLevel": "info", "inbounds": '[{"port": 443}]', "outbounds": [{"protocol": "freedom"}]})
    assert isinstance(config, XrayConfig)
    assert config.inbounds == [{"port": 443}]
    assert config.outbounds == [{"protocol": "freedom"}]


def test_json_field_syntax_error():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("xray", {"logLevel": "info", "inbounds": "{ invalid"})
    assert error_for(exc_info, "inbounds").code == ErrorCode.invalid_json


def test_openvpn_defaults_applied():
    config = validate_config("openvpn", {"port": "1194", "proto": "udp", "cipher": "AES-256-GCM"})
    assert config.port == 1194
    assert config.auth == "SHA256"
    assert config.dev == "tun"


def test_tor_countries_upper_cased_and_checked():
    config = validate_config(
        "tor-service",
        {"ports": "9050, 9150", "fakeDomain": "www.bing.com", "enableCountrySelection": "on", "selectedCountries": "us, nl"},
    )
    assert config.ports == [9050, 9150]
    assert config.enable_country_selection is True
    assert config.selected_countries == ["US", "NL"]

    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("tor-service", {"fakeDomain": "www.bing.com", "selectedCountries": "US, XX"})
    error = error_for(exc_info, "selectedCountries")
    assert error.code == ErrorCode.invalid_enum
    assert error.value == "XX"


def test_psiphon_optional_fields():
    config = validate_config(
        "psiphon-pro",
        {"ports": "1080", "transportMode": "SSH", "customServerList": "", "bandwidthLimitMbps": "25"},
    )
    assert isinstance(config, PsiphonProConfig)
    assert config.custom_server_list is None
    assert config.bandwidth_limit_mbps == 25

    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("psiphon-pro", {"transportMode": "SSH", "bandwidthLimitMbps": -1})
    assert error_for(exc_info, "bandwidthLimitMbps").code == ErrorCode.invalid_value


def test_sing_box_dns_sources():
    base = {"logLevel": "warn", "dns": {"servers": ["9.9.9.9"]}}
    assert validate_config("sing-box", base).dns.servers == ["9.9.9.9"]
    assert validate_config("sing-box", {**base, "primaryDns": "1.1.1.1"}).dns.servers == ["1.1.1.1"]
    config = validate_config("sing-box", {**base, "primaryDns": "1.1.1.1", "dnsServers": "8.8.8.8, 8.8.4.4"})
    assert isinstance(config, SingBoxConfig)
    assert config.dns.servers == ["8.8.8.8", "8.8.4.4"]


def test_sing_box_short_primary_dns_rejected():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("sing-box", {"logLevel": "info", "primaryDns": "1.1"})
    assert "primaryDns" in exc_info.value.fields


CONFIGS = [
    ("xray", {"logLevel": "debug", "dnsServers": [], "inbounds": [{"port": 443, "protocol": "vless"}], "outbounds": []}),
    (
        "openvpn",
        {
            "port": 443,
            "proto": "tcp",
            "cipher": "AES-128-GCM",
            "auth": "SHA512",
            "dev": "tap",
            "serverIp": "10.9.0.0",
            "serverNetmask": "255.255.255.0",
            "additionalDirectives": "push \"redirect-gateway def1\"",
        },
    ),
    (
        "wireguard",
        {
            "listenPort": 51820,
            "address": "10.8.0.1/24",
            "privateKey": "",
            "dnsServers": ["10.8.0.1"],
            "peers": [{"publicKey": "abc", "allowedIPs": ["10.8.0.2/32"]}],
        },
    ),
    (
        "sing-box",
        {"logLevel": "warn", "dns": {"servers": ["1.1.1.1", "8.8.8.8", "9.9.9.9"]}, "inbounds": [], "outbounds": [{"type": "direct"}]},
    ),
    ("tor-service", {"ports": [], "fakeDomain": "cdn.example.org", "enableCountrySelection": False, "selectedCountries": []}),
    (
        "psiphon-pro",
        {
            "ports": [],
            "transportMode": "HTTP_PROXY",
            "enableCountrySelection": True,
            "selectedCountries": ["DE", "JP"],
            "customServerList": "srv-a.example\nsrv-b.example",
            "bandwidthLimitMbps": 12.5,
        },
    ),
]


@pytest.mark.parametrize("kernel_type", [kernel_type.value for kernel_type in KernelType])
def test_display_round_trip_is_stable(kernel_type):
    display = to_display(kernel_type, default_config(kernel_type))
    assert to_display(kernel_type, validate_config(kernel_type, display)) == display


@pytest.mark.parametrize(("kernel_type", "stored"), CONFIGS, ids=[kernel_type for kernel_type, _ in CONFIGS])
def test_display_round_trip_keeps_edited_configs(kernel_type, stored):
    display = to_display(kernel_type, stored)
    config = validate_config(kernel_type, display)
    assert to_display(kernel_type, config) == display
    assert config == validate_config(kernel_type, stored)


def test_list_items_with_commas_are_rejected():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("xray", {"logLevel": "info", "dnsServers": ["https://dns.example/q?a=1,2"]})
    error = error_for(exc_info, "dnsServers")
    assert error.code == ErrorCode.invalid_value
    assert error.value == "https://dns.example/q?a=1,2"


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", float("inf")])
def test_non_finite_numbers_rejected(value):
    with pytest.raises(ConfigValidationError) as exc_info:
        check_number(value, "bandwidthLimitMbps", minimum=0)
    assert exc_info.value.errors[0].code == ErrorCode.invalid_value
    assert exc_info.value.errors[0].to_dict()["value"] in {"inf", "-inf", "nan"}


def test_blank_sing_box_dns_patch_is_missing():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_patch("sing-box", {"dnsServers": "", "primaryDns": ""})
    assert error_for(exc_info, "dnsServers").code == ErrorCode.missing_field
    assert validate_patch("xray", {"dnsServers": ""}) == {"dnsServers": []}


def test_display_joins_lists_and_renders_json():
    display = to_display("xray", {"logLevel": "info", "dnsServers": ["1.1.1.1", "8.8.8.8"], "inbounds": [], "outbounds": []})
    assert display["dnsServers"] == "1.1.1.1, 8.8.8.8"
    assert display["inbounds"] == "[]"


def test_patch_only_validates_submitted_fields():
    assert validate_patch("openvpn", {"cipher": "CHACHA20-POLY1305"}) == {"cipher": "CHACHA20-POLY1305"}
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_patch("openvpn", {"port": 70000})
    assert exc_info.value.fields == ["port"]


def test_merge_replaces_arrays():
    existing = default_config("tor-service")
    merged = merge_config("tor-service", existing, validate_patch("tor-service", {"ports": "9999"}))
    assert merged.ports == [9999]
    assert merged.fake_domain == existing.fake_domain


def test_unknown_kernel_type():
    with pytest.raises(ConfigValidationError) as exc_info:
        validate_config("shadowsocks-rust", {})
    assert error_for(exc_info, "kernelType").code == ErrorCode.invalid_enum
