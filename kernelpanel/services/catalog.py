AVAILABLE_COUNTRIES = [
    {"code": "US", "name": "United States", "flag": "🇺🇸"},
    {"code": "CA", "name": "Canada", "flag": "🇨🇦"},
    {"code": "GB", "name": "United Kingdom", "flag": "🇬🇧"},
    {"code": "DE", "name": "Germany", "flag": "🇩🇪"},
    {"code": "FR", "name": "France", "flag": "🇫🇷"},
    {"code": "NL", "name": "Netherlands", "flag": "🇳🇱"},
    {"code": "SE", "name": "Sweden", "flag": "🇸🇪"},
    {"code": "CH", "name": "Switzerland", "flag": "🇨🇭"},
    {"code": "FI", "name": "Finland", "flag": "🇫🇮"},
    {"code": "TR", "name": "Turkey", "flag": "🇹🇷"},
    {"code": "AE", "name": "United Arab Emirates", "flag": "🇦🇪"},
    {"code": "JP", "name": "Japan", "flag": "🇯🇵"},
    {"code": "SG", "name": "Singapore", "flag": "🇸🇬"},
    {"code": "IR", "name": "Iran", "flag": "🇮🇷"},
    {"code": "RU", "name": "Russia", "flag": "🇷🇺"},
    {"code": "CN", "name": "China", "flag": "🇨🇳"},
]

COUNTRY_CODES = tuple(country["code"] for country in AVAILABLE_COUNTRIES)

DEFAULT_CONFIGS = {
    "xray": {
        "logLevel": "warning",
        "dnsServers": ["1.1.1.1", "8.8.8.8"],
        "inbounds": [
            {
                "tag": "vless-in",
                "port": 443,
                "protocol": "vless",
                "settings": {"clients": [], "decryption": "none"},
                "streamSettings": {"network": "tcp", "security": "reality"},
            }
        ],
        "outbounds": [{"tag": "direct", "protocol": "freedom"}, {"tag": "block", "protocol": "blackhole"}],
    },
    "openvpn": {
        "port": 1194,
        "proto": "udp",
        "cipher": "AES-256-GCM",
        "auth": "SHA256",
        "dev": "tun",
        "serverIp": "10.8.0.0",
        "serverNetmask": "255.255.255.0",
        "additionalDirectives": "",
    },
    "wireguard": {
        "privateKey": "",
        "address": "10.0.0.1/24",
        "listenPort": 51820,
        "dnsServers": ["1.1.1.1"],
        "peers": [],
    },
    "sing-box": {
        "logLevel": "info",
        "dns": {"servers": ["8.8.8.8"]},
        "inbounds": [{"type": "mixed", "tag": "mixed-in", "listen": "::", "listen_port": 2080}],
        "outbounds": [{"type": "direct", "tag": "direct"}],
    },
    "tor-service": {
        "ports": [9050, 9150],
        "fakeDomain": "www.bing.com",
        "enableCountrySelection": False,
        "selectedCountries": ["US", "NL"],
    },
    "psiphon-pro": {
        "ports": [1080, 8081],
        "transportMode": "OBFUSCATED_SSH",
        "enableCountrySelection": False,
        "selectedCountries": ["CA", "DE"],
        "customServerList": None,
        "bandwidthLimitMbps": None,
    },
}

KERNELS = [
    {
        "id": "xray-core",
        "name": "Xray-core",
        "description": "Platform for building proxies to bypass network restrictions.",
        "category": "engine",
        "kernel_type": "xray",
        "protocols": [
            {"name": "vless", "label": "VLESS"},
            {"name": "vmess", "label": "VMess"},
            {"name": "trojan", "label": "Trojan"},
            {"name": "shadowsocks", "label": "Shadowsocks"},
        ],
        "source_url": "https://github.com/XTLS/Xray-core",
    },
    {
        "id": "openvpn",
        "name": "OpenVPN",
        "description": "Full featured SSL VPN over TCP or UDP.",
        "category": "engine",
        "kernel_type": "openvpn",
        "protocols": [{"name": "openvpn-udp", "label": "OpenVPN UDP"}, {"name": "openvpn-tcp", "label": "OpenVPN TCP"}],
        "source_url": "https://github.com/OpenVPN/openvpn",
    },
    {
        "id": "wireguard",
        "name": "WireGuard",
        "description": "Fast modern VPN using state-of-the-art cryptography.",
        "category": "engine",
        "kernel_type": "wireguard",
        "protocols": [{"name": "wireguard", "label": "WireGuard"}],
        "source_url": "https://git.zx2c4.com/wireguard-go",
    },
    {
        "id": "sing-box",
        "name": "Sing-box",
        "description": "Universal proxy platform.",
        "category": "engine",
        "kernel_type": "sing-box",
        "protocols": [
            {"name": "vless", "label": "VLESS"},
            {"name": "hysteria2", "label": "Hysteria2"},
            {"name": "tuic", "label": "TUIC"},
            {"name": "shadowsocks", "label": "Shadowsocks"},
        ],
        "source_url": "https://github.com/SagerNet/sing-box",
    },
    {
        "id": "tor-service",
        "name": "Tor Service",
        "description": "Tor relay with Warp egress behind a decoy site.",
        "category": "node",
        "kernel_type": "tor-service",
        "protocols": [{"name": "socks5", "label": "SOCKS5"}],
        "source_url": "https://gitlab.torproject.org/tpo/core/tor",
    },
    {
        "id": "psiphon-pro",
        "name": "Psiphon Pro",
        "description": "Censorship circumvention tunnel with selectable egress regions.",
        "category": "node",
        "kernel_type": "psiphon-pro",
        "protocols": [{"name": "ssh", "label": "SSH"}, {"name": "http-proxy", "label": "HTTP Proxy"}],
        "source_url": "https://github.com/Psiphon-Labs/psiphon-tunnel-core",
    },
]

DEFAULT_FAKE_SITE = {
    "isEnabled": False,
    "decoyDomain": "",
    "nginxConfigSnippet": "",
    "isValidated": False,
}

# Panel settings sections that can be put back to factory values.
SECTION_DEFAULTS = {
    "domain": {"domain_name": "", "ssl_private_key": "", "ssl_certificate": ""},
    "blocked-countries": {"blocked_countries": []},
    "fake-site": {"fake_site": DEFAULT_FAKE_SITE},
    "tor-service": {"tor_service_enabled": False},
}
