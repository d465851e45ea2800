def test_kernels_are_seeded(client, admin_headers):
    response = client.get("/api/v1/kernels", headers=admin_headers)
    assert response.status_code == 200, response.text
    kernels = {item["id"]: item for item in response.json()}
    assert set(kernels) == {"xray-core", "openvpn", "wireguard", "sing-box", "tor-service", "psiphon-pro"}
    assert kernels["tor-service"]["category"] == "node"
    assert kernels["xray-core"]["kernelType"] == "xray"

    nodes = client.get("/api/v1/kernels", params={"category": "node"}, headers=admin_headers).json()
    assert {item["id"] for item in nodes} == {"tor-service", "psiphon-pro"}


def test_kernel_routes_require_auth(client):
    assert client.get("/api/v1/kernels").status_code == 401
    assert client.get("/api/v1/kernels", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_get_config_and_form(client, admin_headers):
    response = client.get("/api/v1/kernels/tor-service/config", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["etag"] == '"1"'
    assert response.json()["config"]["ports"] == [9050, 9150]

    form = client.get("/api/v1/kernels/tor-service/config/form", headers=admin_headers).json()["form"]
    assert form["ports"] == "9050, 9150"
    assert form["selectedCountries"] == "US, NL"


def test_unknown_kernel(client, admin_headers):
    response = client.get("/api/v1/kernels/nginx/config", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "kernel_not_found"


def test_invalid_log_level_leaves_config_unchanged(client, admin_headers):
    before = client.get("/api/v1/kernels/xray-core/config", headers=admin_headers).json()
    payload = {**before["config"], "logLevel": "verbose"}

    response = client.put("/api/v1/kernels/xray-core/config", json=payload, headers=admin_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_error"
    assert body["errors"] == [
        {
            "field": "logLevel",
            "code": "invalid_enum",
            "message": "must be one of: debug, info, warning, error, none",
            "value": "verbose",
            "allowed": ["debug", "info", "warning", "error", "none"],
        }
    ]

    after = client.get("/api/v1/kernels/xray-core/config", headers=admin_headers).json()
    assert after == before


def test_replace_config_from_form_strings(client, admin_headers):
    payload = {
        "logLevel": "debug",
        "dnsServers": "1.1.1.1, 8.8.8.8",
        "inbounds": "[]",
        "outbounds": '[{"protocol": "freedom"}]',
    }
    response = client.put("/api/v1/kernels/xray-core/config", json=payload, headers=admin_headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["configVersion"] == 2
    assert response.headers["etag"] == '"2"'
    assert body["config"] == {
        "logLevel": "debug",
        "dnsServers": ["1.1.1.1", "8.8.8.8"],
        "inbounds": [],
        "outbounds": [{"protocol": "freedom"}],
    }


def test_patch_merges_and_replaces_arrays(client, admin_headers):
    response = client.patch(
        "/api/v1/kernels/psiphon-pro/config",
        json={"ports": "9000,,abc,9001", "bandwidthLimitMbps": 50},
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    config = response.json()["config"]
    assert config["ports"] == [9000, 9001]
    assert config["bandwidthLimitMbps"] == 50
    assert config["transportMode"] == "OBFUSCATED_SSH"
    assert config["selectedCountries"] == ["CA", "DE"]


def test_patch_rejects_out_of_range_port(client, admin_headers):
    response = client.patch("/api/v1/kernels/wireguard/config", json={"listenPort": 65536}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["errors"][0]["code"] == "port_out_of_range"

    config = client.get("/api/v1/kernels/wireguard/config", headers=admin_headers).json()
    assert config["configVersion"] == 1
    assert config["config"]["listenPort"] == 51820


def test_stale_if_match_is_rejected(client, admin_headers):
    first = client.patch(
        "/api/v1/kernels/openvpn/config",
        json={"proto": "tcp"},
        headers={**admin_headers, "If-Match": '"1"'},
    )
    assert first.status_code == 200, first.text

    stale = client.patch(
        "/api/v1/kernels/openvpn/config",
        json={"proto": "udp"},
        headers={**admin_headers, "If-Match": '"1"'},
    )
    assert stale.status_code == 409
    assert stale.json()["detail"] == "config_version_conflict"


def test_revisions_and_rollback(client, admin_headers):
    client.patch("/api/v1/kernels/sing-box/config", json={"primaryDns": "1.0.0.1"}, headers=admin_headers)
    client.patch("/api/v1/kernels/sing-box/config", json={"dnsServers": "9.9.9.9, 149.112.112.112"}, headers=admin_headers)

    revisions = client.get("/api/v1/kernels/sing-box/config/revisions", headers=admin_headers).json()
    assert [item["revision"] for item in revisions] == [3, 2, 1]
    assert revisions[1]["config"]["dns"] == {"servers": ["1.0.0.1"]}

    response = client.post("/api/v1/kernels/sing-box/config/rollback", json={"toRevision": 2}, headers=admin_headers)
    assert response.status_code == 200, response.text
    assert response.json()["configVersion"] == 4
    assert response.json()["config"]["dns"] == {"servers": ["1.0.0.1"]}

    latest = client.get("/api/v1/kernels/sing-box/config/revisions", headers=admin_headers).json()[0]
    assert latest["rolledBackFrom"] == 2

    missing = client.post("/api/v1/kernels/sing-box/config/rollback", json={"toRevision": 42}, headers=admin_headers)
    assert missing.status_code == 404


def test_reset_restores_defaults(client, admin_headers):
    client.patch("/api/v1/kernels/tor-service/config", json={"fakeDomain": "example.org"}, headers=admin_headers)
    response = client.post("/api/v1/kernels/tor-service/config/reset", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["config"]["fakeDomain"] == "www.bing.com"
    assert response.json()["configVersion"] == 3


def test_kernel_actions_record_status(client, admin_headers):
    started = client.post("/api/v1/kernels/openvpn/actions/start", headers=admin_headers)
    assert started.status_code == 200
    assert started.json()["status"] == "running"

    stopped = client.post("/api/v1/kernels/openvpn/actions/stop", headers=admin_headers)
    assert stopped.json()["status"] == "stopped"

    assert client.post("/api/v1/kernels/openvpn/actions/explode", headers=admin_headers).status_code == 404

    logs = client.get("/api/v1/audit/logs", params={"entity_id": "openvpn"}, headers=admin_headers).json()["items"]
    assert {item["action"] for item in logs} >= {"kernel.start", "kernel.stop"}


def test_non_finite_bandwidth_is_rejected(client, admin_headers):
    before = client.get("/api/v1/kernels/psiphon-pro/config", headers=admin_headers).json()

    for value in ("inf", "nan"):
        response = client.put(
            "/api/v1/kernels/psiphon-pro/config",
            json={**before["config"], "bandwidthLimitMbps": value},
            headers=admin_headers,
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "bandwidthLimitMbps"
        assert response.json()["errors"][0]["code"] == "invalid_value"

    assert client.get("/api/v1/kernels/psiphon-pro/config", headers=admin_headers).json() == before


def test_sing_box_patch_cannot_clear_dns(client, admin_headers):
    response = client.patch("/api/v1/kernels/sing-box/config", json={"dnsServers": ""}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["errors"][0] == {"field": "dnsServers", "code": "missing_field", "message": "field is required"}

    xray = client.patch("/api/v1/kernels/xray-core/config", json={"dnsServers": ""}, headers=admin_headers)
    assert xray.status_code == 200
    assert xray.json()["config"]["dnsServers"] == []


def test_rollback_revision_is_bounded(client, admin_headers):
    response = client.post("/api/v1/kernels/xray-core/config/rollback", json={"toRevision": 2**40}, headers=admin_headers)
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "toRevision"
