import re


def create_user(client, headers, **overrides):
    payload = {
        "username": "alice",
        "fullName": "Alice Example",
        "email": "alice@example.com",
        "kernelId": "xray-core",
        "protocol": "vless",
        "dataAllowanceGB": 50,
        "dataUsedGB": 10,
        "maxConcurrentIPs": 2,
        "validityPeriodDays": 30,
    }
    payload.update(overrides)
    response = client.post("/api/v1/users", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_user_generates_sublink_and_derived_fields(client, admin_headers):
    user = create_user(client, admin_headers, username="Alice.Smith")
    assert re.fullmatch(r"sub_alicesmith_[a-z0-9]{6}", user["sublinkPath"])
    assert user["remainingGB"] == 40
    assert user["usageState"] == "ok"
    assert user["isExpired"] is False
    assert user["status"] == "active"


def test_used_cannot_exceed_allowance(client, admin_headers):
    response = client.post(
        "/api/v1/users",
        json={"username": "bob", "kernelId": "wireguard", "protocol": "wireguard", "dataAllowanceGB": 5, "dataUsedGB": 6},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert [error["field"] for error in response.json()["errors"]] == ["dataUsedGB"]

    user = create_user(client, admin_headers, username="carol", dataAllowanceGB=10, dataUsedGB=1)
    update = client.put(f"/api/v1/users/{user['id']}", json={"dataUsedGB": 11}, headers=admin_headers)
    assert update.status_code == 422
    assert client.get(f"/api/v1/users/{user['id']}", headers=admin_headers).json()["dataUsedGB"] == 1

    shrink = client.put(f"/api/v1/users/{user['id']}", json={"dataAllowanceGB": 0.5}, headers=admin_headers)
    assert shrink.status_code == 422


def test_kernel_and_protocol_must_match(client, admin_headers):
    response = client.post(
        "/api/v1/users",
        json={"username": "dave", "kernelId": "missing", "protocol": "vless"},
        headers=admin_headers,
    )
    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "kernelId"

    response = client.post(
        "/api/v1/users",
        json={"username": "dave", "kernelId": "openvpn", "protocol": "vless"},
        headers=admin_headers,
    )
    error = response.json()["errors"][0]
    assert error["field"] == "protocol"
    assert error["code"] == "invalid_enum"
    assert error["allowed"] == ["openvpn-udp", "openvpn-tcp"]


def test_request_schema_errors_use_wire_names(client, admin_headers):
    response = client.post(
        "/api/v1/users",
        json={"username": "ed", "kernelId": "xray-core", "protocol": "vless", "status": "frozen", "maxConcurrentIPs": 0},
        headers=admin_headers,
    )
    assert response.status_code == 422
    errors = {error["field"]: error["code"] for error in response.json()["errors"]}
    assert errors == {"username": "invalid_value", "status": "invalid_enum", "maxConcurrentIPs": "invalid_value"}


def test_duplicate_username_conflicts(client, admin_headers):
    create_user(client, admin_headers)
    response = client.post(
        "/api/v1/users",
        json={"username": "alice", "kernelId": "xray-core", "protocol": "vless"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["error"] == "integrity_error"


def test_list_filter_and_delete(client, admin_headers):
    first = create_user(client, admin_headers, username="user-one")
    create_user(client, admin_headers, username="user-two", status="banned")

    listing = client.get("/api/v1/users", params={"status_filter": "banned"}, headers=admin_headers).json()
    assert listing["total"] == 1
    assert listing["items"][0]["username"] == "user-two"

    assert client.delete(f"/api/v1/users/{first['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/users/{first['id']}", headers=admin_headers).status_code == 404


def test_usage_states(client, admin_headers):
    assert create_user(client, admin_headers, username="unlimited", dataAllowanceGB=0, dataUsedGB=0)["usageState"] == "n/a"
    assert create_user(client, admin_headers, username="full", dataAllowanceGB=10, dataUsedGB=10)["usageState"] == "full"
    assert create_user(client, admin_headers, username="critical", dataAllowanceGB=10, dataUsedGB=9.5)["usageState"] == "critical"
    assert create_user(client, admin_headers, username="low", dataAllowanceGB=10, dataUsedGB=6)["usageState"] == "low"


def test_rotate_sublink_and_reset_usage(client, admin_headers):
    user = create_user(client, admin_headers)
    old_sublink = user["sublinkPath"]

    rotated = client.post(f"/api/v1/users/{user['id']}/rotate-sublink", headers=admin_headers).json()
    assert rotated["sublinkPath"] != old_sublink
    assert client.get(f"/api/v1/subscriptions/{old_sublink}").status_code == 404

    reset = client.post(f"/api/v1/users/{user['id']}/reset-usage", headers=admin_headers).json()
    assert reset["dataUsedGB"] == 0
    assert reset["usageState"] == "ok"


def test_public_subscription(client, admin_headers):
    user = create_user(client, admin_headers, username="<script>")
    sublink = user["sublinkPath"]

    payload = client.get(f"/api/v1/subscriptions/{sublink}")
    assert payload.status_code == 200
    assert payload.json()["kernelName"] == "Xray-core"
    assert payload.json()["remainingGB"] == 40

    page = client.get(f"/api/v1/sub/{sublink}")
    assert page.status_code == 200
    assert "&lt;script&gt;" in page.text
    assert "<script>" not in page.text

    assert client.get("/api/v1/sub/sub_nobody_000000").status_code == 404


def test_numeric_fields_are_bounded(client, admin_headers):
    response = client.post(
        "/api/v1/users",
        json={
            "username": "zed",
            "kernelId": "xray-core",
            "protocol": "vless",
            "validityPeriodDays": 3000000,
            "maxConcurrentIPs": 2**70,
            "dataAllowanceGB": "inf",
        },
        headers=admin_headers,
    )
    assert response.status_code == 422
    errors = {error["field"]: error["code"] for error in response.json()["errors"]}
    assert errors == {"validityPeriodDays": "invalid_value", "maxConcurrentIPs": "invalid_value", "dataAllowanceGB": "invalid_value"}

    user = create_user(client, admin_headers, validityPeriodDays=36500, maxConcurrentIPs=10000)
    assert client.put(f"/api/v1/users/{user['id']}", json={"validityPeriodDays": 36501}, headers=admin_headers).status_code == 422

    listing = client.get("/api/v1/users", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["validityPeriodDays"] == 36500

    assert client.get("/api/v1/users", params={"offset": 2**40}, headers=admin_headers).status_code == 422


def test_dashboard_overview(client, admin_headers):
    for username, status in (("ann", "active"), ("ben", "active"), ("cat", "banned")):
        create_user(client, admin_headers, username=username, status=status, dataAllowanceGB=20, dataUsedGB=2.5)
    client.post("/api/v1/kernels/xray-core/actions/start", headers=admin_headers)
    for name, status in (("n1", "online"), ("n2", "offline")):
        client.post(
            "/api/v1/server-nodes",
            json={"name": name, "address": "10.0.0.1", "port": 62050, "status": status},
            headers=admin_headers,
        )

    overview = client.get("/api/v1/analytics/overview", headers=admin_headers)
    assert overview.status_code == 200
    body = overview.json()
    assert body["users"] == {"total": 3, "byStatus": {"active": 2, "inactive": 0, "expired": 0, "banned": 1}, "lapsed": 0}
    assert body["kernels"]["total"] == 6
    assert body["kernels"]["byStatus"]["running"] == 1
    assert body["kernels"]["byStatus"]["stopped"] == 5
    assert body["bandwidth"] == {"usedGB": 7.5, "allowanceGB": 60.0}
    assert body["serverNodes"] == {"total": 2, "online": 1}

    assert client.get("/api/v1/analytics/overview").status_code == 401
