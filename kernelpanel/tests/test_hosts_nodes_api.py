HOST = {
    "name": "edge-fra",
    "hostName": "fra.example.com",
    "address": "203.0.113.10",
    "port": 443,
    "networkConfig": "{}",
    "streamSecurityConfig": '{"security": "tls"}',
}


def test_host_json_fields_are_syntax_checked(client, admin_headers):
    response = client.post("/api/v1/hosts", json={**HOST, "networkConfig": "{ invalid"}, headers=admin_headers)
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert errors[0]["field"] == "networkConfig"
    assert errors[0]["code"] == "invalid_json"

    created = client.post("/api/v1/hosts", json=HOST, headers=admin_headers)
    assert created.status_code == 201, created.text
    assert created.json()["networkConfig"] == "{}"
    assert created.json()["muxConfig"] == "{}"


def test_host_port_range(client, admin_headers):
    for port in (0, 65536):
        response = client.post("/api/v1/hosts", json={**HOST, "port": port}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["errors"][0]["code"] == "port_out_of_range"
    for port in (1, 65535):
        assert client.post("/api/v1/hosts", json={**HOST, "port": port}, headers=admin_headers).status_code == 201


def test_host_update_and_delete(client, admin_headers):
    host = client.post("/api/v1/hosts", json=HOST, headers=admin_headers).json()

    updated = client.put(f"/api/v1/hosts/{host['id']}", json={"muxConfig": '{"enabled": true}'}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()["muxConfig"] == '{"enabled": true}'
    assert updated.json()["name"] == "edge-fra"

    assert client.delete(f"/api/v1/hosts/{host['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/hosts/{host['id']}", headers=admin_headers).status_code == 404


def test_server_node_crud_and_snippet(client, admin_headers):
    response = client.post(
        "/api/v1/server-nodes",
        json={"name": "Node Amsterdam", "address": "198.51.100.7", "port": 62050, "connectionType": "websocket", "consumptionFactor": 1.5},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    node = response.json()
    assert node["status"] == "offline"
    assert node["connectionType"] == "websocket"

    updated = client.put(f"/api/v1/server-nodes/{node['id']}", json={"status": "online"}, headers=admin_headers)
    assert updated.json()["status"] == "online"

    online = client.get("/api/v1/server-nodes", params={"status_filter": "online"}, headers=admin_headers).json()
    assert [item["id"] for item in online] == [node["id"]]

    snippet = client.get(f"/api/v1/server-nodes/{node['id']}/setup-snippet", headers=admin_headers).json()["snippet"]
    assert "--name node-amsterdam-node" in snippet
    assert "-p 62050:62050" in snippet

    assert client.delete(f"/api/v1/server-nodes/{node['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/server-nodes/{node['id']}", headers=admin_headers).status_code == 404


def test_server_node_validation(client, admin_headers):
    response = client.post(
        "/api/v1/server-nodes",
        json={"name": "bad", "address": "10.0.0.1", "port": 8080, "connectionType": "quic", "consumptionFactor": 11},
        headers=admin_headers,
    )
    assert response.status_code == 422
    errors = {error["field"]: error["code"] for error in response.json()["errors"]}
    assert errors == {"connectionType": "invalid_enum", "consumptionFactor": "invalid_value"}


def test_setup_snippet_quotes_node_values(client, admin_headers):
    node = client.post(
        "/api/v1/server-nodes",
        json={"name": 'edge"; rm -rf ~; echo "\nreboot', "address": "1.2.3.4", "port": 443},
        headers=admin_headers,
    ).json()

    snippet = client.get(f"/api/v1/server-nodes/{node['id']}/setup-snippet", headers=admin_headers).json()["snippet"]
    lines = snippet.split("\n")
    assert lines[0] == "# Setup for node edge-rm-rf-echo-reboot (grpclib)"
    assert lines[-2:] == ["echo 'Panel expects edge\"; rm -rf ~; echo \"", "reboot at 1.2.3.4:443'"]
    assert "--name edge-rm-rf-echo-reboot-node" in snippet

    bad_address = client.post(
        "/api/v1/server-nodes",
        json={"name": "bad", "address": "1.2.3.4; reboot", "port": 443},
        headers=admin_headers,
    )
    assert bad_address.status_code == 422
    assert bad_address.json()["errors"][0]["field"] == "address"
