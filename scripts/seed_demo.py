#!/usr/bin/env python3
import json
import os
import time
import urllib.error
import urllib.request
from typing import Optional

API_BASE = os.getenv("API_BASE", "http://api:8080").rstrip("/")
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

DEMO_USERS = [
    {"username": "demo-vless", "kernelId": "xray-core", "protocol": "vless", "dataAllowanceGB": 100, "dataUsedGB": 12.5},
    {"username": "demo-wg", "kernelId": "wireguard", "protocol": "wireguard", "dataAllowanceGB": 50, "dataUsedGB": 47},
    {"username": "demo-tor", "kernelId": "tor-service", "protocol": "socks5", "dataAllowanceGB": 0},
]

DEMO_HOSTS = [
    {
        "name": "demo-edge",
        "hostName": "edge.demo.local",
        "address": "10.240.0.11",
        "port": 443,
        "networkConfig": '{"network": "ws", "path": "/edge"}',
        "streamSecurityConfig": '{"security": "tls"}',
    },
]


def request(
    method: str,
    path: str,
    body: Optional[dict] = None,
    token: Optional[str] = None,
    expected: tuple[int, ...] = (200,),
):
    url = f"{API_BASE}{path}"
    payload = None if body is None else json.dumps(body).encode("utf-8")
    req = urllib.request.Request(url, data=payload, method=method)
    req.add_header("Content-Type", "application/json")
    if token:
        req.add_header("Authorization", f"Bearer {token}")

    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            raw = resp.read().decode("utf-8")
            data = json.loads(raw) if raw else {}
            if resp.status not in expected:
                raise RuntimeError(f"Unexpected status {resp.status} for {method} {path}: {data}")
            return resp.status, data
    except urllib.error.HTTPError as exc:
        raw = exc.read().decode("utf-8")
        data = json.loads(raw) if raw else {}
        if exc.code in expected:
            return exc.code, data
        raise RuntimeError(f"HTTP {exc.code} for {method} {path}: {data}") from exc


def wait_api(max_attempts: int = 60) -> None:
    for _ in range(max_attempts):
        try:
            request("GET", "/api/v1/health")
            return
        except (RuntimeError, OSError):
            time.sleep(2)
    raise RuntimeError("API did not become ready in time")


def login() -> str:
    _, payload = request("POST", "/api/v1/auth/login", {"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
    return payload["accessToken"]


def main():
    wait_api()
    token = login()

    created_users = 0
    for user in DEMO_USERS:
        status, _ = request("POST", "/api/v1/users", user, token=token, expected=(201, 409))
        created_users += status == 201

    _, hosts = request("GET", "/api/v1/hosts", token=token)
    known_hosts = {host["name"] for host in hosts}
    for host in DEMO_HOSTS:
        if host["name"] not in known_hosts:
            request("POST", "/api/v1/hosts", host, token=token, expected=(201,))

    request("POST", "/api/v1/kernels/xray-core/actions/start", token=token)
    print(f"Seed complete: {created_users} users, {len(DEMO_HOSTS)} hosts, xray-core started")


if __name__ == "__main__":
    main()
