from __future__ import annotations

import json
import socket
import threading

import pytest
import requests

from vault_ledger.server import create_server
from vault_ledger.service import Response, VaultService


@pytest.fixture
def server(accounting, settings):
    server = create_server(VaultService(accounting, settings), "127.0.0.1", 0)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def base_url(server):
    host, port = server.server_address[:2]
    return f"http://{host}:{port}"


def _raw_exchange(server, request: bytes) -> bytes:
    with socket.create_connection(server.server_address[:2], timeout=5) as sock:
        sock.sendall(request)
        chunks = []
        while chunk := sock.recv(4096):
            chunks.append(chunk)
    return b"".join(chunks)


def test_http_roundtrip(base_url):
    created = requests.post(
        f"{base_url}/v1/vaults", json={"owner": "alice", "thresholdsUSD": 1000}, timeout=5
    )
    assert created.status_code == 201
    vault_id = created.json()["id"]

    added = requests.post(
        f"{base_url}/v1/vaults/{vault_id}/reward-address",
        json={"address": "0xabc"},
        timeout=5,
    )
    assert added.status_code == 200
    assert added.json()["rewardAddresses"] == ["0xabc"]

    recorded = requests.put(
        f"{base_url}/vaults/{vault_id}/assets/ETH", json={"amount": 2}, timeout=5
    )
    assert recorded.status_code == 200

    value = requests.get(f"{base_url}/vaults/{vault_id}/value", timeout=5)
    assert value.status_code == 200
    assert value.json()["totalUSD"] == 3600

    listed = requests.get(f"{base_url}/vaults", timeout=5)
    assert listed.status_code == 200
    assert [v["id"] for v in listed.json()] == [vault_id]


def test_http_errors_carry_kind(base_url):
    missing = requests.get(f"{base_url}/vaults/nope", timeout=5)
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"

    bad = requests.post(
        f"{base_url}/vaults",
        data="{broken",
        headers={"Content-Type": "application/json"},
        timeout=5,
    )
    assert bad.status_code == 400
    assert bad.json()["kind"] == "invalid_argument"


@pytest.mark.parametrize("length", [b"abc", b"-5"])
def test_bad_content_length_gets_400(server, length):
    reply = _raw_exchange(
        server,
        b"POST /vaults HTTP/1.1\r\nHost: localhost\r\nContent-Length: "
        + length
        + b"\r\n\r\n",
    )

    head, _, body = reply.partition(b"\r\n\r\n")
    assert head.split(b"\r\n", 1)[0].split()[1] == b"400"
    assert json.loads(body)["kind"] == "invalid_argument"


def test_non_finite_body_is_sent_as_500(base_url, monkeypatch):
    monkeypatch.setattr(
        VaultService,
        "handle",
        lambda self, method, path, raw_body=None: Response(200, {"total": float("inf")}),
    )

    response = requests.get(f"{base_url}/vaults", timeout=5)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "kind": "internal"}


def test_overflowing_valuation_is_rejected(base_url):
    created = requests.post(
        f"{base_url}/vaults", json={"owner": "alice", "thresholdsUSD": 1}, timeout=5
    )
    vault_id = created.json()["id"]
    requests.put(
        f"{base_url}/vaults/{vault_id}/assets/ETH", json={"amount": 1e306}, timeout=5
    )

    response = requests.get(f"{base_url}/vaults/{vault_id}/value", timeout=5)

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_argument"
    assert "Infinity" not in response.text
