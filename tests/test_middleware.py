from __future__ import annotations


def test_ignores_incoming_request_id_header(client):
    resp = client.get("/does-not-exist", headers={"X-Request-ID": "client-chosen-id"})

    assert resp.headers.get("X-Request-ID") != "client-chosen-id"
    assert "client-chosen-id" not in resp.text


def test_generates_request_id(client):
    first = client.get("/does-not-exist")
    second = client.get("/does-not-exist")

    assert first.headers.get("X-Request-ID")
    assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
    assert first.headers.get("X-Request-Duration-ms") is not None


def test_security_headers_on_api_responses(client):
    resp = client.get("/api/public-key")

    csp = resp.headers["Content-Security-Policy"]
    assert "default-src 'self'" in csp
    assert "https://cdn.jsdelivr.net" in csp
    assert "'nonce-" in csp
    assert "object-src 'none'" in csp
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Strict-Transport-Security"].startswith("max-age=31536000")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["Referrer-Policy"] == "no-referrer"


def test_security_headers_on_rate_limited_responses(client, valid_envelope):
    for _ in range(11):
        resp = client.post("/api/feedback", json={"encryptedMessage": valid_envelope})

    assert resp.status_code == 429
    assert resp.headers["X-Frame-Options"] == "DENY"
