def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_request_id_is_echoed(client):
    r = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert client.get("/healthz").headers.get("X-Request-ID")


def test_not_found_page(client):
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert "Page not found" in r.text
    api = client.get("/api/does-not-exist")
    assert api.status_code == 404
    assert api.json() == {"detail": "Not Found"}


def test_security_headers_allow_media_origin(client, backend):
    r = client.get("/portfolio")
    csp = r.headers["Content-Security-Policy"]
    assert "img-src 'self' data: https://test-project.supabase.co;" in csp
    assert r.headers["X-Frame-Options"] == "DENY"
