import pytest

from conftest import csrf_from


@pytest.fixture
def sent(monkeypatch):
    calls = []

    async def fake_send(**kwargs):
        calls.append(kwargs)

    monkeypatch.setattr("studio.api.contact.send_contact_email", fake_send)
    return calls


def _form(client, **overrides):
    page = client.get("/contact")
    data = {
        "name": "Jana",
        "email": "jana@example.test",
        "phone": "",
        "subject": "Race day",
        "category": "motocross",
        "message": "Can you shoot the next round?",
        "csrf_token": csrf_from(page.text),
    }
    data.update(overrides)
    return data


def test_contact_page(client):
    r = client.get("/contact")
    assert r.status_code == 200
    assert 'name="csrf_token"' in r.text


def test_contact_success(client, sent):
    r = client.post("/contact", data=_form(client), follow_redirects=False)
    assert r.status_code == 303
    assert r.headers["location"] == "/contact?sent=1"
    assert sent[0]["from_email"] == "jana@example.test"
    assert sent[0]["category"] == "motocross"
    assert "Your message was sent" in client.get(r.headers["location"]).text


def test_contact_requires_fields(client, sent):
    r = client.post("/contact", data=_form(client, message="  "))
    assert r.status_code == 400
    assert "required" in r.text
    assert sent == []


def test_contact_rejects_bad_token(client, sent):
    r = client.post("/contact", data=_form(client, csrf_token="forged"))
    assert r.status_code == 400
    assert sent == []


def test_contact_honeypot_is_dropped(client, sent):
    r = client.post("/contact", data=_form(client, hp="bot"), follow_redirects=False)
    assert r.status_code == 303
    assert sent == []


def test_contact_send_failure_shows_banner(client, monkeypatch):
    async def broken(**kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr("studio.api.contact.send_contact_email", broken)
    r = client.post("/contact", data=_form(client))
    assert r.status_code == 502
    assert "could not be sent" in r.text
    # the visitor keeps what they typed
    assert "Can you shoot the next round?" in r.text


def test_contact_rate_limited(client, sent):
    for _ in range(3):
        client.post("/contact", data=_form(client), follow_redirects=False)
    r = client.post("/contact", data=_form(client))
    assert r.status_code == 429
    assert len(sent) == 3
