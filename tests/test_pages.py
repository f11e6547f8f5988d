BASE = "https://test-project.supabase.co/storage/v1/object/public/media/"


def test_portfolio_renders_each_category(client, backend):
    backend.add_photo(category="motocross", url="motocross/1-aaaaaa.JPG")
    backend.add_photo(category="product", url="https://cdn.example.com/legacy.jpg", store=False)
    r = client.get("/")
    assert r.status_code == 200
    for heading in ("Motocross", "Portrait", "Product"):
        assert heading in r.text
    assert f'src="{BASE}motocross/1-aaaaaa.JPG"' in r.text
    assert 'src="https://cdn.example.com/legacy.jpg"' in r.text
    assert client.get("/portfolio").status_code == 200


def test_portfolio_caps_each_section(client, backend):
    for _ in range(9):
        backend.add_photo(category="portrait")
    r = client.get("/portfolio")
    assert r.text.count('class="photo is-loading"') == 6


def test_empty_url_renders_skeleton_only(client, backend):
    photo = backend.add_photo(category="portrait", url="", store=False)
    r = client.get("/portrait")
    assert r.status_code == 200
    assert f'data-photo-id="{photo["id"]}"' in r.text
    assert 'src=""' not in r.text
    assert 'class="skeleton"' in r.text


def test_motocross_filters(client, backend):
    ev = backend.add_event(name="Spring Cup", date="2024-03-15", location="Dreetz")
    hit = backend.add_photo(category="motocross", start_number="114", event_id=ev["id"])
    backend.add_photo(category="motocross", start_number="115", event_id=ev["id"])
    backend.add_photo(category="portrait", start_number="114", event_id=ev["id"])

    r = client.get(f"/motocross?event_id={ev['id']}&start_number=114")
    assert r.status_code == 200
    assert "Spring Cup (15.03.2024, Dreetz)" in r.text
    assert r.text.count("data-photo-id=") == 1
    assert f'data-photo-id="{hit["id"]}"' in r.text

    r = client.get("/motocross")
    assert r.text.count("data-photo-id=") == 2


def test_category_gallery_only_shows_its_photos(client, backend):
    backend.add_photo(category="product")
    backend.add_photo(category="portrait")
    r = client.get("/product")
    assert "Product photography" in r.text
    assert r.text.count("data-photo-id=") == 1


def test_gallery_backend_failure_renders_banner(client, backend):
    backend.fail.add("photos.select")
    r = client.get("/portrait")
    assert r.status_code == 200
    assert "Photos could not be loaded" in r.text


def test_photos_api(client, backend):
    backend.add_photo(category="motocross", url="/motocross/2-bbbbbb.jpg", start_number="9")
    backend.add_photo(category="portrait")
    r = client.get("/api/photos", params={"category": "motocross"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert [p["url"] for p in body["photos"]] == [BASE + "motocross/2-bbbbbb.jpg"]
    assert body["photos"][0]["start_number"] == "9"


def test_photos_api_errors(client, backend):
    assert client.get("/api/photos", params={"category": "landscape"}).status_code == 400
    backend.fail.add("photos.select")
    r = client.get("/api/photos")
    assert r.status_code == 502
    assert r.json()["ok"] is False


def test_motocross_event_filter_uses_event_helpers(client, backend, monkeypatch):
    from studio.services import queries

    ev = backend.add_event(name="Spring Cup")
    older = backend.add_photo(category="motocross", event_id=ev["id"])
    newer = backend.add_photo(category="motocross", event_id=ev["id"])
    backend.add_photo(category="portrait", event_id=ev["id"])
    backend.add_photo(category="motocross")

    called = []
    by_event = queries.get_photos_by_event
    by_number = queries.get_photos_by_start_number
    monkeypatch.setattr(
        queries, "get_photos_by_event", lambda c, e: called.append("event") or by_event(c, e)
    )
    monkeypatch.setattr(
        queries,
        "get_photos_by_start_number",
        lambda c, e, n: called.append("number") or by_number(c, e, n),
    )

    r = client.get(f"/motocross?event_id={ev['id']}")
    assert r.text.count("data-photo-id=") == 2
    assert r.text.index(f'data-photo-id="{newer["id"]}"') < r.text.index(
        f'data-photo-id="{older["id"]}"'
    )
    client.get(f"/motocross?event_id={ev['id']}&start_number=114")
    assert called == ["event", "number"]
