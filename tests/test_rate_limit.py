from studio.services import rate_limit


def test_limit_within_window():
    assert all(rate_limit.allow("login:k", 3, 60) for _ in range(3))
    assert rate_limit.allow("login:k", 3, 60) is False
    assert rate_limit.allow("login:other", 3, 60) is True


def test_expired_keys_are_dropped(monkeypatch):
    clock = [1000.0]
    monkeypatch.setattr(rate_limit, "time", lambda: clock[0])
    for i in range(150):
        rate_limit.allow(f"login:1.2.3.4:user{i}@example.test", 5, 10)
    assert len(rate_limit._attempts) == 150

    clock[0] += 60
    for _ in range(50):
        rate_limit.allow("login:1.2.3.4:fresh@example.test", 100, 10)
    assert set(rate_limit._attempts) == {"login:1.2.3.4:fresh@example.test"}


def test_distinct_keys_do_not_accumulate():
    for i in range(500):
        rate_limit.allow(f"login:1.2.3.4:user{i}@x", 5, 0)
    assert len(rate_limit._attempts) < 500
