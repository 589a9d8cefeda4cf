from credify.rate_limiter import RateLimiter

INVALID = {"name": "J"}


def test_hits_within_window_are_counted():
    limiter = RateLimiter(limit=2, window_seconds=600)
    assert limiter.hit("1.1.1.1", now=1000) == (True, 1, 600)
    assert limiter.hit("1.1.1.1", now=1001) == (True, 2, 599)
    allowed, count, ttl = limiter.hit("1.1.1.1", now=1002)
    assert allowed is False
    assert count == 3
    assert ttl == 598


def test_window_resets_after_expiry():
    limiter = RateLimiter(limit=1, window_seconds=60)
    assert limiter.hit("1.1.1.1", now=0)[0] is True
    assert limiter.hit("1.1.1.1", now=30)[0] is False
    assert limiter.hit("1.1.1.1", now=60) == (True, 1, 60)


def test_ips_are_counted_separately():
    limiter = RateLimiter(limit=1, window_seconds=60)
    assert limiter.hit("1.1.1.1", now=0)[0] is True
    assert limiter.hit("2.2.2.2", now=0)[0] is True
    assert limiter.hit("1.1.1.1", now=1)[0] is False


def test_api_returns_429_after_limit(make_client):
    api, transport = make_client(rate_limit_max=2, rate_limit_window_seconds=600)
    assert api.post("/api/contact", json=INVALID).status_code == 400
    assert api.post("/api/apply", json={}).status_code == 400

    response = api.post("/api/contact", json=INVALID)
    assert response.status_code == 429
    assert response.json() == {"success": False, "error": "Too many requests, please try again later."}
    assert int(response.headers["Retry-After"]) > 0
    assert response.headers["RateLimit-Remaining"] == "0"


def test_forwarded_for_identifies_the_client(make_client):
    api, _ = make_client(rate_limit_max=1)
    first = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
    second = {"X-Forwarded-For": "198.51.100.7"}

    assert api.post("/api/contact", json=INVALID, headers=first).status_code == 400
    assert api.post("/api/contact", json=INVALID, headers=second).status_code == 400
    assert api.post("/api/contact", json=INVALID, headers=first).status_code == 429


def test_liveness_banner_is_not_rate_limited(make_client):
    api, _ = make_client(rate_limit_max=1)
    for _ in range(3):
        response = api.get("/")
        assert response.status_code == 200
        assert response.text == "Credify backend is live ✅"
        assert response.headers["content-type"].startswith("text/plain")


def test_unknown_api_paths_count_against_the_limit(make_client):
    api, transport = make_client(rate_limit_max=2)
    assert api.get("/api/unknown").status_code == 404
    assert api.post("/api/admin").status_code == 404

    response = api.post("/api/contact", json=INVALID)
    assert response.status_code == 429
    assert api.get("/api/unknown").status_code == 429
    assert transport.attempts == 0


def test_paths_outside_api_are_not_counted(make_client):
    api, _ = make_client(rate_limit_max=1)
    for _ in range(3):
        assert api.get("/health").status_code == 200
        assert api.get("/apiary").status_code == 404

    response = api.post("/api/contact", json=INVALID)
    assert response.status_code == 400
    assert response.headers["RateLimit-Remaining"] == "0"
