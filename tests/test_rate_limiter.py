import time
from collections import deque

from quizgenius.utils.rate_limiter import rate_limiter


def test_user_id_header_does_not_open_a_new_bucket(client, monkeypatch):
    monkeypatch.setattr(rate_limiter, "requests_per_minute", 2)

    statuses = [client.get("/", headers={"X-User-Id": f"x{i}"}).status_code for i in range(5)]

    assert statuses == [200, 200, 429, 429, 429]
    assert list(rate_limiter.history) == ["ip:testclient"]


def test_idle_clients_are_forgotten(client):
    rate_limiter.history["ip:10.0.0.1"] = deque([time.time() - 7200])

    client.get("/")

    assert "ip:10.0.0.1" not in rate_limiter.history
    assert len(rate_limiter.history["ip:testclient"]) == 1
