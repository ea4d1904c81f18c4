"""
Rate limiting per client address (RATE_LIMIT requests per RATE_LIMIT_WINDOW)
"""
import pytest
from fastapi import HTTPException

from app.core import rate_limit
from app.core.config import settings
from app.core.metrics import rate_limit_exceeded, registry


class FakeRedis:
    def __init__(self, fail: bool = False):
        self.store = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def incr(self, key):
        self.store[key] = str(int(self.store[key]) + 1)


@pytest.mark.rate_limit
class TestRateLimiting:

    def test_rate_limit_config(self):
        assert settings.RATE_LIMIT == 100
        assert settings.RATE_LIMIT_WINDOW == 600  # 10 minutes

    async def test_skipped_without_redis(self, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: None)
        for _ in range(settings.RATE_LIMIT + 5):
            await rate_limit.check_rate_limit("10.0.0.1")

    async def test_limit_per_client(self, monkeypatch):
        fake = FakeRedis()
        monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)

        for _ in range(settings.RATE_LIMIT):
            await rate_limit.check_rate_limit("10.0.0.1")

        with pytest.raises(HTTPException) as exc:
            await rate_limit.check_rate_limit("10.0.0.1")
        assert exc.value.status_code == 429

        await rate_limit.check_rate_limit("10.0.0.2")

    async def test_exceeded_metric_has_no_per_client_series(self, monkeypatch, caplog):
        fake = FakeRedis()
        for n in range(5):
            fake.store[f"rl:198.51.100.{n}"] = str(settings.RATE_LIMIT)
        monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)
        before = registry.get_sample_value("rate_limit_exceeded_total")

        for n in range(5):
            with pytest.raises(HTTPException):
                await rate_limit.check_rate_limit(f"198.51.100.{n}")

        assert registry.get_sample_value("rate_limit_exceeded_total") == before + 5
        samples = [s for m in rate_limit_exceeded.collect() for s in m.samples if s.name.endswith("_total")]
        assert len(samples) == 1
        assert samples[0].labels == {}
        assert "Rate limit exceeded for 198.51.100.4" in caplog.text

    async def test_redis_errors_do_not_block(self, monkeypatch):
        monkeypatch.setattr(rate_limit, "get_redis", lambda: FakeRedis(fail=True))
        await rate_limit.check_rate_limit("10.0.0.1")

    async def test_lead_endpoint_returns_429(self, test_client, valid_lead_data, monkeypatch):
        fake = FakeRedis()
        fake.store["rl:203.0.113.9"] = str(settings.RATE_LIMIT)
        monkeypatch.setattr(rate_limit, "get_redis", lambda: fake)

        response = await test_client.post(
            "/leads/webhook",
            json=valid_lead_data,
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )
        assert response.status_code == 429
