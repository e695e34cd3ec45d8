import asyncio

import httpx
import pytest

from campaigndocs.auth import AccessTokenProvider, RefreshTokenFlow, classify_auth_error
from campaigndocs.cache import FileCache, MemoryCache
from campaigndocs.errors import AuthorizationError


class Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class StaticFlow:
    def __init__(self, token: str = "tok-1", error: Exception | None = None) -> None:
        self.token = token
        self.error = error
        self.calls = 0

    async def fetch_token(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.token


class FirebaseStyleError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class TestCaches:
    def test_memory_cache_expiry(self):
        clock = Clock()
        cache = MemoryCache(clock=clock)
        cache.set("k", "v", ttl=10)
        assert cache.get("k") == "v"
        clock.now += 10
        assert cache.get("k") is None

    def test_memory_cache_without_ttl_and_invalidate(self):
        cache = MemoryCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2
        cache.invalidate()
        assert cache.get("b") is None

    def test_file_cache_survives_new_instance(self, tmp_path):
        clock = Clock()
        path = str(tmp_path / "cache" / "tokens.json")
        FileCache(path, clock=clock).set("token", "abc", ttl=3000)

        reopened = FileCache(path, clock=clock)
        assert reopened.get("token") == "abc"
        clock.now += 3000
        assert reopened.get("token") is None

    def test_file_cache_reads_the_file_once(self, tmp_path, monkeypatch):
        path = tmp_path / "tokens.json"
        FileCache(str(path)).set("token", "abc", ttl=3000)
        cache = FileCache(str(path))
        reads = []
        original = cache._read
        monkeypatch.setattr(cache, "_read", lambda: reads.append(1) or original())

        assert [cache.get("token") for _ in range(3)] == ["abc"] * 3
        assert reads == [1]

        cache.set("other", 1)
        assert cache.get("other") == 1
        assert reads == [1]
        assert "other" in path.read_text(encoding="utf-8")

    def test_file_cache_unreadable_file_is_empty(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("{not json", encoding="utf-8")
        cache = FileCache(str(path))
        assert cache.get("token") is None
        cache.set("token", "x")
        assert cache.get("token") == "x"


class TestAccessTokenProvider:
    def test_authorize_caches_for_ttl(self):
        clock = Clock()
        flow = StaticFlow()
        provider = AccessTokenProvider(MemoryCache(clock=clock), flow, ttl=3000)

        assert asyncio.run(provider.authorize()) == "tok-1"
        assert asyncio.run(provider.authorize()) == "tok-1"
        assert flow.calls == 1

        clock.now += 3000
        asyncio.run(provider.authorize())
        assert flow.calls == 2

    def test_get_token_never_prompts(self):
        flow = StaticFlow()
        provider = AccessTokenProvider(MemoryCache(), flow)
        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(provider.get_token())
        assert excinfo.value.reason == "authorization_required"
        assert flow.calls == 0

    def test_popup_blocked_is_classified_and_cache_cleared(self):
        provider = AccessTokenProvider(
            MemoryCache(), StaticFlow(error=FirebaseStyleError("auth/popup-blocked", "blocked"))
        )

        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(provider.authorize())
        assert excinfo.value.reason == "popup_blocked"
        assert "popup" in str(excinfo.value).lower()
        assert provider.cached_token() is None

    def test_non_auth_failure_propagates_unchanged(self):
        provider = AccessTokenProvider(MemoryCache(), StaticFlow(error=KeyError("boom")))
        with pytest.raises(KeyError):
            asyncio.run(provider.authorize())

    @pytest.mark.parametrize(
        "code, message, reason",
        [
            ("auth/popup-blocked", "", "popup_blocked"),
            ("", "popup_blocked_by_browser", "popup_blocked"),
            ("auth/unauthorized-domain", "", "unauthorized_domain"),
            ("auth/operation-not-allowed", "", "operation_not_allowed"),
            ("auth/network-request-failed", "", "network"),
            ("auth/user-token-expired", "", "session_expired"),
            ("auth/internal-error", "weird", "generic"),
            ("", "disk full", None),
        ],
    )
    def test_classification(self, code, message, reason):
        assert classify_auth_error(code, message) == reason


class TestRefreshTokenFlow:
    def _flow(self, handler):
        return RefreshTokenFlow("cid", "secret", "refresh", transport=httpx.MockTransport(handler))

    def test_exchanges_refresh_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content.decode()
            return httpx.Response(200, json={"access_token": "fresh", "expires_in": 3599})

        assert asyncio.run(self._flow(handler).fetch_token()) == "fresh"
        assert "grant_type=refresh_token" in seen["body"]

    def test_invalid_grant_is_session_expired(self):
        def handler(request):
            return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Token has been expired"})

        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(self._flow(handler).fetch_token())
        assert excinfo.value.reason == "session_expired"

    def test_missing_access_token(self):
        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(self._flow(lambda request: httpx.Response(200, json={})).fetch_token())
        assert excinfo.value.reason == "token_missing"

    def test_missing_credentials(self):
        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(RefreshTokenFlow("", "", "").fetch_token())
        assert excinfo.value.reason == "authorization_required"

    def test_network_failure_through_provider(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        provider = AccessTokenProvider(MemoryCache(), self._flow(handler))
        with pytest.raises(AuthorizationError) as excinfo:
            asyncio.run(provider.authorize())
        assert excinfo.value.reason == "network"
