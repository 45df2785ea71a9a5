from __future__ import annotations

import pytest
import requests

import utils.ofac_client as api


class _FakeResponse:
    def __init__(
        self, *, status_code: int, content: bytes = b"ok", headers: dict | None = None
    ):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}


class _FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers or {}, "timeout": timeout})
        if not self._responses:
            raise RuntimeError("No more fake responses")
        r = self._responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    monkeypatch.setattr(api.time, "sleep", lambda _s: None)
    monkeypatch.delenv("OFAC_USER_AGENT", raising=False)
    monkeypatch.delenv("OFAC_FETCH_TIMEOUT_SECONDS", raising=False)


def test_user_agent_env_override(monkeypatch):
    monkeypatch.setenv("OFAC_USER_AGENT", "EnvUA/2.0 ops@example.com")

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s)

    assert s.calls[0]["headers"]["User-Agent"] == "EnvUA/2.0 ops@example.com"


def test_user_agent_is_always_present(monkeypatch):
    monkeypatch.setitem(api.SETTINGS, "OFAC_USER_AGENT", "UnitTest UA test@example.com")

    s = _FakeSession([_FakeResponse(status_code=200, content=b"a,b\n")])
    api._request(url="https://example.test/SDN.CSV", session=s)

    assert s.calls
    assert s.calls[0]["headers"]["User-Agent"] == "UnitTest UA test@example.com"


def test_blank_user_agent_falls_back_to_default(monkeypatch):
    monkeypatch.setitem(api.SETTINGS, "OFAC_USER_AGENT", "   ")

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s)

    assert s.calls[0]["headers"]["User-Agent"].startswith("sdn-openapi/")


def test_timeout_is_passed_on_every_call(monkeypatch):
    monkeypatch.setitem(api.SETTINGS, "OFAC_FETCH_TIMEOUT_SECONDS", 12.5)

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s)
    assert s.calls[0]["timeout"] == 12.5

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s, timeout_seconds=3)
    assert s.calls[0]["timeout"] == 3.0


def test_single_attempt_by_default():
    s = _FakeSession([_FakeResponse(status_code=503), _FakeResponse(status_code=200)])

    with pytest.raises(api.OfacApiError) as ei:
        api._request(url="https://example.test/", session=s)

    assert ei.value.status_code == 503
    assert len(s.calls) == 1


@pytest.mark.parametrize("status_code", [429, 500, 502, 503, 504])
def test_retry_on_retryable_status_codes(status_code):
    s = _FakeSession(
        [_FakeResponse(status_code=status_code), _FakeResponse(status_code=200)]
    )

    r = api._request(url="https://example.test/", session=s, max_attempts=2)

    assert r.status_code == 200
    assert len(s.calls) == 2


def test_non_retryable_status_raises_immediately():
    s = _FakeSession([_FakeResponse(status_code=403, content=b"Forbidden")])

    with pytest.raises(api.OfacApiError) as ei:
        api._request(url="https://example.test/", session=s, max_attempts=3)

    assert ei.value.status_code == 403
    assert "Forbidden" in str(ei.value)
    assert len(s.calls) == 1


def test_connection_error_is_wrapped():
    s = _FakeSession([requests.ConnectionError("boom")])

    with pytest.raises(api.OfacApiError) as ei:
        api._request(url="https://example.test/", session=s)

    assert ei.value.status_code is None
    assert ei.value.url == "https://example.test/"


def test_connection_error_retried_when_allowed():
    s = _FakeSession([requests.Timeout("slow"), _FakeResponse(status_code=200)])
    r = api._request(url="https://example.test/", session=s, max_attempts=2)
    assert r.status_code == 200


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        api._request(url="https://example.test/", session=_FakeSession([]), max_attempts=0)


def test_export_url_joins_base_and_file():
    assert (
        api.export_url("SDN.CSV", base_url="https://x.test/exports/")
        == "https://x.test/exports/SDN.CSV"
    )
    assert api.export_url(api.ALT_FILE).endswith("/exports/ALT.CSV")


def test_fetch_export_text_decodes_with_replacement():
    s = _FakeSession([_FakeResponse(status_code=200, content=b"caf\xe9,\xc3\xa9\n")])

    text = api.fetch_export_text("ADD.CSV", base_url="https://x.test", session=s)

    assert s.calls[0]["url"] == "https://x.test/ADD.CSV"
    assert "text/csv" in s.calls[0]["headers"]["Accept"]
    assert text == "caf\ufffd,é\n"


def test_redacts_sensitive_headers_for_logs():
    out = api._headers_for_log(
        {"Authorization": "Bearer x", "X-Token": "t", "User-Agent": "ua"}
    )
    assert out == {"Authorization": "<redacted>", "X-Token": "<redacted>", "User-Agent": "ua"}


def test_timeout_env_override_reaches_session(monkeypatch):
    monkeypatch.setitem(api.SETTINGS, "OFAC_FETCH_TIMEOUT_SECONDS", 60.0)
    monkeypatch.setenv("OFAC_FETCH_TIMEOUT_SECONDS", "5")

    s = _FakeSession([_FakeResponse(status_code=200)])
    api.fetch_export_text("SDN.CSV", base_url="https://x.test", session=s)

    assert s.calls[0]["timeout"] == 5.0


def test_explicit_timeout_beats_env(monkeypatch):
    monkeypatch.setenv("OFAC_FETCH_TIMEOUT_SECONDS", "5")

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s, timeout_seconds=9)

    assert s.calls[0]["timeout"] == 9.0


def test_unparseable_timeout_env_falls_back_to_settings(monkeypatch):
    monkeypatch.setitem(api.SETTINGS, "OFAC_FETCH_TIMEOUT_SECONDS", 42.0)
    monkeypatch.setenv("OFAC_FETCH_TIMEOUT_SECONDS", "soon")

    s = _FakeSession([_FakeResponse(status_code=200)])
    api._request(url="https://example.test/", session=s)

    assert s.calls[0]["timeout"] == 42.0
