import pytest
import requests

import prism.retry as retry_mod
from prism.client import build_client, check_health
from prism.config import Settings
from prism.token_store import FileTokenStore
from tests.fakes import FakeHttp, FakeResponse

HEALTH_URL = "https://api.example.test/health"


@pytest.mark.unit
def test_build_client_uses_settings(tmp_path):
    settings = Settings(
        api_base_url="https://api.example.test",
        session_file=tmp_path / "session.json",
        http_timeout=3.0,
        strict_status=True,
    )

    client, board = build_client(settings, http=FakeHttp())

    assert isinstance(client.store, FileTokenStore)
    assert client.store.path == tmp_path / "session.json"
    assert client.endpoints.refresh_token == "https://api.example.test/api/auth/refresh-token"
    assert client.refresher.refresh_url == client.endpoints.refresh_token
    assert client.timeout == 3.0
    assert board.strict is True


@pytest.mark.unit
def test_health_retries_transport_errors(monkeypatch):
    sleeps = []
    monkeypatch.setattr(retry_mod.time, "sleep", lambda s: sleeps.append(s))
    http = FakeHttp().add(
        "GET",
        HEALTH_URL,
        requests.ConnectionError("reset"),
        FakeResponse(200, {"status": "healthy"}),
    )

    assert check_health(HEALTH_URL, http=http) == {"status": "healthy"}
    assert len(http.calls) == 2
    assert len(sleeps) == 1


@pytest.mark.unit
def test_health_gives_up_after_three_attempts(monkeypatch):
    monkeypatch.setattr(retry_mod.time, "sleep", lambda s: None)
    http = FakeHttp().add("GET", HEALTH_URL, requests.Timeout("slow"))

    with pytest.raises(requests.Timeout):
        check_health(HEALTH_URL, http=http)
    assert len(http.calls) == 3


@pytest.mark.unit
def test_health_accepts_plain_text():
    http = FakeHttp().add("GET", HEALTH_URL, FakeResponse(200, None, text="ok\n"))
    assert check_health(HEALTH_URL, http=http) == {"status": "ok"}


@pytest.mark.unit
@pytest.mark.parametrize("status", [404, 503])
def test_health_error_status_is_not_retried(monkeypatch, status):
    sleeps = []
    monkeypatch.setattr(retry_mod.time, "sleep", lambda s: sleeps.append(s))
    http = FakeHttp().add("GET", HEALTH_URL, FakeResponse(status, {"detail": "unavailable"}))

    with pytest.raises(requests.HTTPError):
        check_health(HEALTH_URL, http=http)
    assert len(http.calls) == 1
    assert sleeps == []


@pytest.mark.unit
def test_backoff_delays_grow_and_cap():
    assert list(retry_mod.backoff_delays(5, base_delay=1.0, max_delay=3.0, jitter=False)) == [1.0, 2.0, 3.0, 3.0]
    assert list(retry_mod.backoff_delays(1)) == []
