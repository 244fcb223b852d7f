import pytest
import requests

from prism.models import Identity, Session
from prism.session import SessionClient
from prism.token_store import MemoryTokenStore
from tests.fakes import FakeHttp, FakeResponse

JOB_URL = "https://api.example.test/api/jobs/j1"


def _refresh_url(endpoints):
    return endpoints.refresh_token


@pytest.mark.unit
def test_non_401_response_is_returned_unchanged_with_one_call(client, http):
    resp = FakeResponse(404, {"detail": "Job not found"})
    http.add("GET", JOB_URL, resp)

    out = client.authenticated_fetch("GET", JOB_URL)

    assert out is resp
    assert len(http.calls) == 1
    assert http.calls[0]["headers"]["Authorization"] == "Bearer old-access"


@pytest.mark.unit
def test_missing_access_token_sends_no_authorization_header(endpoints):
    http = FakeHttp().add("GET", JOB_URL, FakeResponse(200, {}))
    client = SessionClient(MemoryTokenStore(), endpoints, http=http)

    client.authenticated_fetch("GET", JOB_URL, headers={"X-Trace": "1"})

    assert "Authorization" not in http.calls[0]["headers"]
    assert http.calls[0]["headers"]["X-Trace"] == "1"


@pytest.mark.unit
def test_caller_headers_are_not_mutated(client, http):
    http.add("GET", JOB_URL, FakeResponse(200, {}))
    headers = {"Accept": "application/json"}

    client.authenticated_fetch("GET", JOB_URL, headers=headers)

    assert headers == {"Accept": "application/json"}


@pytest.mark.unit
def test_401_refreshes_once_and_returns_retry_response(client, http, store, endpoints):
    retry_resp = FakeResponse(200, {"job": {"job_id": "j1"}})
    http.add("GET", JOB_URL, FakeResponse(401), retry_resp)
    http.add("POST", _refresh_url(endpoints), FakeResponse(200, {"access_token": "new-access"}))

    out = client.authenticated_fetch("GET", JOB_URL)

    assert out is retry_resp
    job_calls = http.calls_to(JOB_URL)
    assert len(job_calls) == 2
    assert len(http.calls_to(_refresh_url(endpoints))) == 1
    assert job_calls[1]["headers"]["Authorization"] == "Bearer new-access"
    assert store.read().access_token == "new-access"
    assert store.read().refresh_token == "refresh-1"


@pytest.mark.unit
def test_second_401_after_refresh_logs_out(client, http, store, endpoints):
    http.add("PUT", JOB_URL, FakeResponse(401), FakeResponse(401, {"detail": "Token revoked"}))
    http.add("POST", _refresh_url(endpoints), FakeResponse(200, {"access_token": "new-access"}))
    called = []

    out = client.authenticated_fetch("PUT", JOB_URL, on_unauthorized=lambda: called.append("login"))

    assert out is None
    assert called == ["login"]
    assert store.read() == Session()
    assert len(http.calls_to(JOB_URL)) == 2
    assert len(http.calls_to(_refresh_url(endpoints))) == 1


@pytest.mark.unit
def test_retry_error_other_than_401_is_returned(client, http, store, endpoints):
    forbidden = FakeResponse(403, {"detail": "Not allowed"})
    http.add("PUT", JOB_URL, FakeResponse(401), forbidden)
    http.add("POST", _refresh_url(endpoints), FakeResponse(200, {"access_token": "new-access"}))

    out = client.authenticated_fetch("PUT", JOB_URL)

    assert out is forbidden
    assert store.read().access_token == "new-access"


@pytest.mark.unit
@pytest.mark.parametrize(
    "refresh_reply",
    [
        FakeResponse(400, {"detail": "invalid refresh token"}),
        FakeResponse(200, {"unexpected": True}),
        FakeResponse(200, None, text="<html>"),
        requests.ConnectionError("refresh endpoint down"),
    ],
)
def test_failed_refresh_clears_session_without_retry(client, http, store, endpoints, refresh_reply):
    http.add("GET", JOB_URL, FakeResponse(401))
    http.add("POST", _refresh_url(endpoints), refresh_reply)
    called = []

    out = client.authenticated_fetch("GET", JOB_URL, on_unauthorized=lambda: called.append("login"))

    assert out is None
    assert called == ["login"]
    assert len(http.calls_to(JOB_URL)) == 1
    assert store.read() == Session()


@pytest.mark.unit
def test_missing_refresh_token_skips_refresh_call(endpoints, candidate):
    store = MemoryTokenStore(Session(access_token="a", identity=candidate))
    http = FakeHttp().add("GET", JOB_URL, FakeResponse(401))
    called = []
    client = SessionClient(store, endpoints, http=http, on_unauthorized=lambda: called.append(1))

    out = client.authenticated_fetch("GET", JOB_URL)

    assert out is None
    assert called == [1]
    assert http.calls_to(endpoints.refresh_token) == []
    assert not store.read().is_authenticated


@pytest.mark.unit
def test_transport_error_on_original_request_propagates(client, http, endpoints):
    http.add("GET", JOB_URL, requests.ConnectionError("dns failure"))

    with pytest.raises(requests.ConnectionError):
        client.authenticated_fetch("GET", JOB_URL)

    assert len(http.calls) == 1
    assert http.calls_to(endpoints.refresh_token) == []


@pytest.mark.unit
def test_expired_token_mid_session_heals_transparently(client, http, store, endpoints):
    """Access token expires between two actions; the second still completes."""
    profile_url = endpoints.user_profile
    http.add("GET", profile_url, FakeResponse(200, {"profile": {}}))
    assert client.authenticated_fetch("GET", profile_url).status_code == 200

    http.routes[("GET", profile_url)] = [FakeResponse(401), FakeResponse(200, {"profile": {}})]
    http.add("POST", endpoints.refresh_token, FakeResponse(200, {"access_token": "fresh"}))

    out = client.authenticated_fetch("GET", profile_url)

    assert out.status_code == 200
    assert len(http.calls_to(endpoints.refresh_token)) == 1
    assert store.read().access_token == "fresh"
    assert store.read().identity is not None


@pytest.mark.unit
def test_timeout_setting_is_forwarded(endpoints, store):
    http = FakeHttp().add("GET", JOB_URL, FakeResponse(200, {}))
    client = SessionClient(store, endpoints, http=http, timeout=7.5)

    client.authenticated_fetch("GET", JOB_URL)

    assert http.calls[0]["timeout"] == 7.5


@pytest.mark.unit
def test_logout_without_refresh_token_clears_and_does_not_raise(endpoints, candidate):
    store = MemoryTokenStore(Session(access_token="a", identity=candidate))
    http = FakeHttp()
    client = SessionClient(store, endpoints, http=http)

    client.logout()
    client.logout()

    assert store.read() == Session()
    assert http.calls == []


@pytest.mark.unit
def test_logout_ignores_endpoint_failure(client, http, store, endpoints):
    http.add("POST", endpoints.logout, requests.ConnectionError("offline"))

    client.logout()

    assert http.calls[0]["json"] == {"refresh_token": "refresh-1"}
    assert store.read() == Session()


@pytest.mark.unit
def test_login_stores_both_tokens_and_identity(endpoints):
    store = MemoryTokenStore()
    http = FakeHttp().add(
        "POST",
        endpoints.login,
        FakeResponse(
            200,
            {
                "access_token": "a1",
                "refresh_token": "r1",
                "user": {"email": "hr@acme.test", "user_type": "organization", "role": "owner"},
            },
        ),
    )
    client = SessionClient(store, endpoints, http=http)

    session = client.login("hr@acme.test", "pw", "organization")

    assert session.access_token == "a1"
    assert session.refresh_token == "r1"
    assert session.identity == Identity(email="hr@acme.test", user_type="organization", role="owner")
    assert http.calls[0]["json"]["user_type"] == "organization"


@pytest.mark.unit
def test_login_failure_raises_and_keeps_store_empty(endpoints):
    store = MemoryTokenStore()
    http = FakeHttp().add("POST", endpoints.login, FakeResponse(401, {"detail": "bad creds"}))
    client = SessionClient(store, endpoints, http=http)

    with pytest.raises(requests.HTTPError):
        client.login("x@example.test", "nope")

    assert store.read() == Session()


@pytest.mark.unit
def test_require_user_type_mismatch_destroys_session(client, store):
    called = []

    assert client.require_user_type("user") is True
    assert client.require_user_type("organization", lambda: called.append(1)) is False

    assert called == [1]
    assert store.read() == Session()


@pytest.mark.unit
def test_signup_posts_account_and_stores_nothing(endpoints):
    store = MemoryTokenStore()
    http = FakeHttp().add("POST", endpoints.signup, FakeResponse(200, {"message": "OTP sent"}))
    client = SessionClient(store, endpoints, http=http)

    message = client.signup("new@example.test", "Secret#1", "organization", name="Acme")

    assert message == "OTP sent"
    assert http.calls[0]["json"] == {
        "email": "new@example.test",
        "password": "Secret#1",
        "user_type": "organization",
        "name": "Acme",
    }
    assert "Authorization" not in (http.calls[0].get("headers") or {})
    assert store.read() == Session()


@pytest.mark.unit
def test_signup_then_verify_otp_establishes_session(endpoints):
    store = MemoryTokenStore()
    http = FakeHttp()
    http.add("POST", endpoints.signup, FakeResponse(200, None))
    http.add(
        "POST",
        endpoints.verify_otp,
        FakeResponse(
            200,
            {"access_token": "a1", "refresh_token": "r1", "user": {"email": "new@example.test", "user_type": "user"}},
        ),
    )
    client = SessionClient(store, endpoints, http=http)

    assert client.signup("new@example.test", "Secret#1") == "OTP sent to new@example.test"
    client.verify_otp("new@example.test", "123456")

    assert store.read().is_authenticated
    assert http.calls[1]["json"] == {"email": "new@example.test", "otp": "123456", "user_type": "user"}


@pytest.mark.unit
def test_signup_rejection_raises(endpoints):
    http = FakeHttp().add("POST", endpoints.signup, FakeResponse(409, {"detail": "Email already registered"}))
    client = SessionClient(MemoryTokenStore(), endpoints, http=http)

    with pytest.raises(requests.HTTPError):
        client.signup("dup@example.test", "Secret#1")
