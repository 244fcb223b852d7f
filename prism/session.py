"""
Authorized HTTP calls against the Prism backend.

``SessionClient.authenticated_fetch`` injects the bearer token and heals an
expired access token with exactly one refresh and one retry:

    ORIGINAL --401--> REFRESH --token--> RETRY --non-401--> return response
                         |                 |
                         no token          401
                         |                 |
                         +-----------------+--> force logout, return None

The retry step never refreshes, so no request is refreshed twice. A 401 on
the retry means the new token was rejected too and the session is treated
as revoked. Transport errors on the original request propagate to the caller.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable

import requests

from prism.endpoints import Endpoints
from prism.errors import NotAuthenticatedError
from prism.log import get_logger
from prism.models import Identity, Session
from prism.refresher import TokenRefresher
from prism.token_store import SessionStore

log = get_logger(__name__)

UNAUTHORIZED = 401

OnUnauthorized = Callable[[], None]


class Attempt(Enum):
    ORIGINAL = "original"
    REFRESH = "refresh"
    RETRY = "retry"


class SessionClient:
    def __init__(
        self,
        store: SessionStore,
        endpoints: Endpoints,
        http: requests.Session | None = None,
        refresher: TokenRefresher | None = None,
        timeout: float | None = None,
        on_unauthorized: OnUnauthorized | None = None,
    ) -> None:
        self.store = store
        self.endpoints = endpoints
        self.http = http or requests.Session()
        self.timeout = timeout
        self.refresher = refresher or TokenRefresher(
            store, endpoints.refresh_token, http=self.http, timeout=timeout
        )
        self.on_unauthorized = on_unauthorized

    # -- authorized requests -------------------------------------------------

    def _send(self, method: str, url: str, token: str | None, kwargs: dict[str, Any]) -> requests.Response:
        headers = dict(kwargs.get("headers") or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        options = {k: v for k, v in kwargs.items() if k != "headers"}
        options.setdefault("timeout", self.timeout)
        log.debug("%s %s", method, url)
        return self.http.request(method, url, headers=headers, **options)

    def authenticated_fetch(
        self,
        method: str,
        url: str,
        on_unauthorized: OnUnauthorized | None = None,
        **kwargs: Any,
    ) -> requests.Response | None:
        """Issue an authorized request.

        Returns the response unchanged unless it is a 401. On a 401 the
        session is refreshed once and the request retried once; the retry's
        response is returned unless it is another 401. When the refresh fails
        or the retry is rejected again, the session is cleared,
        ``on_unauthorized`` is called and None is returned: the caller must
        not proceed.
        """
        token = self.store.read().access_token
        step = Attempt.ORIGINAL
        while True:
            if step is Attempt.ORIGINAL:
                response = self._send(method, url, token, kwargs)
                if response.status_code != UNAUTHORIZED:
                    return response
                log.info("401 from %s; refreshing session", url)
                step = Attempt.REFRESH
            elif step is Attempt.REFRESH:
                token = self.refresher.refresh()
                if token is None:
                    self.force_logout(on_unauthorized)
                    return None
                step = Attempt.RETRY
            else:
                response = self._send(method, url, token, kwargs)
                if response.status_code != UNAUTHORIZED:
                    return response
                log.info("401 from %s after refresh", url)
                self.force_logout(on_unauthorized)
                return None

    def force_logout(self, on_unauthorized: OnUnauthorized | None = None) -> None:
        """Drop the local session and hand control to the login surface."""
        log.warning("Session could not be recovered; logging out")
        self.store.clear()
        callback = on_unauthorized or self.on_unauthorized
        if callback is not None:
            callback()

    # -- session lifecycle ---------------------------------------------------

    def current_identity(self) -> Identity | None:
        return self.store.read().identity

    def establish(self, payload: dict[str, Any]) -> Session:
        """Store tokens and identity from a login or OTP verification reply."""
        access = payload.get("access_token")
        refresh = payload.get("refresh_token")
        if not access or not refresh:
            raise NotAuthenticatedError("Auth response did not include both tokens")
        identity = Identity.from_dict(payload.get("user") or {})
        self.store.clear()
        session = self.store.write(
            Session(access_token=access, refresh_token=refresh, identity=identity)
        )
        log.info(
            "Logged in as %s (%s)",
            identity.email if identity else "unknown",
            identity.user_type if identity else "unknown",
        )
        return session

    def login(self, email: str, password: str, user_type: str = "user") -> Session:
        r = self.http.request(
            "POST",
            self.endpoints.login,
            json={"email": email, "password": password, "user_type": user_type},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return self.establish(r.json())

    def signup(
        self, email: str, password: str, user_type: str = "user", name: str | None = None
    ) -> str:
        """Register an account; the backend emails an OTP. Nothing is stored until ``verify_otp``."""
        body = {"email": email, "password": password, "user_type": user_type}
        if name:
            body["name"] = name
        r = self.http.request("POST", self.endpoints.signup, json=body, timeout=self.timeout)
        r.raise_for_status()
        try:
            data = r.json()
        except ValueError:
            data = {}
        message = data.get("message") if isinstance(data, dict) else None
        log.info("Signup requested for %s (%s)", email, user_type)
        return message if isinstance(message, str) and message else f"OTP sent to {email}"

    def verify_otp(self, email: str, otp: str, user_type: str = "user") -> Session:
        r = self.http.request(
            "POST",
            self.endpoints.verify_otp,
            json={"email": email, "otp": otp, "user_type": user_type},
            timeout=self.timeout,
        )
        r.raise_for_status()
        return self.establish(r.json())

    def logout(self) -> None:
        """Best-effort server logout, then always clear the local session."""
        refresh_token = self.store.read().refresh_token
        if refresh_token:
            try:
                r = self.http.request(
                    "POST",
                    self.endpoints.logout,
                    json={"refresh_token": refresh_token},
                    timeout=self.timeout,
                )
                if not 200 <= r.status_code < 300:
                    log.warning("Logout endpoint returned HTTP %d", r.status_code)
            except requests.RequestException as exc:
                log.warning("Logout error: %s", exc)
        self.store.clear()
        log.info("Logged out")

    def require_user_type(
        self, expected: str, on_unauthorized: OnUnauthorized | None = None
    ) -> bool:
        """Gate a surface on the cached identity's user type.

        A missing session or a mismatched user type destroys the session.
        """
        session = self.store.read()
        identity = session.identity
        if session.is_authenticated and identity is not None and identity.user_type == expected:
            return True
        log.info(
            "Surface requires %r, cached identity is %r",
            expected,
            identity.user_type if identity else None,
        )
        self.force_logout(on_unauthorized)
        return False
