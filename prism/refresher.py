"""Exchange the stored refresh token for a new access token."""
from __future__ import annotations

from typing import Any

import requests

from prism.log import get_logger
from prism.models import Session
from prism.token_store import SessionStore

log = get_logger(__name__)


class TokenRefresher:
    def __init__(
        self,
        store: SessionStore,
        refresh_url: str,
        http: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.refresh_url = refresh_url
        self.http = http or requests.Session()
        self.timeout = timeout

    def refresh(self) -> str | None:
        """Return a new access token, or None on any failure.

        Only the access token is persisted; the refresh token is not rotated.
        The store is left untouched when the refresh fails.
        """
        refresh_token = self.store.read().refresh_token
        if not refresh_token:
            log.info("No refresh token stored; cannot refresh session")
            return None

        try:
            r = self.http.request(
                "POST",
                self.refresh_url,
                json={"refresh_token": refresh_token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("Token refresh request failed: %s", exc)
            return None

        if not 200 <= r.status_code < 300:
            log.warning("Token refresh rejected with HTTP %d", r.status_code)
            return None

        try:
            data: Any = r.json()
        except ValueError:
            log.warning("Token refresh returned a non-JSON body")
            return None

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            log.warning("Token refresh response carried no access_token")
            return None

        self.store.write(Session(access_token=token))
        log.info("Access token refreshed")
        return token
