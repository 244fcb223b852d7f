"""Wire settings, token store, session client and job board together."""
from __future__ import annotations

from typing import Any

import requests

from prism.config import Settings, load_settings
from prism.endpoints import Endpoints
from prism.jobs import JobBoard
from prism.log import get_logger
from prism.retry import retry_transport
from prism.session import OnUnauthorized, SessionClient
from prism.token_store import FileTokenStore, SessionStore

log = get_logger(__name__)


def build_client(
    settings: Settings | None = None,
    store: SessionStore | None = None,
    http: requests.Session | None = None,
    on_unauthorized: OnUnauthorized | None = None,
) -> tuple[SessionClient, JobBoard]:
    settings = settings or load_settings()
    store = store or FileTokenStore(settings.session_file)
    client = SessionClient(
        store,
        Endpoints(settings.api_base_url),
        http=http,
        timeout=settings.http_timeout,
        on_unauthorized=on_unauthorized,
    )
    return client, JobBoard(client, strict=settings.strict_status)


@retry_transport(attempts=3, base_delay=1.0)
def check_health(url: str, http: requests.Session | None = None, timeout: float = 15) -> dict[str, Any]:
    """Unauthenticated health probe.

    Connection failures and timeouts are retried with backoff; an error status
    raises ``requests.HTTPError`` at once.
    """
    r = (http or requests).get(url, timeout=timeout)
    r.raise_for_status()
    try:
        data = r.json()
    except ValueError:
        data = {"status": r.text.strip()}
    log.debug("Health %s -> %s", url, data)
    return data if isinstance(data, dict) else {"status": data}
