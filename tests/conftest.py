from pathlib import Path
import os
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Ensure the project package is importable in pytest.
sys.path.insert(0, str(PROJECT_ROOT))
os.environ.setdefault("PRISM_LOG_FILE", "false")

from prism.endpoints import Endpoints  # noqa: E402
from prism.models import Identity, Session  # noqa: E402
from prism.session import SessionClient  # noqa: E402
from prism.token_store import MemoryTokenStore  # noqa: E402
from tests.fakes import FakeHttp  # noqa: E402

BASE_URL = "https://api.example.test"


@pytest.fixture
def endpoints():
    return Endpoints(BASE_URL)


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def candidate():
    return Identity(email="cand@example.test", user_type="user", name="Cand")


@pytest.fixture
def owner():
    return Identity(email="hr@acme.test", user_type="organization", role="owner")


@pytest.fixture
def store(candidate):
    return MemoryTokenStore(
        Session(access_token="old-access", refresh_token="refresh-1", identity=candidate)
    )


@pytest.fixture
def client(store, endpoints, http):
    return SessionClient(store, endpoints, http=http)
