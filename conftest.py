# conftest.py
import os
import random
import string
import tempfile

# settings are read at import time; point them at a throwaway database first
_tmp = tempfile.mkdtemp(prefix="larder-test-")
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ.setdefault("DB_URL", f"sqlite:///{os.path.join(_tmp, 'larder.db')}")
os.environ.setdefault("CACHE_MIN_INTERVAL_SEC", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from larder.main import app


def _suffix(k=6):
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=k))


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def rng_suffix():
    return _suffix()


@pytest.fixture
def auth_headers(client, rng_suffix):
    """A fresh owner account with its own business profile."""
    r = client.post("/auth/signup", json={
        "email": f"owner-{rng_suffix}@example.com", "password": "s3cret!",
        "name": "Owner", "businessName": f"Bistro {rng_suffix}",
    })
    assert r.status_code == 200, f"/auth/signup failed: {r.text}"
    tok = r.json()["accessToken"]
    return {"Authorization": f"Bearer {tok}"}
