import sys
import uuid
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.auth import IdentityVerifier  # noqa: E402
from app.config import settings  # noqa: E402
from app.main import create_app  # noqa: E402

from .fakes import InMemoryStore  # noqa: E402


@pytest.fixture(scope="module")
def anyio_backend():
    # Limit tests to asyncio backend so local runs do not require the Trio extra.
    return "asyncio"


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def api_app(store):
    return create_app(store=store, identity_verifier=IdentityVerifier.from_settings(settings))


@pytest.fixture
async def async_client(anyio_backend, api_app) -> AsyncClient:
    if anyio_backend != "asyncio":
        pytest.skip("Backend tests require asyncio")

    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture(autouse=True)
def _stripe_settings(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_value", raising=False)
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_test", raising=False)
    monkeypatch.setattr(settings, "identity_project_id", None, raising=False)
    monkeypatch.setattr(settings, "identity_jwks_url", None, raising=False)
    monkeypatch.setattr(settings, "jwt_secret", "test-local-secret", raising=False)


@pytest.fixture
def make_user(async_client, store):
    """Sign a user in through the API and optionally flip role/premium in the directory."""

    async def _make(
        *,
        premium: bool = False,
        admin: bool = False,
        display_name: str = "Learner",
    ):
        from app.schemas import Role

        from .utils import auth_header

        subject_id = f"sub_{uuid.uuid4().hex[:12]}"
        email = f"{subject_id}@example.com"
        headers = auth_header(subject_id, email, display_name=display_name)
        resp = await async_client.post("/api/users/sync", headers=headers)
        assert resp.status_code == 200, resp.text
        account_id = uuid.UUID(resp.json()["id"])
        if premium:
            await store.accounts.mark_premium(account_id)
        if admin:
            await store.accounts.set_role(account_id, Role.administrator)
        return headers, account_id, subject_id

    return _make
