import asyncio

import pytest

from app.errors import Conflict
from app.schemas import Role, VerifiedIdentity
from app.services import accounts_service

from .fakes import InMemoryStore
from .utils import auth_header

pytestmark = pytest.mark.anyio("asyncio")


async def test_identify_creates_account_once():
    store = InMemoryStore()
    identity = VerifiedIdentity(subject_id="sub_a", email="A@Example.com", display_name="A")

    first = await accounts_service.identify(store.accounts, identity)
    second = await accounts_service.identify(store.accounts, identity)

    assert first.id == second.id
    assert first.email == "a@example.com"
    assert first.role is Role.member
    assert first.is_premium is False
    assert len(store.state.accounts) == 1


async def test_concurrent_first_sign_in_yields_single_account():
    store = InMemoryStore()
    identity = VerifiedIdentity(subject_id="sub_race", email="race@example.com")

    accounts = await asyncio.gather(
        *(accounts_service.identify(store.accounts, identity) for _ in range(4))
    )

    assert len({account.id for account in accounts}) == 1
    assert len(store.state.accounts) == 1
    # Every racer attempted the insert; the losers recovered by re-reading.
    assert store.state.create_calls == 4


async def test_email_taken_by_other_subject_surfaces_conflict():
    store = InMemoryStore()
    await accounts_service.identify(
        store.accounts, VerifiedIdentity(subject_id="sub_1", email="shared@example.com")
    )

    with pytest.raises(Conflict):
        await accounts_service.identify(
            store.accounts, VerifiedIdentity(subject_id="sub_2", email="shared@example.com")
        )


async def test_sync_refreshes_profile_claims(async_client):
    headers = auth_header("sub_sync", "sync@example.com", display_name="Old Name")
    resp = await async_client.post("/api/users/sync", headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["display_name"] == "Old Name"

    headers = auth_header(
        "sub_sync",
        "sync@example.com",
        display_name="New Name",
        photo_url="https://img.example.com/me.png",
    )
    resp = await async_client.post("/api/users/sync", headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["display_name"] == "New Name"
    assert body["photo_url"] == "https://img.example.com/me.png"
    assert body["role"] == "member"
    assert body["is_premium"] is False


async def test_me_reads_fresh_premium_flag(async_client, store, make_user):
    headers, account_id, _ = await make_user()

    resp = await async_client.get("/api/users/me", headers=headers)
    assert resp.json()["is_premium"] is False

    await store.accounts.mark_premium(account_id)

    resp = await async_client.get("/api/users/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["is_premium"] is True


async def test_update_me(async_client, make_user):
    headers, _, _ = await make_user(display_name="Before")

    resp = await async_client.patch(
        "/api/users/me", json={"display_name": "After"}, headers=headers
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["display_name"] == "After"


async def test_missing_token_is_rejected(async_client):
    resp = await async_client.get("/api/users/me")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "No token provided"


async def test_garbage_token_is_rejected(async_client):
    resp = await async_client.get(
        "/api/users/me", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401


async def test_expired_token_is_rejected(async_client):
    headers = auth_header("sub_old", "old@example.com", expires_minutes=-5)
    resp = await async_client.get("/api/users/me", headers=headers)
    assert resp.status_code == 401


async def test_email_conflict_maps_to_409(async_client):
    first = auth_header("sub_x", "dup@example.com")
    second = auth_header("sub_y", "dup@example.com")

    assert (await async_client.post("/api/users/sync", headers=first)).status_code == 200
    resp = await async_client.post("/api/users/sync", headers=second)
    assert resp.status_code == 409
