import uuid

import pytest

from .utils import create_lesson

pytestmark = pytest.mark.anyio("asyncio")


async def test_favorite_toggle_is_unique_per_account(async_client, make_user, store):
    owner_headers, _, _ = await make_user()
    fan_headers, fan_id, _ = await make_user()
    lesson = await create_lesson(async_client, owner_headers)
    lesson_id = uuid.UUID(lesson["id"])

    first = await async_client.post(f"/api/lessons/{lesson['id']}/favorite", headers=fan_headers)
    assert first.json() == {"favorited": True}
    assert list(store.state.favorites) == [(fan_id, lesson_id)]

    favorites = await async_client.get("/api/favorites", headers=fan_headers)
    assert [item["id"] for item in favorites.json()] == [lesson["id"]]

    second = await async_client.post(f"/api/lessons/{lesson['id']}/favorite", headers=fan_headers)
    assert second.json() == {"favorited": False}
    assert store.state.favorites == {}

    favorites = await async_client.get("/api/favorites", headers=fan_headers)
    assert favorites.json() == []


async def test_favorites_drop_lessons_that_turned_private(async_client, make_user):
    owner_headers, _, _ = await make_user()
    fan_headers, _, _ = await make_user()
    lesson = await create_lesson(async_client, owner_headers)
    await async_client.post(f"/api/lessons/{lesson['id']}/favorite", headers=fan_headers)

    resp = await async_client.patch(
        f"/api/lessons/{lesson['id']}", json={"visibility": "private"}, headers=owner_headers
    )
    assert resp.status_code == 200

    favorites = await async_client.get("/api/favorites", headers=fan_headers)
    assert favorites.json() == []


async def test_favorited_premium_lesson_is_masked_for_free_user(async_client, make_user):
    author_headers, _, _ = await make_user(premium=True)
    fan_headers, _, _ = await make_user()
    lesson = await create_lesson(async_client, author_headers, access_tier="premium")
    await async_client.post(f"/api/lessons/{lesson['id']}/favorite", headers=fan_headers)

    favorites = await async_client.get("/api/favorites", headers=fan_headers)

    [item] = favorites.json()
    assert item["masked"] is True
    assert item["extended_description"] is None


async def test_comments_flow(async_client, make_user):
    owner_headers, _, _ = await make_user()
    author_headers, author_id, _ = await make_user(display_name="Commenter")
    lesson = await create_lesson(async_client, owner_headers)

    created = await async_client.post(
        f"/api/lessons/{lesson['id']}/comments",
        json={"body": "  This helped me.  "},
        headers=author_headers,
    )
    assert created.status_code == 201, created.text
    comment = created.json()
    assert comment["body"] == "This helped me."
    assert comment["author_id"] == str(author_id)
    assert comment["author_name"] == "Commenter"

    listed = await async_client.get(f"/api/lessons/{lesson['id']}/comments")
    assert [item["id"] for item in listed.json()["items"]] == [comment["id"]]

    empty = await async_client.post(
        f"/api/lessons/{lesson['id']}/comments", json={"body": "   "}, headers=author_headers
    )
    assert empty.status_code == 422


async def test_only_author_or_admin_deletes_comment(async_client, make_user, store):
    owner_headers, _, _ = await make_user()
    author_headers, _, _ = await make_user()
    admin_headers, _, _ = await make_user(admin=True)
    lesson = await create_lesson(async_client, owner_headers)

    comment_ids = []
    for _ in range(2):
        resp = await async_client.post(
            f"/api/lessons/{lesson['id']}/comments", json={"body": "Nice"}, headers=author_headers
        )
        comment_ids.append(resp.json()["id"])

    denied = await async_client.delete(f"/api/comments/{comment_ids[0]}", headers=owner_headers)
    assert denied.status_code == 403

    own = await async_client.delete(f"/api/comments/{comment_ids[0]}", headers=author_headers)
    assert own.status_code == 204
    moderated = await async_client.delete(f"/api/comments/{comment_ids[1]}", headers=admin_headers)
    assert moderated.status_code == 204
    assert store.state.comments == {}

    missing = await async_client.delete(f"/api/comments/{comment_ids[1]}", headers=admin_headers)
    assert missing.status_code == 404


async def test_comments_on_private_lesson_are_hidden(async_client, make_user):
    owner_headers, _, _ = await make_user()
    other_headers, _, _ = await make_user()
    lesson = await create_lesson(async_client, owner_headers, visibility="private")

    listed = await async_client.get(f"/api/lessons/{lesson['id']}/comments", headers=other_headers)
    assert listed.status_code == 404
    posted = await async_client.post(
        f"/api/lessons/{lesson['id']}/comments", json={"body": "Hi"}, headers=other_headers
    )
    assert posted.status_code == 404


async def test_report_lesson(async_client, make_user, store):
    owner_headers, _, _ = await make_user()
    reporter_headers, reporter_id, _ = await make_user()
    lesson = await create_lesson(async_client, owner_headers)

    resp = await async_client.post(
        f"/api/lessons/{lesson['id']}/reports",
        json={"reason": "misleading", "details": "Not accurate"},
        headers=reporter_headers,
    )

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["reason"] == "misleading"
    assert body["reporter_id"] == str(reporter_id)
    assert len(store.state.reports) == 1

    bad = await async_client.post(
        f"/api/lessons/{lesson['id']}/reports", json={"reason": "boring"}, headers=reporter_headers
    )
    assert bad.status_code == 422

    anonymous = await async_client.post(
        f"/api/lessons/{lesson['id']}/reports", json={"reason": "spam"}
    )
    assert anonymous.status_code == 401
