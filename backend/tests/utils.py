from app.auth import create_access_token


def auth_header(
    subject_id: str,
    email: str,
    *,
    display_name: str | None = None,
    photo_url: str | None = None,
    expires_minutes: int | None = None,
) -> dict[str, str]:
    token = create_access_token(
        subject_id,
        email=email,
        display_name=display_name,
        photo_url=photo_url,
        expires_minutes=expires_minutes,
    )
    return {"Authorization": f"Bearer {token}"}


def lesson_payload(**overrides):
    payload = {
        "title": "Forgiving myself",
        "description": "What I learned after a hard year.",
        "extended_description": "The long version of the story.",
        "category": "personal_growth",
        "emotional_tone": "realization",
        "image_url": "https://img.example.com/lesson.png",
        "visibility": "public",
        "access_tier": "free",
    }
    payload.update(overrides)
    return payload


async def create_lesson(client, headers, **overrides):
    resp = await client.post("/api/lessons", json=lesson_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
