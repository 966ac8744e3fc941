from datetime import datetime, timedelta

from sqlalchemy.future import select

from conftest import auth_headers
from dispatch_api.models import BleeterPost, BleeterProfile


async def create_post(session, user, title="Traffic on the 405", created_at=None, creator_id=None):
    post = BleeterPost(
        user_id=user.id,
        creator_id=creator_id,
        title=title,
        body="Avoid the highway",
        body_data=[{"type": "paragraph", "children": [{"text": "Avoid the highway"}]}],
        created_at=created_at or datetime.utcnow(),
    )
    session.add(post)
    await session.commit()
    return post


async def test_list_posts_newest_first_with_count_and_profile(client, session, user, headers):
    now = datetime.utcnow()
    await create_post(session, user, title="older", created_at=now - timedelta(hours=1))
    await create_post(session, user, title="newer", created_at=now)

    profile = BleeterProfile(user_id=user.id, handle="lspd", name="LSPD")
    session.add(profile)
    await session.commit()

    response = await client.get("/bleeter", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 2
    assert [p["title"] for p in data["posts"]] == ["newer", "older"]
    assert data["posts"][0]["user"] == {"username": user.username}
    assert data["user_bleeter_profile"]["handle"] == "lspd"


async def test_list_posts_without_profile(client, headers):
    response = await client.get("/bleeter", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"posts": [], "total_count": 0, "user_bleeter_profile": None}


async def test_get_post_by_id(client, session, user, headers):
    post = await create_post(session, user)

    response = await client.get(f"/bleeter/{post.id}", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == post.id
    assert data["title"] == "Traffic on the 405"
    assert data["creator"] is None


async def test_get_missing_post_is_not_found(client, headers):
    response = await client.get("/bleeter/does-not-exist", headers=headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "notFound"


async def test_create_post_without_profile(client, headers, user):
    response = await client.post(
        "/bleeter",
        json={"title": "Hello", "body": "First bleet", "body_data": {"type": "doc"}},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Hello"
    assert data["body_data"] == {"type": "doc"}
    assert data["user_id"] == user.id
    assert data["creator_id"] is None


async def test_create_post_attaches_callers_profile(client, session, user, headers):
    profile = BleeterProfile(user_id=user.id, handle="weazel", name="Weazel News")
    session.add(profile)
    await session.commit()

    response = await client.post("/bleeter", json={"title": "Breaking", "body": "News"}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["creator_id"] == profile.id
    assert data["creator"]["handle"] == "weazel"


async def test_create_post_rejects_invalid_body(client, headers):
    response = await client.post("/bleeter", json={"title": "x"}, headers=headers)

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "title" in errors
    assert "body" in errors


async def test_update_own_post(client, session, user, headers):
    post = await create_post(session, user)

    response = await client.put(
        f"/bleeter/{post.id}",
        json={"title": "Updated", "body": "New body"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Updated"

    stored = await session.get(BleeterPost, post.id, populate_existing=True)
    assert stored.body == "New body"


async def test_update_other_users_post_is_not_found(client, session, user, make_user):
    post = await create_post(session, user)
    intruder = await make_user(username="intruder")

    response = await client.put(
        f"/bleeter/{post.id}",
        json={"title": "Hacked", "body": "Hacked"},
        headers=auth_headers(intruder),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "notFound"

    stored = await session.get(BleeterPost, post.id, populate_existing=True)
    assert stored.title == "Traffic on the 405"


async def test_delete_own_post(client, session, user, headers):
    post = await create_post(session, user)
    post_id = post.id

    response = await client.delete(f"/bleeter/{post_id}", headers=headers)

    assert response.status_code == 200
    assert response.json() is True
    result = await session.execute(select(BleeterPost).filter(BleeterPost.id == post_id))
    assert result.scalars().first() is None


async def test_delete_other_users_post_is_not_found(client, session, user, make_user):
    post = await create_post(session, user)
    intruder = await make_user(username="intruder")

    response = await client.delete(f"/bleeter/{post.id}", headers=auth_headers(intruder))

    assert response.status_code == 404
    assert response.json()["detail"] == "notFound"
    assert await session.get(BleeterPost, post.id, populate_existing=True) is not None


async def test_routes_require_authentication(client):
    response = await client.get("/bleeter")

    assert response.status_code == 401


async def test_disabled_feature_is_rejected(client, session, cad, headers):
    cad.disabled_features = ["BLEETER"]
    await session.commit()

    response = await client.get("/bleeter", headers=headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "featureDisabled"
