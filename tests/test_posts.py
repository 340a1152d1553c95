"""
Post endpoint tests: creation defaults, the visibility policy, listing,
partial updates and deletion rights.
"""
import pytest
from httpx import AsyncClient

from tests.helpers import post_payload


async def _create_post(client: AsyncClient, headers: dict, **fields) -> dict:
    resp = await client.post("/posts", headers=headers, json=post_payload(**fields))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_defaults_to_draft(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    resp = await async_client.post("/posts", headers=alice["headers"], json={
        "title": "Draft", "body": "Not yet",
    })
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["isDraft"] is True
    assert data["isPrivate"] is False
    assert data["userId"] == alice["id"]
    assert data["updatedBy"] == alice["id"]


@pytest.mark.asyncio
async def test_create_post_requires_auth(async_client: AsyncClient):
    resp = await async_client.post("/posts", json=post_payload())
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_post_with_unknown_category(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    resp = await async_client.post("/posts", headers=alice["headers"], json=post_payload(categoryId=999))
    assert resp.status_code == 404
    assert resp.json()["response"] == "Category Not Found."


@pytest.mark.asyncio
async def test_create_post_missing_title(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    resp = await async_client.post("/posts", headers=alice["headers"], json={"body": "no title"})
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_public_post_visible_to_anonymous(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"])

    resp = await async_client.get(f"/posts/{post['id']}")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["userName"] == "alice"
    assert data["category"] is None
    assert data["comments"]["items"] == []
    assert data["comments"]["totalCount"] == 0


@pytest.mark.asyncio
async def test_draft_post_hidden_from_others(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    bob = await login_as("bob", ip="10.0.0.2")
    post = await _create_post(async_client, alice["headers"], isDraft=True)

    anonymous = await async_client.get(f"/posts/{post['id']}")
    assert anonymous.status_code == 404
    assert anonymous.json()["response"] == "Post Not Found"

    other = await async_client.get(f"/posts/{post['id']}", headers=bob["headers"])
    assert other.status_code == 403
    assert other.json()["response"] == "Access Denied"

    author = await async_client.get(f"/posts/{post['id']}", headers=alice["headers"])
    assert author.status_code == 200


@pytest.mark.asyncio
async def test_private_post_hidden_from_others(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    bob = await login_as("bob", ip="10.0.0.2")
    post = await _create_post(async_client, alice["headers"], isPrivate=True)

    assert (await async_client.get(f"/posts/{post['id']}")).status_code == 404
    assert (await async_client.get(f"/posts/{post['id']}", headers=bob["headers"])).status_code == 403
    assert (await async_client.get(f"/posts/{post['id']}", headers=alice["headers"])).status_code == 200


@pytest.mark.asyncio
async def test_hidden_post_with_invalid_token_is_anonymous(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"], isPrivate=True)
    resp = await async_client.get(f"/posts/{post['id']}", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_missing_post(async_client: AsyncClient):
    resp = await async_client.get("/posts/12345")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_posts_only_public(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    await _create_post(async_client, alice["headers"], title="Public")
    await _create_post(async_client, alice["headers"], title="Draft", isDraft=True)
    await _create_post(async_client, alice["headers"], title="Private", isPrivate=True)

    resp = await async_client.get("/posts")
    assert resp.status_code == 200
    body = resp.json()
    assert body["totalPostsCount"] == 1
    assert body["CurrentPostsCount"] == 1
    assert [p["title"] for p in body["data"]] == ["Public"]


@pytest.mark.asyncio
async def test_list_posts_skip_take(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    for i in range(5):
        await _create_post(async_client, alice["headers"], title=f"Post {i}")

    resp = await async_client.get("/posts", params={"skip": 2, "take": 2})
    body = resp.json()
    assert body["totalPostsCount"] == 5
    assert body["CurrentPostsCount"] == 2
    assert [p["title"] for p in body["data"]] == ["Post 2", "Post 3"]


@pytest.mark.asyncio
async def test_list_posts_invalid_paging_falls_back_to_defaults(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    for i in range(12):
        await _create_post(async_client, alice["headers"], title=f"Post {i}")

    resp = await async_client.get("/posts", params={"skip": -3, "take": 0})
    body = resp.json()
    assert body["CurrentPostsCount"] == 10
    assert body["data"][0]["title"] == "Post 0"


@pytest.mark.asyncio
async def test_list_posts_by_user(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    await _create_post(async_client, alice["headers"], title="Public")
    await _create_post(async_client, alice["headers"], title="Draft", isDraft=True)

    own = await async_client.get(f"/posts/users/{alice['id']}", headers=alice["headers"])
    assert [p["title"] for p in own.json()["data"]] == ["Public", "Draft"]

    anonymous = await async_client.get(f"/posts/users/{alice['id']}")
    assert [p["title"] for p in anonymous.json()["data"]] == ["Public"]


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_post_applies_only_present_fields(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"], isPrivate=True, imageUrl="http://img/1.png")

    resp = await async_client.patch(f"/posts/{post['id']}", headers=alice["headers"], json={
        "isPrivate": False,
        "imageUrl": None,
    })
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["isPrivate"] is False
    assert data["imageUrl"] is None
    assert data["title"] == post["title"]
    assert data["isDraft"] is False

    # Now public.
    assert (await async_client.get(f"/posts/{post['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_update_post_publish_draft(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"], isDraft=True)
    resp = await async_client.patch(f"/posts/{post['id']}", headers=alice["headers"], json={"isDraft": False})
    assert resp.json()["data"]["isDraft"] is False


@pytest.mark.asyncio
async def test_update_post_rejects_null_title(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"])
    resp = await async_client.patch(f"/posts/{post['id']}", headers=alice["headers"], json={"title": None})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_post_by_non_author(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    bob = await login_as("bob", ip="10.0.0.2")
    post = await _create_post(async_client, alice["headers"])
    resp = await async_client.patch(f"/posts/{post['id']}", headers=bob["headers"], json={"title": "Mine"})
    assert resp.status_code == 403
    assert resp.json()["response"] == "Not Allowed"


@pytest.mark.asyncio
async def test_update_missing_post(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    resp = await async_client.patch("/posts/999", headers=alice["headers"], json={"title": "x"})
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_post_by_author(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    post = await _create_post(async_client, alice["headers"])
    resp = await async_client.delete(f"/posts/{post['id']}", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == post["id"]
    assert (await async_client.get(f"/posts/{post['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_post_by_admin(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    admin = await login_as("root", role="Admin", ip="10.0.0.5")
    post = await _create_post(async_client, alice["headers"])
    resp = await async_client.delete(f"/posts/{post['id']}", headers=admin["headers"])
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_delete_post_by_other_user(async_client: AsyncClient, login_as):
    alice = await login_as("alice")
    bob = await login_as("bob", ip="10.0.0.2")
    post = await _create_post(async_client, alice["headers"])
    resp = await async_client.delete(f"/posts/{post['id']}", headers=bob["headers"])
    assert resp.status_code == 403
    assert (await async_client.get(f"/posts/{post['id']}")).status_code == 200
