"""
Agora Backend: HTTP Route Tests
================================

What:  End-to-end request handling through the FastAPI app: identity header,
       status codes, error bodies, and the deletion responses.
How:   httpx AsyncClient over ASGITransport (see conftest.test_client), with
       the database and upload root replaced by per-test instances.
"""

from uuid import uuid4

import pytest

from app.models import Comment, File, Like, Post, User


def as_user(user) -> dict:
    return {"X-User-ID": str(user.id)}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage"] == "writable"


class TestUsers:

    @pytest.mark.asyncio
    async def test_register(self, test_client, seed):
        response = await test_client.post(
            "/api/users",
            json={"account_name": "alice", "email": "alice@example.com"},
        )

        assert response.status_code == 201
        assert response.json()["account_name"] == "alice"
        assert await seed.count(User) == 1

    @pytest.mark.asyncio
    async def test_register_duplicate(self, test_client):
        body = {"account_name": "alice", "email": "alice@example.com"}
        await test_client.post("/api/users", json=body)

        response = await test_client.post("/api/users", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_replace_avatar(self, test_client, seed, png_bytes):
        user = await seed.user(with_avatar=True)

        response = await test_client.put(
            "/api/users/me/avatar",
            headers=as_user(user),
            files={"file": ("me.png", png_bytes, "image/png")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["previous_avatar"] == user.avatar
        assert seed.avatar_path(body["user"]["avatar"]).exists()
        assert not seed.avatar_path(user.avatar).exists()

    @pytest.mark.asyncio
    async def test_delete_me(self, test_client, seed):
        user = await seed.user(with_avatar=True)
        post = await seed.post(user, filename="abc123.png")
        await seed.comment(post, user)

        response = await test_client.delete("/api/users/me", headers=as_user(user))

        assert response.status_code == 200
        body = response.json()
        assert body["deleted"]["account_name"] == user.account_name
        assert sorted(body["removed_files"]) == sorted([user.avatar, "abc123.png"])
        assert body["cleanup_warnings"] == []
        assert await seed.count(User) == 0
        assert await seed.count(Comment) == 0

    @pytest.mark.asyncio
    async def test_missing_identity(self, test_client):
        response = await test_client.delete("/api/users/me")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_malformed_identity(self, test_client):
        response = await test_client.delete("/api/users/me", headers={"X-User-ID": "not-a-uuid"})
        assert response.status_code == 401


class TestPosts:

    @pytest.mark.asyncio
    async def test_upload_then_create_post(self, test_client, seed, png_bytes):
        user = await seed.user()

        upload = await test_client.post(
            "/api/files/posts",
            headers=as_user(user),
            files={"file": ("photo.png", png_bytes, "image/png")},
        )
        assert upload.status_code == 201
        file_id = upload.json()["id"]

        created = await test_client.post(
            "/api/posts",
            headers=as_user(user),
            json={"content": "look at this", "file_id": file_id},
        )

        assert created.status_code == 201
        assert created.json()["file_id"] == file_id
        assert await seed.count(File, File.post_id.is_not(None)) == 1

    @pytest.mark.asyncio
    async def test_upload_rejects_non_image(self, test_client, seed):
        user = await seed.user()

        response = await test_client.post(
            "/api/files/posts",
            headers=as_user(user),
            files={"file": ("photo.png", b"plain text", "image/png")},
        )

        assert response.status_code == 400
        assert await seed.count(File) == 0

    @pytest.mark.asyncio
    async def test_delete_post_by_owner(self, test_client, seed):
        author = await seed.user()
        other = await seed.user()
        post = await seed.post(author, filename="abc123.png")
        await seed.comment(post, other)
        await seed.like(post, other)

        response = await test_client.delete(f"/api/posts/{post.id}", headers=as_user(author))

        assert response.status_code == 200
        assert response.json()["removed_files"] == ["abc123.png"]
        assert await seed.count(Post) == 0
        assert await seed.count(Like) == 0
        assert not seed.attachment_path("abc123.png").exists()

    @pytest.mark.asyncio
    async def test_delete_post_by_other_user(self, test_client, seed):
        author = await seed.user()
        other = await seed.user()
        post = await seed.post(author, filename="abc123.png")

        response = await test_client.delete(f"/api/posts/{post.id}", headers=as_user(other))

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"
        assert await seed.count(Post) == 1
        assert seed.attachment_path("abc123.png").exists()

    @pytest.mark.asyncio
    async def test_delete_unknown_post(self, test_client, seed):
        user = await seed.user()

        response = await test_client.delete(f"/api/posts/{uuid4()}", headers=as_user(user))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_comment_and_like(self, test_client, seed):
        author = await seed.user()
        fan = await seed.user()
        post = await seed.post(author)

        comment = await test_client.post(
            f"/api/posts/{post.id}/comments", headers=as_user(fan), json={"content": "great"}
        )
        like = await test_client.post(f"/api/posts/{post.id}/likes", headers=as_user(fan))
        duplicate = await test_client.post(f"/api/posts/{post.id}/likes", headers=as_user(fan))

        assert comment.status_code == 201
        assert like.status_code == 201
        assert duplicate.status_code == 400
        assert await seed.count(Like) == 1

        unlike = await test_client.delete(f"/api/posts/{post.id}/likes", headers=as_user(fan))
        assert unlike.status_code == 204
        assert await seed.count(Like) == 0


class TestFiles:

    @pytest.mark.asyncio
    async def test_serve_stored_file(self, test_client, seed, png_bytes):
        owner = await seed.user()
        await seed.post(owner, filename="abc123.png")

        response = await test_client.get("/api/files/post/abc123.png")

        assert response.status_code == 200
        assert response.content == png_bytes

    @pytest.mark.asyncio
    async def test_serve_missing_file(self, test_client):
        response = await test_client.get("/api/files/post/missing.png")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_serve_unknown_category(self, test_client):
        response = await test_client.get("/api/files/secrets/abc123.png")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_serve_hidden_name(self, test_client):
        response = await test_client.get("/api/files/post/.env")
        assert response.status_code == 400


class TestAdmin:

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, test_client, seed):
        user = await seed.user()

        response = await test_client.post("/api/admin/sweep", headers=as_user(user))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_deletes_any_post(self, test_client, seed):
        admin = await seed.user(is_admin=True)
        author = await seed.user()
        post = await seed.post(author, filename="abc123.png")

        response = await test_client.delete(f"/api/admin/posts/{post.id}", headers=as_user(admin))

        assert response.status_code == 200
        assert await seed.count(Post) == 0

    @pytest.mark.asyncio
    async def test_admin_deletes_any_user(self, test_client, seed):
        admin = await seed.user(is_admin=True)
        user = await seed.user()
        await seed.post(user, filename="abc123.png")

        response = await test_client.delete(f"/api/admin/users/{user.id}", headers=as_user(admin))

        assert response.status_code == 200
        assert await seed.count(User) == 1
        assert not seed.attachment_path("abc123.png").exists()

    @pytest.mark.asyncio
    async def test_sweep(self, test_client, seed):
        admin = await seed.user(is_admin=True)
        seed.write_attachment("orphan1.png")

        response = await test_client.post("/api/admin/sweep", headers=as_user(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["removed_count"] == 1
        assert body["removed"] == [{"category": "post", "filename": "orphan1.png"}]
