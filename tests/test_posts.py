"""
Tests for posts endpoints.
"""
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from postboard import crud
from postboard.auth import get_token_service
from postboard.models.post import Post
from postboard.models.user import User
from postboard.storage import MediaStore, MediaStoreError
from postboard.validation import IMAGE_TYPE_MESSAGE
from conftest import image_file


def create_post(client, headers, name="Holiday", description="Pictures from the beach", images=("a.png", "b.jpg")):
    return client.post(
        "/api/post",
        headers=headers,
        data={"name": name, "description": description},
        files=[("postImgs", image_file(img)) for img in images],
    )


def stored_post(db, post_store, user, names=("one.png", "two.png")):
    """A post whose images really exist on disk."""
    imgs = [post_store.save(b"img", n) for n in names]
    post = Post(userid=user.id, name="Stored", description="Stored post", imgs=imgs)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


class TestCreateAndRead:
    def test_create_post(self, client, auth_headers, test_user, post_store):
        response = create_post(client, auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] is True
        assert data["message"] == "User post uploaded successfully"
        post = data["post"]
        assert post["userid"] == test_user.id
        assert post["name"] == "Holiday"
        assert len(post["imgs"]) == 2
        assert all(post_store.exists(img) for img in post["imgs"])

    def test_round_trip_two_images(self, client, auth_headers):
        created = create_post(client, auth_headers).json()["post"]

        response = client.get(f"/api/post/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        imgs = response.json()["post"]["imgs"]
        assert imgs == created["imgs"]
        assert len(imgs) == 2
        assert None not in imgs
        assert imgs[0].endswith("_a.png") and imgs[1].endswith("_b.jpg")

    def test_create_post_unauthenticated(self, client, post_store):
        response = create_post(client, {})
        assert response.status_code == 401
        assert not post_store.directory.exists()

    def test_create_post_requires_images(self, client, auth_headers):
        response = client.post(
            "/api/post",
            headers=auth_headers,
            data={"name": "Holiday", "description": "No pictures"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "At least one image is required"

    def test_create_post_bad_image_saves_nothing(self, client, db, auth_headers, post_store):
        response = create_post(client, auth_headers, images=("a.png", "b.tiff"))
        assert response.status_code == 400
        assert db.query(Post).count() == 0
        assert not post_store.directory.exists()

    def test_create_post_invalid_name(self, client, auth_headers):
        response = create_post(client, auth_headers, name="x")
        assert response.status_code == 400
        assert response.json()["message"] == "Name length must be between 2 and 100 characters"

    def test_get_post_not_found(self, client, auth_headers):
        response = client.get("/api/post/999", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

    def test_get_post_drops_null_slots(self, client, db, test_user, auth_headers):
        post = Post(userid=test_user.id, name="Gappy", description="Has holes", imgs=[None, "1_a.png", None])
        db.add(post)
        db.commit()
        response = client.get(f"/api/post/{post.id}", headers=auth_headers)
        assert response.json()["post"]["imgs"] == ["1_a.png"]

    def test_create_post_for_unknown_user(self, client, db, post_store):
        ghost = User(id=999, email="ghost@example.com", firstname="Ghost", lastname="User")
        headers = {"Authorization": f"Bearer {get_token_service().issue(ghost)}"}

        response = create_post(client, headers)
        assert response.status_code == 500
        assert response.json() == {"status": False, "message": "Database error"}
        assert db.query(Post).count() == 0
        assert list(post_store.directory.iterdir()) == []

    def test_create_post_blank_file_part(self, client, db, auth_headers):
        response = client.post(
            "/api/post",
            headers=auth_headers,
            data={"name": "Holiday", "description": "Pictures from the beach", "postImgs": ""},
        )
        assert response.status_code == 400
        assert response.json()["message"] == IMAGE_TYPE_MESSAGE
        assert db.query(Post).count() == 0

    def test_create_post_write_failure(self, client, db, auth_headers, monkeypatch):
        def failing_save(self, data, original_name):
            raise MediaStoreError("Failed to write image file")

        monkeypatch.setattr(MediaStore, "save", failing_save)

        response = create_post(client, auth_headers)
        assert response.status_code == 500
        assert response.json() == {"status": False, "message": "Failed to write image file"}
        assert db.query(Post).count() == 0


class TestListing:
    def test_all_posts_pagination(self, client, db, test_user, auth_headers):
        base = datetime(2024, 5, 1)
        for i in range(1, 8):
            db.add(Post(
                userid=test_user.id,
                name=f"Post {i}",
                description="Listing test",
                imgs=[f"{i}_x.png"],
                created_at=base + timedelta(hours=i),
            ))
        db.commit()

        response = client.get("/api/allPost?page=2&limit=3", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_post"] == 7
        assert [p["name"] for p in data["posts"]] == ["Post 4", "Post 3", "Post 2"]
        first = data["posts"][0]
        assert first["user_id"] == test_user.id
        assert first["firstname"] == "Tester"
        assert first["email"] == "test@example.com"
        assert first["profile"] == test_user.profile

    def test_all_posts_default_page_size(self, client, db, test_user, auth_headers):
        for i in range(5):
            db.add(Post(userid=test_user.id, name=f"P{i}", description="Default", imgs=[]))
        db.commit()
        data = client.get("/api/allPost", headers=auth_headers).json()
        assert len(data["posts"]) == 3
        assert data["total_post"] == 5

    def test_pool_timeout_is_database_error(self, client, auth_headers, monkeypatch):
        def exhausted(*args, **kwargs):
            raise PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached")

        monkeypatch.setattr(crud, "list_posts_with_owner", exhausted)

        response = client.get("/api/allPost", headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"status": False, "message": "Database error"}
        assert "QueuePool" not in response.text


class TestUpdatePost:
    def test_update_scalars_only(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"name": "  New name  "},
        )
        assert response.status_code == 200
        data = response.json()["post"]
        assert data["name"] == "New name"
        assert data["description"] == "Stored post"
        assert data["imgs"] == post.imgs

    def test_replace_one_image(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        keep, drop = post.imgs

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"deleteImg": drop},
            files=[("postImgs", image_file("three.webp"))],
        )
        assert response.status_code == 200
        imgs = response.json()["post"]["imgs"]
        assert imgs[0] == keep
        assert imgs[1].endswith("_three.webp")
        assert len(imgs) == 2
        assert not post_store.exists(drop)
        assert post_store.exists(imgs[1])

        db.refresh(post)
        assert post.imgs == imgs

    def test_not_owner_changes_nothing(self, client, db, test_user, other_headers, post_store):
        post = stored_post(db, post_store, test_user)
        before = sorted(p.name for p in post_store.directory.iterdir())

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=other_headers,
            data={"name": "Stolen", "deleteImg": post.imgs[0]},
            files=[("postImgs", image_file("evil.png"))],
        )
        assert response.status_code == 403
        assert response.json()["message"] == "You can only update your own posts"

        db.refresh(post)
        assert post.name == "Stored"
        assert sorted(p.name for p in post_store.directory.iterdir()) == before

    def test_missing_delete_target_fails_whole_update(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        original = list(post.imgs)

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"name": "Changed", "deleteImg": [original[0], "ghost.png"]},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "File not found: ghost.png"

        db.refresh(post)
        assert post.imgs == original
        assert post.name == "Stored"
        assert all(post_store.exists(img) for img in original)

    def test_cannot_delete_image_of_another_post(self, client, db, test_user, other_user, auth_headers, post_store):
        mine = stored_post(db, post_store, test_user)
        theirs = stored_post(db, post_store, other_user, names=("theirs.png",))

        response = client.put(
            f"/api/updatePost/{mine.id}",
            headers=auth_headers,
            data={"deleteImg": theirs.imgs[0]},
        )
        assert response.status_code == 400
        assert post_store.exists(theirs.imgs[0])

    def test_bad_new_image_persists_nothing(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        original = list(post.imgs)

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"deleteImg": original[0]},
            files=[("postImgs", image_file("ok.png")), ("postImgs", image_file("bad.bmp"))],
        )
        assert response.status_code == 400
        db.refresh(post)
        assert post.imgs == original
        assert sorted(p.name for p in post_store.directory.iterdir()) == sorted(original)

    def test_oversized_new_image(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            files=[("postImgs", image_file("huge.png", size=3 * 1024 * 1024))],
        )
        assert response.status_code == 400
        assert response.json()["message"] == "File size should be less than 3MB"

    def test_invalid_description(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"description": "ab"},
        )
        assert response.status_code == 400
        db.refresh(post)
        assert post.description == "Stored post"

    def test_update_missing_post(self, client, auth_headers):
        response = client.put("/api/updatePost/999", headers=auth_headers, data={"name": "Nope"})
        assert response.status_code == 404

    def test_unknown_fields_ignored(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"colour": "blue"},
        )
        assert response.status_code == 200
        assert response.json()["post"]["name"] == "Stored"

    def test_duplicate_delete_names_remove_once(self, client, db, test_user, auth_headers, post_store, caplog):
        post = stored_post(db, post_store, test_user)
        keep, drop = post.imgs

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"deleteImg": [drop, f" {drop} "]},
        )
        assert response.status_code == 200
        assert response.json()["post"]["imgs"] == [keep]
        assert not post_store.exists(drop)
        assert "Could not remove image" not in caplog.text

    def test_database_failure_keeps_media_changes(self, client, db, test_user, auth_headers, post_store, monkeypatch):
        post = stored_post(db, post_store, test_user)
        original = list(post.imgs)
        keep, drop = original

        def failing_update(*args, **kwargs):
            raise OperationalError("UPDATE posts", {}, Exception("database is locked"))

        monkeypatch.setattr(crud, "update_post_fields", failing_update)

        response = client.put(
            f"/api/updatePost/{post.id}",
            headers=auth_headers,
            data={"deleteImg": drop},
            files=[("postImgs", image_file("three.png"))],
        )
        assert response.status_code == 500
        assert response.json() == {"status": False, "message": "Database error"}
        assert "locked" not in response.text

        # row untouched, disk changes stay
        db.refresh(post)
        assert post.imgs == original
        assert post_store.exists(keep)
        assert not post_store.exists(drop)
        assert any(p.name.endswith("_three.png") for p in post_store.directory.iterdir())


class TestDeletePost:
    def test_delete_post_and_images(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        post_id, imgs = post.id, list(post.imgs)

        response = client.delete(f"/api/deletePost/{post_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"status": True, "message": "Post deleted successfully"}
        assert db.query(Post).filter(Post.id == post_id).first() is None
        assert not any(post_store.exists(img) for img in imgs)

    def test_delete_with_missing_files_still_succeeds(self, client, db, test_user, auth_headers, post_store):
        post = stored_post(db, post_store, test_user)
        post_store.remove(post.imgs[0])

        response = client.delete(f"/api/deletePost/{post.id}", headers=auth_headers)
        assert response.status_code == 200

    def test_delete_not_owner(self, client, db, test_user, other_headers, post_store):
        post = stored_post(db, post_store, test_user)
        response = client.delete(f"/api/deletePost/{post.id}", headers=other_headers)
        assert response.status_code == 403
        assert db.query(Post).filter(Post.id == post.id).first() is not None
        assert all(post_store.exists(img) for img in post.imgs)

    def test_delete_missing(self, client, auth_headers):
        response = client.delete("/api/deletePost/999", headers=auth_headers)
        assert response.status_code == 404
