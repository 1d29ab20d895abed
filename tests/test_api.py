import json
import unittest

from fastapi.testclient import TestClient

from social_service.main import app
from social_service.api.dependencies import (
    get_user_service,
    get_post_service,
    get_message_service,
)
from social_service.application.services import UserService, PostService, MessageService
from tests.fakes import (
    FrozenClock,
    InMemoryDatabase,
    FakeUserRepository,
    FakePostRepository,
    FakeImageRepository,
    FakeMessageRepository,
    FakeMediaUploader,
)


PASSWORD = "Secur3!pass"


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.db = InMemoryDatabase()
        self.clock = FrozenClock()
        self.uploader = FakeMediaUploader()

        users = FakeUserRepository(self.db)
        posts = FakePostRepository(self.db)
        images = FakeImageRepository(self.db)
        messages = FakeMessageRepository(self.db)

        user_service = UserService(users, posts, messages)
        post_service = PostService(posts, images, self.uploader, clock=self.clock)
        message_service = MessageService(messages, clock=self.clock)

        app.dependency_overrides[get_user_service] = lambda: user_service
        app.dependency_overrides[get_post_service] = lambda: post_service
        app.dependency_overrides[get_message_service] = lambda: message_service
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def register(self, username="alice", email="alice@example.com", password=PASSWORD):
        return self.client.post("/users/registration", json={
            "username": username,
            "email": email,
            "first_name": "Alice",
            "last_name": "Liddell",
            "password": password,
        })

    def login(self, username="alice", password=PASSWORD):
        response = self.client.post("/users/login", json={
            "username": username, "password": password,
        })
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    def create_post(self, headers, **fields):
        data = {"title": "Hello", "body": "World", "is_private": "false"}
        data.update(fields)
        return self.client.post("/posts", data=data, headers=headers)


class TestUserRoutes(ApiTestCase):

    def test_register_hides_password(self):
        response = self.register()

        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertEqual(body["username"], "alice")
        self.assertNotIn("password", body)
        self.assertNotIn("password_hash", body)

    def test_register_conflict(self):
        self.register()
        response = self.register(email="different@example.com")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["code"], "conflict")

    def test_register_weak_password(self):
        response = self.register(password="weakpassword")
        self.assertEqual(response.status_code, 400)

    def test_login_failures(self):
        self.register()

        wrong = self.client.post("/users/login", json={"username": "alice", "password": "Wr0ng!pass"})
        self.assertEqual(wrong.status_code, 401)

        unknown = self.client.post("/users/login", json={"username": "bob", "password": PASSWORD})
        self.assertEqual(unknown.status_code, 404)

        missing = self.client.post("/users/login", json={"password": PASSWORD})
        self.assertEqual(missing.status_code, 400)

    def test_login_by_email(self):
        self.register()
        response = self.client.post("/users/login", json={
            "email": "alice@example.com", "password": PASSWORD,
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["token_type"], "bearer")
        self.assertEqual(response.json()["expires_in"], 1800)

    def test_list_and_get_users(self):
        user_id = self.register().json()["id"]

        listing = self.client.get("/users")
        self.assertEqual([u["id"] for u in listing.json()], [user_id])
        self.assertNotIn("password_hash", listing.json()[0])

        self.assertEqual(self.client.get(f"/users/{user_id}").json()["username"], "alice")

    def test_credentials_require_token(self):
        response = self.client.get("/users/credentials")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers["WWW-Authenticate"], "Bearer")

    def test_credentials(self):
        self.register()
        headers = self.login()
        self.create_post(headers, is_private="true")
        self.client.post("/messages", json={"content": "hi"}, headers=headers)

        response = self.client.get("/users/credentials", headers=headers)

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["username"], "alice")
        self.assertEqual(len(body["posts"]), 1)
        self.assertEqual(len(body["messages"]), 1)

    def test_delete_user(self):
        self.register()
        self.assertEqual(self.client.post("/users/delete/alice").status_code, 204)
        self.assertEqual(self.client.post("/users/delete/alice").status_code, 204)
        self.assertEqual(self.client.get("/users").json(), [])


class TestPostRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.register()
        self.headers = self.login()

    def test_create_requires_token(self):
        response = self.create_post(headers={})
        self.assertEqual(response.status_code, 401)

    def test_create_with_metadata_tags_and_images(self):
        response = self.client.post(
            "/posts",
            data={
                "title": "Hello",
                "body": "World",
                "metadata": json.dumps({"mood": "happy"}),
                "tags": ["a", "b"],
            },
            files=[
                ("images", ("one.png", b"1", "image/png")),
                ("images", ("two.jpg", b"2", "image/jpeg")),
            ],
            headers=self.headers,
        )

        self.assertEqual(response.status_code, 201, response.text)
        body = response.json()
        self.assertEqual(body["metadata"], {"mood": "happy"})
        self.assertEqual(body["tags"], ["a", "b"])
        self.assertEqual(len(body["images"]), 2)
        self.assertEqual(body["owner"]["username"], "alice")
        self.assertEqual([f.filename for f in self.uploader.batches[0]], ["one.png", "two.jpg"])

    def test_rejects_bad_uploads(self):
        too_many = [("images", (f"{i}.png", b"x", "image/png")) for i in range(5)]
        response = self.client.post(
            "/posts", data={"title": "t", "body": "b"}, files=too_many, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)

        wrong_type = [("images", ("notes.txt", b"x", "text/plain"))]
        response = self.client.post(
            "/posts", data={"title": "t", "body": "b"}, files=wrong_type, headers=self.headers
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.posts, {})

    def test_rejects_non_object_metadata(self):
        response = self.create_post(self.headers, metadata="[1, 2]")
        self.assertEqual(response.status_code, 400)

    def test_upload_failure_is_server_error(self):
        self.uploader.fail = True
        response = self.client.post(
            "/posts",
            data={"title": "t", "body": "b"},
            files=[("images", ("one.png", b"1", "image/png"))],
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(len(self.db.posts), 1)

    def test_private_post_visibility(self):
        post_id = self.create_post(self.headers, is_private="true").json()["id"]

        self.assertEqual(self.client.get(f"/posts/{post_id}").status_code, 404)
        self.assertEqual(self.client.get(f"/posts/{post_id}", headers=self.headers).status_code, 200)
        self.assertEqual(self.client.get("/posts").json(), [])
        self.assertEqual(len(self.client.get("/posts/user", headers=self.headers).json()), 1)

    def test_invalid_token_rejected_on_optional_route(self):
        post_id = self.create_post(self.headers).json()["id"]
        response = self.client.get(
            f"/posts/{post_id}", headers={"Authorization": "Bearer not-a-token"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid token")

    def test_update_and_privacy(self):
        post_id = self.create_post(self.headers).json()["id"]

        updated = self.client.put(f"/posts/{post_id}", json={"title": "Changed"})
        self.assertEqual(updated.status_code, 200, updated.text)
        self.assertEqual(updated.json()["title"], "Changed")
        self.assertEqual(updated.json()["body"], "World")

        private = self.client.put(
            f"/posts/{post_id}/private", json={"is_private": True}, headers=self.headers
        )
        self.assertEqual(private.status_code, 200)
        self.assertTrue(private.json()["is_private"])

    def test_update_rejects_null_fields(self):
        post_id = self.create_post(self.headers).json()["id"]
        response = self.client.put(f"/posts/{post_id}", json={"title": None})
        self.assertEqual(response.status_code, 422)

    def test_restore_window_expired(self):
        post_id = self.create_post(self.headers).json()["id"]
        self.client.delete(f"/posts/{post_id}")
        self.clock.advance(hours=24, seconds=1)

        response = self.client.put(f"/posts/{post_id}/restore", headers=self.headers)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["code"], "restore_window_expired")

    def test_post_lifecycle_scenario(self):
        created = self.create_post(self.headers)
        self.assertEqual(created.status_code, 201, created.text)
        post_id = created.json()["id"]

        listing = self.client.get("/posts").json()
        self.assertEqual([p["id"] for p in listing], [post_id])
        self.assertEqual(listing[0]["images"], [])

        self.assertEqual(self.client.delete(f"/posts/{post_id}").json(), {"deleted": True})
        self.assertEqual(self.client.get("/posts").json(), [])
        self.assertEqual(self.client.delete(f"/posts/{post_id}").status_code, 404)

        restored = self.client.put(f"/posts/{post_id}/restore", headers=self.headers)
        self.assertEqual(restored.status_code, 200, restored.text)

        found = self.client.get(f"/posts/{post_id}")
        self.assertEqual(found.status_code, 200)
        self.assertIsNone(found.json()["deleted_at"])


class TestMessageRoutes(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.register()
        self.headers = self.login()

    def test_create_requires_token(self):
        self.assertEqual(self.client.post("/messages", json={"content": "hi"}).status_code, 401)

    def test_expiring_message_scenario(self):
        created = self.client.post(
            "/messages", json={"content": "hi", "ttl_seconds": 1}, headers=self.headers
        )
        self.assertEqual(created.status_code, 201, created.text)
        message_id = created.json()["id"]

        self.clock.advance(seconds=2)

        self.assertEqual(self.client.get("/messages").json(), [])
        found = self.client.get(f"/messages/{message_id}")
        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["content"], "hi")

    def test_ttl_above_limit_is_rejected(self):
        response = self.client.post(
            "/messages", json={"content": "hi", "ttl_seconds": 10 ** 12}, headers=self.headers
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.db.messages, {})

    def test_update_and_delete(self):
        message_id = self.client.post(
            "/messages", json={"content": "hi"}, headers=self.headers
        ).json()["id"]

        updated = self.client.put(f"/messages/{message_id}", json={"content": "edited", "ttl_seconds": 60})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["content"], "edited")
        self.assertIsNotNone(updated.json()["expires_at"])

        self.assertEqual(self.client.delete(f"/messages/{message_id}").json(), {"deleted": True})
        self.assertEqual(self.client.get(f"/messages/{message_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/messages/{message_id}").status_code, 404)


class TestHealth(ApiTestCase):

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")


if __name__ == "__main__":
    unittest.main()
