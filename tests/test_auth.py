from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import jwt

from tests.base import ChatTestCase


class TestSignupLogin(ChatTestCase):

    def test_signup_then_login(self):
        token, user = self.signup("alice")
        self.assertTrue(token)
        self.assertEqual(user["username"], "alice")
        self.assertNotIn("password_hash", user)

        resp = self.client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body["user"]["_id"], user["_id"])
        self.assertTrue(body["token"])

    def test_signup_missing_fields(self):
        resp = self.client.post("/api/auth/signup", json={"username": "alice"})
        self.assertEqual(resp.status_code, 400)

    def test_duplicate_username_or_email_conflicts(self):
        self.signup("alice")
        resp = self.client.post("/api/auth/signup", json={
            "username": "alice", "email": "other@example.com", "password": "x"})
        self.assertEqual(resp.status_code, 409)
        resp = self.client.post("/api/auth/signup", json={
            "username": "alice2", "email": "alice@example.com", "password": "x"})
        self.assertEqual(resp.status_code, 409)

    def test_duplicate_that_slips_past_checks_conflicts(self):
        from models import User
        self.signup("alice")
        # both lookups miss, as when another signup commits in between
        with patch.object(User, "query") as query:
            query.filter_by.return_value.first.return_value = None
            resp = self.client.post("/api/auth/signup", json={
                "username": "alice", "email": "alice@example.com", "password": "x"})
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.get_json(), {"error": "Username or email already registered"})
        self.assertEqual(User.query.filter_by(email="alice@example.com").count(), 1)

    def test_wrong_password_looks_like_unknown_email(self):
        self.signup("alice")
        wrong = self.client.post("/api/auth/login", json={"email": "alice@example.com", "password": "nope"})
        unknown = self.client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.get_json(), unknown.get_json())

    def test_password_is_hashed(self):
        from models import User
        self.signup("alice")
        user = User.query.filter_by(username="alice").first()
        self.assertNotEqual(user.password_hash, "secret123")
        self.assertTrue(user.check_password("secret123"))


class TestTokens(ChatTestCase):

    def test_me_with_token(self):
        token, user = self.signup("alice")
        resp = self.client.get("/api/auth/me", headers=self.headers(token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["user"]["username"], "alice")

    def test_me_without_token(self):
        resp = self.client.get("/api/auth/me")
        self.assertEqual(resp.status_code, 401)

    def test_malformed_token(self):
        resp = self.client.get("/api/auth/me", headers=self.headers("not-a-token"))
        self.assertEqual(resp.status_code, 401)

    def test_expired_token(self):
        _, user = self.signup("alice")
        expired = jwt.encode(
            {"userId": user["_id"], "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            self.app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        resp = self.client.get("/api/auth/me", headers=self.headers(expired))
        self.assertEqual(resp.status_code, 401)

    def test_token_signed_with_other_secret(self):
        _, user = self.signup("alice")
        forged = jwt.encode({"userId": user["_id"]}, "other-secret", algorithm="HS256")
        resp = self.client.get("/api/auth/me", headers=self.headers(forged))
        self.assertEqual(resp.status_code, 401)


class TestUsers(ChatTestCase):

    def test_list_users(self):
        token, _ = self.signup("alice")
        self.signup("bob")
        resp = self.client.get("/api/auth/users", headers=self.headers(token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([u["username"] for u in resp.get_json()], ["alice", "bob"])

    def test_update_profile(self):
        token, _ = self.signup("alice")
        resp = self.client.put("/api/auth/profile", headers=self.headers(token),
                               json={"bio": "hi there", "avatar": "https://img/a.png"})
        self.assertEqual(resp.status_code, 200)
        user = resp.get_json()["user"]
        self.assertEqual(user["bio"], "hi there")
        self.assertEqual(user["avatar"], "https://img/a.png")
