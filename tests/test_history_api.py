import message_store
from tests.base import ChatTestCase


class TestHistoryApi(ChatTestCase):

    def setUp(self):
        super().setUp()
        self.token, self.alice = self.signup("alice")
        self.bob_token, self.bob = self.signup("bob")

    def post(self, content, room="general", sender=None):
        return message_store.create((sender or self.alice)["_id"], content, room)

    def test_requires_token(self):
        for url in ("/api/messages", "/api/messages/recent", "/api/messages/search?query=x"):
            self.assertEqual(self.client.get(url).status_code, 401, url)

    def test_paginated_history(self):
        for i in range(5):
            self.post(f"m{i}")
        resp = self.client.get("/api/messages?chatRoom=general&limit=2&page=2", headers=self.headers(self.token))
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual([m["content"] for m in body["messages"]], ["m1", "m2"])
        self.assertEqual((body["page"], body["limit"], body["total"]), (2, 2, 5))

    def test_recent_defaults_to_general(self):
        self.post("in general")
        self.post("in tech", room="tech")
        resp = self.client.get("/api/messages/recent", headers=self.headers(self.token))
        body = resp.get_json()
        self.assertEqual([m["content"] for m in body["messages"]], ["in general"])
        self.assertEqual(body["messages"][0]["sender"]["username"], "alice")

    def test_search(self):
        self.post("deploy today")
        self.post("lunch?")
        resp = self.client.get("/api/messages/search?chatRoom=general&query=DEPLOY",
                               headers=self.headers(self.token))
        self.assertEqual([m["content"] for m in resp.get_json()["messages"]], ["deploy today"])

    def test_invalid_limit(self):
        resp = self.client.get("/api/messages/recent?limit=abc", headers=self.headers(self.token))
        self.assertEqual(resp.status_code, 400)
        resp = self.client.get("/api/messages?page=-1", headers=self.headers(self.token))
        self.assertEqual(resp.status_code, 400)

    def test_mark_read_route(self):
        msg_id = self.post("hi").id
        resp = self.client.post(f"/api/messages/{msg_id}/read", headers=self.headers(self.bob_token))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["message"]["readBy"], [self.bob["_id"]])

        resp = self.client.post("/api/messages/999/read", headers=self.headers(self.bob_token))
        self.assertEqual(resp.status_code, 404)

    def test_delete_route_checks_owner(self):
        msg_id = self.post("mine").id
        resp = self.client.delete(f"/api/messages/{msg_id}", headers=self.headers(self.bob_token))
        self.assertEqual(resp.status_code, 403)

        resp = self.client.delete(f"/api/messages/{msg_id}", headers=self.headers(self.token))
        self.assertEqual(resp.status_code, 200)
        recent = self.client.get("/api/messages/recent", headers=self.headers(self.token)).get_json()
        self.assertEqual(recent["messages"], [])

    def test_rest_mutations_broadcast_to_room(self):
        watcher = self.socket(self.bob_token)
        watcher.emit("joinRoom", {"chatRoom": "general"})
        watcher.get_received()
        msg_id = self.post("hi").id

        self.client.post(f"/api/messages/{msg_id}/read", headers=self.headers(self.bob_token))
        self.client.delete(f"/api/messages/{msg_id}", headers=self.headers(self.token))

        received = watcher.get_received()
        self.assertEqual(self.named(received, "messageRead"),
                         [{"messageId": str(msg_id), "userId": self.bob["_id"]}])
        self.assertEqual(self.named(received, "messageDeleted"), [{"messageId": str(msg_id)}])
