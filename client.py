"""Python client for the chat service.

``ChatSession`` owns the bearer token, the logged-in user and one Socket.IO
connection. It is created explicitly and handed to whatever needs it; logging
in opens the connection and logging out closes it and drops every
subscription. Events missed while disconnected are not replayed, callers
re-fetch history after reconnecting.
"""
import logging

import requests
import socketio

from rooms import private_room_id, resolve_room

logger = logging.getLogger(__name__)

SERVER_EVENTS = ("newMessage", "userStatusChange", "userTyping", "messageDeleted", "messageRead")


class ChatClientError(Exception):
    def __init__(self, status, message):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class ChatSession:
    def __init__(self, base_url, http=None, sio=None):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.sio = sio or socketio.Client(reconnection=True)
        self.token = None
        self.user = None
        self.connected = False
        self._listeners = {}
        for event in SERVER_EVENTS:
            self.sio.on(event, self._dispatcher(event))
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)

    # ------------------------------------------------------
    # HTTP
    # ------------------------------------------------------
    def _request(self, method, path, **kwargs):
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        resp = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not resp.ok:
            message = body.get("error") if isinstance(body, dict) else None
            raise ChatClientError(resp.status_code, message or resp.reason)
        return body

    def _start(self, body):
        self.token = body["token"]
        self.user = body["user"]
        self.connect()
        return self.user

    def signup(self, username, email, password):
        body = self._request("POST", "/api/auth/signup",
                             json={"username": username, "email": email, "password": password})
        return self._start(body)

    def login(self, email, password):
        body = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return self._start(body)

    def logout(self):
        self.disconnect()
        self.token = None
        self.user = None

    def me(self):
        self.user = self._request("GET", "/api/auth/me")["user"]
        return self.user

    def list_users(self):
        return self._request("GET", "/api/auth/users")

    def update_profile(self, avatar=None, bio=None):
        self.user = self._request("PUT", "/api/auth/profile", json={"avatar": avatar, "bio": bio})["user"]
        return self.user

    def fetch_recent(self, chat_room, limit=20):
        params = {"chatRoom": chat_room, "limit": limit}
        return self._request("GET", "/api/messages/recent", params=params)["messages"]

    def fetch_page(self, chat_room, page=1, limit=50):
        params = {"chatRoom": chat_room, "page": page, "limit": limit}
        return self._request("GET", "/api/messages", params=params)

    def search(self, chat_room, query, limit=20):
        params = {"chatRoom": chat_room, "query": query, "limit": limit}
        return self._request("GET", "/api/messages/search", params=params)["messages"]

    def upload(self, path, mimetype):
        with open(path, "rb") as fh:
            files = {"file": (path.rsplit("/", 1)[-1], fh, mimetype)}
            return self._request("POST", "/api/upload", files=files)

    # ------------------------------------------------------
    # Realtime connection
    # ------------------------------------------------------
    def connect(self):
        if self.sio.connected:
            return
        self.sio.connect(
            self.base_url,
            auth={"token": self.token, "userId": self.user_id},
            transports=["websocket", "polling"],
        )

    def disconnect(self):
        self._listeners.clear()
        if self.sio.connected:
            self.sio.disconnect()
        self.connected = False

    @property
    def user_id(self):
        return self.user["_id"] if self.user else None

    def _on_connect(self):
        logger.info("Socket connected")
        self.connected = True
        self._notify("connection", True)

    def _on_disconnect(self, *args):
        logger.info("Socket disconnected")
        self.connected = False
        self._notify("connection", False)

    def _emit(self, event, data):
        if not self.sio.connected:
            logger.warning("Dropping '%s': not connected", event)
            return
        self.sio.emit(event, data)

    def join_room(self, chat_room):
        self._emit("joinRoom", {"chatRoom": chat_room})

    def leave_room(self, chat_room):
        self._emit("leaveRoom", {"chatRoom": chat_room})

    def join_private_room(self, other_user_id):
        room = private_room_id(self.user_id, other_user_id)
        self._emit("joinPrivateRoom", {"userId": self.user_id, "otherUserId": other_user_id})
        return room

    def send_message(self, content, chat_room=None, recipient_id=None, attachment=None):
        data = {"senderId": self.user_id, "content": content}
        if recipient_id:
            data["recipientId"] = recipient_id
        else:
            data["chatRoom"] = chat_room
        if attachment:
            data["attachment"] = attachment
        self._emit("sendMessage", data)
        return resolve_room(self.user_id, chat_room, recipient_id)

    def send_typing(self, chat_room, is_typing):
        self._emit("typing", {"chatRoom": chat_room, "isTyping": is_typing, "userId": self.user_id})

    def delete_message(self, message_id, chat_room):
        self._emit("deleteMessage", {"messageId": message_id, "chatRoom": chat_room, "userId": self.user_id})

    def mark_message_as_read(self, message_id):
        self._emit("markRead", {"messageId": message_id, "userId": self.user_id})

    # ------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------
    def _dispatcher(self, event):
        def dispatch(payload):
            self._notify(event, payload)
        return dispatch

    def _notify(self, event, payload):
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception("Listener for '%s' failed", event)

    def _subscribe(self, event, callback):
        self._listeners.setdefault(event, []).append(callback)

        def unsubscribe():
            callbacks = self._listeners.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
        return unsubscribe

    def on_message(self, callback):
        return self._subscribe("newMessage", callback)

    def on_user_status_change(self, callback):
        return self._subscribe("userStatusChange", callback)

    def on_user_typing(self, callback):
        return self._subscribe("userTyping", callback)

    def on_message_deleted(self, callback):
        return self._subscribe("messageDeleted", callback)

    def on_message_read(self, callback):
        return self._subscribe("messageRead", callback)

    def on_connection_change(self, callback):
        return self._subscribe("connection", callback)
