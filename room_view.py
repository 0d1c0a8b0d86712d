from datetime import datetime, timezone

from rooms import DEFAULT_ROOM, private_room_id


class RoomView:
    """Message list for one room at a time, fed by history and live events."""

    def __init__(self, session, history_limit=20):
        self.session = session
        self.history_limit = history_limit
        self.chat_room = None
        self.direct_user_id = None
        self.messages = []
        self.typing_users = set()
        self.online_users = set()
        self._unsubscribers = [
            session.on_message(self.handle_new_message),
            session.on_message_deleted(self.handle_message_deleted),
            session.on_message_read(self.handle_message_read),
            session.on_user_typing(self.handle_user_typing),
            session.on_user_status_change(self.handle_user_status_change),
        ]

    def _load_history(self):
        self.messages = list(self.session.fetch_recent(self.chat_room, limit=self.history_limit))
        self.typing_users.clear()

    def select_room(self, chat_room=DEFAULT_ROOM):
        if self.chat_room:
            self.session.leave_room(self.chat_room)
        self.chat_room = chat_room
        self.direct_user_id = None
        self._load_history()
        self.session.join_room(chat_room)

    def open_direct(self, user_id):
        if self.chat_room:
            self.session.leave_room(self.chat_room)
        self.chat_room = private_room_id(self.session.user_id, user_id)
        self.direct_user_id = user_id
        self.session.join_private_room(user_id)
        self._load_history()

    def send(self, text, attachment=None):
        text = (text or "").strip()
        if not text and not attachment:
            return False
        if self.direct_user_id:
            self.session.send_message(text, recipient_id=self.direct_user_id, attachment=attachment)
        else:
            self.session.send_message(text, chat_room=self.chat_room, attachment=attachment)
        return True

    def set_typing(self, is_typing):
        if self.chat_room:
            self.session.send_typing(self.chat_room, is_typing)

    def delete(self, message_id):
        self.session.delete_message(message_id, self.chat_room)

    def mark_visible_as_read(self):
        me = self.session.user_id
        for message in self.messages:
            if message["sender"]["_id"] != me and me not in message.get("readBy", []):
                self.session.mark_message_as_read(message["_id"])

    # ------------------------------------------------------
    # Live events
    # ------------------------------------------------------
    def handle_new_message(self, message):
        if message.get("chatRoom") != self.chat_room:
            return
        self.messages.append(message)
        self.typing_users.discard(message["sender"]["_id"])

    def handle_message_deleted(self, payload):
        message_id = payload.get("messageId")
        self.messages = [m for m in self.messages if m["_id"] != message_id]

    def handle_message_read(self, payload):
        for message in self.messages:
            if message["_id"] == payload.get("messageId"):
                readers = message.setdefault("readBy", [])
                if payload.get("userId") not in readers:
                    readers.append(payload.get("userId"))

    def handle_user_typing(self, payload):
        sender_id = payload.get("senderId")
        if not sender_id or sender_id == self.session.user_id:
            return
        if payload.get("isTyping"):
            self.typing_users.add(sender_id)
        else:
            self.typing_users.discard(sender_id)

    def handle_user_status_change(self, payload):
        if payload.get("isOnline"):
            self.online_users.add(payload.get("userId"))
        else:
            self.online_users.discard(payload.get("userId"))

    # ------------------------------------------------------
    # Rendering
    # ------------------------------------------------------
    @staticmethod
    def is_read_by_others(message):
        sender_id = message["sender"]["_id"]
        return any(reader != sender_id for reader in message.get("readBy", []))

    @staticmethod
    def format_time(value):
        if not value:
            return "--:--"
        stamp = datetime.fromisoformat(value)
        # server timestamps are UTC, naive ones included
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp.astimezone().strftime("%H:%M")

    def render_lines(self):
        if not self.messages:
            return ["No messages yet. Be the first to send a message!"]
        me = self.session.user_id
        lines = []
        for message in self.messages:
            line = f"[{self.format_time(message.get('createdAt'))}] {message['sender']['username']}: {message['content']}"
            if message.get("attachment"):
                line += f" <{message['attachment']['url']}>"
            if message["sender"]["_id"] == me and self.is_read_by_others(message):
                line += " (read)"
            lines.append(line)
        if self.typing_users:
            lines.append(f"{len(self.typing_users)} user(s) typing...")
        return lines

    def close(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self.chat_room:
            self.session.leave_room(self.chat_room)
