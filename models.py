import json
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

from errors import ValidationError

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


def parse_id(value, field="id"):
    """Ids travel as strings on the wire; rows are keyed by integers."""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    avatar = db.Column(db.String(500), nullable=True)
    bio = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "_id": str(self.id),
            "id": str(self.id),
            "username": self.username,
            "email": self.email,
            "avatar": self.avatar,
            "bio": self.bio,
        }


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    content = db.Column(db.Text, nullable=False, default="")
    chat_room = db.Column(db.String(120), nullable=False, default="general")
    attachment_url = db.Column(db.String(500), nullable=True)
    attachment_type = db.Column(db.String(100), nullable=True)
    read_by = db.Column(db.Text, default="[]")
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    sender = db.relationship("User", lazy="joined")

    __table_args__ = (db.Index("idx_room_created", "chat_room", "created_at"),)

    @property
    def readers(self):
        return json.loads(self.read_by or "[]")

    def add_reader(self, user_id):
        """Add a reader id; returns False when it was already recorded."""
        readers = self.readers
        user_id = str(user_id)
        if user_id in readers:
            return False
        readers.append(user_id)
        self.read_by = json.dumps(readers)
        return True

    def to_dict(self):
        attachment = None
        if self.attachment_url:
            attachment = {"url": self.attachment_url, "type": self.attachment_type}
        return {
            "_id": str(self.id),
            "sender": {
                "_id": str(self.sender.id),
                "username": self.sender.username,
                "avatar": self.sender.avatar,
            },
            "content": self.content,
            "chatRoom": self.chat_room,
            "attachment": attachment,
            "readBy": self.readers,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
