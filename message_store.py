"""Persistence operations for chat messages.

Both the REST history routes and the Socket.IO hub go through these
functions, so validation and ownership checks live in one place. Lists are
queried newest first (so ``limit`` keeps the latest rows) and reversed before
they are returned, which makes every list chronological ascending on the wire.
"""
import logging

from sqlalchemy import func

from errors import ForbiddenError, NotFoundError, ValidationError
from models import Message, User, db, parse_id

logger = logging.getLogger(__name__)


def _newest_first(room):
    return Message.query.filter(Message.chat_room == room).order_by(
        Message.created_at.desc(), Message.id.desc()
    )


def _check_limit(limit):
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return limit


def get_message(message_id):
    message = db.session.get(Message, parse_id(message_id, "messageId"))
    if message is None:
        raise NotFoundError("Message not found")
    return message


def create(sender_id, content, room, attachment=None):
    content = (content or "").strip()
    attachment = attachment or {}
    if not content and not attachment.get("url"):
        raise ValidationError("Message content is required")
    if not room:
        raise ValidationError("chatRoom is required")

    sender = db.session.get(User, parse_id(sender_id, "senderId"))
    if sender is None:
        raise ValidationError("Unknown sender")

    message = Message(
        sender_id=sender.id,
        content=content,
        chat_room=room,
        attachment_url=attachment.get("url"),
        attachment_type=attachment.get("type"),
        read_by="[]",
    )
    db.session.add(message)
    db.session.commit()
    logger.debug("Stored message %s in %s", message.id, room)
    return message


def list_page(room, page=1, limit=50):
    if page < 1:
        raise ValidationError("page must be a positive integer")
    limit = _check_limit(limit)
    messages = _newest_first(room).offset((page - 1) * limit).limit(limit).all()
    total = db.session.query(func.count(Message.id)).filter(Message.chat_room == room).scalar()
    return {
        "messages": list(reversed(messages)),
        "page": page,
        "limit": limit,
        "total": total,
    }


def list_recent(room, limit=20):
    messages = _newest_first(room).limit(_check_limit(limit)).all()
    return list(reversed(messages))


def search(room, query, limit=20):
    query = (query or "").strip()
    if not query:
        return []
    return (
        _newest_first(room)
        .filter(func.lower(Message.content).contains(query.lower(), autoescape=True))
        .limit(_check_limit(limit))
        .all()
    )


def mark_read(message_id, user_id):
    message = get_message(message_id)
    if message.add_reader(parse_id(user_id, "userId")):
        db.session.commit()
    return message


def delete(message_id, requester_id):
    message = get_message(message_id)
    if message.sender_id != parse_id(requester_id, "userId"):
        raise ForbiddenError("Only the sender can delete this message")
    room = message.chat_room
    db.session.delete(message)
    db.session.commit()
    logger.info("Message %s deleted from %s by user %s", message_id, room, requester_id)
    return room
