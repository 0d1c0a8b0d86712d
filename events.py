"""Socket.IO event handlers: the realtime hub.

Every event runs against the message store and is fanned out at once; there
is no backlog for clients that are not connected. Room membership is kept by
Socket.IO itself (``join_room``/``leave_room``), the hub only remembers which
user id each connection announced so presence can be broadcast.
"""
import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

import message_store
from auth import authenticate
from errors import ChatError, ValidationError
from models import db
from rooms import private_room_id, resolve_room

logger = logging.getLogger(__name__)

socketio = SocketIO()

# ------------------------------------------------------
# In-memory socket maps
# ------------------------------------------------------
connected_users = {}   # sid -> user id


def _identify(auth):
    token = auth.get("token")
    if token:
        try:
            return str(authenticate(token).id)
        except ChatError as e:
            logger.warning("Rejected socket token from %s: %s", request.sid, e)
    user_id = auth.get("userId")
    return str(user_id) if user_id else None


def _acting_user(data):
    return connected_users.get(request.sid) or data.get("userId")


def _room_from(data):
    room = (data or {}).get("chatRoom")
    if not room:
        raise ValidationError("chatRoom is required")
    return room


def broadcast_read(message, user_id):
    socketio.emit(
        "messageRead",
        {"messageId": str(message.id), "userId": str(user_id)},
        to=message.chat_room,
    )


def broadcast_deleted(message_id, room):
    socketio.emit("messageDeleted", {"messageId": str(message_id)}, to=room)


# ------------------------------------------------------
# Connection lifecycle
# ------------------------------------------------------
@socketio.on("connect")
def on_connect(auth=None):
    user_id = _identify(auth or {})
    logger.info("New user connected: %s (user=%s)", request.sid, user_id)
    if user_id:
        connected_users[request.sid] = user_id
        socketio.emit("userStatusChange", {"userId": user_id, "isOnline": True})


@socketio.on("disconnect")
def on_disconnect(reason=None):
    user_id = connected_users.pop(request.sid, None)
    logger.info("User disconnected: %s (user=%s)", request.sid, user_id)
    # another tab of the same user keeps them online
    if user_id and user_id not in connected_users.values():
        socketio.emit("userStatusChange", {"userId": user_id, "isOnline": False})


# ------------------------------------------------------
# Rooms
# ------------------------------------------------------
@socketio.on("joinRoom")
def on_join_room(data):
    room = _room_from(data)
    join_room(room)
    logger.info("User %s joined room: %s", request.sid, room)


@socketio.on("leaveRoom")
def on_leave_room(data):
    room = _room_from(data)
    leave_room(room)
    logger.info("User %s left room: %s", request.sid, room)


@socketio.on("joinPrivateRoom")
def on_join_private_room(data):
    data = data or {}
    user_id, other_user_id = data.get("userId"), data.get("otherUserId")
    if not user_id or not other_user_id:
        raise ValidationError("userId and otherUserId are required")
    room = private_room_id(user_id, other_user_id)
    join_room(room)
    logger.info("User %s joined private room: %s", request.sid, room)
    return room


# ------------------------------------------------------
# Messages
# ------------------------------------------------------
@socketio.on("sendMessage")
def on_send_message(data):
    data = data or {}
    sender_id = data.get("senderId")
    bound = connected_users.get(request.sid)
    if bound and str(sender_id) != bound:
        logger.warning("Connection %s bound to user %s sends as %s", request.sid, bound, sender_id)

    room = resolve_room(sender_id, data.get("chatRoom"), data.get("recipientId"))
    message = message_store.create(sender_id, data.get("content"), room, data.get("attachment"))
    message = message_store.get_message(message.id)
    emit("newMessage", message.to_dict(), to=room)


@socketio.on("typing")
def on_typing(data):
    room = _room_from(data)
    emit(
        "userTyping",
        {"senderId": _acting_user(data), "isTyping": bool(data.get("isTyping", True))},
        to=room,
        include_self=False,
    )


@socketio.on("markRead")
def on_mark_read(data):
    data = data or {}
    user_id = _acting_user(data)
    message = message_store.mark_read(data.get("messageId"), user_id)
    broadcast_read(message, user_id)


@socketio.on("deleteMessage")
def on_delete_message(data):
    data = data or {}
    message_id = data.get("messageId")
    room = message_store.delete(message_id, _acting_user(data))
    broadcast_deleted(message_id, room)


@socketio.on_error_default
def on_socket_error(e):
    # no error event goes back to the client; the event is dropped
    db.session.rollback()
    event = getattr(request, "event", None) or {}
    if isinstance(e, ChatError):
        logger.warning("Dropped '%s' from %s: %s", event.get("message"), request.sid, e)
    else:
        logger.exception("Error handling '%s' from %s", event.get("message"), request.sid)
