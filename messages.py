from flask import Blueprint, g, jsonify, request

import message_store
from auth import login_required
from errors import ValidationError
from events import broadcast_deleted, broadcast_read
from rooms import DEFAULT_ROOM

messages_bp = Blueprint("messages", __name__, url_prefix="/api/messages")


def _int_arg(name, default):
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be a positive integer")


def _serialize(messages):
    return [m.to_dict() for m in messages]


@messages_bp.route("", methods=["GET"])
@login_required
def get_messages():
    room = request.args.get("chatRoom") or DEFAULT_ROOM
    result = message_store.list_page(room, page=_int_arg("page", 1), limit=_int_arg("limit", 50))
    result["messages"] = _serialize(result["messages"])
    return jsonify(result)


@messages_bp.route("/recent")
@login_required
def get_recent_messages():
    room = request.args.get("chatRoom") or DEFAULT_ROOM
    msgs = message_store.list_recent(room, limit=_int_arg("limit", 20))
    return jsonify({"messages": _serialize(msgs)})


@messages_bp.route("/search")
@login_required
def search_messages():
    room = request.args.get("chatRoom") or DEFAULT_ROOM
    msgs = message_store.search(room, request.args.get("query", ""), limit=_int_arg("limit", 20))
    return jsonify({"messages": _serialize(msgs)})


@messages_bp.route("/<message_id>/read", methods=["POST"])
@login_required
def mark_read(message_id):
    msg = message_store.mark_read(message_id, g.user.id)
    broadcast_read(msg, g.user.id)
    return jsonify({"message": msg.to_dict()})


@messages_bp.route("/<message_id>", methods=["DELETE"])
@login_required
def delete_message(message_id):
    room = message_store.delete(message_id, g.user.id)
    broadcast_deleted(message_id, room)
    return jsonify({"success": True, "deletedId": message_id})
