PUBLIC_ROOMS = ["general", "tech", "random", "support"]
DEFAULT_ROOM = "general"

PAIR_SEPARATOR = "_"


def private_room_id(user_id, other_user_id):
    """Room id for a direct conversation.

    Both participants compute the same value on their own: the two ids are
    compared as strings and joined smallest first.
    """
    return PAIR_SEPARATOR.join(sorted([str(user_id), str(other_user_id)]))


def resolve_room(sender_id, chat_room=None, recipient_id=None):
    if recipient_id:
        return private_room_id(sender_id, recipient_id)
    return chat_room or DEFAULT_ROOM


def is_public_room(name):
    return name in PUBLIC_ROOMS
