"""Terminal front end: one RoomView driven by stdin."""
import argparse
import getpass
import logging
import sys

from client import ChatClientError, ChatSession
from room_view import RoomView
from rooms import DEFAULT_ROOM, PUBLIC_ROOMS, is_public_room

HELP = "/join <room>  /dm <username>  /users  /search <text>  /rooms  /quit"


def redraw(view):
    print("\n".join(view.render_lines()))


def find_user(session, username):
    for user in session.list_users():
        if user["username"] == username:
            return user
    return None


def handle_command(session, view, line):
    command, _, arg = line.partition(" ")
    arg = arg.strip()
    if command == "/quit":
        return False
    if command == "/join" and arg:
        if not is_public_room(arg):
            print(f"Unknown room: {arg}. Rooms: " + " ".join(PUBLIC_ROOMS))
            return True
        view.select_room(arg)
        print(f"-- #{arg} --")
        redraw(view)
    elif command == "/dm" and arg:
        user = find_user(session, arg)
        if user is None:
            print(f"No such user: {arg}")
        else:
            view.open_direct(user["_id"])
            print(f"-- @{arg} --")
            redraw(view)
    elif command == "/users":
        for user in session.list_users():
            status = "online" if user["_id"] in view.online_users else ""
            print(f"{user['username']} {status}".rstrip())
    elif command == "/search" and arg:
        for message in session.search(view.chat_room, arg):
            print(f"{message['sender']['username']}: {message['content']}")
    elif command == "/rooms":
        print(" ".join(f"#{room}" for room in PUBLIC_ROOMS))
    else:
        print(HELP)
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="Realtime chat client")
    parser.add_argument("--server", default="http://localhost:5000", help="Chat server URL")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", default=None, help="Prompted when omitted")
    parser.add_argument("--username", default=None, help="Sign up with this username first")
    parser.add_argument("--room", default=DEFAULT_ROOM)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    password = args.password or getpass.getpass("Password: ")

    session = ChatSession(args.server)
    try:
        if args.username:
            session.signup(args.username, args.email, password)
        else:
            session.login(args.email, password)
    except ChatClientError as e:
        print(f"Login failed: {e.message}", file=sys.stderr)
        return 1

    view = RoomView(session)

    def print_message(message):
        if message.get("chatRoom") == view.chat_room:
            print(f"{message['sender']['username']}: {message['content']}")

    session.on_message(print_message)

    view.select_room(args.room)
    print(f"Logged in as {session.user['username']}. {HELP}")
    redraw(view)

    try:
        for line in sys.stdin:
            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                if not handle_command(session, view, line):
                    break
            else:
                view.send(line)
    except KeyboardInterrupt:
        pass
    finally:
        view.close()
        session.logout()
    return 0


if __name__ == "__main__":
    sys.exit(main())
