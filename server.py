# MUST monkey patch before importing networking modules
import eventlet
eventlet.monkey_patch()

import logging

from app import create_app
from events import socketio

logger = logging.getLogger(__name__)

app = create_app()


def main():
    port = app.config["PORT"]
    logger.info("Server running on port %s", port)
    socketio.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
