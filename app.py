import logging

from flask import Flask, jsonify
from flask_cors import CORS

from auth import auth_bp
from config import Config
from errors import register_error_handlers
from events import socketio
from messages import messages_bp
from models import db
from upload import configure_cloudinary, upload_bp


def configure_logging(level):
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(console_handler)


# ------------------------------------------------------
# App Setup
# ------------------------------------------------------
def create_app(config_object=Config, overrides=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])

    db.init_app(app)
    CORS(app, origins=[app.config["CLIENT_ORIGIN"]], supports_credentials=True)
    socketio.init_app(
        app,
        cors_allowed_origins=[app.config["CLIENT_ORIGIN"]],
        async_mode=app.config["SOCKETIO_ASYNC_MODE"],
    )
    configure_cloudinary(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(upload_bp)
    register_error_handlers(app)

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    with app.app_context():
        db.create_all()

    return app
