import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///chat.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get("SECRET_KEY", "some_secret_key_for_sessions")

    PORT = int(os.environ.get("PORT", 5000))
    CLIENT_ORIGIN = os.environ.get("CLIENT_ORIGIN", "http://localhost:3000")
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    JWT_SECRET = os.environ.get("JWT_SECRET", "change-me")
    JWT_EXPIRES_DAYS = int(os.environ.get("JWT_EXPIRES_DAYS", 7))

    CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET")
    UPLOAD_FOLDER = "chat-app"
    MAX_FILE_SIZE = 5 * 1024 * 1024

    # whole request body, leaving room for multipart boundaries and headers
    MAX_CONTENT_LENGTH = MAX_FILE_SIZE + 64 * 1024


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SOCKETIO_ASYNC_MODE = "threading"
    JWT_SECRET = "test-secret"
    LOG_LEVEL = "WARNING"
