import logging
import os

import cloudinary
import cloudinary.uploader
from flask import Blueprint, current_app, jsonify, request

from auth import login_required
from errors import InternalError, PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

upload_bp = Blueprint("upload", __name__, url_prefix="/api/upload")

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "mp4", "webm", "mov"}
ALLOWED_MIME_PREFIXES = ("image/", "video/")


def configure_cloudinary(app):
    if app.config.get("CLOUDINARY_CLOUD_NAME"):
        cloudinary.config(
            cloud_name=app.config["CLOUDINARY_CLOUD_NAME"],
            api_key=app.config["CLOUDINARY_API_KEY"],
            api_secret=app.config["CLOUDINARY_API_SECRET"],
            secure=True,
        )


def allowed_file(filename, mimetype):
    if "." not in (filename or ""):
        return False
    if filename.rsplit(".", 1)[1].lower() not in ALLOWED_EXTENSIONS:
        return False
    return (mimetype or "").startswith(ALLOWED_MIME_PREFIXES)


@upload_bp.route("", methods=["POST"])
@login_required
def upload_file():
    # touching request.files enforces MAX_CONTENT_LENGTH on the whole body (413)
    file = request.files.get("file")
    if not file:
        raise ValidationError("No file uploaded")
    if not allowed_file(file.filename, file.mimetype):
        raise ValidationError("Invalid file type. Only images and videos are allowed.")

    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size > current_app.config["MAX_FILE_SIZE"]:
        raise PayloadTooLargeError()

    try:
        result = cloudinary.uploader.upload(
            file.stream,
            folder=current_app.config["UPLOAD_FOLDER"],
            resource_type="auto",
        )
    except Exception as e:
        logger.exception("File upload error for '%s'", file.filename)
        raise InternalError("File upload failed") from e

    logger.info("Uploaded '%s' as %s", file.filename, result.get("public_id"))
    return jsonify({
        "url": result.get("secure_url"),
        "type": file.mimetype,
        "filename": result.get("public_id"),
        "publicId": result.get("public_id"),
    })
