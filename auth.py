import logging
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError

from errors import ConflictError, InvalidCredentialsError, UnauthorizedError, ValidationError
from models import User, db

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


# ------------------------------------------------------
# Tokens
# ------------------------------------------------------
def issue_token(user):
    expires = datetime.now(timezone.utc) + timedelta(days=current_app.config["JWT_EXPIRES_DAYS"])
    payload = {"userId": str(user.id), "exp": expires}
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm="HS256")


def decode_token(token):
    if not token:
        raise UnauthorizedError("No token, authorization denied")
    try:
        payload = jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Token is not valid")
    user_id = payload.get("userId")
    if user_id is None:
        raise UnauthorizedError("Token is not valid")
    return user_id


def authenticate(token):
    user_id = decode_token(token)
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        user = None
    if user is None:
        raise UnauthorizedError("Token is not valid")
    return user


def bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        g.user = authenticate(bearer_token())
        return view(*args, **kwargs)
    return wrapped


# ------------------------------------------------------
# Identity operations
# ------------------------------------------------------
def signup(username, email, password):
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password:
        raise ValidationError("Missing fields")

    if User.query.filter_by(email=email).first():
        raise ConflictError("Email already registered")
    if User.query.filter_by(username=username).first():
        raise ConflictError("Username already taken")

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent signup took the username or email after the checks above
        db.session.rollback()
        raise ConflictError("Username or email already registered")
    logger.info("User '%s' signed up with id=%s", username, user.id)
    return issue_token(user), user


def login(email, password):
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValidationError("Missing fields")

    user = User.query.filter_by(email=email).first()
    # one error for unknown email and wrong password
    if not user or not user.check_password(password):
        raise InvalidCredentialsError()
    logger.info("User '%s' logged in", user.username)
    return issue_token(user), user


def list_users():
    return User.query.order_by(User.username.asc()).all()


def update_profile(user, avatar=None, bio=None):
    if avatar is not None:
        user.avatar = avatar.strip() or None
    if bio is not None:
        user.bio = bio.strip() or None
    db.session.commit()
    return user


# ------------------------------------------------------
# Routes
# ------------------------------------------------------
@auth_bp.route("/signup", methods=["POST"])
def signup_route():
    data = request.get_json(silent=True) or {}
    token, user = signup(data.get("username"), data.get("email"), data.get("password"))
    return jsonify({"token": token, "user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
def login_route():
    data = request.get_json(silent=True) or {}
    token, user = login(data.get("email"), data.get("password"))
    return jsonify({"token": token, "user": user.to_dict()})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify({"user": g.user.to_dict()})


@auth_bp.route("/users")
@login_required
def users():
    return jsonify([u.to_dict() for u in list_users()])


@auth_bp.route("/profile", methods=["PUT"])
@login_required
def profile():
    data = request.get_json(silent=True) or {}
    user = update_profile(g.user, avatar=data.get("avatar"), bio=data.get("bio"))
    return jsonify({"user": user.to_dict()})
