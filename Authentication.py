import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from errors import NotAuthenticated, PersistenceFailure
from models import db, RevokedToken, utcnow

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    jti: str
    expires_at: datetime


def _decode(token):
    options = {"require": ["sub", "exp"]}
    audience = current_app.config.get("JWT_AUDIENCE")
    if not audience:
        options["verify_aud"] = False
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET_KEY"],
        algorithms=["HS256"],
        audience=audience or None,
        options=options,
    )


def get_current_user():
    """Session accessor: the user behind the request's bearer token, or None."""
    token = request.headers.get("Authorization")
    if not token:
        logger.error("Token missing in request")
        return None
    if token.startswith("Bearer "):
        token = token[7:]
    try:
        payload = _decode(token)
    except jwt.ExpiredSignatureError:
        logger.error("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.error(f"Invalid token: {str(e)}")
        return None
    jti = payload.get("jti")
    if jti and db.session.get(RevokedToken, jti) is not None:
        logger.error(f"Revoked token presented for user {payload['sub']}")
        return None
    return CurrentUser(
        id=str(payload["sub"]),
        email=payload.get("email", ""),
        jti=jti,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None),
    )


# JWT middleware
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        user = get_current_user()
        if user is None:
            raise NotAuthenticated()
        return f(user, *args, **kwargs)
    return decorated


# Development tokens; production tokens come from the identity provider
def generate_token(user_id, email="", expires_in=None):
    now = datetime.now(timezone.utc)
    expires_in = expires_in or timedelta(hours=current_app.config.get("JWT_EXPIRES_HOURS", 1))
    payload = {
        "sub": str(user_id),
        "email": email,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + expires_in,
    }
    audience = current_app.config.get("JWT_AUDIENCE")
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm="HS256")


@auth_bp.route("/api/session", methods=["GET"])
@token_required
def current_session(user):
    return jsonify({"user": {"id": user.id, "email": user.email}}), 200


@auth_bp.route("/api/signout", methods=["POST"])
@token_required
def signout(user):
    if not user.jti:
        # Nothing to revoke; the client just drops the token
        return jsonify({"message": "Signed out"}), 200
    try:
        # Expired tokens fail verification anyway
        RevokedToken.query.filter(RevokedToken.expires_at < utcnow()).delete(synchronize_session=False)
        db.session.merge(RevokedToken(jti=user.jti, user_id=user.id, expires_at=user.expires_at, revoked_at=utcnow()))
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error revoking token for user {user.id}: {str(e)}")
        db.session.rollback()
        raise PersistenceFailure("Failed to sign out")
    logger.info(f"User {user.id} signed out")
    return jsonify({"message": "Signed out"}), 200
