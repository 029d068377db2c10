"""
Session tokens, password hashing and the request authentication decorators.

Tokens are JWTs issued by Flask-JWT-Extended whose subject is the user id.
Logging out records the token's ``jti`` in a RevocationStore until the token
would have expired anyway.
"""

import logging
import threading
import time
from functools import wraps

from flask import jsonify
from flask_bcrypt import Bcrypt
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    get_current_user,
    get_jwt,
    jwt_required,
    verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError

from models import User, db

logger = logging.getLogger(__name__)

bcrypt = Bcrypt()
jwt = JWTManager()


class RevocationStore:
    """
    Thread-safe set of revoked token ids, each kept until its expiry.

    Entries whose expiry has passed are dropped on the next sweep, which runs
    at most once per ``sweep_interval`` seconds as a side effect of add()
    and contains checks.
    """

    def __init__(self, sweep_interval=60.0, clock=time.time):
        self._entries = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def add(self, jti, expires_at):
        with self._lock:
            self._entries[jti] = expires_at
            self._maybe_sweep()

    def __contains__(self, jti):
        with self._lock:
            self._maybe_sweep()
            expires_at = self._entries.get(jti)
            return expires_at is not None and expires_at > self._clock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def purge(self):
        """Drop every expired entry now; returns how many were removed."""
        with self._lock:
            return self._purge()

    def clear(self):
        with self._lock:
            self._entries.clear()

    def _maybe_sweep(self):
        if self._clock() - self._last_sweep >= self._sweep_interval:
            self._purge()

    def _purge(self):
        now = self._clock()
        expired = [jti for jti, expires_at in self._entries.items() if expires_at <= now]
        for jti in expired:
            del self._entries[jti]
        self._last_sweep = now
        return len(expired)


revoked_tokens = RevocationStore()


# -----------------------------------------------------------------------------
# Passwords and tokens
# -----------------------------------------------------------------------------

def hash_password(password):
    return bcrypt.generate_password_hash(password).decode('utf-8')


def check_password(user, password):
    return bcrypt.check_password_hash(user.password_hash, password)


def issue_token(user):
    """Create a signed access token for user, valid for JWT_ACCESS_TOKEN_EXPIRES."""
    return create_access_token(identity=user)


def revoke_token(payload=None):
    """Revoke the token described by payload (defaults to the current request's)."""
    payload = payload or get_jwt()
    revoked_tokens.add(payload['jti'], payload['exp'])
    logger.info(f"Token revoked for user {payload.get('sub')}: jti={payload['jti'][:8]}...")


def current_identity():
    """The authenticated User for this request, or None when anonymous."""
    try:
        return get_current_user()
    except RuntimeError:
        return None


# -----------------------------------------------------------------------------
# Decorators
# -----------------------------------------------------------------------------

def auth_required(fn):
    """Reject the request unless it carries a valid, unrevoked bearer token."""
    return jwt_required()(fn)


def optional_auth(fn):
    """Attach the user when a usable token is present, otherwise continue anonymously."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            verify_jwt_in_request(optional=True)
        except (JWTExtendedException, PyJWTError) as e:
            logger.debug(f"Ignoring unusable token on optional route: {e}")
        return fn(*args, **kwargs)
    return wrapper


# -----------------------------------------------------------------------------
# Flask-JWT-Extended callbacks
# -----------------------------------------------------------------------------

def _auth_error(message, status_code=401):
    return jsonify({"success": False, "error": message}), status_code


@jwt.user_identity_loader
def user_identity_lookup(user):
    if isinstance(user, User):
        return str(user.user_id)
    return str(user)


@jwt.user_lookup_loader
def user_lookup_callback(_jwt_header, jwt_data):
    try:
        user_id = int(jwt_data['sub'])
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


@jwt.user_lookup_error_loader
def user_lookup_error_callback(_jwt_header, jwt_data):
    logger.warning(f"Token subject {jwt_data.get('sub')} does not resolve to a user")
    return _auth_error('User not found', 404)


@jwt.token_in_blocklist_loader
def check_if_token_revoked(_jwt_header, jwt_payload):
    return jwt_payload['jti'] in revoked_tokens


@jwt.revoked_token_loader
def revoked_token_callback(_jwt_header, _jwt_payload):
    logger.info("Attempted to use a revoked token")
    return _auth_error('Token has been invalidated')


@jwt.expired_token_loader
def expired_token_callback(_jwt_header, _jwt_payload):
    return _auth_error('Token expired.')


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    logger.debug(f"Invalid token: {reason}")
    return _auth_error('Invalid token.')


@jwt.unauthorized_loader
def missing_token_callback(reason):
    return _auth_error('Access denied. No token provided.')
