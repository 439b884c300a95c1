"""
Betteh Music CMS - Session Auth

Admin accounts live in the JSON store with bcrypt password hashes.  A
successful login issues a signed session cookie naming the admin; every
admin-only route re-checks that the named admin still exists.

Usage:
    - Add ``Depends(require_admin)`` to every admin-only route.
    - Call ``read_session(request)`` to get ``Anonymous`` or ``Authenticated``.
    - Call ``authenticate(document, username, password)`` from the login
      handler; it raises ``InvalidCredentials`` on any mismatch.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Union

import bcrypt
from fastapi import Request, Response

from betteh_cms.config import (
    BCRYPT_ROUNDS,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE,
)
from betteh_cms.errors import InvalidCredentials, Unauthorized
from betteh_cms.models import Admin, Document

# bcrypt ignores everything past 72 bytes; longer secrets are refused outright
BCRYPT_MAX_BYTES = 72


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Anonymous:
    """No valid session cookie."""


@dataclass(frozen=True)
class Authenticated:
    """A signed, unexpired session naming an admin."""

    username: str


Session = Union[Anonymous, Authenticated]


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------
def hash_password(password: str) -> str:
    """Return a salted bcrypt hash for *password*."""
    secret = password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("ascii")


def check_password(password: str, password_hash: str) -> bool:
    """Constant-time check of *password* against a stored bcrypt hash."""
    secret = password.encode("utf-8")
    if len(secret) > BCRYPT_MAX_BYTES or not password_hash:
        return False
    try:
        return bcrypt.checkpw(secret, password_hash.encode("ascii"))
    except ValueError:
        # Malformed hash in the store
        return False


# Checked for unknown usernames so the miss path costs the same as a hit
_DUMMY_HASH = hash_password("betteh-dummy-password")


def validate_new_admin(username: str, password: str) -> None:
    """Raise ValueError describing why these credentials cannot be used."""
    if not username.strip() or username != username.strip():
        raise ValueError("Username is required and cannot start or end with spaces")
    if not password:
        raise ValueError("Password is required")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")


def authenticate(document: Document, username: str, password: str) -> Admin:
    """Return the admin matching the credentials or raise InvalidCredentials."""
    admin = document.find_admin(username)
    if admin is None:
        check_password(password, _DUMMY_HASH)
        raise InvalidCredentials()
    if not check_password(password, admin.password_hash):
        raise InvalidCredentials()
    return admin


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------
def _sign(payload: str) -> str:
    """Create an HMAC-SHA256 signature for a payload string."""
    return hmac.new(
        SECRET_KEY.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _create_session_cookie(username: str) -> str:
    """Create a signed session cookie value: ``<base64 json>|<hex hmac>``."""
    data = json.dumps({"user": username, "ts": int(time.time())}, separators=(",", ":"))
    # base64 keeps the value inside the cookie-safe character set
    encoded = base64.urlsafe_b64encode(data.encode("utf-8")).decode("ascii")
    sig = _sign(encoded)
    return f"{encoded}|{sig}"


def _parse_session_cookie(cookie_value: str) -> dict[str, Any] | None:
    """Parse and verify a session cookie.  Returns the session dict or None."""
    if not cookie_value or "|" not in cookie_value:
        return None

    data_part, sig_part = cookie_value.rsplit("|", 1)
    if not hmac.compare_digest(sig_part.encode("utf-8"), _sign(data_part).encode("utf-8")):
        return None

    try:
        session = json.loads(base64.urlsafe_b64decode(data_part.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(session, dict) or not isinstance(session.get("user"), str):
        return None

    # Check expiry
    created = session.get("ts", 0)
    if not isinstance(created, int) or time.time() - created > SESSION_MAX_AGE:
        return None

    return session


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def read_session(request: Request) -> Session:
    """Return the session state carried by the request cookie."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME, "")
    session = _parse_session_cookie(cookie)
    if session:
        return Authenticated(username=session["user"])
    return Anonymous()


def get_current_user(request: Request) -> str | None:
    """Return the username named by the session cookie, or None."""
    session = read_session(request)
    if isinstance(session, Authenticated):
        return session.username
    return None


def set_session_cookie(response: Response, username: str) -> None:
    """Set the signed session cookie on a response."""
    value = _create_session_cookie(username)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
    )


async def require_admin(request: Request) -> str:
    """
    FastAPI dependency guarding admin-only routes.

    The cookie alone is not enough: the named admin must still exist in the
    store.  Returns the username; raises Unauthorized otherwise.
    """
    session = read_session(request)
    if isinstance(session, Anonymous):
        raise Unauthorized()

    document = await request.app.state.store.read()
    if document.find_admin(session.username) is None:
        raise Unauthorized(f"Admin '{session.username}' no longer exists")
    return session.username
