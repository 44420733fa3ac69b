from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Depends, Header, Request

from .errors import UnauthorizedError
from .ids import EntityId, parse_id
from .storage import Storage, get_storage

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as re-read from the store."""

    id: EntityId
    username: str
    email: str


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _json_segment(data: dict) -> str:
    return _b64encode(json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8"))


class Authenticator:
    """Issues and verifies HS256 bearer tokens and hashes passwords.

    The signing secret is handed in at construction; nothing here reads
    process-wide state.
    """

    def __init__(self, secret: str, token_ttl: timedelta = timedelta(days=30)) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.token_ttl = token_ttl
        self._hasher = PasswordHasher()

    # === Passwords ===
    def hash_password(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify_password(self, password_hash: str, password: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    # === Tokens ===
    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._secret, signing_input.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)

    def issue_token(self, user_id: int, now: Optional[float] = None) -> str:
        issued = int(now if now is not None else time.time())
        payload = {
            "id": str(user_id),
            "iat": issued,
            "exp": issued + int(self.token_ttl.total_seconds()),
        }
        signing_input = f"{_json_segment(TOKEN_HEADER)}.{_json_segment(payload)}"
        return f"{signing_input}.{self._sign(signing_input)}"

    def read_token(self, token: str, now: Optional[float] = None) -> EntityId:
        """Return the user id carried by ``token`` or raise ``UnauthorizedError``."""
        parts = token.split(".")
        if len(parts) != 3:
            raise UnauthorizedError("Token is malformed.")
        header_b64, payload_b64, signature = parts
        expected = self._sign(f"{header_b64}.{payload_b64}")
        if not hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8")):
            raise UnauthorizedError("Token signature is invalid.")
        try:
            header = json.loads(_b64decode(header_b64))
            payload = json.loads(_b64decode(payload_b64))
        except ValueError:
            raise UnauthorizedError("Token is malformed.")
        if not isinstance(header, dict) or header.get("alg") != "HS256":
            raise UnauthorizedError("Token algorithm is not supported.")
        if not isinstance(payload, dict):
            raise UnauthorizedError("Token is malformed.")
        expires = payload.get("exp")
        current = now if now is not None else time.time()
        if not isinstance(expires, int) or expires <= current:
            raise UnauthorizedError("Token has expired.")
        user_id = parse_id(payload.get("id"))
        if user_id is None:
            raise UnauthorizedError("Token subject is invalid.")
        return user_id


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    authenticator: Authenticator = Depends(get_authenticator),
    storage: Storage = Depends(get_storage),
) -> Identity:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthorizedError("No token provided, authorization denied.")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise UnauthorizedError("No token provided, authorization denied.")
    try:
        user_id = authenticator.read_token(token)
    except UnauthorizedError as exc:
        logger.warning("Rejected bearer token: %s", exc.message)
        raise
    user = storage.get_user(user_id)
    if user is None:
        logger.warning("Token refers to missing user %s", user_id)
        raise UnauthorizedError("Token is invalid, user not found.")
    return Identity(id=EntityId(user.id), username=user.username, email=user.email)
