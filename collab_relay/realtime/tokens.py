"""Verification of collaboration session tokens.

Tokens are minted by the application server, never here. The format is::

    <base64(JSON payload)>.<hex HMAC-SHA256(secret, encoded payload)>

The payload carries ``slug``, ``user_id`` and optionally ``display_name`` and
``exp`` (Unix seconds). The signature covers the exact encoded segment as
sent, so the payload is only decoded after the signature checks out.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from django.core.exceptions import ImproperlyConfigured

if TYPE_CHECKING:
    from collections.abc import Callable

TOKEN_SEPARATOR = "."


class TokenVerificationError(Exception):
    """Base class for every reason a token is refused at handshake."""

    code = "unauthorized"
    default_message = "Unauthorized"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MalformedTokenError(TokenVerificationError):
    code = "malformed_token"
    default_message = "Malformed token"


class InvalidSignatureError(TokenVerificationError):
    code = "invalid_signature"
    default_message = "Invalid token signature"


class InvalidPayloadError(TokenVerificationError):
    code = "invalid_payload"
    default_message = "Invalid token payload"


class MissingSlugError(TokenVerificationError):
    code = "missing_slug"
    default_message = "Token has no slug"


class TokenExpiredError(TokenVerificationError):
    code = "token_expired"
    default_message = "Token expired"


class UnauthenticatedError(TokenVerificationError):
    code = "unauthenticated"
    default_message = "Token has no user"


@dataclass(frozen=True)
class Identity:
    user_id: str | int | float
    display_name: str

    def as_payload(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "display_name": self.display_name}


@dataclass(frozen=True)
class VerifiedToken:
    identity: Identity
    slug: str


def sign_payload(encoded_payload: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        encoded_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _decode_segment(segment: str) -> bytes:
    # Accept standard and URL-safe alphabets, with or without padding.
    normalized = segment.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized, validate=True)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TokenVerifier:
    """Checks token signature and claims against a shared secret."""

    def __init__(
        self,
        secret: str,
        now_provider: Callable[[], float] | None = None,
    ):
        if not secret:
            msg = "COLLAB_TOKEN_SECRET must be set to verify session tokens"
            raise ImproperlyConfigured(msg)
        self._secret = secret
        self._now = now_provider or time.time

    def verify(self, token: str) -> VerifiedToken:
        if not isinstance(token, str):
            raise MalformedTokenError
        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) != 2 or not all(parts):  # noqa: PLR2004
            raise MalformedTokenError
        encoded_payload, signature = parts

        expected = sign_payload(encoded_payload, self._secret)
        if not hmac.compare_digest(expected.encode(), signature.encode("utf-8")):
            raise InvalidSignatureError

        try:
            claims = json.loads(_decode_segment(encoded_payload).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
            raise InvalidPayloadError from exc
        if not isinstance(claims, dict):
            raise InvalidPayloadError

        slug = claims.get("slug")
        if not isinstance(slug, str) or not slug:
            raise MissingSlugError

        exp = claims.get("exp")
        if exp is not None:
            if not _is_number(exp):
                msg = "Token exp must be a number"
                raise InvalidPayloadError(msg)
            if exp < self._now():
                raise TokenExpiredError

        user_id = claims.get("user_id")
        if user_id is None or user_id == "":
            raise UnauthenticatedError
        if isinstance(user_id, bool) or not isinstance(user_id, (str, int, float)):
            msg = "Token user_id must be a string or number"
            raise InvalidPayloadError(msg)

        display_name = claims.get("display_name")
        if not isinstance(display_name, str) or not display_name:
            display_name = str(user_id)

        return VerifiedToken(
            identity=Identity(user_id=user_id, display_name=display_name),
            slug=slug,
        )
