"""Verification of identity-provider ID tokens (securetoken-style JWTs).

Tokens are signed with rotating provider keys published as a JWKS. Besides the
signature, an ID token is only accepted when it was issued for this project
(``iss``/``aud``), names a subject and an email, and carries issue and
authentication times that are not in the future.
"""

from __future__ import annotations

import threading
import time
from typing import Any

import httpx
from jose import JWTError, jwk, jwt

KEY_TTL_SECONDS = 300
CLOCK_SKEW_SECONDS = 60
MAX_SUBJECT_LENGTH = 128
_SIGNING_ALGORITHMS = ("RS256", "ES256")


class IdentityJwtError(Exception):
    pass


def _fetch_jwks(url: str) -> dict[str, Any]:
    try:
        resp = httpx.get(url, timeout=5)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise IdentityJwtError(f"Failed to fetch JWKS: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise IdentityJwtError("JWKS response missing keys")
    return data


class SigningKeyCache:
    """Provider signing keys by ``kid``; refetched when stale or when a new ``kid`` shows up."""

    def __init__(self, ttl_seconds: float = KEY_TTL_SECONDS) -> None:
        self._ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self.clear()

    def clear(self) -> None:
        self._url: str | None = None
        self._keys: dict[str, dict[str, Any]] = {}
        self._expires_at = 0.0

    def _load(self, url: str) -> None:
        data = _fetch_jwks(url)
        self._keys = {
            entry["kid"]: entry
            for entry in data["keys"]
            if isinstance(entry, dict) and entry.get("kid")
        }
        self._url = url
        self._expires_at = time.monotonic() + self._ttl_seconds

    def key_for(self, url: str, kid: str) -> dict[str, Any]:
        with self._lock:
            loaded = False
            if self._url != url or time.monotonic() >= self._expires_at:
                self._load(url)
                loaded = True
            key = self._keys.get(kid)
            if key is None and not loaded:
                # The provider rotated keys before our copy expired.
                self._load(url)
                key = self._keys.get(kid)
        if key is None:
            raise IdentityJwtError("JWT kid not found in JWKS")
        return key


_signing_keys = SigningKeyCache()


def clear_jwks_cache() -> None:
    _signing_keys.clear()


def _require_time_claim(claims: dict[str, Any], name: str, now: float) -> None:
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise IdentityJwtError(f"ID token has no {name} claim")
    if value > now + CLOCK_SKEW_SECONDS:
        raise IdentityJwtError(f"ID token {name} is in the future")


def check_identity_claims(claims: dict[str, Any], *, now: float | None = None) -> None:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip() or len(subject) > MAX_SUBJECT_LENGTH:
        raise IdentityJwtError("ID token subject is missing or invalid")
    email = claims.get("email")
    if not isinstance(email, str) or "@" not in email:
        raise IdentityJwtError("ID token has no email claim")
    current = time.time() if now is None else now
    _require_time_claim(claims, "iat", current)
    _require_time_claim(claims, "auth_time", current)


def verify_id_token(
    token: str,
    *,
    jwks_url: str,
    issuer: str,
    audience: str,
    keys: SigningKeyCache | None = None,
) -> dict[str, Any]:
    """Return the claims of a provider ID token issued for ``audience`` by ``issuer``."""
    if not issuer or not audience:
        raise IdentityJwtError("issuer and audience are required to verify ID tokens")
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise IdentityJwtError("Invalid token header") from exc

    alg = header.get("alg")
    if alg not in _SIGNING_ALGORITHMS:
        raise IdentityJwtError(f"Unsupported JWT alg: {alg}")
    kid = header.get("kid")
    if not kid:
        raise IdentityJwtError("JWT header missing kid")

    key_data = (keys or _signing_keys).key_for(jwks_url, kid)
    try:
        claims = jwt.decode(
            token,
            jwk.construct(key_data, alg),
            algorithms=[alg],
            issuer=issuer,
            audience=audience,
            options={"require_exp": True, "require_iat": True},
        )
    except JWTError as exc:
        raise IdentityJwtError("JWT verification failed") from exc
    check_identity_claims(claims)
    return claims
