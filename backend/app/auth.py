from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool

from .config import Settings, settings
from .errors import Conflict, InvalidCredential
from .logging_context import set_account_context
from .repositories.ports import StorePort
from .schemas import Account, VerifiedIdentity
from .services import accounts_service
from .utils.identity_jwt import IdentityJwtError, verify_id_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def is_token_expired(payload: dict[str, Any], *, now: datetime | None = None) -> bool:
    exp = payload.get("exp")
    if exp is None:
        return False

    if isinstance(exp, (int, float)):
        exp_dt = datetime.fromtimestamp(exp, tz=timezone.utc)
    elif isinstance(exp, datetime):
        exp_dt = exp if exp.tzinfo else exp.replace(tzinfo=timezone.utc)
    elif isinstance(exp, str):
        try:
            exp_dt = datetime.fromisoformat(exp)
        except ValueError:
            return False
        if exp_dt.tzinfo is None:
            exp_dt = exp_dt.replace(tzinfo=timezone.utc)
    else:
        return False

    now = now or datetime.now(timezone.utc)
    return exp_dt <= now


def create_access_token(
    sub: str,
    *,
    email: str,
    display_name: str | None = None,
    photo_url: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Mint a locally signed identity token (development and tests)."""
    if not settings.jwt_secret:
        raise IdentityConfigurationError("JWT_SECRET is not configured")
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else settings.jwt_expires_minutes
    )
    to_encode: dict[str, Any] = {"sub": sub, "email": email, "exp": expire}
    if display_name:
        to_encode["name"] = display_name
    if photo_url:
        to_encode["picture"] = photo_url
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class IdentityConfigurationError(RuntimeError):
    """Raised when identity verification settings would accept foreign tokens."""


class IdentityVerifier:
    """Turns a bearer token into verified identity claims.

    Locally signed tokens are tried first when ``jwt_secret`` is configured;
    anything else is checked against the identity provider's JWKS, which is
    only accepted together with the expected issuer and audience.
    """

    def __init__(
        self,
        *,
        jwt_secret: str | None = None,
        jwt_algorithm: str = "HS256",
        jwks_url: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
    ) -> None:
        if jwks_url and not (issuer and audience):
            raise IdentityConfigurationError(
                "provider token verification needs an issuer and an audience "
                "(set IDENTITY_PROJECT_ID)"
            )
        self.jwt_secret = jwt_secret or None
        self.jwt_algorithm = jwt_algorithm
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls, config: Settings) -> "IdentityVerifier":
        verifier = cls(
            jwt_secret=config.jwt_secret,
            jwt_algorithm=config.jwt_algorithm,
            jwks_url=config.identity_jwks,
            issuer=config.identity_token_issuer,
            audience=config.identity_project_id,
        )
        if not verifier.jwt_secret and not verifier.jwks_url:
            logger.warning("No identity verification configured; all bearer tokens will be rejected")
        return verifier

    def _decode(self, token: str) -> dict[str, Any]:
        if self.jwt_secret:
            try:
                return jwt.decode(
                    token,
                    self.jwt_secret,
                    algorithms=[self.jwt_algorithm],
                    options={"verify_signature": True, "verify_exp": False, "verify_aud": False},
                )
            except JWTError as exc:
                if not self.jwks_url:
                    raise InvalidCredential("Invalid or expired token") from exc
        if not self.jwks_url:
            raise InvalidCredential("Invalid or expired token")
        try:
            return verify_id_token(
                token,
                jwks_url=self.jwks_url,
                issuer=self.issuer,
                audience=self.audience,
            )
        except IdentityJwtError as exc:
            raise InvalidCredential("Invalid or expired token") from exc

    def verify(self, token: str) -> VerifiedIdentity:
        payload = self._decode(token)
        if is_token_expired(payload):
            raise InvalidCredential("Invalid or expired token")
        subject = payload.get("sub") or payload.get("user_id")
        email = payload.get("email")
        if not subject or not email:
            raise InvalidCredential("Token is missing subject or email")
        return VerifiedIdentity(
            subject_id=str(subject),
            email=str(email).lower(),
            display_name=payload.get("name") or payload.get("display_name"),
            photo_url=payload.get("picture") or payload.get("photo_url"),
        )


def get_store(request: Request) -> StorePort:
    return request.app.state.store


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


StoreDep = Annotated[StorePort, Depends(get_store)]
VerifierDep = Annotated[IdentityVerifier, Depends(get_identity_verifier)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_verified_identity(
    verifier: VerifierDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> VerifiedIdentity:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise _unauthorized("No token provided")
    try:
        return await run_in_threadpool(verifier.verify, credentials.credentials)
    except InvalidCredential as exc:
        raise _unauthorized(exc.detail) from exc


async def _resolve_account(store: StorePort, identity: VerifiedIdentity) -> Account:
    try:
        account = await accounts_service.identify(store.accounts, identity)
    except Conflict as exc:
        raise exc.to_http() from exc
    set_account_context(str(account.id), email=account.email)
    return account


async def get_current_account(
    store: StoreDep,
    identity: Annotated[VerifiedIdentity, Depends(get_verified_identity)],
) -> Account:
    # Read from the directory on every request; role and premium are never taken from the token.
    return await _resolve_account(store, identity)


async def get_optional_account(
    store: StoreDep,
    verifier: VerifierDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Account | None:
    if credentials is None or not credentials.credentials:
        return None
    try:
        identity = await run_in_threadpool(verifier.verify, credentials.credentials)
    except InvalidCredential:
        return None
    return await _resolve_account(store, identity)


VerifiedIdentityDep = Annotated[VerifiedIdentity, Depends(get_verified_identity)]
CurrentAccount = Annotated[Account, Depends(get_current_account)]
OptionalCurrentAccount = Annotated[Account | None, Depends(get_optional_account)]
