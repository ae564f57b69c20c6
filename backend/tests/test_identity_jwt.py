import time
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from app.auth import (
    IdentityConfigurationError,
    IdentityVerifier,
    create_access_token,
    is_token_expired,
)
from app.config import Settings, settings
from app.errors import InvalidCredential
from app.utils import identity_jwt

PROJECT_ID = "lessons-test"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"
JWKS_URL = "https://keys.example.test/jwks"


@pytest.fixture(scope="module")
def rsa_keys():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = "key-1"
    return private_pem, public_jwk


@pytest.fixture
def fetched_urls(monkeypatch, rsa_keys):
    _, public_jwk = rsa_keys
    calls: list[str] = []

    def _fake_fetch(url):
        calls.append(url)
        return {"keys": [public_jwk]}

    identity_jwt.clear_jwks_cache()
    monkeypatch.setattr(identity_jwt, "_fetch_jwks", _fake_fetch)
    yield calls
    identity_jwt.clear_jwks_cache()


def _provider_token(private_pem, *, kid="key-1", audience=PROJECT_ID, minutes=30, **claims):
    payload = {
        "iss": ISSUER,
        "aud": audience,
        "sub": "firebase-uid-1",
        "email": "Ada@Example.com",
        "name": "Ada",
        "iat": int(time.time()) - 10,
        "auth_time": int(time.time()) - 60,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    payload.update(claims)
    return jwt.encode(payload, private_pem, algorithm="RS256", headers={"kid": kid})


def _verifier(**overrides):
    options = {
        "jwt_secret": "local-secret",
        "jwks_url": JWKS_URL,
        "issuer": ISSUER,
        "audience": PROJECT_ID,
    }
    options.update(overrides)
    return IdentityVerifier(**options)


def test_local_token_is_verified():
    verifier = IdentityVerifier(jwt_secret="local-secret")
    token = jwt.encode(
        {"sub": "abc", "email": "Someone@Example.com", "picture": "https://p.example/a.png"},
        "local-secret",
        algorithm="HS256",
    )

    identity = verifier.verify(token)

    assert identity.subject_id == "abc"
    assert identity.email == "someone@example.com"
    assert identity.photo_url == "https://p.example/a.png"


def test_token_signed_with_other_secret_is_rejected():
    verifier = IdentityVerifier(jwt_secret="local-secret")
    token = jwt.encode({"sub": "abc", "email": "a@example.com"}, "other", algorithm="HS256")

    with pytest.raises(InvalidCredential):
        verifier.verify(token)


def test_token_without_email_is_rejected():
    verifier = IdentityVerifier(jwt_secret="local-secret")
    token = jwt.encode({"sub": "abc"}, "local-secret", algorithm="HS256")

    with pytest.raises(InvalidCredential) as excinfo:
        verifier.verify(token)
    assert "email" in excinfo.value.detail


def test_provider_token_verified_against_jwks(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    identity = _verifier().verify(_provider_token(private_pem))

    assert identity.subject_id == "firebase-uid-1"
    assert identity.email == "ada@example.com"
    assert identity.display_name == "Ada"
    assert fetched_urls == [JWKS_URL]

    _verifier().verify(_provider_token(private_pem))
    assert fetched_urls == [JWKS_URL]


def test_provider_token_for_other_project_is_rejected(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, audience="someone-else"))


def test_expired_provider_token_is_rejected(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, minutes=-5))


def test_unknown_kid_forces_one_refresh(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys
    _verifier().verify(_provider_token(private_pem))
    assert fetched_urls == [JWKS_URL]

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, kid="rotated"))
    assert fetched_urls == [JWKS_URL, JWKS_URL]


def test_created_access_token_round_trip_claims():
    token = create_access_token("sub-1", email="x@example.com", display_name="X")
    claims = jwt.get_unverified_claims(token)

    assert claims["sub"] == "sub-1"
    assert claims["name"] == "X"
    assert not is_token_expired(claims)
    assert is_token_expired({"exp": 0})
    assert not is_token_expired({})


def test_provider_token_needs_issue_and_auth_times(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys
    future = int(time.time()) + 3600

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, auth_time=future))
    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, iat=future))

    token_without_auth_time = _provider_token(private_pem)
    claims = jwt.get_unverified_claims(token_without_auth_time)
    claims.pop("auth_time")
    token_without_auth_time = jwt.encode(
        claims, private_pem, algorithm="RS256", headers={"kid": "key-1"}
    )
    with pytest.raises(InvalidCredential):
        _verifier().verify(token_without_auth_time)


def test_provider_token_for_other_issuer_is_rejected(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, iss="https://securetoken.google.com/other"))


def test_provider_token_without_email_or_with_long_subject_is_rejected(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, email=None))
    with pytest.raises(InvalidCredential):
        _verifier().verify(_provider_token(private_pem, sub="u" * 129))


def test_check_identity_claims():
    now = 1_700_000_000
    valid = {"sub": "uid", "email": "a@example.com", "iat": now - 5, "auth_time": now - 5}

    identity_jwt.check_identity_claims(valid, now=now)
    # Small clock drift between the provider and us is tolerated.
    identity_jwt.check_identity_claims({**valid, "iat": now + 30}, now=now)

    for broken in (
        {**valid, "sub": ""},
        {**valid, "email": "not-an-address"},
        {**valid, "iat": None},
        {**valid, "auth_time": True},
        {**valid, "auth_time": now + 600},
    ):
        with pytest.raises(identity_jwt.IdentityJwtError):
            identity_jwt.check_identity_claims(broken, now=now)


def test_verify_id_token_requires_issuer_and_audience(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys
    token = _provider_token(private_pem)

    with pytest.raises(identity_jwt.IdentityJwtError):
        identity_jwt.verify_id_token(token, jwks_url=JWKS_URL, issuer=ISSUER, audience="")
    with pytest.raises(identity_jwt.IdentityJwtError):
        identity_jwt.verify_id_token(token, jwks_url=JWKS_URL, issuer=None, audience=PROJECT_ID)
    assert fetched_urls == []


def test_jwks_verifier_without_audience_is_refused():
    with pytest.raises(IdentityConfigurationError):
        IdentityVerifier(jwks_url=JWKS_URL, issuer=ISSUER, audience=None)
    with pytest.raises(IdentityConfigurationError):
        IdentityVerifier(jwks_url=JWKS_URL, issuer=None, audience=PROJECT_ID)


def test_settings_refuse_jwks_url_without_project(monkeypatch):
    for name in ("IDENTITY_PROJECT_ID", "FIREBASE_PROJECT_ID", "IDENTITY_JWKS_URL"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ValueError):
        Settings(_env_file=None, IDENTITY_JWKS_URL=JWKS_URL)

    configured = Settings(_env_file=None, IDENTITY_JWKS_URL=JWKS_URL, IDENTITY_PROJECT_ID=PROJECT_ID)
    assert configured.identity_jwks == JWKS_URL
    assert configured.identity_token_issuer == ISSUER


def test_local_tokens_are_refused_without_a_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    assert Settings(_env_file=None).jwt_secret is None
    assert Settings(_env_file=None, jwt_secret="  ").jwt_secret is None

    forged = jwt.encode({"sub": "abc", "email": "a@example.com"}, "change-me", algorithm="HS256")
    with pytest.raises(InvalidCredential):
        IdentityVerifier(jwt_secret=None).verify(forged)

    monkeypatch.setattr(settings, "jwt_secret", None)
    with pytest.raises(IdentityConfigurationError):
        create_access_token("sub-1", email="x@example.com")


def test_local_secret_not_used_for_provider_tokens_when_unset(rsa_keys, fetched_urls):
    private_pem, _ = rsa_keys

    identity = _verifier(jwt_secret=None).verify(_provider_token(private_pem))

    assert identity.subject_id == "firebase-uid-1"
