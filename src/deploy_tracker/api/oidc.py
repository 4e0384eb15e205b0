"""Bearer JWT validation for an external OpenID Connect identity provider."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, cast

import httpx
import jwt
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from deploy_tracker.config import env_csv, env_int, env_str
from deploy_tracker.domain.errors import AuthenticationError
from deploy_tracker.domain.models import User


@dataclass
class _TimedCache:
    value: dict[str, Any] | None = None
    expires_at: float = 0.0

    def get(self) -> dict[str, Any] | None:
        if self.value is not None and self.expires_at > time.monotonic():
            return self.value
        return None

    def put(self, value: dict[str, Any], ttl_seconds: int) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl_seconds


_JWKS_CACHE = _TimedCache()
_DISCOVERY_CACHE = _TimedCache()


def reset_caches() -> None:
    """Forget cached discovery and key documents."""
    for cache in (_JWKS_CACHE, _DISCOVERY_CACHE):
        cache.value = None
        cache.expires_at = 0.0


def _get_json(url: str) -> dict[str, Any]:
    with httpx.Client(timeout=10.0, follow_redirects=True) as client:
        response = client.get(url)
        response.raise_for_status()
        payload = response.json()
    if not isinstance(payload, dict):
        raise AuthenticationError(f"OIDC endpoint {url} did not return an object.")
    return payload


def _discovery_document(issuer: str) -> dict[str, Any]:
    cached = _DISCOVERY_CACHE.get()
    if cached is not None:
        return cached
    payload = _get_json(issuer.rstrip("/") + "/.well-known/openid-configuration")
    _DISCOVERY_CACHE.put(
        payload, env_int("OIDC_WELL_KNOWN_TTL_SECONDS", 300, minimum=30, maximum=3600)
    )
    return payload


def _key_set(issuer: str) -> dict[str, Any]:
    inline = env_str("OIDC_JWKS_JSON")
    if inline:
        payload = json.loads(inline)
        if not isinstance(payload, dict):
            raise AuthenticationError("OIDC JWKS JSON must be an object.")
        return payload
    cached = _JWKS_CACHE.get()
    if cached is not None:
        return cached
    jwks_url = env_str("OIDC_JWKS_URL")
    if not jwks_url:
        discovered = _discovery_document(issuer).get("jwks_uri")
        if not isinstance(discovered, str) or not discovered:
            raise AuthenticationError("OIDC discovery document has no jwks_uri.")
        jwks_url = discovered
    payload = _get_json(jwks_url)
    _JWKS_CACHE.put(payload, env_int("OIDC_JWKS_TTL_SECONDS", 300, minimum=30, maximum=3600))
    return payload


def _signing_key(key_set: dict[str, Any], kid: str | None) -> dict[str, Any]:
    keys = key_set.get("keys")
    if not isinstance(keys, list):
        raise AuthenticationError("OIDC JWKS payload has no keys list.")
    if kid is None:
        if len(keys) == 1 and isinstance(keys[0], dict):
            return keys[0]
        raise AuthenticationError("Token header has no kid and the JWKS holds several keys.")
    for key in keys:
        if isinstance(key, dict) and key.get("kid") == kid:
            return key
    raise AuthenticationError("No JWKS signing key matches the token kid.")


def user_from_oidc_token(token: str) -> User:
    """Verify ``token`` and map its ``sub`` claim to the story owner id."""
    issuer = env_str("OIDC_ISSUER")
    if not issuer:
        raise RuntimeError("DEPLOY_TRACKER_OIDC_ISSUER is required when AUTH_MODE=oidc.")
    audience = env_str("OIDC_AUDIENCE")
    algorithms = env_csv("OIDC_ALGORITHMS") or ["RS256"]
    try:
        header = jwt.get_unverified_header(token)
        jwk = _signing_key(_key_set(issuer), header.get("kid"))
        public_key = cast(RSAPublicKey, jwt.algorithms.RSAAlgorithm.from_jwk(json.dumps(jwk)))
        payload = jwt.decode(
            token,
            key=public_key,
            algorithms=algorithms,
            audience=audience or None,
            issuer=issuer,
            options={"verify_aud": bool(audience)},
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    except httpx.HTTPError as exc:
        raise AuthenticationError("Identity provider keys are unavailable") from exc
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        raise AuthenticationError("Token has no subject.")
    email = payload.get("email")
    return User(id=subject, email=email if isinstance(email, str) and email.strip() else None)
