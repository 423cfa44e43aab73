"""Bearer token verification (ES256).

The engine does not log anyone in.  Tokens are issued by the platform's
auth service; this module verifies them and exposes the claims the API
needs: ``sub`` (the user's UUID) and ``roles``.

``create_access_token`` exists for local development and tests, where no
auth service runs and the key pair is generated on import.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Dev/test: ephemeral EC key pair.  Production would load the auth
# service's public key instead.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "lms-auth"
AUDIENCE = "lms-progress"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    """Sign an access token with claims sub, iss, aud, exp, iat, jti, roles."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["student"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 (no alg:none, no HS/ES switching) and
    validates exp, iss and aud.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
