"""
tests/helpers.py

Token minting, a controllable clock and an S3 presign stand-in shared by
the test modules.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import jwt

JWT_SECRET = "printdesk-test-secret-with-enough-bytes-for-hs256"
FIXED_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


def make_token(
    sub: str,
    *,
    email: Optional[str] = None,
    role: Optional[str] = None,
    issued_at: Optional[float] = None,
    expires_in: int = 3600,
    secret: str = JWT_SECRET,
    audience: str = "authenticated",
    **claims: Any,
) -> str:
    """Mint a Supabase-style HS256 access token."""
    iat = int(issued_at if issued_at is not None else time.time())
    payload: dict[str, Any] = {
        "sub": sub,
        "aud": audience,
        "iat": iat,
        "exp": int(time.time()) + expires_in,
        **claims,
    }
    if email:
        payload["email"] = email
    if role:
        payload["app_metadata"] = {"role": role}
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = FIXED_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


def presigned_url(operation: str, Params: dict[str, Any], ExpiresIn: int) -> str:
    return (
        f"https://s3.example.com/{Params['Bucket']}/{Params['Key']}"
        f"?op={operation}&ttl={ExpiresIn}"
    )
