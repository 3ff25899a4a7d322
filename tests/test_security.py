"""
Tests for bearer-token authentication and role resolution.
"""

from __future__ import annotations

import time

import pytest

from printdesk.config import Settings
from printdesk.core.errors import AuthenticationError, AuthorizationError
from printdesk.core.security import (
    AccessGuard,
    ChainedRoleResolver,
    ClaimRoleResolver,
    ProfileRoleResolver,
)
from printdesk.db import MemoryDocumentStore

from tests.helpers import JWT_SECRET, make_token


@pytest.fixture
def guard(settings: Settings, documents: MemoryDocumentStore) -> AccessGuard:
    return AccessGuard.from_settings(settings, documents)


def _bearer(token: str) -> str:
    return f"Bearer {token}"


class TestRequireUser:
    def test_missing_header(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthenticationError, match="Authentication required"):
            guard.require_user(None)

    @pytest.mark.parametrize("header", ["Token abc", "Bearer ", "bearer abc", "abc"])
    def test_malformed_header(self, guard: AccessGuard, header: str) -> None:
        with pytest.raises(AuthenticationError, match="Invalid authorization header format"):
            guard.require_user(header)

    def test_bad_signature(self, guard: AccessGuard) -> None:
        token = make_token("vendor-1", secret="another-secret-that-is-long-enough-for-hs256")
        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            guard.require_user(_bearer(token))

    def test_expired_token(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            guard.require_user(_bearer(make_token("vendor-1", expires_in=-10)))

    def test_wrong_audience(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthenticationError):
            guard.require_user(_bearer(make_token("vendor-1", audience="anon")))

    def test_garbage_token(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthenticationError):
            guard.require_user("Bearer not.a.jwt")

    def test_profile_role_and_email(self, guard: AccessGuard) -> None:
        identity = guard.require_user(_bearer(make_token("admin-1")))

        assert identity.uid == "admin-1"
        assert identity.role == "admin"
        assert identity.email == "admin@example.com"

    def test_missing_profile_defaults_to_vendor(self, guard: AccessGuard) -> None:
        identity = guard.require_user(_bearer(make_token("stranger", email="s@example.com")))
        assert identity.role == "vendor"
        assert identity.email == "s@example.com"

    def test_missing_secret_rejects_everything(self, documents: MemoryDocumentStore) -> None:
        guard = AccessGuard(None, ProfileRoleResolver(documents))
        with pytest.raises(AuthenticationError):
            guard.require_user(_bearer(make_token("admin-1")))


class TestRequireAdmin:
    def test_admin_passes(self, guard: AccessGuard) -> None:
        assert guard.require_admin(_bearer(make_token("admin-1"))).is_admin

    def test_vendor_forbidden(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthorizationError, match="Forbidden"):
            guard.require_admin(_bearer(make_token("vendor-1")))

    def test_unauthenticated_is_401_not_403(self, guard: AccessGuard) -> None:
        with pytest.raises(AuthenticationError):
            guard.require_admin(None)


class TestRoleResolution:
    def test_fresh_claim_beats_profile(self, guard: AccessGuard) -> None:
        identity = guard.require_user(_bearer(make_token("vendor-1", role="admin")))
        assert identity.role == "admin"

    def test_stale_claim_falls_back_to_profile(self, guard: AccessGuard) -> None:
        token = make_token("vendor-1", role="admin", issued_at=time.time() - 7200)
        assert guard.require_user(_bearer(token)).role == "vendor"

    def test_user_role_claim(self) -> None:
        resolver = ClaimRoleResolver(max_age_seconds=60, clock=lambda: 1000.0)
        resolution = resolver.resolve("u", {"user_role": "vendor", "iat": 990})
        assert resolution is not None and resolution.role == "vendor"

    def test_invalid_claim_role_is_ignored(self) -> None:
        resolver = ClaimRoleResolver(clock=lambda: 1000.0)
        assert resolver.resolve("u", {"app_metadata": {"role": "root"}, "iat": 1000}) is None

    def test_claim_without_iat_is_ignored(self) -> None:
        resolver = ClaimRoleResolver(clock=lambda: 1000.0)
        assert resolver.resolve("u", {"app_metadata": {"role": "admin"}}) is None

    def test_profile_with_unknown_role_is_vendor(self) -> None:
        documents = MemoryDocumentStore(seed={"users": {"u": {"role": "superuser"}}})
        assert ProfileRoleResolver(documents).resolve("u", {}).role == "vendor"

    def test_chain_first_answer_wins(self, documents: MemoryDocumentStore) -> None:
        chain = ChainedRoleResolver(
            [ClaimRoleResolver(clock=lambda: 1000.0), ProfileRoleResolver(documents)]
        )
        assert chain.resolve("vendor-1", {"user_role": "admin", "iat": 999}).role == "admin"
        assert chain.resolve("vendor-1", {}).role == "vendor"


class TestDevBypass:
    def test_bypass_in_dev_without_secret(self, documents: MemoryDocumentStore) -> None:
        settings = Settings(ENVIRONMENT="dev", AUTH_DEV_BYPASS=True, SUPABASE_JWT_SECRET=None)
        identity = AccessGuard.from_settings(settings, documents).require_user(None)

        assert identity.uid == "dev-fallback"
        assert identity.is_admin

    def test_no_bypass_outside_dev(self, documents: MemoryDocumentStore) -> None:
        settings = Settings(ENVIRONMENT="staging", AUTH_DEV_BYPASS=True, SUPABASE_JWT_SECRET=None)
        with pytest.raises(AuthenticationError):
            AccessGuard.from_settings(settings, documents).require_user(None)

    def test_no_bypass_when_secret_present(self, documents: MemoryDocumentStore) -> None:
        settings = Settings(ENVIRONMENT="dev", AUTH_DEV_BYPASS=True, SUPABASE_JWT_SECRET=JWT_SECRET)
        with pytest.raises(AuthenticationError):
            AccessGuard.from_settings(settings, documents).require_user(None)
