"""
Tests — Guest Identity Resolver
=================================
"""

from __future__ import annotations

import asyncio

from storefront.adapters.memory import MemoryIdentityProvider, MemoryProfileStore
from storefront.identity import (
    Created,
    CreatedWithSubstitution,
    Failed,
    GuestIdentityResolver,
    ProfileRecord,
    placeholder_email,
)


class TestPlaceholderEmail:
    def test_uses_reserved_domain(self):
        email = placeholder_email(now_ms=1718000000000)
        assert email.startswith("guest-1718000000000-")
        assert email.endswith("@guest.invalid")

    def test_is_unique(self):
        assert placeholder_email(1) != placeholder_email(1)


class TestEnsureAccount:
    def test_created_with_typed_email(self, draft, identity, profiles, resolver):
        outcome = asyncio.run(resolver.ensure_account(draft))
        assert isinstance(outcome, Created)
        assert identity.sign_up_calls == ["ana@example.com"]

        profile = profiles.profiles[outcome.account.id]
        assert profile.name == "Ana Souza"
        assert profile.phone == "19999990000"
        assert profile.address["street"] == "Rua das Flores"
        assert not profile.email_was_corrected
        assert profile.technical_email is None

    def test_retries_exactly_once_with_placeholder(self, draft, identity, profiles, resolver):
        identity.rejected.add("ana@example.com")
        outcome = asyncio.run(resolver.ensure_account(draft))

        match outcome:
            case CreatedWithSubstitution(account, original):
                assert original == "ana@example.com"
                assert account.email.endswith("@guest.invalid")
            case _:
                raise AssertionError(f"unexpected {outcome!r}")

        assert len(identity.sign_up_calls) == 2
        profile = profiles.profiles[outcome.account.id]
        assert profile.technical_email == "ana@example.com"
        assert profile.email_was_corrected

    def test_duplicate_email_falls_back(self, draft, resolver, identity):
        asyncio.run(resolver.ensure_account(draft))
        second = asyncio.run(resolver.ensure_account(draft))
        assert isinstance(second, CreatedWithSubstitution)
        assert len(identity.sign_up_calls) == 3

    def test_double_failure(self, draft, identity, resolver, profiles):
        identity.fail = True
        outcome = asyncio.run(resolver.ensure_account(draft))
        assert isinstance(outcome, Failed)
        assert len(identity.sign_up_calls) == 2
        assert profiles.profiles == {}

    def test_profile_failure_is_not_fatal(self, draft, profiles, resolver, caplog):
        profiles.fail = True
        outcome = asyncio.run(resolver.ensure_account(draft))
        assert isinstance(outcome, Created)
        assert "Profile upsert" in caplog.text


class TestRefreshProfile:
    def test_updates_contact_and_keeps_support_fields(self, draft):
        profiles = MemoryProfileStore()
        profiles.profiles["acc-1"] = ProfileRecord(
            account_id="acc-1",
            name="Old",
            email="guest-1-abc@guest.invalid",
            technical_email="ana@example.com",
            email_was_corrected=True,
        )
        resolver = GuestIdentityResolver(MemoryIdentityProvider(), profiles)

        assert asyncio.run(resolver.refresh_profile("acc-1", draft))
        profile = profiles.profiles["acc-1"]
        assert profile.name == "Ana Souza"
        assert profile.email == "guest-1-abc@guest.invalid"
        assert profile.technical_email == "ana@example.com"

    def test_failure_returns_false(self, draft):
        profiles = MemoryProfileStore()
        profiles.fail = True
        resolver = GuestIdentityResolver(MemoryIdentityProvider(), profiles)
        assert asyncio.run(resolver.refresh_profile("acc-1", draft)) is False


class TestSession:
    def test_sign_up_opens_session(self, identity):
        async def flow():
            result = await identity.sign_up("bia@example.com", "secret-pass", {})
            return result, await identity.get_session()

        result, session = asyncio.run(flow())
        assert result.session_active
        assert session is not None
        assert session.account_id == result.account_id

    def test_sign_out_then_sign_in(self, identity):
        async def flow():
            result = await identity.sign_up("bia@example.com", "secret-pass", {})
            await identity.sign_out()
            signed_out = await identity.get_session()
            session = await identity.sign_in("bia@example.com", "secret-pass")
            return result, signed_out, session

        result, signed_out, session = asyncio.run(flow())
        assert signed_out is None
        assert session.account_id == result.account_id

    def test_confirm_email_keeps_session_inactive(self):
        identity = MemoryIdentityProvider(confirm_email=True)
        result = asyncio.run(identity.sign_up("bia@example.com", "secret-pass", {}))
        assert not result.session_active
        assert asyncio.run(identity.get_session()) is None
