"""
Guest identity resolver — every order gets an owning account.

Two attempts: the typed email, then a placeholder under the reserved
.invalid TLD. The outcome is a tagged union, never an exception.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import TYPE_CHECKING

from combinators import lift as L
from kungfu import Result, Ok, Error

from storefront._types import AccountId
from storefront.checkout._types import CheckoutDraft
from storefront.identity._types import (
    Account,
    Created,
    CreatedWithSubstitution,
    Failed,
    ProfileRecord,
    Resolution,
    SignUpResult,
)

if TYPE_CHECKING:
    from storefront.ports import IdentityProvider, ProfileStore

logger = logging.getLogger(__name__)

PLACEHOLDER_DOMAIN = "guest.invalid"


def placeholder_email(now_ms: int | None = None) -> str:
    """
    Synthetic address for a guest whose email was refused.

        placeholder_email()  # "guest-1718000000000-9f2c4e1a@guest.invalid"
    """
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"guest-{stamp}-{secrets.token_hex(4)}@{PLACEHOLDER_DOMAIN}"


def generate_password() -> str:
    return secrets.token_urlsafe(24)


def profile_from_draft(
    account_id: AccountId,
    draft: CheckoutDraft,
    *,
    email: str | None = None,
    technical_email: str | None = None,
) -> ProfileRecord:
    return ProfileRecord(
        account_id=account_id,
        name=draft.contact.name.strip(),
        phone=draft.contact.phone.strip(),
        email=email if email is not None else draft.contact.email.strip(),
        address=draft.address.to_dict() if draft.needs_address else {},
        technical_email=technical_email,
        email_was_corrected=technical_email is not None,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Resolver
# ═══════════════════════════════════════════════════════════════════════════════


class GuestIdentityResolver:
    """
    Creates an account for a checkout without a session.

    Example:
        resolver = GuestIdentityResolver(identity, profiles)
        match await resolver.ensure_account(draft):
            case Created(account) | CreatedWithSubstitution(account, _):
                owner = account.id
            case Failed(reason):
                ...
    """

    def __init__(self, identity: IdentityProvider, profiles: ProfileStore) -> None:
        self._identity = identity
        self._profiles = profiles

    async def ensure_account(self, draft: CheckoutDraft) -> Resolution:
        typed_email = draft.contact.email.strip()
        attrs = {"name": draft.contact.name.strip(), "phone": draft.contact.phone.strip()}

        first = await self._sign_up(typed_email, attrs)
        match first:
            case Ok(created):
                account = Account(created.account_id, typed_email, created.session_active)
                await self._store_profile(profile_from_draft(account.id, draft))
                logger.info("Guest account %s created", account.id)
                return Created(account)
            case Error(reason):
                logger.warning("Sign-up with typed email refused: %s", reason)

        substitute = placeholder_email()
        second = await self._sign_up(substitute, attrs)
        match second:
            case Ok(created):
                account = Account(created.account_id, substitute, created.session_active)
                await self._store_profile(
                    profile_from_draft(
                        account.id, draft, email=substitute, technical_email=typed_email
                    )
                )
                logger.info("Guest account %s created with placeholder email", account.id)
                return CreatedWithSubstitution(account, typed_email)
            case Error(reason):
                logger.error("Sign-up with placeholder email refused: %s", reason)
                return Failed(reason)

    async def refresh_profile(self, account_id: AccountId, draft: CheckoutDraft) -> bool:
        """Best-effort profile update for a signed-in customer."""
        current = await L.catching_async(
            lambda: self._profiles.get(account_id),
            on_error=lambda e: str(e),
        )
        previous = current.value if isinstance(current, Ok) else None
        profile = profile_from_draft(account_id, draft)
        if previous is not None:
            # Keep support fields and the stored email; only contact data moves.
            profile = ProfileRecord(
                account_id=account_id,
                name=profile.name,
                phone=profile.phone,
                email=previous.email or profile.email,
                address=profile.address or previous.address,
                technical_email=previous.technical_email,
                email_was_corrected=previous.email_was_corrected,
            )
        return await self._store_profile(profile)

    async def _sign_up(
        self, email: str, attrs: dict[str, str]
    ) -> Result[SignUpResult, str]:
        return await L.catching_async(
            lambda: self._identity.sign_up(email, generate_password(), attrs),
            on_error=lambda e: str(e) or type(e).__name__,
        )

    async def _store_profile(self, profile: ProfileRecord) -> bool:
        result = await L.catching_async(
            lambda: self._profiles.upsert(profile),
            on_error=lambda e: str(e) or type(e).__name__,
        )
        match result:
            case Ok(_):
                return True
            case Error(reason):
                logger.warning("Profile upsert for %s failed: %s", profile.account_id, reason)
                return False


__all__ = (
    "PLACEHOLDER_DOMAIN",
    "placeholder_email",
    "generate_password",
    "profile_from_draft",
    "GuestIdentityResolver",
)
