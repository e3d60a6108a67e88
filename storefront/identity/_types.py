"""
Identity types — accounts, sessions, profiles and the resolution union.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront._types import AccountId

# ═══════════════════════════════════════════════════════════════════════════════
# Collaborator Shapes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SignUpResult:
    """
    What the identity provider returns for a new identity.

    Note: session_active may be False when the provider defers activation
    (email confirmation).
    """

    account_id: AccountId
    session_active: bool


@dataclass(frozen=True, slots=True)
class Session:
    account_id: AccountId
    email: str


@dataclass(frozen=True, slots=True)
class Account:
    id: AccountId
    email: str
    session_active: bool


class IdentityError(Exception):
    """Raised by identity providers when sign-up or sign-in is refused."""

    def __init__(self, message: str, *, code: str = "identity_error") -> None:
        super().__init__(message)
        self.code = code
        self.message = message


# ═══════════════════════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProfileRecord:
    """
    Customer profile keyed by account id.

    technical_email keeps the address the customer typed when sign-up had to
    fall back to a placeholder, so support can still reach them.
    """

    account_id: AccountId
    name: str = ""
    phone: str = ""
    email: str = ""
    address: dict[str, str] = field(default_factory=dict)
    technical_email: str | None = None
    email_was_corrected: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Resolution — Tagged Union
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Created:
    account: Account


@dataclass(frozen=True, slots=True)
class CreatedWithSubstitution:
    """Account exists, but under a placeholder email."""

    account: Account
    original_email: str


@dataclass(frozen=True, slots=True)
class Failed:
    reason: str


type Resolution = Created | CreatedWithSubstitution | Failed


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "SignUpResult",
    "Session",
    "Account",
    "IdentityError",
    "ProfileRecord",
    "Created",
    "CreatedWithSubstitution",
    "Failed",
    "Resolution",
)
