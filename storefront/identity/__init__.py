"""
Identity — guest-to-account promotion at checkout.

    from storefront.identity import GuestIdentityResolver, Created, Failed
"""

from storefront.identity._types import (
    SignUpResult,
    Session,
    Account,
    IdentityError,
    ProfileRecord,
    Created,
    CreatedWithSubstitution,
    Failed,
    Resolution,
)
from storefront.identity._resolver import (
    PLACEHOLDER_DOMAIN,
    placeholder_email,
    generate_password,
    profile_from_draft,
    GuestIdentityResolver,
)

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
    "PLACEHOLDER_DOMAIN",
    "placeholder_email",
    "generate_password",
    "profile_from_draft",
    "GuestIdentityResolver",
)
