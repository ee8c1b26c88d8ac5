"""Identity (OIDC sign-in) package."""

from expense_tracker.services.identity.oidc import (
    ANONYMOUS_NAME,
    GateState,
    IdentityProvider,
    StreamlitIdentity,
    UserClaims,
    build_logout_url,
    display_name,
    gate,
    server_metadata_url,
)

__all__ = [
    "ANONYMOUS_NAME",
    "GateState",
    "IdentityProvider",
    "StreamlitIdentity",
    "UserClaims",
    "build_logout_url",
    "display_name",
    "gate",
    "server_metadata_url",
]
