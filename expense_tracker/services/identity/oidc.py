"""
OIDC Identity Boundary

Sign-in is delegated to a hosted OIDC provider. The tracker never sees a
password; it only needs to know whether someone is signed in, a name to
greet them with, and how to send them to the provider's login and logout
pages.

DESIGN DECISION: everything the dashboard needs goes through the small
IdentityProvider protocol. StreamlitIdentity adapts Streamlit's built-in
OIDC support (st.login / st.logout / st.user); tests use a fake.

Note that identity is NOT used to partition data. Profiles are chosen
explicitly and stored per device.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Protocol
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict

from expense_tracker.config.settings import IdentitySettings


ANONYMOUS_NAME = "User"


class GateState(str, Enum):
    """What a protected page should render."""
    LOADING = "loading"
    ERROR = "error"
    REDIRECTING = "redirecting"
    AUTHENTICATED = "authenticated"


class UserClaims(BaseModel):
    """The subset of ID-token claims the app reads."""

    model_config = ConfigDict(extra="allow")

    sub: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    preferred_username: Optional[str] = None
    name: Optional[str] = None


class IdentityProvider(Protocol):
    """Authentication state as seen by the dashboard."""

    @property
    def is_loading(self) -> bool: ...

    @property
    def is_authenticated(self) -> bool: ...

    @property
    def claims(self) -> UserClaims: ...

    @property
    def error(self) -> Optional[str]: ...

    def signin_redirect(self) -> None: ...

    def remove_user(self) -> None: ...


def display_name(claims: Optional[UserClaims | Mapping[str, Any]]) -> str:
    """Email if present, then username, then a generic label."""
    if claims is None:
        return ANONYMOUS_NAME
    if not isinstance(claims, UserClaims):
        claims = UserClaims.model_validate(dict(claims))

    for candidate in (
        claims.email,
        claims.username,
        claims.preferred_username,
        (claims.model_extra or {}).get("cognito:username"),
    ):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return ANONYMOUS_NAME


def build_logout_url(settings: IdentitySettings) -> str:
    """
    Hosted-UI logout URL.

    Clearing the local session is not enough: the provider keeps its own
    session cookie, so the browser must visit this URL as well.
    """
    query = urlencode({
        "client_id": settings.client_id,
        "logout_uri": settings.post_logout_redirect_uri,
    })
    return f"{settings.domain}/logout?{query}"


def server_metadata_url(settings: IdentitySettings) -> str:
    """OIDC discovery document URL for the configured authority."""
    return f"{settings.authority.rstrip('/')}/.well-known/openid-configuration"


def gate(identity: IdentityProvider) -> GateState:
    """
    Decide what a protected page shows.

    While the provider is still resolving the session nothing else is
    decided. A provider error is shown as such, never as a redirect. An
    unauthenticated visitor is sent to sign in.
    """
    if identity.is_loading:
        return GateState.LOADING
    if identity.error:
        return GateState.ERROR
    if not identity.is_authenticated:
        identity.signin_redirect()
        if identity.error:
            return GateState.ERROR
        return GateState.REDIRECTING
    return GateState.AUTHENTICATED


class StreamlitIdentity:
    """
    IdentityProvider over Streamlit's native OIDC login.

    Provider credentials live in .streamlit/secrets.toml under [auth];
    see server_metadata_url() for the discovery URL to put there.
    """

    def __init__(self, provider: Optional[str] = None):
        self._provider = provider
        self._error: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        # Streamlit resolves the session cookie before the script runs
        return False

    @property
    def is_authenticated(self) -> bool:
        import streamlit as st
        return bool(getattr(st.user, "is_logged_in", False))

    @property
    def claims(self) -> UserClaims:
        import streamlit as st
        if not self.is_authenticated:
            return UserClaims()
        return UserClaims.model_validate(st.user.to_dict())

    @property
    def error(self) -> Optional[str]:
        """Why the last sign-in attempt could not start, if it failed."""
        return self._error

    def signin_redirect(self) -> None:
        import streamlit as st
        from streamlit.errors import StreamlitAPIException

        self._error = None
        try:
            if self._provider:
                st.login(self._provider)
            else:
                st.login()
        except StreamlitAPIException as e:
            # Missing or invalid [auth] secrets
            self._error = str(e)

    def remove_user(self) -> None:
        import streamlit as st
        st.logout()
