"""Supabase Identity Client - IdentityClient over Supabase Auth (password flow).

Invariants:
    - Supabase sessions are reduced to AuthSession(identity_id=user.id, email)
    - Only SIGNED_IN, SIGNED_OUT and TOKEN_REFRESHED are forwarded to the listener;
      INITIAL_SESSION and profile-level events are dropped (boot covers the former)
    - Every supabase/httpx failure leaves this module as an AuthError subclass:
      invalid credentials -> InvalidCredentialError, existing email ->
      AccountExistsError, retryable/transport -> AuthNetworkError

Design Decisions:
    - Async client (acreate_client): the engine runs on one asyncio loop
"""

import logging

import httpx
from supabase import AsyncClient, AuthApiError, AuthRetryableError, acreate_client
from supabase import AuthError as SupabaseAuthError

from app.core.domain_types import AuthEvent, IdentityId
from app.core.errors import (
    AccountExistsError,
    AuthError,
    AuthNetworkError,
    ErrorContext,
    InvalidCredentialError,
)
from app.core.profile import AuthSession, Credential
from app.core.repository_protocols import AuthListener, Unsubscribe

logger = logging.getLogger(__name__)

_INVALID_CREDENTIAL_CODES = {"invalid_credentials", "email_not_confirmed"}
_ACCOUNT_EXISTS_CODES = {"user_already_exists", "email_exists"}
_ACCOUNT_EXISTS_MESSAGE = "User already registered"
_INVALID_CREDENTIAL_MESSAGE = "Invalid login credentials"
_FORWARDED_EVENTS = {e.value: e for e in AuthEvent}


async def create_supabase_client(url: str, key: str) -> AsyncClient:
    return await acreate_client(url, key)


def to_auth_session(session) -> AuthSession | None:
    """Reduce a supabase Session (or None) to AuthSession."""
    if session is None or getattr(session, "user", None) is None:
        return None
    return AuthSession(
        identity_id=IdentityId(str(session.user.id)),
        email=getattr(session.user, "email", None),
    )


def map_auth_error(e: Exception, operation: str) -> AuthError:
    """Translate supabase/httpx exceptions into the AuthError taxonomy."""
    ctx = ErrorContext(operation=operation)
    if isinstance(e, AuthApiError):
        code = getattr(e, "code", None)
        if code in _ACCOUNT_EXISTS_CODES or e.message == _ACCOUNT_EXISTS_MESSAGE:
            return AccountExistsError(context=ctx)
        if code in _INVALID_CREDENTIAL_CODES or e.message == _INVALID_CREDENTIAL_MESSAGE:
            return InvalidCredentialError(context=ctx)
        return AuthError(e.message, code="AUTH_REJECTED", context=ctx)
    if isinstance(e, (AuthRetryableError, httpx.TransportError)):
        return AuthNetworkError(str(e), context=ctx)
    if isinstance(e, SupabaseAuthError):
        return AuthError(str(e), context=ctx)
    return AuthError(str(e), context=ctx, http_status=500)


class SupabaseIdentityClient:
    """IdentityClient implementation backed by a supabase AsyncClient."""

    def __init__(self, client: AsyncClient):
        self._client = client

    async def get_current_session(self) -> AuthSession | None:
        try:
            session = await self._client.auth.get_session()
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise map_auth_error(e, "get_session")
        return to_auth_session(session)

    def subscribe(self, on_change: AuthListener) -> Unsubscribe:
        def _listener(event, session) -> None:
            auth_event = _FORWARDED_EVENTS.get(str(event))
            if auth_event is None:
                logger.debug(f"Ignoring auth event {event}")
                return
            on_change(auth_event, to_auth_session(session))

        subscription = self._client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe

    async def sign_in(self, credential: Credential) -> AuthSession:
        try:
            response = await self._client.auth.sign_in_with_password({
                "email": credential.email,
                "password": credential.password,
            })
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise map_auth_error(e, "sign_in")
        session = to_auth_session(response.session)
        if session is None:
            raise AuthError("No session returned after sign in", code="AUTH_NO_SESSION")
        return session

    async def sign_up(self, credential: Credential) -> AuthSession | None:
        try:
            response = await self._client.auth.sign_up({
                "email": credential.email,
                "password": credential.password,
            })
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise map_auth_error(e, "sign_up")
        if response.user is None:
            raise AuthError("No user returned after sign up", code="AUTH_NO_USER")
        return to_auth_session(response.session)

    async def sign_out(self) -> None:
        try:
            await self._client.auth.sign_out()
        except (SupabaseAuthError, httpx.HTTPError) as e:
            raise map_auth_error(e, "sign_out")
