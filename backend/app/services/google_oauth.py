"""Google OAuth 2.0 identity federation.

The provider owns consent and token issuance. This module only builds the
authorize redirect, turns the callback parameters into an access/refresh token
pair, and normalizes the userinfo document into an ``ExternalProfile``. It
never touches the database; upserting the local user is ``auth_service``'s job.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

GOOGLE_OAUTH_AUTHORIZE = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_OAUTH_TOKEN = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO = "https://openidconnect.googleapis.com/v1/userinfo"


class IdentityProviderError(RuntimeError):
    """The provider denied, failed, or returned something unusable."""


class OAuthConfigError(IdentityProviderError):
    """Raised when required Google OAuth credentials are missing."""

    def __init__(self, missing_vars: list[str]):
        joined = ", ".join(missing_vars)
        super().__init__(f"Google sign-in is not configured. Set {joined} in the environment.")
        self.missing_vars = missing_vars


@dataclass(frozen=True)
class ExternalProfile:
    """Provider-neutral result of a successful federation pass."""

    external_id: str
    display_name: str
    email: str
    refresh_token: str | None = None


def normalize_profile(token_payload: Mapping[str, Any], userinfo: Mapping[str, Any]) -> ExternalProfile:
    """Build an ExternalProfile from the token response and userinfo document.

    Pure function: no I/O, so the mapping can be tested without a provider.
    Google omits ``refresh_token`` when consent was already granted, so an
    absent or empty token becomes ``None``.
    """
    external_id = userinfo.get("sub") or userinfo.get("id")
    if not external_id:
        raise IdentityProviderError("Provider profile is missing a subject identifier")

    email = (userinfo.get("email") or "").strip()
    if not email:
        raise IdentityProviderError("Provider profile is missing an email address")

    display_name = (userinfo.get("name") or "").strip() or email.split("@")[0]
    refresh_token = token_payload.get("refresh_token") or None

    return ExternalProfile(
        external_id=str(external_id),
        display_name=display_name,
        email=email,
        refresh_token=refresh_token,
    )


class IdentityProvider(ABC):
    """Redirect + callback contract for a third-party identity provider."""

    @abstractmethod
    def authorization_url(self, state: str) -> str:
        """URL the browser is redirected to in order to start consent."""
        ...

    @abstractmethod
    async def authenticate(self, params: Mapping[str, str]) -> ExternalProfile:
        """Turn callback query parameters into a profile or raise IdentityProviderError."""
        ...


class GoogleIdentityProvider(IdentityProvider):
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport

    def _require_credentials(self) -> tuple[str, str]:
        missing = []
        client_id = self.settings.google_client_id.strip()
        client_secret = self.settings.google_client_secret.strip()
        if not client_id:
            missing.append("GOOGLE_CLIENT_ID")
        if not client_secret:
            missing.append("GOOGLE_CLIENT_SECRET")
        if missing:
            raise OAuthConfigError(missing)
        return client_id, client_secret

    def authorization_url(self, state: str) -> str:
        client_id, _ = self._require_credentials()
        params = {
            "client_id": client_id,
            "redirect_uri": self.settings.google_redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.settings.google_scopes),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return GOOGLE_OAUTH_AUTHORIZE + "?" + urlencode(params)

    async def authenticate(self, params: Mapping[str, str]) -> ExternalProfile:
        error = params.get("error")
        if error:
            raise IdentityProviderError(f"Provider returned error: {error}")
        code = params.get("code")
        if not code:
            raise IdentityProviderError("Callback is missing the authorization code")

        client_id, client_secret = self._require_credentials()

        async with httpx.AsyncClient(timeout=self.settings.oauth_timeout, transport=self.transport) as client:
            try:
                token_resp = await client.post(
                    GOOGLE_OAUTH_TOKEN,
                    data={
                        "code": code,
                        "client_id": client_id,
                        "client_secret": client_secret,
                        "redirect_uri": self.settings.google_redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_resp.raise_for_status()
                token_payload = token_resp.json()
                if not isinstance(token_payload, dict):
                    raise IdentityProviderError("Token response is not a JSON object")

                access_token = token_payload.get("access_token")
                if not access_token:
                    raise IdentityProviderError("Token response is missing an access token")

                userinfo_resp = await client.get(
                    GOOGLE_USERINFO,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                userinfo_resp.raise_for_status()
                userinfo = userinfo_resp.json()
                if not isinstance(userinfo, dict):
                    raise IdentityProviderError("Userinfo response is not a JSON object")
            except httpx.HTTPStatusError as e:
                raise IdentityProviderError(
                    f"Provider request to {e.request.url} failed with {e.response.status_code}"
                ) from e
            except (httpx.HTTPError, ValueError) as e:
                raise IdentityProviderError(f"Provider request failed: {e}") from e

        profile = normalize_profile(token_payload, userinfo)
        if not profile.refresh_token:
            logger.warning("No refresh token received for external id %s", profile.external_id)
        return profile


def get_identity_provider() -> IdentityProvider:
    return GoogleIdentityProvider(get_settings())
