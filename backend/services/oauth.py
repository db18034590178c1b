"""
Social login providers (Google, Facebook).

Only the pieces the app needs: build the consent URL, exchange the callback
code for an access token, fetch ``{email, name, provider}``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import requests

from backend.app.core import config
from backend.services.errors import AuthError, NotFoundError

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 10

PLACEHOLDER_CREDENTIALS = {"dummy-client-id", "dummy-client-secret", "dummy-app-id", "dummy-app-secret"}


@dataclass(frozen=True)
class OAuthProvider:
    name: str
    client_id: str
    client_secret: str
    callback_url: str
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str

    @property
    def enabled(self) -> bool:
        return bool(
            self.client_id
            and self.client_secret
            and self.client_id not in PLACEHOLDER_CREDENTIALS
            and self.client_secret not in PLACEHOLDER_CREDENTIALS
        )

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": self.scope,
            "response_type": "code",
        }
        if self.name == "google":
            params["access_type"] = "offline"
        return f"{self.authorize_url}?{urlencode(params)}"


def get_providers() -> dict[str, OAuthProvider]:
    return {
        "google": OAuthProvider(
            name="google",
            client_id=config.GOOGLE_CLIENT_ID,
            client_secret=config.GOOGLE_CLIENT_SECRET,
            callback_url=config.GOOGLE_CALLBACK_URL,
            authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
            token_url="https://oauth2.googleapis.com/token",
            profile_url="https://www.googleapis.com/oauth2/v2/userinfo",
            scope="email profile",
        ),
        "facebook": OAuthProvider(
            name="facebook",
            client_id=config.FACEBOOK_APP_ID,
            client_secret=config.FACEBOOK_APP_SECRET,
            callback_url=config.FACEBOOK_CALLBACK_URL,
            authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
            token_url="https://graph.facebook.com/v18.0/oauth/access_token",
            profile_url="https://graph.facebook.com/me",
            scope="email",
        ),
    }


def get_provider(name: str) -> OAuthProvider:
    provider = get_providers().get(name)
    if provider is None:
        raise NotFoundError(f"Unknown OAuth provider: {name}")
    return provider


def fetch_profile(provider: OAuthProvider, code: str) -> dict:
    """Exchange the callback ``code`` and return the user's profile."""
    token_params = {
        "client_id": provider.client_id,
        "client_secret": provider.client_secret,
        "redirect_uri": provider.callback_url,
        "code": code,
    }
    try:
        if provider.name == "google":
            token_params["grant_type"] = "authorization_code"
            resp = requests.post(provider.token_url, data=token_params, timeout=HTTP_TIMEOUT)
        else:
            resp = requests.get(provider.token_url, params=token_params, timeout=HTTP_TIMEOUT)
        if resp.status_code != 200:
            raise AuthError("OAuth code exchange failed")
        access_token = resp.json().get("access_token")
        if not access_token:
            raise AuthError("OAuth code exchange failed")

        if provider.name == "google":
            resp = requests.get(
                provider.profile_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=HTTP_TIMEOUT,
            )
        else:
            resp = requests.get(
                provider.profile_url,
                params={"fields": "id,name,email", "access_token": access_token},
                timeout=HTTP_TIMEOUT,
            )
        if resp.status_code != 200:
            raise AuthError("Could not fetch OAuth profile")
        info = resp.json()
    except requests.RequestException as exc:
        logger.warning("%s oauth request failed: %s", provider.name, exc)
        raise AuthError("OAuth provider unreachable") from exc

    return {"email": info.get("email"), "name": info.get("name"), "provider": provider.name}
