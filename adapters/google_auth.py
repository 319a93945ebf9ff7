from __future__ import annotations

from dataclasses import dataclass
import os

from google.oauth2.credentials import Credentials

from .base import AdapterError

TOKEN_URI = "https://oauth2.googleapis.com/token"


@dataclass(frozen=True)
class GoogleOAuthConfig:
    client_id: str
    client_secret: str
    refresh_token: str
    access_token: str | None


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return ""


def load_google_oauth_config(service: str) -> GoogleOAuthConfig:
    """YouTube reads YOUTUBE_*; Drive prefers GOOGLE_* and falls back to YOUTUBE_*."""
    prefixes = ("YOUTUBE",) if service == "youtube" else ("GOOGLE", "YOUTUBE")
    return GoogleOAuthConfig(
        client_id=_first_env(*(f"{p}_CLIENT_ID" for p in prefixes)),
        client_secret=_first_env(*(f"{p}_CLIENT_SECRET" for p in prefixes)),
        refresh_token=_first_env(*(f"{p}_REFRESH_TOKEN" for p in prefixes)),
        access_token=_first_env(*(f"{p}_ACCESS_TOKEN" for p in prefixes)) or None,
    )


def build_credentials(config: GoogleOAuthConfig, scopes: list[str], service: str) -> Credentials:
    if not (config.client_id and config.client_secret and config.refresh_token):
        raise AdapterError(service, "OAuth client id, secret and refresh token are required")
    return Credentials(
        token=config.access_token,
        refresh_token=config.refresh_token,
        client_id=config.client_id,
        client_secret=config.client_secret,
        token_uri=TOKEN_URI,
        scopes=scopes,
    )
