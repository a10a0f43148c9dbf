# backend/services/google_service.py
from datetime import datetime, timezone
from typing import Any, NamedTuple
from fastapi import Depends
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from auth import GOOGLE_TOKEN_URL, SCOPES, GoogleOAuthClient, get_oauth_client
from models import OAuthTokenSet


class GoogleServices(NamedTuple):
    drive: Any
    sheets: Any


def get_credentials(client: GoogleOAuthClient, tokens: OAuthTokenSet) -> Credentials:
    expiry = None
    if tokens.expires_at:
        # google-auth compares against naive UTC datetimes
        expiry = datetime.fromtimestamp(tokens.expires_at, tz=timezone.utc).replace(tzinfo=None)
    return Credentials(
        token=tokens.access_token, refresh_token=tokens.refresh_token,
        token_uri=GOOGLE_TOKEN_URL, client_id=client.settings.client_id,
        client_secret=client.settings.client_secret, scopes=SCOPES, expiry=expiry,
    )


class GoogleServiceFactory:
    """Builds authenticated Drive v3 and Sheets v4 service objects for a token set."""

    def __init__(self, client: GoogleOAuthClient):
        self.client = client

    def __call__(self, tokens: OAuthTokenSet) -> GoogleServices:
        creds = get_credentials(self.client, tokens)
        drive = build('drive', 'v3', credentials=creds, static_discovery=False)
        sheets = build('sheets', 'v4', credentials=creds, static_discovery=False)
        return GoogleServices(drive=drive, sheets=sheets)


def get_google_services_factory(client: GoogleOAuthClient = Depends(get_oauth_client)) -> GoogleServiceFactory:
    return GoogleServiceFactory(client)
