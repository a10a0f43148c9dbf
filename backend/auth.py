# backend/auth.py
import logging
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional
import httpx
from authlib.integrations.base_client import OAuthError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri
from fastapi import Depends, Response
from config import GoogleOAuthSettings
from errors import AuthExchangeError
from models import OAuthTokenSet
from session import install_session, read_session

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
SCOPES = [
    'https://www.googleapis.com/auth/drive.file',
    'https://www.googleapis.com/auth/spreadsheets',
]
AUTH_SUCCESS_MESSAGE = "OAUTH_AUTH_SUCCESS"

AUTH_SUCCESS_HTML = f"""
<html>
  <body>
    <script>
      if (window.opener) {{
        window.opener.postMessage({{ type: '{AUTH_SUCCESS_MESSAGE}' }}, '*');
        window.close();
      }} else {{
        window.location.href = '/';
      }}
    </script>
    <p>Authentication successful. This window should close automatically.</p>
  </body>
</html>
"""


class GoogleOAuthClient:
    """OAuth client configuration for the Google provider.

    Holds no per-user state: one instance is shared by every request, tokens
    travel in the session cookie.
    """

    def __init__(self, settings: GoogleOAuthSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def authorization_url(self) -> str:
        # Offline access + forced consent so Google issues a refresh token every time.
        return prepare_grant_uri(
            GOOGLE_AUTHORIZE_URL, client_id=self.settings.client_id, response_type='code',
            redirect_uri=self.settings.redirect_uri, scope=SCOPES,
            access_type='offline', prompt='consent',
        )

    async def fetch_token(self, code: str) -> OAuthTokenSet:
        client_kwargs = {"transport": self.transport} if self.transport else {}
        async with AsyncOAuth2Client(
            client_id=self.settings.client_id, client_secret=self.settings.client_secret,
            redirect_uri=self.settings.redirect_uri, **client_kwargs,
        ) as client:
            try:
                token = await client.fetch_token(GOOGLE_TOKEN_URL, grant_type='authorization_code', code=code)
                return OAuthTokenSet.model_validate(dict(token))
            except OAuthError as e:
                raise AuthExchangeError(e.description or e.error or "Authentication failed") from e
            except (httpx.HTTPError, ValueError) as e:
                # ValueError also covers a 200 response missing access_token
                raise AuthExchangeError(str(e) or "Authentication failed") from e


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AWAITING_CODE = "awaiting_code"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class AuthorizationFlow:
    """Drives one request's step of the Google authorization handshake.

    Built fresh for every request, so the state only describes the current one.
    """

    def __init__(self, client: GoogleOAuthClient, tokens: Optional[OAuthTokenSet] = None,
                 on_authenticated: Optional[Callable[[OAuthTokenSet], None]] = None):
        self.client = client
        self.tokens = tokens
        self.on_authenticated = on_authenticated
        self.state = AuthState.AUTHENTICATED if tokens else AuthState.UNAUTHENTICATED

    def get_authorization_url(self) -> str:
        url = self.client.authorization_url()
        self.state = AuthState.AWAITING_CODE
        return url

    async def exchange_code(self, code: Optional[str], response: Response) -> OAuthTokenSet:
        if not code:
            self.state = AuthState.FAILED
            raise AuthExchangeError("Missing authorization code")
        try:
            tokens = await self.client.fetch_token(code)
        except AuthExchangeError:
            self.state = AuthState.FAILED
            raise
        install_session(response, tokens)
        self.tokens = tokens
        self.state = AuthState.AUTHENTICATED
        logger.info("Google authorization completed (scope: %s)", tokens.scope)
        if self.on_authenticated:
            self.on_authenticated(tokens)
        return tokens


@lru_cache
def get_oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(GoogleOAuthSettings.from_env())


def get_auth_flow(client: GoogleOAuthClient = Depends(get_oauth_client),
                  tokens: Optional[OAuthTokenSet] = Depends(read_session)) -> AuthorizationFlow:
    return AuthorizationFlow(client, tokens=tokens)
