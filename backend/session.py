# backend/session.py
import json
from typing import Optional
from urllib.parse import quote, unquote
from fastapi import Cookie, Response
from models import OAuthTokenSet

COOKIE_NAME = "google_tokens"
COOKIE_MAX_AGE = 30 * 24 * 60 * 60


def serialize_tokens(tokens: OAuthTokenSet) -> str:
    return quote(tokens.model_dump_json(exclude_none=True), safe="")


def parse_tokens(raw: Optional[str]) -> Optional[OAuthTokenSet]:
    """Returns None for a missing or unreadable cookie value, never raises."""
    if not raw:
        return None
    try:
        tokens = OAuthTokenSet.model_validate(json.loads(unquote(raw)))
    except ValueError:
        return None
    return tokens if tokens.access_token else None


def install_session(response: Response, tokens: OAuthTokenSet) -> None:
    response.set_cookie(
        key=COOKIE_NAME, value=serialize_tokens(tokens), max_age=COOKIE_MAX_AGE,
        path="/", httponly=True, secure=True, samesite="none",
    )


def read_session(google_tokens: Optional[str] = Cookie(default=None)) -> Optional[OAuthTokenSet]:
    return parse_tokens(google_tokens)
