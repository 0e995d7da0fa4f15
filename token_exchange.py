"""Exchange an authorization code or refresh token for a TokenSet.

Both grants go through exchange(); only the grant-specific form fields
differ, so the initial and refresh paths cannot drift apart.
"""

import time
from dataclasses import dataclass, field

import requests as _requests

from errors import ExchangeError, MalformedTokenResponse, TokenEndpointRejected
from log_setup import get_logger
from spotify_client import TOKEN_URL, is_success, shorten

log = get_logger("auth")


@dataclass(frozen=True)
class InitialGrant:
    code: str
    redirect_uri: str


@dataclass(frozen=True)
class RefreshGrant:
    refresh_token: str


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    token_type: str
    granted_scopes: str
    expires_in: int
    refresh_token: str
    expires_at: float = field(default=0.0, compare=False)

    @property
    def scopes(self):
        return self.granted_scopes.split()

    def is_expired(self, leeway=60, now=None):
        if now is None:
            now = time.time()
        return now >= self.expires_at - leeway


def grant_form(grant, client_id, client_secret):
    """Build the flat form body for the token endpoint."""
    form = {"client_id": client_id, "client_secret": client_secret}
    if isinstance(grant, InitialGrant):
        form["grant_type"] = "authorization_code"
        form["code"] = grant.code
        form["redirect_uri"] = grant.redirect_uri
    elif isinstance(grant, RefreshGrant):
        form["grant_type"] = "refresh_token"
        form["refresh_token"] = grant.refresh_token
    else:
        raise TypeError(f"Unknown token grant: {grant!r}")
    return form


def parse_token_response(payload, grant, received_at=None):
    """Turn the token endpoint's JSON into a TokenSet.

    A refresh response may leave out refresh_token; the one that was sent
    stays valid in that case.
    """
    if not isinstance(payload, dict):
        raise MalformedTokenResponse(f"Expected a JSON object, got {type(payload).__name__}")

    refresh_token = payload.get("refresh_token")
    if not refresh_token and isinstance(grant, RefreshGrant):
        refresh_token = grant.refresh_token

    missing = [k for k in ("access_token", "token_type", "expires_in") if payload.get(k) in (None, "")]
    if not refresh_token:
        missing.append("refresh_token")
    if missing:
        raise MalformedTokenResponse(f"Token response is missing: {', '.join(missing)}")

    fields = {
        "access_token": payload["access_token"],
        "token_type": payload["token_type"],
        "refresh_token": refresh_token,
        "scope": payload.get("scope") or "",
    }
    wrong = [k for k, v in fields.items() if not isinstance(v, str)]
    if wrong:
        raise MalformedTokenResponse(f"Token response fields are not strings: {', '.join(wrong)}")

    try:
        expires_in = int(payload["expires_in"])
    except (TypeError, ValueError):
        raise MalformedTokenResponse(f"expires_in is not an integer: {payload['expires_in']!r}") from None

    if received_at is None:
        received_at = time.time()
    return TokenSet(
        access_token=fields["access_token"],
        token_type=fields["token_type"],
        granted_scopes=fields["scope"],
        expires_in=expires_in,
        refresh_token=refresh_token,
        expires_at=received_at + expires_in,
    )


def exchange(session, grant, client_id, client_secret, token_url=TOKEN_URL):
    """POST the grant to the token endpoint and return the resulting TokenSet."""
    form = grant_form(grant, client_id, client_secret)
    log.debug(f"Requesting token ({form['grant_type']})")
    try:
        r = session.post(token_url, data=form)
    except _requests.RequestException as e:
        raise ExchangeError(f"Token request failed: {e}") from e

    if not is_success(r):
        raise TokenEndpointRejected.from_response(r)

    try:
        payload = r.json()
    except ValueError as e:
        raise MalformedTokenResponse(f"Token response is not JSON: {r.text[:200]!r}") from e

    tokens = parse_token_response(payload, grant)
    log.debug(
        f"Got {tokens.token_type} token {shorten(tokens.access_token)} "
        f"(expires in {tokens.expires_in}s, scopes: {tokens.granted_scopes or '-'})"
    )
    return tokens
