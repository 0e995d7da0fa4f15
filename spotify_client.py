"""Shared Spotify HTTP setup.

Every component talks to Spotify through a requests.Session built here, so
transport retries and timeouts are decided in one place.
"""

import requests as _requests

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"

API_BASE = "https://api.spotify.com/v1"
SAVED_TRACKS_URL = f"{API_BASE}/me/tracks"
PLAYLISTS_URL = f"{API_BASE}/me/playlists"
PLAYLIST_TRACKS_URL = API_BASE + "/playlists/{playlist_id}/tracks"


class TimeoutSession(_requests.Session):
    """Session that applies a default timeout to every request."""

    def __init__(self, timeout=None):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, **kwargs)


def create_session(config):
    """Create the session used for every Spotify call in a run.

    Args:
        config: settings.Config; `http_timeout` and `max_retries` apply.
    """
    session = TimeoutSession(timeout=config.http_timeout)
    adapter = _requests.adapters.HTTPAdapter(max_retries=config.max_retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def bearer_headers(access_token):
    return {"Authorization": f"Bearer {access_token}"}


def is_success(r):
    return 200 <= r.status_code < 300


def shorten(secret, keep=6):
    """Mask a token for logging."""
    if not secret:
        return "<none>"
    if len(secret) <= keep:
        return "*" * len(secret)
    return f"{secret[:keep]}…"
