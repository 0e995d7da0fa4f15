"""Send the user to Spotify's consent page."""

import urllib.parse
import webbrowser
from dataclasses import dataclass

import requests as _requests

from errors import AuthorizeEndpointRejected, InitiationError
from log_setup import get_logger
from redirect_capture import code_from_redirect
from spotify_client import AUTHORIZE_URL, is_success

log = get_logger("auth")

MAX_PREFLIGHT_REDIRECTS = 10
REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass(frozen=True)
class AuthorizationRequest:
    client_id: str
    redirect_uri: str
    scope: str
    response_type: str = "code"

    @classmethod
    def from_config(cls, config):
        return cls(client_id=config.client_id, redirect_uri=config.redirect_uri, scope=config.scopes)

    def params(self):
        return {
            "response_type": self.response_type,
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.scope,
        }

    def url(self, endpoint=AUTHORIZE_URL):
        return _requests.Request("GET", endpoint, params=self.params()).prepare().url


def open_in_browser(url):
    """Try to open url in the default browser. Returns False if that failed."""
    try:
        return webbrowser.open(url, new=1, autoraise=True)
    except webbrowser.Error as e:
        log.debug(f"webbrowser.open failed: {e}")
        return False


def _preflight(session, request):
    """Follow the authorize URL to the page the browser should land on.

    Redirects are followed by hand: one pointing back at the redirect URI
    would otherwise hit the local listener before anything serves it.
    """
    try:
        r = session.get(AUTHORIZE_URL, params=request.params(), allow_redirects=False)
        for _ in range(MAX_PREFLIGHT_REDIRECTS):
            if r.status_code not in REDIRECT_STATUSES:
                break
            if not r.headers.get("Location"):
                raise InitiationError(f"Redirect from {r.url} has no Location header")
            location = urllib.parse.urljoin(r.url, r.headers["Location"])
            if location.startswith(request.redirect_uri):
                # already consented: an error= here means the request itself is bad
                code_from_redirect(location)
                return request.url()
            r = session.get(location, allow_redirects=False)
        else:
            raise InitiationError(f"More than {MAX_PREFLIGHT_REDIRECTS} redirects from {AUTHORIZE_URL}")
    except _requests.RequestException as e:
        raise InitiationError(f"Can't send the auth request: {e}") from e
    if not is_success(r):
        raise AuthorizeEndpointRejected.from_response(r)
    return r.url


def initiate(config, session=None, opener=open_in_browser):
    """Hand the authorize URL to the user.

    With config.preflight set, the authorize URL is requested first and the
    URL Spotify finally lands on (usually its login page) is what gets opened;
    a transport failure or non-2xx answer there aborts the run. Failing to
    open a browser is not an error: the URL is printed instead.
    """
    request = AuthorizationRequest.from_config(config)
    url = request.url()

    if config.preflight:
        url = _preflight(session or _requests.Session(), request)

    if not config.open_browser:
        log.info(f"Open this URL to authorize:\n\n{url}\n")
    elif opener(url):
        log.info("Opened the Spotify authorization page in your browser.")
        log.debug(f"Authorize URL: {url}")
    else:
        log.warning(f"Couldn't open browser, please head to:\n\n{url}\n")
    return url
