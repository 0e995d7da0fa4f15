"""Capture the authorization code from Spotify's redirect.

Two sources, tried in order:
  1. a one-shot HTTP listener bound to the host/port of the redirect URI
  2. the terminal, where the user pastes the URL the browser ended up on

The terminal is only consulted if the listener fails (could not bind,
timed out, connection dropped, or no code in the request).
"""

import sys
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer

from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from errors import (
    BindFailed, CaptureError, ConnectionClosedEarly, ListenerConnectionError,
    MalformedRedirect, UserAbandoned, UserInputError,
)
from log_setup import get_logger

log = get_logger("auth")

MANUAL_PROMPT = "Please enter the URL you were redirected to: "

_DONE_PAGE = (
    "<html><body><h2>Spotify authorization received.</h2>"
    "<p>You can close this tab and return to the terminal.</p></body></html>"
)
_FAILED_PAGE = (
    "<html><body><h2>No authorization code in this request.</h2>"
    "<p>Return to the terminal and paste the URL from the address bar.</p></body></html>"
)


def code_from_redirect(url):
    """Extract the `code` query parameter from a redirect URL.

    Accepts a full URL, a path with a query string, or a bare query string.
    Raises MalformedRedirect if there is no code or the provider sent an error.
    """
    url = url.strip()
    if "?" not in url and "=" in url:
        url = "?" + url
    try:
        _state, code = SpotifyOAuth.parse_auth_response_url(url)
    except SpotifyOauthError as e:
        raise MalformedRedirect(f"Authorization was refused: {e}") from e
    if not code:
        raise MalformedRedirect(f"No 'code' parameter in redirect: {url!r}")
    return code


class _CallbackHandler(BaseHTTPRequestHandler):
    server_version = "LibraryToPlaylist/1.0"

    def do_GET(self):  # noqa: N802
        self.server.callback_path = self.path
        ok = "code=" in urllib.parse.urlparse(self.path).query
        body = (_DONE_PAGE if ok else _FAILED_PAGE).encode("utf-8")
        self.send_response(200 if ok else 400)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):  # noqa: A002
        log.debug("listener: " + format % args)


class _CallbackServer(HTTPServer):
    """HTTPServer that records the outcome of a single handle_request()."""

    def __init__(self, address):
        super().__init__(address, _CallbackHandler)
        self.callback_path = None
        self.timed_out = False
        self.failure = None

    def finish_request(self, request, client_address):
        # an accepted connection that never sends a request line must not
        # outlive accept_timeout either
        request.settimeout(self.timeout)
        super().finish_request(request, client_address)

    def handle_timeout(self):
        self.timed_out = True

    def handle_error(self, request, client_address):
        self.failure = sys.exc_info()[1]


class RedirectCapture:
    """Obtain one authorization code per run.

    Call listen() (or enter the context manager) before sending the user to
    the authorize page so the redirect has somewhere to land, then capture().
    """

    def __init__(self, redirect_uri, accept_timeout=None, prompt=input):
        self.redirect_uri = redirect_uri
        self.accept_timeout = accept_timeout
        self.prompt = prompt

        parsed = urllib.parse.urlparse(redirect_uri)
        self.scheme = parsed.scheme
        self.host = parsed.hostname or "localhost"
        self.port = parsed.port if parsed.port is not None else 80

        self._server = None
        self._bind_error = None

    def __enter__(self):
        self.listen()
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def listening(self):
        return self._server is not None

    @property
    def address(self):
        """(host, port) actually bound, or None if not listening."""
        if self._server is None:
            return None
        return self._server.server_address[:2]

    def listen(self):
        """Bind the redirect listener. A failure is remembered, not raised."""
        if self._server is not None or self._bind_error is not None:
            return
        if self.scheme != "http":
            self._bind_error = BindFailed(
                f"Cannot serve a {self.scheme!r} redirect URI locally: {self.redirect_uri}"
            )
            return
        try:
            self._server = _CallbackServer((self.host, self.port))
        except OSError as e:
            self._bind_error = BindFailed(f"Cannot listen on {self.host}:{self.port}: {e}")
            self._bind_error.__cause__ = e
            return
        log.debug(f"Listening for the redirect on {self.host}:{self.address[1]}")

    def close(self):
        if self._server is not None:
            self._server.server_close()
            self._server = None

    def capture(self):
        """Return the authorization code, from the listener or the terminal."""
        try:
            code = self._capture_from_network()
        except CaptureError as e:
            log.warning(f"Redirect listener failed ({e}), falling back to manual entry.")
        else:
            log.info("Authorization code received.")
            return code
        finally:
            self.close()
        return self._capture_from_terminal()

    def _capture_from_network(self):
        self.listen()
        if self._bind_error is not None:
            raise self._bind_error

        server = self._server
        server.timeout = self.accept_timeout
        log.info("Waiting for Spotify to redirect back...")
        try:
            server.handle_request()
        except OSError as e:
            raise ListenerConnectionError(f"Redirect listener failed: {e}") from e

        if server.timed_out:
            raise ListenerConnectionError(
                f"No redirect received within {self.accept_timeout} seconds"
            )
        if server.failure is not None:
            raise ListenerConnectionError(
                f"Reading the redirect request failed: {server.failure}"
            ) from server.failure
        if server.callback_path is None:
            raise ConnectionClosedEarly("Connection closed before a complete request was read")
        return code_from_redirect(server.callback_path)

    def _capture_from_terminal(self):
        try:
            entered = self.prompt(MANUAL_PROMPT)
        except EOFError:
            raise UserAbandoned("Input closed before a redirect URL was entered") from None
        if not entered or not entered.strip():
            raise UserInputError("No redirect URL entered")
        return code_from_redirect(entered)
