"""Exception taxonomy for the authorize → fetch → write flow.

Every error carries the stage it came from so the CLI can report
"<stage> failed: ..." followed by the cause chain.
"""

import spotipy.exceptions


class FlowError(Exception):
    stage = "flow"


class ConfigError(FlowError):
    stage = "configuration"


# --- Non-2xx responses ---

class HttpStatusError(spotipy.exceptions.SpotifyException):
    """A non-2xx response from any Spotify endpoint.

    Built from a raw requests.Response the same way the rest of the code
    reports API failures, so `http_status` and `headers` are available.
    """

    def __init__(self, http_status, url, text="", headers=None):
        super().__init__(http_status, -1, f"{url}: {text}", headers=headers)
        self.url = url

    @classmethod
    def from_response(cls, r):
        return cls(r.status_code, r.url, r.text, headers=r.headers)

    def __str__(self):
        return f"HTTP {self.http_status} from {self.msg}"


# --- Authorization ---

class InitiationError(FlowError):
    stage = "authorization"


class AuthorizeEndpointRejected(InitiationError, HttpStatusError):
    pass


class CaptureError(FlowError):
    stage = "authorization"


class BindFailed(CaptureError):
    pass


class ListenerConnectionError(CaptureError):
    """Accepting or reading the redirect connection failed."""


class ConnectionClosedEarly(ListenerConnectionError):
    pass


class MalformedRedirect(CaptureError):
    """The redirect carried no usable `code` parameter."""


class UserAbandoned(CaptureError):
    pass


class UserInputError(CaptureError):
    stage = "input"


# --- Token exchange ---

class ExchangeError(FlowError):
    stage = "token exchange"


class TokenEndpointRejected(ExchangeError, HttpStatusError):
    pass


class MalformedTokenResponse(ExchangeError):
    pass


# --- Collection read/write ---

class FetchError(FlowError):
    stage = "fetch"


class PageRequestRejected(FetchError, HttpStatusError):
    pass


class MalformedPageResponse(FetchError):
    pass


class WriteError(FlowError):
    stage = "write"


class WriteRejected(WriteError, HttpStatusError):
    pass
