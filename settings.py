"""Run configuration, resolved once at startup and passed into the flow.

Precedence (highest first): explicit overrides, environment variables,
a local config.py (see config.example.py), then an interactive prompt for
whatever credentials are still missing.
"""

import os
import urllib.parse
from dataclasses import dataclass

from errors import ConfigError

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_SCOPES = (
    "user-library-read playlist-read-private playlist-modify-public playlist-modify-private"
)

MAX_PAGE_SIZE = 50
MAX_WRITE_CHUNK_SIZE = 100

ENV_VARS = {
    "client_id": "SPOTIFY_CLIENT_ID",
    "client_secret": "SPOTIFY_CLIENT_SECRET",
    "redirect_uri": "SPOTIFY_REDIRECT_URI",
}

# config.py attribute -> Config field
CONFIG_MODULE_NAMES = {
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "REDIRECT_URI": "redirect_uri",
    "SCOPES": "scopes",
    "ACCEPT_TIMEOUT": "accept_timeout",
    "HTTP_TIMEOUT": "http_timeout",
    "MAX_RETRIES": "max_retries",
}


@dataclass(frozen=True)
class Config:
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: str = DEFAULT_SCOPES
    page_size: int = MAX_PAGE_SIZE
    write_chunk_size: int = MAX_WRITE_CHUNK_SIZE
    accept_timeout: float = 300
    http_timeout: float = 30
    max_retries: int = 0
    open_browser: bool = True
    preflight: bool = True

    def __post_init__(self):
        if not self.client_id:
            raise ConfigError("Spotify client id is not set")
        if not self.client_secret:
            raise ConfigError("Spotify client secret is not set")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ConfigError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {self.page_size}")
        if not 1 <= self.write_chunk_size <= MAX_WRITE_CHUNK_SIZE:
            raise ConfigError(
                f"write_chunk_size must be between 1 and {MAX_WRITE_CHUNK_SIZE}, got {self.write_chunk_size}"
            )
        for name in ("accept_timeout", "http_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigError(f"{name} must be positive or None, got {value}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must not be negative, got {self.max_retries}")
        _check_redirect_uri(self.redirect_uri)


def _check_redirect_uri(uri):
    parsed = urllib.parse.urlparse(uri or "")
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigError(f"redirect_uri must be an http(s) URL with a host, got {uri!r}")
    try:
        parsed.port
    except ValueError as e:
        raise ConfigError(f"redirect_uri has an invalid port: {uri!r}") from e


def _from_config_module():
    try:
        import config
    except ImportError:
        return {}
    return {
        field_name: getattr(config, attr)
        for attr, field_name in CONFIG_MODULE_NAMES.items()
        if hasattr(config, attr)
    }


def _from_environment(environ):
    return {
        field_name: environ[var]
        for field_name, var in ENV_VARS.items()
        if environ.get(var)
    }


def load_config(overrides=None, environ=None, prompt=input):
    """Resolve the run configuration.

    Prompts for the client id and secret only if no other source provides
    them; this happens here, once, before any component runs.
    """
    if environ is None:
        environ = os.environ

    values = _from_config_module()
    values.update(_from_environment(environ))
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})

    for name, label in (("client_id", "Spotify client id"), ("client_secret", "Spotify client secret")):
        if not values.get(name):
            try:
                values[name] = prompt(f"{label}: ").strip()
            except EOFError:
                raise ConfigError(f"{label} is required") from None

    try:
        return Config(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
