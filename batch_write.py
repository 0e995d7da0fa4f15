"""Chunked writes of item identifiers into a collection."""

import requests as _requests

from errors import WriteError, WriteRejected
from log_setup import get_logger
from spotify_client import bearer_headers, is_success

log = get_logger("write")


def chunked(items, size):
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def write_all(session, endpoint_template, auth_token, item_ids, chunk_size=100, **path_params):
    """POST item_ids to the endpoint, one request per chunk, strictly in order.

    endpoint_template is formatted with path_params (e.g. playlist_id=...).
    A failing chunk stops the run; chunks already sent stay written.
    """
    endpoint = endpoint_template.format(**path_params)
    item_ids = list(item_ids)
    sent = 0
    for n, chunk in enumerate(chunked(item_ids, chunk_size), start=1):
        try:
            r = session.post(endpoint, headers=bearer_headers(auth_token), json=chunk)
        except _requests.RequestException as e:
            raise WriteError(f"Writing chunk {n} to {endpoint} failed: {e}") from e
        if not is_success(r):
            raise WriteRejected.from_response(r)
        sent += len(chunk)
        log.debug(f"  Chunk {n}: wrote {len(chunk)} items ({sent}/{len(item_ids)})")
    return sent
