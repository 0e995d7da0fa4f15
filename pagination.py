"""Offset/limit pagination over Spotify collection endpoints."""

from dataclasses import dataclass

import requests as _requests

from errors import FetchError, MalformedPageResponse, PageRequestRejected
from log_setup import get_logger
from spotify_client import bearer_headers, is_success

log = get_logger("fetch")

PROGRESS_EVERY = 500


@dataclass(frozen=True)
class Page:
    items: list
    limit: int
    offset: int
    total: int
    next: str = None
    previous: str = None

    @classmethod
    def from_json(cls, payload):
        if not isinstance(payload, dict):
            raise MalformedPageResponse(f"Expected a paging object, got {type(payload).__name__}")
        items = payload.get("items")
        if not isinstance(items, list):
            raise MalformedPageResponse("Paging object has no 'items' list")
        numbers = {}
        for key in ("limit", "offset", "total"):
            value = payload.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise MalformedPageResponse(f"Paging object has invalid {key!r}: {value!r}")
            numbers[key] = value
        return cls(items=items, next=payload.get("next"), previous=payload.get("previous"), **numbers)


def fetch_page(session, endpoint, auth_token, offset, limit):
    try:
        r = session.get(
            endpoint,
            headers=bearer_headers(auth_token),
            params={"offset": offset, "limit": limit},
        )
    except _requests.RequestException as e:
        raise FetchError(f"Request for {endpoint} (offset {offset}) failed: {e}") from e

    if not is_success(r):
        raise PageRequestRejected.from_response(r)

    try:
        payload = r.json()
    except ValueError as e:
        raise MalformedPageResponse(f"{endpoint} returned non-JSON at offset {offset}") from e
    return Page.from_json(payload)


def fetch_all(session, endpoint, auth_token, page_size=50, label="items"):
    """Fetch every item of a paginated collection, in server order.

    The first response's `limit` drives the offset step from then on, since
    Spotify may clamp the requested page size. Any failing page aborts the
    whole fetch; nothing partial is returned.
    """
    first = fetch_page(session, endpoint, auth_token, 0, page_size)
    total, limit = first.total, first.limit
    if total > 0 and limit == 0:
        raise MalformedPageResponse(f"{endpoint} reported limit=0 with {total} items to fetch")
    if limit != page_size:
        log.debug(f"Server clamped page size for {endpoint}: requested {page_size}, got {limit}")

    items = list(first.items)
    offset = limit
    while offset < total:
        page = fetch_page(session, endpoint, auth_token, offset, limit)
        items.extend(page.items)
        if len(items) % PROGRESS_EVERY < limit:
            log.info(f"  Fetched {len(items)}/{total} {label}...")
        offset += limit

    log.info(f"  Fetched {len(items)} {label} total.")
    return items
