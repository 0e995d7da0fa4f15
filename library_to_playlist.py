#!/usr/bin/env python3
"""
Copy your Spotify Liked Songs into one of your playlists.

Authorizes against your Spotify app (Authorization Code flow), reads the whole
saved-track library and your playlists, asks which playlist to fill, and adds
the tracks in batches of 100.

Usage:
  python3 library_to_playlist.py                              # Authorize in the browser, pick a playlist
  python3 library_to_playlist.py --test                       # Only the first 10 liked tracks
  python3 library_to_playlist.py --playlist-id ID             # Skip the playlist menu
  python3 library_to_playlist.py --skip-existing              # Don't re-add tracks already in the playlist
  python3 library_to_playlist.py --refresh-token TOKEN        # Reuse a refresh token, no browser
  python3 library_to_playlist.py --no-browser --timeout 60    # Print the URL, wait 60s for the redirect
"""

import argparse
import sys

from authorize import initiate
from batch_write import write_all
from errors import FlowError, UserInputError
from log_setup import get_logger, reset_latest, set_verbose
from pagination import fetch_all
from redirect_capture import RedirectCapture
from settings import load_config
from spotify_client import (
    PLAYLIST_TRACKS_URL, PLAYLISTS_URL, SAVED_TRACKS_URL, create_session, shorten,
)
from token_exchange import InitialGrant, RefreshGrant, exchange

log = get_logger("library_to_playlist")

TEST_LIMIT = 10


# --- Track selection ---

def track_uris(items):
    """Track URIs from saved-track or playlist-item objects, in order, without duplicates.

    Local files and entries without a track (removed from Spotify) are skipped.
    """
    seen = set()
    uris = []
    for item in items:
        track = item.get("track") if isinstance(item, dict) else None
        if not track or track.get("is_local"):
            continue
        uri = track.get("uri")
        if not uri or uri in seen:
            continue
        seen.add(uri)
        uris.append(uri)
    return uris


def derive_uris(saved_tracks, existing_uris=None, limit=None):
    uris = track_uris(saved_tracks)
    if existing_uris:
        existing = set(existing_uris)
        uris = [u for u in uris if u not in existing]
    if limit is not None:
        uris = uris[:limit]
    return uris


# --- Playlist choice ---

def print_playlist_choices(playlists):
    print("\nYour playlists:")
    for i, pl in enumerate(playlists, start=1):
        total = (pl.get("tracks") or {}).get("total", "?")
        owner = (pl.get("owner") or {}).get("display_name") or (pl.get("owner") or {}).get("id", "?")
        print(f"  [{i}] {pl.get('name', '?'):40s}  {total:>5} tracks  by {owner}")


def read_selection(count, prompt=input):
    """Ask for a 1-based playlist number until a valid one is entered."""
    while True:
        try:
            choice = prompt(f"Playlist number (1-{count}): ").strip()
        except EOFError:
            raise UserInputError("Input closed before a playlist was chosen") from None
        if choice.isdigit() and 1 <= int(choice) <= count:
            return int(choice) - 1
        print("  → not a valid choice")


def choose_playlist(playlists, prompt=input):
    if not playlists:
        raise UserInputError("You have no playlists to add tracks to")
    print_playlist_choices(playlists)
    return playlists[read_selection(len(playlists), prompt=prompt)]


# --- Flow ---

def authenticate(config, session, refresh_token=None, prompt=input):
    """Return a TokenSet, via the browser flow or an existing refresh token."""
    if refresh_token:
        log.info("Refreshing access token...")
        return exchange(session, RefreshGrant(refresh_token), config.client_id, config.client_secret)

    with RedirectCapture(config.redirect_uri, accept_timeout=config.accept_timeout, prompt=prompt) as capture:
        initiate(config, session=session)
        code = capture.capture()
    log.info("Exchanging authorization code...")
    return exchange(
        session, InitialGrant(code, config.redirect_uri), config.client_id, config.client_secret,
    )


def copy_library(config, session, tokens, playlist_id=None, skip_existing=False,
                 limit=None, prompt=input):
    """Add the saved-track library to a playlist. Returns the number of tracks sent."""
    token = tokens.access_token

    log.info("Fetching liked songs...")
    saved = fetch_all(session, SAVED_TRACKS_URL, token, page_size=config.page_size, label="liked songs")

    if playlist_id:
        target_id, target_name = playlist_id, playlist_id
    else:
        log.info("Fetching playlists...")
        playlists = fetch_all(session, PLAYLISTS_URL, token, page_size=config.page_size, label="playlists")
        target = choose_playlist(playlists, prompt=prompt)
        target_id, target_name = target["id"], target.get("name", target["id"])

    existing = None
    if skip_existing:
        log.info(f"Fetching tracks already in '{target_name}'...")
        existing = track_uris(fetch_all(
            session, PLAYLIST_TRACKS_URL.format(playlist_id=target_id), token,
            page_size=config.page_size, label="playlist tracks",
        ))

    uris = derive_uris(saved, existing_uris=existing, limit=limit)
    if limit is not None:
        log.info(f"*** TEST MODE: adding up to {limit} tracks ***")
    if not uris:
        log.info(f"Nothing to add to '{target_name}'.")
        return 0

    log.info(f"Adding {len(uris)} tracks to '{target_name}'...")
    written = write_all(
        session, PLAYLIST_TRACKS_URL, token, uris,
        chunk_size=config.write_chunk_size, playlist_id=target_id,
    )
    log.info(f"  → added {written} tracks to '{target_name}'")
    return written


def _cause_of(exc):
    if exc.__cause__ is not None:
        return exc.__cause__
    # `raise ... from None` hides the context
    return None if exc.__suppress_context__ else exc.__context__


def report_failure(e):
    log.error(f"{e.stage.capitalize()} failed: {e}")
    cause = _cause_of(e)
    while cause is not None:
        log.error(f"  caused by: {cause}")
        cause = _cause_of(cause)


def main(argv=None):
    reset_latest()

    class HelpOnErrorParser(argparse.ArgumentParser):
        def error(self, message):
            self.print_help(sys.stderr)
            sys.stderr.write(f"\nerror: {message}\n")
            sys.exit(2)

    parser = HelpOnErrorParser(description="Copy Spotify Liked Songs into a playlist")
    parser.add_argument("--playlist-id", metavar="ID", help="Target playlist (skips the menu)")
    parser.add_argument("--skip-existing", action="store_true", help="Don't add tracks already in the playlist")
    parser.add_argument("--test", action="store_true", help=f"Limit to {TEST_LIMIT} tracks")
    parser.add_argument("--refresh-token", metavar="TOKEN", help="Use a refresh token instead of the browser flow")
    parser.add_argument("--redirect-uri", metavar="URI", help="Redirect URI registered for your Spotify app")
    parser.add_argument("--timeout", type=float, metavar="SECONDS", help="How long to wait for the browser redirect")
    parser.add_argument("--retries", type=int, metavar="N", help="Transport-level retries per HTTP request")
    parser.add_argument("--no-browser", action="store_true", help="Print the authorize URL instead of opening it")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    args = parser.parse_args(argv)

    set_verbose(args.verbose)

    try:
        config = load_config(overrides={
            "redirect_uri": args.redirect_uri,
            "accept_timeout": args.timeout,
            "max_retries": args.retries,
            "open_browser": False if args.no_browser else None,
        })
        session = create_session(config)
        tokens = authenticate(config, session, refresh_token=args.refresh_token)
        copy_library(
            config, session, tokens,
            playlist_id=args.playlist_id,
            skip_existing=args.skip_existing,
            limit=TEST_LIMIT if args.test else None,
        )
    except KeyboardInterrupt:
        log.warning("\nInterrupted.")
        return 130
    except FlowError as e:
        report_failure(e)
        return 1

    log.info("\nDone!")
    # printed, not logged: the log files must not hold credentials
    print(f"Refresh token for next time: {tokens.refresh_token}")
    log.debug(f"Access token {shorten(tokens.access_token)} expires in {tokens.expires_in}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
