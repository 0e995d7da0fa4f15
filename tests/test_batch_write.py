"""Tests for batch_write.py — mocks the requests session."""

import os
import sys
from unittest.mock import MagicMock

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import requests

import batch_write
from errors import HttpStatusError, WriteError, WriteRejected

TEMPLATE = "https://api.spotify.com/v1/playlists/{playlist_id}/tracks"


def make_response(status=201, url="https://api.spotify.com/v1/playlists/p1/tracks", text=""):
    r = MagicMock()
    r.status_code = status
    r.url = url
    r.text = text
    r.headers = {}
    return r


def make_ids(n):
    return [f"spotify:track:{i}" for i in range(n)]


def sent_chunks(session):
    return [c.kwargs["json"] for c in session.post.call_args_list]


# ---------------------------------------------------------------------------
# chunked()
# ---------------------------------------------------------------------------

class TestChunked:
    def test_last_chunk_shorter(self):
        chunks = list(batch_write.chunked(list(range(7)), 3))
        assert chunks == [[0, 1, 2], [3, 4, 5], [6]]

    def test_empty(self):
        assert list(batch_write.chunked([], 100)) == []

    def test_zero_size_rejected(self):
        with pytest.raises(ValueError):
            list(batch_write.chunked([1], 0))


# ---------------------------------------------------------------------------
# write_all()
# ---------------------------------------------------------------------------

class TestWriteAll:
    def test_250_ids_in_three_chunks(self):
        session = MagicMock()
        session.post.return_value = make_response()
        ids = make_ids(250)

        written = batch_write.write_all(session, TEMPLATE, "tok", ids, chunk_size=100, playlist_id="p1")

        assert written == 250
        chunks = sent_chunks(session)
        assert [len(c) for c in chunks] == [100, 100, 50]
        assert [i for c in chunks for i in c] == ids

    def test_endpoint_and_auth_header(self):
        session = MagicMock()
        session.post.return_value = make_response()

        batch_write.write_all(session, TEMPLATE, "tok", make_ids(3), playlist_id="p1")

        session.post.assert_called_once()
        c = session.post.call_args
        assert c.args[0] == "https://api.spotify.com/v1/playlists/p1/tracks"
        assert c.kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert c.kwargs["json"] == make_ids(3)

    def test_nothing_to_write(self):
        session = MagicMock()
        assert batch_write.write_all(session, TEMPLATE, "tok", [], playlist_id="p1") == 0
        session.post.assert_not_called()

    def test_failure_stops_before_next_chunk(self):
        session = MagicMock()
        session.post.side_effect = [make_response(), make_response(status=403, text="Forbidden"), make_response()]

        with pytest.raises(WriteRejected) as exc:
            batch_write.write_all(session, TEMPLATE, "tok", make_ids(250), chunk_size=100, playlist_id="p1")

        assert exc.value.http_status == 403
        assert isinstance(exc.value, HttpStatusError)
        assert exc.value.stage == "write"
        assert session.post.call_count == 2

    def test_transport_error(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(WriteError) as exc:
            batch_write.write_all(session, TEMPLATE, "tok", make_ids(3), playlist_id="p1")
        assert isinstance(exc.value.__cause__, requests.Timeout)

    def test_accepts_any_iterable(self):
        session = MagicMock()
        session.post.return_value = make_response()
        written = batch_write.write_all(session, TEMPLATE, "tok", iter(make_ids(5)), chunk_size=2, playlist_id="p1")
        assert written == 5
        assert [len(c) for c in sent_chunks(session)] == [2, 2, 1]
