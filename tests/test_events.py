"""Tests for MediaRequest state tracking."""

import pytest

from unigif.bus.events import MediaRequest, RequestState, SourceKind


def _request():
    return MediaRequest(kind=SourceKind.photo, reference="f", chat_id="1")


def test_starts_received():
    request = _request()
    assert request.state == RequestState.received
    assert request.history == [RequestState.received]
    assert not request.is_terminal


def test_unique_ids():
    assert _request().request_id != _request().request_id


def test_advance_records_history():
    request = _request()
    request.advance(RequestState.acquiring)
    request.advance(RequestState.failed)
    assert request.history == [RequestState.received, RequestState.acquiring, RequestState.failed]
    assert request.is_terminal


def test_terminal_request_cannot_move():
    request = _request()
    request.advance(RequestState.cleaned)
    with pytest.raises(RuntimeError):
        request.advance(RequestState.acquiring)
