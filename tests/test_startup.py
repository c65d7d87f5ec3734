from __future__ import annotations

import pytest

from chromedriver_supervisor.startup import STARTUP_MARKER, MarkerResult, StartupMarker


def test_banner_in_one_chunk_matches():
    marker = StartupMarker()
    assert marker.feed("Starting ChromeDriver 2.20 on port 9515\n") is MarkerResult.MATCHED


def test_banner_split_across_chunks():
    marker = StartupMarker()
    assert marker.feed("Sta") is MarkerResult.PENDING
    assert marker.feed("rt") is MarkerResult.PENDING
    assert marker.feed("ing chromedriver...") is MarkerResult.MATCHED


def test_exact_marker_length_matches():
    marker = StartupMarker()
    assert marker.feed(STARTUP_MARKER) is MarkerResult.MATCHED


def test_short_wrong_output_waits_for_more():
    marker = StartupMarker()
    assert marker.feed("Oops") is MarkerResult.PENDING


def test_wrong_output_at_marker_length_mismatches():
    marker = StartupMarker()
    assert marker.feed("Error: x") is MarkerResult.MISMATCHED
    assert marker.buffer == "Error: x"


def test_decision_is_final():
    marker = StartupMarker()
    marker.feed("[WARNING] port in use")
    assert marker.feed("Starting") is MarkerResult.MISMATCHED
    assert marker.buffer == "[WARNING] port in use"

    matched = StartupMarker()
    matched.feed("Starting")
    assert matched.feed(" and then garbage") is MarkerResult.MATCHED


def test_empty_marker_rejected():
    with pytest.raises(ValueError):
        StartupMarker("")
