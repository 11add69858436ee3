import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from castbrowser.media_types import DEFAULT_CONTENT_TYPE, classify, is_live_stream


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://cdn.example/v.mp4", "video/mp4"),
        ("https://cdn.example/v.webm?x=1", "video/webm"),
        ("https://cdn.example/live/index.m3u8", "application/x-mpegURL"),
        ("https://cdn.example/dash/manifest.mpd", "application/dash+xml"),
        ("https://cdn.example/old.avi", "video/x-msvideo"),
        ("https://cdn.example/clip.mov", "video/quicktime"),
        ("https://cdn.example/clip.wmv", "video/x-ms-wmv"),
        ("https://www.youtube.com/watch?v=abc", "video/mp4"),
        ("https://vimeo.com/999", "video/mp4"),
        ("https://example.com/stream", DEFAULT_CONTENT_TYPE),
    ],
)
def test_classify(url, expected):
    assert classify(url) == expected


def test_classify_is_case_insensitive():
    assert classify("HTTPS://X.COM/V.MP4") == classify("https://x.com/v.mp4") == "video/mp4"


def test_first_rule_wins():
    # .mp4 is checked before .m3u8
    assert classify("https://cdn.example/v.mp4/index.m3u8") == "video/mp4"


def test_classify_is_total():
    assert classify("") == DEFAULT_CONTENT_TYPE
    assert classify(None) == DEFAULT_CONTENT_TYPE


def test_is_live_stream():
    assert is_live_stream("https://cdn.example/live.m3u8")
    assert is_live_stream("https://cdn.example/video/manifest(format=m3u8-aapl)")
    assert not is_live_stream("https://cdn.example/v.mp4")
    assert not is_live_stream(None)
