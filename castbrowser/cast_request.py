from __future__ import annotations

import logging
from urllib.parse import urlsplit

from castbrowser.config import DEFAULT_TITLE
from castbrowser.media_types import classify, is_live_stream
from castbrowser.models import ClassifiedRequest, StreamType

LOG = logging.getLogger(__name__)


class InvalidURLError(ValueError):
    """A candidate media URL is not a well-formed absolute URL."""
    pass


def validate_url(url) -> str:
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(f"The video URL is not valid: {url!r}")
    if url != url.strip() or any(ch.isspace() for ch in url):
        raise InvalidURLError(f"The video URL is not valid: {url!r}")
    try:
        parts = urlsplit(url)
        # .port raises for malformed ports like "host:abc".
        _ = parts.port
    except ValueError as e:
        raise InvalidURLError(f"The video URL is not valid: {url!r} ({e})") from e

    scheme = (parts.scheme or "").lower()
    if not scheme:
        raise InvalidURLError(f"The video URL is not absolute: {url!r}")
    if scheme == "file":
        if not parts.path:
            raise InvalidURLError(f"The video URL has no path: {url!r}")
    elif not parts.netloc or not parts.hostname:
        raise InvalidURLError(f"The video URL has no host: {url!r}")
    return url


def build(url: str, title: str = DEFAULT_TITLE) -> ClassifiedRequest:
    """Assemble the media-load request for a detected URL.

    Raises InvalidURLError when ``url`` cannot be parsed as an absolute URL.
    """
    validate_url(url)
    stream_type = StreamType.LIVE if is_live_stream(url) else StreamType.BUFFERED
    request = ClassifiedRequest(
        content_id=url,
        content_type=classify(url),
        stream_type=stream_type,
        title=title if title is not None else DEFAULT_TITLE,
        subtitle=url,
    )
    LOG.debug("Built cast request %s (%s, %s)", url, request.content_type, stream_type.value)
    return request
