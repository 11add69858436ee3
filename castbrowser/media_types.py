"""Best-guess MIME type for a media URL."""

DEFAULT_CONTENT_TYPE = "video/mp4"

# First match wins; matched as substrings of the lowercased URL.
_SUFFIX_TYPES = (
    (".mp4", "video/mp4"),
    (".webm", "video/webm"),
    (".m3u8", "application/x-mpegURL"),
    (".mpd", "application/dash+xml"),
    (".avi", "video/x-msvideo"),
    (".mov", "video/quicktime"),
    (".wmv", "video/x-ms-wmv"),
)

# Platform pages are handed to the receiver as-is; those receivers treat them as mp4.
_PLATFORM_DOMAINS = ("youtube.com", "youtu.be", "vimeo.com")


def classify(url: str) -> str:
    u = (url or "").lower()
    for token, ctype in _SUFFIX_TYPES:
        if token in u:
            return ctype
    if any(d in u for d in _PLATFORM_DOMAINS):
        return "video/mp4"
    return DEFAULT_CONTENT_TYPE


def is_live_stream(url: str) -> bool:
    """HLS playlists and manifest URLs have no fixed duration."""
    u = url or ""
    return ".m3u8" in u or "manifest" in u
