from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlsplit


class Strategy(Enum):
    """Tag naming the detection rule that produced a result."""
    VIDEO_CURRENT_SRC_ACTIVE = "video-currentSrc-active"
    VIDEO_CURRENT_SRC = "video-currentSrc"
    VIDEO_SRC = "video-src"
    VIDEO_SOURCE = "video-source"
    PLATFORM_URL = "platform-url"
    IFRAME_EMBED = "iframe-embed"
    IFRAME_DATA_SRC = "iframe-data-src"
    IFRAME_CUSTOM_STREAM = "iframe-custom-stream"
    IFRAME_CUSTOM_STREAM_DATA = "iframe-custom-stream-data"
    SCRIPT_CONTENT = "script-content"
    DATA_ATTRIBUTE = "data-attribute"
    DIRECT_VIDEO_URL = "direct-video-url"


class StreamType(Enum):
    # Values match the stream_type strings pychromecast sends to the receiver.
    LIVE = "LIVE"
    BUFFERED = "BUFFERED"


@dataclass(frozen=True)
class VideoElement:
    current_source: str | None = None
    source_attribute: str | None = None
    child_source_urls: tuple[str, ...] = ()
    is_playing: bool = False
    current_time: float = 0.0

    @property
    def is_active(self) -> bool:
        return bool(self.is_playing) or (self.current_time or 0) > 0


@dataclass(frozen=True)
class IframeElement:
    src: str | None = None
    data_src: str | None = None


@dataclass(frozen=True)
class AttributeValue:
    element_tag: str
    value: str
    # Document position of the owning element; the visit budget caps on this.
    element_index: int = 0


def _hostname_of(url: str) -> str:
    try:
        return (urlsplit(url or "").hostname or "").lower()
    except ValueError:
        return ""


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class PageSnapshot:
    """Read-only view of the parts of a rendered page the inspector looks at."""

    page_url: str
    hostname: str = ""
    videos: tuple[VideoElement, ...] = ()
    iframes: tuple[IframeElement, ...] = ()
    scripts: tuple[str, ...] = ()
    attributes: tuple[AttributeValue, ...] = ()
    # Total elements in the document, attribute-less ones included.
    element_count: int = 0

    def __post_init__(self) -> None:
        if not self.hostname:
            object.__setattr__(self, "hostname", _hostname_of(self.page_url))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PageSnapshot":
        """Build a snapshot from the JSON shape a browser-side dump produces."""
        if not isinstance(data, dict):
            raise TypeError("snapshot data must be a mapping")

        videos = []
        for v in data.get("videos") or []:
            if not isinstance(v, dict):
                continue
            try:
                current_time = float(v.get("currentTime") or 0)
            except (TypeError, ValueError):
                current_time = 0.0
            videos.append(
                VideoElement(
                    current_source=_opt_str(v.get("currentSrc")),
                    source_attribute=_opt_str(v.get("src")),
                    child_source_urls=tuple(str(s) for s in (v.get("sources") or []) if s is not None),
                    is_playing=bool(v.get("playing", False)),
                    current_time=current_time,
                )
            )

        iframes = []
        for f in data.get("iframes") or []:
            if isinstance(f, dict):
                iframes.append(IframeElement(src=_opt_str(f.get("src")), data_src=_opt_str(f.get("dataSrc"))))

        attributes = []
        for pos, a in enumerate(data.get("attributes") or []):
            if not isinstance(a, dict) or a.get("value") is None:
                continue
            try:
                index = int(a.get("index", pos))
            except (TypeError, ValueError):
                index = pos
            attributes.append(
                AttributeValue(element_tag=str(a.get("tag") or "").lower(), value=str(a["value"]), element_index=index)
            )

        try:
            element_count = max(int(data.get("elementCount") or 0), 0)
        except (TypeError, ValueError):
            element_count = 0

        return cls(
            page_url=str(data.get("url") or ""),
            hostname=str(data.get("hostname") or ""),
            videos=tuple(videos),
            iframes=tuple(iframes),
            scripts=tuple(str(s) for s in (data.get("scripts") or []) if s is not None),
            attributes=tuple(attributes),
            element_count=element_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.page_url,
            "hostname": self.hostname,
            "videos": [
                {
                    "currentSrc": v.current_source,
                    "src": v.source_attribute,
                    "sources": list(v.child_source_urls),
                    "playing": v.is_playing,
                    "currentTime": v.current_time,
                }
                for v in self.videos
            ],
            "iframes": [{"src": f.src, "dataSrc": f.data_src} for f in self.iframes],
            "scripts": list(self.scripts),
            "attributes": [
                {"tag": a.element_tag, "value": a.value, "index": a.element_index} for a in self.attributes
            ],
            "elementCount": self.element_count,
        }


@dataclass(frozen=True)
class DetectionResult:
    url: str
    strategy: Strategy
    source_element_kind: str
    debug_trace: tuple[str, ...] = ()

    def describe(self) -> str:
        return f"Detected via {self.strategy.value} in {self.source_element_kind} element"


@dataclass(frozen=True)
class DetectionOutcome:
    """What one inspection produced: at most one result, always a trace.

    A falsy outcome is the normal "no video on this page" case.
    """

    result: DetectionResult | None = None
    debug_trace: tuple[str, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.result is not None

    @property
    def url(self) -> str | None:
        return self.result.url if self.result else None


@dataclass(frozen=True)
class ClassifiedRequest:
    content_id: str
    content_type: str
    stream_type: StreamType
    title: str
    subtitle: str = ""
