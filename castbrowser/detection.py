"""
Heuristic video-source detection over a page snapshot.

The inspector walks a fixed, ordered list of strategies and stops at the first
one that yields a URL. Early strategies look at structured media markup (a
<video> that is actually playing); later ones fall back to brute-force text
scanning of iframes, inline scripts and attribute values.

Every run records a human readable trace. When nothing is found the trace is
what the user sees, so its wording and ordering must stay deterministic.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from castbrowser.config import DEFAULT_CONFIG
from castbrowser.models import (
    DetectionOutcome,
    DetectionResult,
    PageSnapshot,
    Strategy,
)

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlatformRule:
    """A hosting platform whose page URL encodes the video id."""

    name: str
    host_markers: Tuple[str, ...]
    id_patterns: Tuple[str, ...]
    watch_url: str
    _compiled: Tuple[re.Pattern, ...] = field(init=False, repr=False, compare=False, default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", tuple(re.compile(p) for p in self.id_patterns))

    @classmethod
    def from_dict(cls, data: dict) -> "PlatformRule":
        return cls(
            name=str(data.get("name") or "Platform"),
            host_markers=tuple(str(m).lower() for m in data.get("host_markers") or ()),
            id_patterns=tuple(str(p) for p in data.get("id_patterns") or ()),
            watch_url=str(data.get("watch_url") or "{id}"),
        )

    def matches_host(self, hostname: str) -> bool:
        host = (hostname or "").lower()
        return bool(host) and any(m in host for m in self.host_markers)

    def extract_id(self, url: str) -> Optional[str]:
        for rx in self._compiled:
            m = rx.search(url or "")
            if m and m.group(1):
                return m.group(1)
        return None

    def canonical_url(self, video_id: str) -> str:
        return self.watch_url.format(id=video_id)


@dataclass(frozen=True)
class DetectionPatterns:
    """Pattern data the strategies match against."""

    platforms: Tuple[PlatformRule, ...]
    iframe_known_markers: Tuple[str, ...]
    iframe_stream_markers: Tuple[str, ...]
    media_extensions: Tuple[str, ...]
    blocked_url_markers: Tuple[str, ...]
    element_visit_budget: int = 1000
    media_url_re: re.Pattern = field(init=False, repr=False, compare=False, default=None)

    def __post_init__(self) -> None:
        exts = "|".join(re.escape(e.lstrip(".")) for e in self.media_extensions)
        rx = re.compile(
            r"""https?://[^\s"'<>)(]*\.(?:%s)(?:[?#][^\s"'<>)(]*)?""" % exts,
            re.IGNORECASE,
        )
        object.__setattr__(self, "media_url_re", rx)

    @classmethod
    def from_config(cls, cfg: Optional[dict] = None) -> "DetectionPatterns":
        """Build patterns from a full config dict (see config.DEFAULT_CONFIG)."""
        cfg = cfg if isinstance(cfg, dict) else {}
        defaults = DEFAULT_CONFIG["detection"]
        det = cfg.get("detection") if isinstance(cfg.get("detection"), dict) else {}

        def _list(key: str) -> Tuple[Any, ...]:
            val = det.get(key)
            if not isinstance(val, list):
                val = defaults[key]
            return tuple(val)

        try:
            budget = int(cfg.get("element_visit_budget", DEFAULT_CONFIG["element_visit_budget"]))
        except (TypeError, ValueError):
            budget = DEFAULT_CONFIG["element_visit_budget"]

        return cls(
            platforms=tuple(PlatformRule.from_dict(p) for p in _list("platforms") if isinstance(p, dict)),
            iframe_known_markers=tuple(str(m).lower() for m in _list("iframe_known_markers")),
            iframe_stream_markers=tuple(str(m).lower() for m in _list("iframe_stream_markers")),
            media_extensions=tuple(str(e).lower().lstrip(".") for e in _list("media_extensions")),
            blocked_url_markers=tuple(str(m).lower() for m in _list("blocked_url_markers")),
            element_visit_budget=max(0, budget),
        )

    @classmethod
    def default(cls) -> "DetectionPatterns":
        return cls.from_config(DEFAULT_CONFIG)

    def find_media_urls(self, text: str) -> List[str]:
        return self.media_url_re.findall(text or "")

    def is_blocked(self, url: str) -> bool:
        u = (url or "").lower()
        return any(m in u for m in self.blocked_url_markers)

    def has_media_extension(self, url: str) -> bool:
        try:
            path = (urlsplit(url or "").path or "").lower()
        except ValueError:
            path = ""
        return any(path.endswith("." + ext) for ext in self.media_extensions)


def _usable(value: Optional[str], page_url: str) -> bool:
    return bool(value) and bool(value.strip()) and value != page_url


def _contains_any(value: str, markers: Iterable[str]) -> bool:
    v = (value or "").lower()
    return any(m in v for m in markers)


# --- Strategies ---

class DetectionStrategy:
    """One rule in the ordered sequence.

    ``run`` appends to ``trace`` and returns a result without a trace; the
    inspector attaches the trace accumulated up to that point.
    """

    name = "strategy"

    def run(self, snapshot: PageSnapshot, patterns: DetectionPatterns, trace: List[str]) -> Optional[DetectionResult]:
        raise NotImplementedError


class ActiveVideoStrategy(DetectionStrategy):
    name = "active-video"

    def run(self, snapshot, patterns, trace):
        for i, video in enumerate(snapshot.videos):
            if not video.is_active:
                continue
            trace.append(f"Found active video at index {i}")
            if _usable(video.current_source, snapshot.page_url):
                return DetectionResult(video.current_source, Strategy.VIDEO_CURRENT_SRC_ACTIVE, "video")
        return None


class VideoCurrentSourceStrategy(DetectionStrategy):
    name = "video-current-source"

    def run(self, snapshot, patterns, trace):
        for video in snapshot.videos:
            if _usable(video.current_source, snapshot.page_url):
                return DetectionResult(video.current_source, Strategy.VIDEO_CURRENT_SRC, "video")
        return None


class VideoSourceAttributeStrategy(DetectionStrategy):
    name = "video-source-attribute"

    def run(self, snapshot, patterns, trace):
        for video in snapshot.videos:
            if _usable(video.source_attribute, snapshot.page_url):
                return DetectionResult(video.source_attribute, Strategy.VIDEO_SRC, "video")
        return None


class VideoChildSourcesStrategy(DetectionStrategy):
    name = "video-child-sources"

    def run(self, snapshot, patterns, trace):
        for video in snapshot.videos:
            for src in video.child_source_urls:
                if src and src.strip():
                    return DetectionResult(src, Strategy.VIDEO_SOURCE, "video")
        return None


class PlatformUrlStrategy(DetectionStrategy):
    name = "platform-url"

    def run(self, snapshot, patterns, trace):
        for rule in patterns.platforms:
            if not rule.matches_host(snapshot.hostname):
                continue
            trace.append(f"{rule.name} detected, looking for video ID")
            video_id = rule.extract_id(snapshot.page_url)
            if video_id:
                trace.append(f"Found {rule.name} video ID: {video_id}")
                return DetectionResult(rule.canonical_url(video_id), Strategy.PLATFORM_URL, "page-url")
            trace.append(f"No {rule.name} video ID in page URL")
        return None


class IframeKnownPlatformStrategy(DetectionStrategy):
    name = "iframe-known-platform"

    def run(self, snapshot, patterns, trace):
        trace.append(f"Found {len(snapshot.iframes)} iframe elements")
        for k, iframe in enumerate(snapshot.iframes):
            src = iframe.src or ""
            trace.append(f"Iframe {k}: src={src or 'none'}")
            if src.strip() and _contains_any(src, patterns.iframe_known_markers):
                trace.append(f"Found video iframe (known platform): {src}")
                return DetectionResult(src, Strategy.IFRAME_EMBED, "iframe")

            data_src = iframe.data_src or ""
            if data_src.strip():
                trace.append(f"Iframe {k}: data-src={data_src}")
                if _contains_any(data_src, patterns.iframe_known_markers):
                    trace.append(f"Found video iframe in data-src (known platform): {data_src}")
                    return DetectionResult(data_src, Strategy.IFRAME_DATA_SRC, "iframe")
        return None


class IframeStreamPathStrategy(DetectionStrategy):
    name = "iframe-stream-path"

    def run(self, snapshot, patterns, trace):
        for iframe in snapshot.iframes:
            src = iframe.src or ""
            if src.strip() and _contains_any(src, patterns.iframe_stream_markers):
                trace.append(f"Found potential video iframe (embed pattern): {src}")
                return DetectionResult(src, Strategy.IFRAME_CUSTOM_STREAM, "iframe")

            data_src = iframe.data_src or ""
            if data_src.strip() and _contains_any(data_src, patterns.iframe_stream_markers):
                trace.append(f"Found potential video iframe in data-src (embed pattern): {data_src}")
                return DetectionResult(data_src, Strategy.IFRAME_CUSTOM_STREAM_DATA, "iframe")
        return None


class InlineScriptStrategy(DetectionStrategy):
    name = "inline-script"

    def run(self, snapshot, patterns, trace):
        trace.append(f"Found {len(snapshot.scripts)} script elements")
        for body in snapshot.scripts:
            for match in patterns.find_media_urls(body):
                if patterns.is_blocked(match):
                    continue
                return DetectionResult(match, Strategy.SCRIPT_CONTENT, "script")
        return None


class AttributeScanStrategy(DetectionStrategy):
    name = "attribute-scan"

    def run(self, snapshot, patterns, trace):
        budget = patterns.element_visit_budget
        in_budget = sorted(
            (a for a in snapshot.attributes if 0 <= a.element_index < budget),
            key=lambda a: a.element_index,
        )
        for attr in in_budget:
            if attr.value and patterns.media_url_re.search(attr.value):
                return DetectionResult(attr.value, Strategy.DATA_ATTRIBUTE, attr.element_tag or "unknown")

        element_count = snapshot.element_count
        if not element_count and in_budget:
            element_count = in_budget[-1].element_index + 1
        trace.append(f"Checked {min(element_count, budget)} elements for data attributes")
        return None


class DirectVideoUrlStrategy(DetectionStrategy):
    name = "direct-video-url"

    def run(self, snapshot, patterns, trace):
        if snapshot.page_url and patterns.has_media_extension(snapshot.page_url):
            trace.append("Current URL appears to be a direct video link")
            return DetectionResult(snapshot.page_url, Strategy.DIRECT_VIDEO_URL, "page-url")
        return None


DEFAULT_STRATEGIES: Tuple[DetectionStrategy, ...] = (
    ActiveVideoStrategy(),
    VideoCurrentSourceStrategy(),
    VideoSourceAttributeStrategy(),
    VideoChildSourcesStrategy(),
    PlatformUrlStrategy(),
    IframeKnownPlatformStrategy(),
    IframeStreamPathStrategy(),
    InlineScriptStrategy(),
    AttributeScanStrategy(),
    DirectVideoUrlStrategy(),
)


class PageInspector:
    def __init__(
        self,
        patterns: Optional[DetectionPatterns] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
    ):
        self.patterns = patterns or DetectionPatterns.default()
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def detect(self, snapshot: PageSnapshot) -> DetectionOutcome:
        trace: List[str] = [
            f"Current URL: {snapshot.page_url}",
            f"Current hostname: {snapshot.hostname}",
            f"Found {len(snapshot.videos)} video elements",
        ]
        for i, video in enumerate(snapshot.videos):
            trace.append(
                f"Video {i}: currentSrc={video.current_source or 'none'}, src={video.source_attribute or 'none'}"
            )

        for strategy in self.strategies:
            found = strategy.run(snapshot, self.patterns, trace)
            if found is None:
                LOG.debug("%s: no match on %s", strategy.name, snapshot.page_url)
                continue
            result = replace(found, debug_trace=tuple(trace))
            LOG.info("%s: %s", result.describe(), result.url)
            return DetectionOutcome(result=result, debug_trace=result.debug_trace)

        LOG.info("No video found on %s", snapshot.page_url)
        for line in trace:
            LOG.debug("  - %s", line)
        return DetectionOutcome(result=None, debug_trace=tuple(trace))


_default_inspector: Optional[PageInspector] = None


def detect(snapshot: PageSnapshot) -> DetectionOutcome:
    """Run the default inspector against ``snapshot``."""
    global _default_inspector
    if _default_inspector is None:
        _default_inspector = PageInspector()
    return _default_inspector.detect(snapshot)


def format_failure_message(trace: Sequence[str]) -> str:
    """User-facing explanation for a page with no detectable video."""
    msg = "No video content could be detected on this page."
    if trace:
        msg += "\n\nDebug info:\n" + "\n".join(f"• {line}" for line in trace)
    msg += (
        "\n\nTips:\n• Try playing the video first"
        "\n• Make sure the video is visible on the page"
        "\n• Some streaming services may not be supported"
    )
    return msg
