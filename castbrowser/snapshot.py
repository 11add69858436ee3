"""
Building PageSnapshot values from what a host can actually obtain.

- A JSON dump produced by a live browser (evaluating a script against the
  rendered DOM) maps directly through PageSnapshot.from_dict.
- Raw HTML is parsed with BeautifulSoup. Static markup has no media engine, so
  videos never report a currentSrc or playback state; only their src
  attributes and <source> children are known.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from castbrowser import utils
from castbrowser.models import AttributeValue, IframeElement, PageSnapshot, VideoElement

LOG = logging.getLogger(__name__)

_PLAYLIST_TYPES = (
    "application/x-mpegurl",
    "application/vnd.apple.mpegurl",
    "application/dash+xml",
)


class SnapshotError(RuntimeError):
    """The page could not be loaded or read into a snapshot."""
    pass


def _resolve(page_url: str, value) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return urljoin(page_url, value.strip()) if page_url else value.strip()
    except ValueError:
        return value.strip()


def _attr_text(value) -> str:
    # bs4 returns multi-valued attributes (class, rel) as lists.
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return "" if value is None else str(value)


def snapshot_from_html(html: str, page_url: str) -> PageSnapshot:
    soup = BeautifulSoup(html or "", "html.parser")

    videos = []
    for video in soup.find_all("video"):
        children = []
        for source in video.find_all("source"):
            resolved = _resolve(page_url, source.get("src"))
            if resolved:
                children.append(resolved)
        videos.append(
            VideoElement(
                current_source=None,
                source_attribute=_resolve(page_url, video.get("src")),
                child_source_urls=tuple(children),
            )
        )

    iframes = []
    for iframe in soup.find_all("iframe"):
        iframes.append(
            IframeElement(
                src=_resolve(page_url, iframe.get("src")),
                data_src=_resolve(page_url, iframe.get("data-src")),
            )
        )

    scripts = tuple(str(script.string or "") for script in soup.find_all("script"))

    elements = soup.find_all(True)
    attributes = []
    for index, element in enumerate(elements):
        for value in element.attrs.values():
            text = _attr_text(value)
            if text:
                attributes.append(AttributeValue(element_tag=element.name.lower(), value=text, element_index=index))

    snap = PageSnapshot(
        page_url=page_url or "",
        videos=tuple(videos),
        iframes=tuple(iframes),
        scripts=scripts,
        attributes=tuple(attributes),
        element_count=len(elements),
    )
    LOG.debug(
        "Snapshot of %s: %d videos, %d iframes, %d scripts, %d attributes",
        snap.page_url, len(snap.videos), len(snap.iframes), len(snap.scripts), len(snap.attributes),
    )
    return snap


def snapshot_from_json(text: str) -> PageSnapshot:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    try:
        return PageSnapshot.from_dict(data)
    except TypeError as e:
        raise SnapshotError(str(e)) from e


def load_snapshot(path) -> PageSnapshot:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Could not read snapshot {path}: {e}") from e
    return snapshot_from_json(text)


def fetch_snapshot(url: str, timeout: float = 15) -> PageSnapshot:
    """Download ``url`` and snapshot it.

    Media responses are not parsed. Their snapshot is just the final URL, so
    detection only finds them when that URL ends in a media extension.
    """
    url = utils.normalize_address(url)
    try:
        resp = utils.safe_requests_get(url, timeout=timeout, allow_redirects=True, stream=True)
        try:
            resp.raise_for_status()
            final_url = resp.url or url
            ctype = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
            if ctype.startswith(("video/", "audio/")) or ctype in _PLAYLIST_TYPES:
                LOG.info("%s is a direct media response (%s)", final_url, ctype)
                return PageSnapshot(page_url=final_url)
            html = resp.text
        finally:
            resp.close()
    except requests.RequestException as e:
        raise SnapshotError(f"Could not load {url}: {e}") from e
    return snapshot_from_html(html, final_url)
