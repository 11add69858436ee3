"""Loading detected media on a Chromecast-class receiver.

The receiver side is a capability interface: list devices, load a media
request. Discovery and the Cast wire protocol belong to pychromecast.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import pychromecast
from pychromecast.error import ChromecastConnectionError, NotConnected, RequestTimeout

from castbrowser.cast_request import build
from castbrowser.config import DEFAULT_TITLE
from castbrowser.models import ClassifiedRequest

LOG = logging.getLogger(__name__)


@dataclass
class CastDevice:
    """Represents a discovered receiver."""
    name: str
    identifier: str  # uuid
    host: str
    port: int = 8009
    model_name: str = ""
    metadata: Dict = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        if self.model_name:
            return f"{self.name} [{self.model_name}]"
        return self.name


@dataclass
class SessionHandle:
    device: CastDevice
    content_id: str
    media_session_id: Optional[int] = None


class ReceiverError(Exception):
    """Base exception for receiver-side failures."""
    pass


class DeviceNotFoundError(ReceiverError):
    """The requested device is not on the network."""
    pass


class NoActiveConnectionError(ReceiverError):
    """No receiver could be connected."""
    pass


class SessionNotReadyError(ReceiverError):
    """The receiver did not start a media session in time."""
    pass


class ReceiverNetworkError(ReceiverError):
    """Network failure while talking to the receiver."""
    pass


class Receiver(ABC):
    @abstractmethod
    def list_devices(self) -> List[CastDevice]:
        pass

    @abstractmethod
    def load_media(self, request: ClassifiedRequest, device: Union[CastDevice, str, None] = None) -> SessionHandle:
        """Start playback of ``request``; raises ReceiverError on failure."""
        pass


def _device_from_cast(cast) -> CastDevice:
    info = getattr(cast, "cast_info", None)
    uuid = str(getattr(cast, "uuid", None) or getattr(info, "uuid", ""))
    name = getattr(info, "friendly_name", None) or getattr(cast, "name", None) or f"Chromecast {uuid[:8]}"
    return CastDevice(
        name=name,
        identifier=uuid,
        host=getattr(info, "host", None) or "",
        port=getattr(info, "port", None) or 8009,
        model_name=getattr(info, "model_name", None) or "",
        metadata={
            "manufacturer": getattr(info, "manufacturer", None) or "Google",
            "cast_type": getattr(info, "cast_type", None),
        },
    )


def _disconnect_cast(cast) -> None:
    try:
        cast.disconnect()
    except Exception as e:
        LOG.debug("Chromecast disconnect failed: %s", e)


def _stop_browser(browser) -> None:
    if browser is None:
        return
    try:
        browser.stop_discovery()
    except Exception as e:
        LOG.debug("Stopping Chromecast discovery failed: %s", e)


class ChromecastReceiver(Receiver):
    """Receiver backed by pychromecast's Default Media Receiver."""

    def __init__(self, discovery_timeout: float = 5.0, active_timeout: float = 10.0, default_device: str = ""):
        self.discovery_timeout = float(discovery_timeout)
        self.active_timeout = float(active_timeout)
        self.default_device = default_device or ""
        self._cast = None

    @classmethod
    def from_config(cls, config_manager) -> "ChromecastReceiver":
        return cls(
            discovery_timeout=config_manager.get("discovery_timeout_seconds", 5),
            active_timeout=config_manager.get("receiver_active_timeout_seconds", 10),
            default_device=config_manager.get("default_device", ""),
        )

    def _discover(self) -> Tuple[list, object]:
        try:
            casts, browser = pychromecast.get_chromecasts(timeout=self.discovery_timeout)
        except (OSError, ChromecastConnectionError) as e:
            raise ReceiverNetworkError(f"Chromecast discovery failed: {e}") from e
        return list(casts or []), browser

    def list_devices(self) -> List[CastDevice]:
        casts, browser = self._discover()
        try:
            devices = [_device_from_cast(c) for c in casts]
        finally:
            _stop_browser(browser)
        LOG.info("Discovered %d Chromecast devices", len(devices))
        return sorted(devices, key=lambda d: d.name)

    def _select(self, casts: list, device: Union[CastDevice, str, None]):
        if not casts:
            raise NoActiveConnectionError("No Chromecast devices found. Make sure the device is on the same network.")

        wanted = device if device is not None else (self.default_device or None)
        if wanted is None:
            return casts[0]

        if isinstance(wanted, CastDevice):
            keys = {wanted.identifier.lower(), wanted.name.lower()}
        else:
            keys = {str(wanted).lower()}
        for cast in casts:
            d = _device_from_cast(cast)
            if d.identifier.lower() in keys or d.name.lower() in keys:
                return cast
        raise DeviceNotFoundError(f"Cast device not found: {wanted}")

    def load_media(self, request: ClassifiedRequest, device: Union[CastDevice, str, None] = None) -> SessionHandle:
        casts, browser = self._discover()
        try:
            cast = self._select(casts, device)
            target = _device_from_cast(cast)
            try:
                cast.wait(timeout=self.active_timeout)
            except (OSError, ChromecastConnectionError, RequestTimeout) as e:
                # wait() has already started the socket client.
                _disconnect_cast(cast)
                raise ReceiverNetworkError(f"Failed to connect to {target.name}: {e}") from e
        finally:
            _stop_browser(browser)

        self.disconnect()
        self._cast = cast

        mc = cast.media_controller
        try:
            mc.play_media(
                request.content_id,
                request.content_type,
                title=request.title,
                stream_type=request.stream_type.value,
                autoplay=True,
            )
            mc.block_until_active(timeout=self.active_timeout)
        except NotConnected as e:
            raise NoActiveConnectionError(f"Lost connection to {target.name}: {e}") from e
        except (OSError, ChromecastConnectionError, RequestTimeout) as e:
            raise ReceiverNetworkError(f"Failed to load media on {target.name}: {e}") from e

        if not getattr(mc, "is_active", True):
            raise SessionNotReadyError(f"{target.name} is not ready for media playback. Please try again.")

        status = getattr(mc, "status", None)
        handle = SessionHandle(
            device=target,
            content_id=request.content_id,
            media_session_id=getattr(status, "media_session_id", None),
        )
        LOG.info("Casting %s (%s, %s) to %s", request.content_id, request.content_type,
                 request.stream_type.value, target.display_name)
        return handle

    def disconnect(self) -> None:
        if self._cast is None:
            return
        _disconnect_cast(self._cast)
        self._cast = None


def cast_url(url: str, receiver: Receiver, title: str = DEFAULT_TITLE,
             device: Union[CastDevice, str, None] = None) -> Tuple[ClassifiedRequest, SessionHandle]:
    """Build the request for ``url`` and load it on ``receiver``.

    InvalidURLError and ReceiverError propagate to the caller.
    """
    request = build(url, title)
    handle = receiver.load_media(request, device)
    return request, handle
