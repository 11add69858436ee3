import os
import sys
from unittest.mock import MagicMock, patch

import pytest
from pychromecast.error import RequestTimeout

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from castbrowser import casting
from castbrowser.cast_request import InvalidURLError, build
from castbrowser.casting import (
    CastDevice,
    ChromecastReceiver,
    DeviceNotFoundError,
    NoActiveConnectionError,
    ReceiverNetworkError,
    SessionNotReadyError,
    cast_url,
)


def _fake_cast(name="Living Room", uuid="1f2e3d4c-0000-1111-2222-333344445555", host="192.168.1.20"):
    cast = MagicMock()
    cast.uuid = uuid
    cast.cast_info.uuid = uuid
    cast.cast_info.friendly_name = name
    cast.cast_info.host = host
    cast.cast_info.port = 8009
    cast.cast_info.model_name = "Chromecast"
    cast.cast_info.manufacturer = "Google Inc."
    cast.cast_info.cast_type = "cast"
    cast.media_controller.is_active = True
    cast.media_controller.status.media_session_id = 7
    return cast


def _patch_discovery(casts):
    browser = MagicMock()
    return patch.object(casting.pychromecast, "get_chromecasts", return_value=(casts, browser)), browser


def test_list_devices_stops_discovery():
    patcher, browser = _patch_discovery([_fake_cast("Kitchen"), _fake_cast("Bedroom", uuid="abc")])
    with patcher as mock_get:
        devices = ChromecastReceiver(discovery_timeout=3).list_devices()

    assert mock_get.call_args.kwargs.get("timeout") == 3
    assert [d.name for d in devices] == ["Bedroom", "Kitchen"]
    assert devices[1].host == "192.168.1.20"
    assert devices[1].display_name == "Kitchen [Chromecast]"
    browser.stop_discovery.assert_called_once()


def test_load_media_plays_request():
    cast = _fake_cast()
    patcher, browser = _patch_discovery([cast])
    request = build("https://cdn.example/live/index.m3u8", "Live Show")
    with patcher:
        handle = ChromecastReceiver(active_timeout=4).load_media(request)

    cast.wait.assert_called_once_with(timeout=4.0)
    cast.media_controller.play_media.assert_called_once_with(
        "https://cdn.example/live/index.m3u8",
        "application/x-mpegURL",
        title="Live Show",
        stream_type="LIVE",
        autoplay=True,
    )
    cast.media_controller.block_until_active.assert_called_once_with(timeout=4.0)
    assert handle.device.name == "Living Room"
    assert handle.content_id == request.content_id
    assert handle.media_session_id == 7
    browser.stop_discovery.assert_called_once()


def test_load_media_selects_named_device():
    kitchen = _fake_cast("Kitchen", uuid="k")
    bedroom = _fake_cast("Bedroom", uuid="b")
    patcher, _ = _patch_discovery([kitchen, bedroom])
    with patcher:
        handle = ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"), "bedroom")

    assert handle.device.identifier == "b"
    bedroom.media_controller.play_media.assert_called_once()
    kitchen.media_controller.play_media.assert_not_called()


def test_load_media_accepts_device_object():
    kitchen = _fake_cast("Kitchen", uuid="k")
    patcher, _ = _patch_discovery([_fake_cast("Other", uuid="o"), kitchen])
    device = CastDevice(name="Kitchen", identifier="k", host="10.0.0.2")
    with patcher:
        handle = ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"), device)
    assert handle.device.identifier == "k"


def test_load_media_uses_configured_default_device():
    patcher, _ = _patch_discovery([_fake_cast("A", uuid="a"), _fake_cast("B", uuid="b")])
    config = MagicMock()
    config.get.side_effect = lambda key, default=None: {"default_device": "B"}.get(key, default)
    with patcher:
        handle = ChromecastReceiver.from_config(config).load_media(build("https://cdn.example/v.mp4"))
    assert handle.device.name == "B"


def test_no_devices():
    patcher, _ = _patch_discovery([])
    with patcher, pytest.raises(NoActiveConnectionError):
        ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"))


def test_unknown_device():
    patcher, browser = _patch_discovery([_fake_cast("Kitchen")])
    with patcher, pytest.raises(DeviceNotFoundError):
        ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"), "Garage")
    browser.stop_discovery.assert_called_once()


def test_session_not_ready():
    cast = _fake_cast()
    cast.media_controller.is_active = False
    patcher, _ = _patch_discovery([cast])
    with patcher, pytest.raises(SessionNotReadyError):
        ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"))


def test_receiver_timeout_is_a_network_error():
    cast = _fake_cast()
    cast.media_controller.play_media.side_effect = RequestTimeout("play_media", 10.0)
    patcher, _ = _patch_discovery([cast])
    with patcher, pytest.raises(ReceiverNetworkError):
        ChromecastReceiver().load_media(build("https://cdn.example/v.mp4"))


def test_failed_connect_closes_socket_client():
    cast = _fake_cast()
    cast.wait.side_effect = OSError("host unreachable")
    patcher, browser = _patch_discovery([cast])
    receiver = ChromecastReceiver()
    with patcher, pytest.raises(ReceiverNetworkError):
        receiver.load_media(build("https://cdn.example/v.mp4"))

    cast.disconnect.assert_called_once()
    cast.media_controller.play_media.assert_not_called()
    browser.stop_discovery.assert_called_once()
    receiver.disconnect()
    cast.disconnect.assert_called_once()


def test_discovery_failure():
    with patch.object(casting.pychromecast, "get_chromecasts", side_effect=OSError("no network")):
        with pytest.raises(ReceiverNetworkError):
            ChromecastReceiver().list_devices()


def test_disconnect_releases_cast():
    cast = _fake_cast()
    patcher, _ = _patch_discovery([cast])
    receiver = ChromecastReceiver()
    with patcher:
        receiver.load_media(build("https://cdn.example/v.mp4"))
    receiver.disconnect()
    cast.disconnect.assert_called_once()
    receiver.disconnect()
    cast.disconnect.assert_called_once()


def test_cast_url_propagates_invalid_url():
    receiver = MagicMock()
    with pytest.raises(InvalidURLError):
        cast_url("not a url", receiver)
    receiver.load_media.assert_not_called()


def test_cast_url_builds_and_loads():
    receiver = MagicMock()
    receiver.load_media.return_value = "handle"
    request, handle = cast_url("https://cdn.example/v.webm", receiver, "Clip", "Kitchen")
    assert handle == "handle"
    assert request.content_type == "video/webm"
    receiver.load_media.assert_called_once_with(request, "Kitchen")
