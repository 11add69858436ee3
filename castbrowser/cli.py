import argparse
import json
import logging
import sys

from castbrowser import snapshot as snapshot_mod
from castbrowser.cast_request import InvalidURLError, build
from castbrowser.casting import ChromecastReceiver, ReceiverError, cast_url
from castbrowser.config import ConfigManager
from castbrowser.detection import DetectionPatterns, PageInspector, format_failure_message

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_VIDEO = 1
EXIT_HOST_FAILURE = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(name)s - %(levelname)s - %(message)s',
    )


def _load_snapshot(args, config):
    if getattr(args, "snapshot", None):
        return snapshot_mod.load_snapshot(args.snapshot)
    return snapshot_mod.fetch_snapshot(args.url, timeout=config.get("http_timeout_seconds", 15))


def _inspect(args, config):
    snap = _load_snapshot(args, config)
    inspector = PageInspector(DetectionPatterns.from_config(config.config))
    return inspector.detect(snap)


def cmd_detect(args, config) -> int:
    outcome = _inspect(args, config)
    title = args.title or config.get("default_title")

    if not outcome:
        if args.json:
            print(json.dumps({"url": None, "debug": list(outcome.debug_trace)}, indent=2))
        else:
            print(format_failure_message(outcome.debug_trace))
        return EXIT_NO_VIDEO

    result = outcome.result
    request = build(result.url, title)
    if args.json:
        print(json.dumps({
            "url": result.url,
            "type": result.strategy.value,
            "element": result.source_element_kind,
            "contentType": request.content_type,
            "streamType": request.stream_type.value,
            "debug": list(result.debug_trace),
        }, indent=2))
    else:
        print(result.describe())
        print(f"URL: {result.url}")
        print(f"Type: {request.content_type}")
        print(f"Stream: {request.stream_type.value}")
    return EXIT_OK


def cmd_devices(args, config) -> int:
    receiver = ChromecastReceiver.from_config(config)
    if args.timeout is not None:
        receiver.discovery_timeout = args.timeout
    devices = receiver.list_devices()
    if not devices:
        print("No Chromecast devices found.")
        return EXIT_NO_VIDEO
    for d in devices:
        print(f"{d.display_name}\t{d.host}:{d.port}\t{d.identifier}")
    return EXIT_OK


def cmd_cast(args, config) -> int:
    outcome = _inspect(args, config)
    if not outcome:
        print(format_failure_message(outcome.debug_trace))
        return EXIT_NO_VIDEO

    result = outcome.result
    LOG.info(result.describe())
    receiver = ChromecastReceiver.from_config(config)
    try:
        request, handle = cast_url(result.url, receiver, args.title or config.get("default_title"), args.device or None)
    finally:
        receiver.disconnect()
    print("Casting Started")
    print(f"Device: {handle.device.display_name}")
    print(f"URL: {request.content_id}")
    print(f"Type: {request.content_type}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="castbrowser", description="Find the video on a web page and cast it.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", help="Path to config.json")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_detect = sub.add_parser("detect", help="Detect the castable video on a page")
    src = p_detect.add_mutually_exclusive_group(required=True)
    src.add_argument("url", nargs="?", help="Page URL to load")
    src.add_argument("--snapshot", help="JSON page snapshot dumped from a browser")
    p_detect.add_argument("--title")
    p_detect.add_argument("--json", action="store_true", help="Print the result as JSON")

    p_devices = sub.add_parser("devices", help="List receivers on the network")
    p_devices.add_argument("--timeout", type=float)

    p_cast = sub.add_parser("cast", help="Detect the video on a page and cast it")
    src = p_cast.add_mutually_exclusive_group(required=True)
    src.add_argument("url", nargs="?", help="Page URL to load")
    src.add_argument("--snapshot", help="JSON page snapshot dumped from a browser")
    p_cast.add_argument("--device", help="Device name or uuid")
    p_cast.add_argument("--title")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    config = ConfigManager(args.config)

    match args.cmd:
        case "detect":
            handler = cmd_detect
        case "devices":
            handler = cmd_devices
        case "cast":
            handler = cmd_cast
        case _:
            parser.error(f"unknown command {args.cmd}")

    try:
        return handler(args, config)
    except snapshot_mod.SnapshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_HOST_FAILURE
    except InvalidURLError as e:
        print(f"Invalid URL: {e}", file=sys.stderr)
        return EXIT_HOST_FAILURE
    except ReceiverError as e:
        print(f"Cast Error: {e}", file=sys.stderr)
        return EXIT_HOST_FAILURE


if __name__ == "__main__":
    sys.exit(main())
