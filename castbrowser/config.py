import copy
import json
import logging
import os
import sys

LOG = logging.getLogger(__name__)

# When frozen use the exe directory; otherwise use the directory of the main
# script so config.json stays alongside the app regardless of where the user
# launches it from.
if getattr(sys, 'frozen', False):
    APP_DIR = os.path.dirname(sys.executable)
else:
    APP_DIR = os.path.dirname(os.path.abspath(sys.argv[0]))

CONFIG_FILE = os.environ.get("CASTBROWSER_CONFIG") or os.path.join(APP_DIR, "config.json")

DEFAULT_TITLE = "Video from CastBrowser"

DEFAULT_CONFIG = {
    "element_visit_budget": 1000,  # elements visited by the attribute scan
    "http_timeout_seconds": 15,
    "discovery_timeout_seconds": 5,
    "receiver_active_timeout_seconds": 10,
    "default_title": DEFAULT_TITLE,
    "default_device": "",  # name or uuid; empty => first discovered
    "detection": {
        # Hosting platforms whose page URL carries the video id. Patterns are
        # tried in order; the first capture group is the id.
        "platforms": [
            {
                "name": "YouTube",
                "host_markers": ["youtube.com", "youtu.be"],
                "id_patterns": [
                    r"[?&]v=([a-zA-Z0-9_-]+)",
                    r"youtu\.be/([a-zA-Z0-9_-]+)",
                ],
                "watch_url": "https://www.youtube.com/watch?v={id}",
            },
        ],
        "iframe_known_markers": [
            "youtube.com", "youtu.be", "vimeo.com", "dailymotion.com", "twitch.tv",
            ".mp4", ".webm", ".m3u8",
        ],
        "iframe_stream_markers": [
            "/embed/", "/player/", "/watch/", "/video/", "stream", "play", "/content/",
        ],
        "media_extensions": ["mp4", "webm", "avi", "mov", "m3u8", "mpd"],
        "blocked_url_markers": ["google", "analytics", "ads", "tracking"],
    },
}


class ConfigManager:
    def __init__(self, path=None):
        self.path = path or CONFIG_FILE
        self.config = self.load_config()

    def load_config(self):
        if os.path.exists(self.path):
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
                    return self._apply_defaults(loaded)
            except (OSError, ValueError) as e:
                LOG.warning("Error loading config %s: %s", self.path, e)
        return copy.deepcopy(DEFAULT_CONFIG)

    def _apply_defaults(self, cfg: dict) -> dict:
        """
        Merge any missing default keys into an existing config without clobbering
        user settings. Lists (pattern data) are taken whole from the user file.
        """
        def merge(defaults, target):
            for key, val in defaults.items():
                if isinstance(val, dict):
                    if key not in target or not isinstance(target.get(key), dict):
                        target[key] = {}
                    merge(val, target[key])
                else:
                    target.setdefault(key, copy.deepcopy(val))
        merged = cfg if isinstance(cfg, dict) else {}
        merge(DEFAULT_CONFIG, merged)
        return merged

    def save_config(self):
        try:
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=4)
        except OSError as e:
            LOG.warning("Error saving config %s: %s", self.path, e)

    def get(self, key, default=None):
        return self.config.get(key, default)

    def set(self, key, value):
        self.config[key] = value
        self.save_config()

    def get_detection_config(self):
        return self.config.get("detection", {})
