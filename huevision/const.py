"""Constants for huevision."""

from datetime import timedelta

# Seconds to wait between two feed polls.
POLL_INTERVAL = 5.0

# Feed entries younger than this are "breaking" news.
FRESHNESS_WINDOW = timedelta(minutes=5)

# Token a headline must contain to be considered for a country scene.
MARKER_TOKEN = "#OpenUp"

# Link button handshake
PAIRING_MAX_ATTEMPTS = 30
PAIRING_INTERVAL = 1.0

DEFAULT_APP_NAME = "huevision"
ENV_PREFIX = "HUEVISION_"

CONF_BRIDGE_IPADDRESS = "bridge.ipaddress"
CONF_BRIDGE_USERNAME = "bridge.username"
CONF_BRIDGE_CLIENTKEY = "bridge.clientkey"
CONF_APP_NAME = "appName"
CONF_DEVICE_NAME = "deviceName"
CONF_BLOG_URL = "blogurl"
CONF_SCENES_FILE = "scenesfile"

CONFIG_KEYS = (
    CONF_BRIDGE_IPADDRESS,
    CONF_BRIDGE_USERNAME,
    CONF_BRIDGE_CLIENTKEY,
    CONF_APP_NAME,
    CONF_DEVICE_NAME,
    CONF_BLOG_URL,
    CONF_SCENES_FILE,
)
