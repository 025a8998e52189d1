"""
huevision: light up a Hue setup with the flag of the country in the news.

Usage:
    # First run: pairs with the bridge (press the link button when asked)
    huevision --blog-url https://example.org/live.json

    # Use a custom config file location
    huevision --config /path/to/config.json

    # Use a custom scene table
    huevision --scenes /path/to/scenes.json

Process:
    1. Pair with the bridge if no credentials are stored
    2. Connect to the stored bridge address, rediscovering it if it moved
    3. Poll the feed forever and apply the matching scenes

Exit Codes:
    1 - Error (pairing, connection or configuration failed)
    2 - User cancelled
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from aiohttp import ClientError, ClientSession
from aiohue.errors import AiohueException

from . import __version__
from .bridge import BridgeClient
from .config import DEFAULT_CONFIG_FILE, ConfigStore
from .const import (
    CONF_APP_NAME,
    CONF_BLOG_URL,
    CONF_BRIDGE_IPADDRESS,
    CONF_DEVICE_NAME,
    CONF_SCENES_FILE,
)
from .dispatcher import PollContext, SceneDispatcher
from .errors import ConfigError, HuevisionError
from .feed import FeedPoller
from .pairing import pair
from .reconnect import ensure_connected
from .scenes import load_scene_book

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="huevision",
        description="Apply Hue light scenes for the countries mentioned in a live feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                        # Use config/config.json
  %(prog)s --config /path/to/config.json          # Use custom config file
  %(prog)s --blog-url https://example.org/feed    # Override the feed URL
  %(prog)s --bridge-ip 192.168.1.20               # Override the bridge address

Every option can also be set in the environment, e.g. HUEVISION_BLOGURL.
        """
    )

    parser.add_argument(
        "--config",
        metavar="FILE",
        type=str,
        default=str(DEFAULT_CONFIG_FILE),
        help=f"Path to config JSON file (default: {DEFAULT_CONFIG_FILE})"
    )

    parser.add_argument("--bridge-ip", metavar="IP", help="Bridge IP address")
    parser.add_argument("--app-name", metavar="NAME", help="Application name used for pairing")
    parser.add_argument("--device-name", metavar="NAME", help="Device name used for pairing")
    parser.add_argument("--blog-url", metavar="URL", help="URL of the JSON feed to poll")
    parser.add_argument("--scenes", metavar="FILE", help="Scene table JSON file")

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser.parse_args(argv)


def config_overrides(args) -> dict:
    """Map command-line options to config keys."""
    return {
        CONF_BRIDGE_IPADDRESS: args.bridge_ip,
        CONF_APP_NAME: args.app_name,
        CONF_DEVICE_NAME: args.device_name,
        CONF_BLOG_URL: args.blog_url,
        CONF_SCENES_FILE: args.scenes,
    }


def configure_logging(verbose: bool = False) -> None:
    logger = logging.getLogger("huevision")
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


async def log_light_inventory(connection) -> None:
    """Log the colour state of every light that has one."""
    try:
        lights = await connection.list_lights()
    except (AiohueException, ClientError, asyncio.TimeoutError) as e:
        _LOGGER.warning("Could not list lights: %s", e)
        return

    for light in lights:
        if light.state.get("hue"):
            _LOGGER.info("%s: Hue %s - xy: %s", light.id, light.state["hue"], light.state.get("xy"))


async def run(store: ConfigStore) -> None:
    """Pair if needed, connect, then poll the feed forever."""
    url = store.get(CONF_BLOG_URL)
    if not url:
        raise ConfigError(f"No feed URL configured, set '{CONF_BLOG_URL}' in {store.path} or use --blog-url")

    scenes = load_scene_book(store.get(CONF_SCENES_FILE))

    async with ClientSession() as session:
        client = BridgeClient(session)

        if not store.has_bridge():
            print("There is no previous bridge configuration, auto-discovering bridge...")
            await pair(client, store)

        connection = await ensure_connected(client, store)
        try:
            await log_light_inventory(connection)
            context = PollContext(SceneDispatcher(connection))
            poller = FeedPoller(context, scenes, url, session=session)
            await poller.run_forever()
        finally:
            await connection.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    store = ConfigStore(args.config, overrides=config_overrides(args))

    try:
        store.load()
        asyncio.run(run(store))
    except KeyboardInterrupt:
        print("\n\n❌ Interrupted by user.")
        sys.exit(2)
    except HuevisionError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
