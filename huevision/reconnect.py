"""Startup check that the persisted bridge address still answers."""

import asyncio
import logging

from aiohttp import ClientConnectionError

from .bridge import BridgeConnection
from .config import BridgeConfig, ConfigStore
from .const import CONF_BRIDGE_IPADDRESS
from .errors import BridgeConnectionError
from .pairing import discover_bridge

_LOGGER = logging.getLogger(__name__)

# Errors meaning "nothing answers at this address", as opposed to a bridge
# that answered and refused.
UNREACHABLE_ERRORS = (ClientConnectionError, asyncio.TimeoutError)


async def ensure_connected(client, store: ConfigStore) -> BridgeConnection:
    """
    Connect to the persisted bridge, rediscovering it once if it moved
    or if no address is stored.

    Args:
        client: BridgeClient used to connect and discover
        store (ConfigStore): Store holding the bridge credentials

    Returns:
        BridgeConnection: An authorized connection

    Raises:
        NoBridgeFound: The address was unreachable and rediscovery found nothing.
        BridgeConnectionError: Any other failure to connect.
    """
    config = BridgeConfig.from_store(store)

    if not config.ipaddress:
        _LOGGER.warning("No bridge address stored, detecting the bridge...")
    else:
        try:
            return await client.connect(config.ipaddress, config.username)
        except UNREACHABLE_ERRORS as e:
            _LOGGER.warning(
                "No bridge was detected on %s (%s), trying to detect it again...",
                config.ipaddress, str(e) or type(e).__name__,
            )
        except Exception as e:
            raise BridgeConnectionError(f"Unexpected error: {e}") from e

    host = await discover_bridge(client)
    try:
        connection = await client.connect(host, config.username)
    except Exception as e:
        raise BridgeConnectionError(
            f"Unexpected error, please check your network. Error details: {e}"
        ) from e

    store.set(CONF_BRIDGE_IPADDRESS, host)
    store.save()
    _LOGGER.info("New ip for bridge detected: %s", host)
    return connection
