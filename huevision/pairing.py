"""
First-run pairing with a Hue bridge.

Discovers the bridge, waits for the user to press the link button and stores
the resulting credentials in the config store:

    1. Discover bridges through N-UPnP (the first one wins)
    2. Try to register the application identity
    3. While the bridge answers "link button not pressed", print a countdown
       and try again every second, up to 30 attempts
    4. Save ipaddress, username and clientkey

Only one bridge is supported.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from aiohttp import ClientError
from aiohue.errors import AiohueException, LinkButtonNotPressed

from .config import BridgeConfig, ConfigStore
from .const import PAIRING_INTERVAL, PAIRING_MAX_ATTEMPTS
from .errors import NoBridgeFound, PairingError

_LOGGER = logging.getLogger(__name__)


@dataclass
class PairingResult:
    config: BridgeConfig
    attempts: int


async def discover_bridge(client) -> str:
    """
    Return the address of the first bridge found on the network.

    Raises:
        NoBridgeFound: If discovery fails or finds nothing.
    """
    try:
        hosts: List[str] = await client.discover()
    except (ClientError, asyncio.TimeoutError) as e:
        raise NoBridgeFound(f"Failure with N-UPnP search: {e}") from e

    if not hosts:
        raise NoBridgeFound("No Hue Bridges were detected in the network")
    if len(hosts) > 1:
        _LOGGER.info("Found %d bridges, using the first one at %s", len(hosts), hosts[0])
    return hosts[0]


async def pair(
    client,
    store: ConfigStore,
    *,
    max_attempts: int = PAIRING_MAX_ATTEMPTS,
    interval: float = PAIRING_INTERVAL,
    sleep=asyncio.sleep,
) -> PairingResult:
    """
    Pair with the bridge on the local network and persist the credentials.

    Args:
        client: BridgeClient used for discovery and registration
        store (ConfigStore): Store receiving the credentials, saved on success
        max_attempts (int): Registration attempts while the link button is not pressed
        interval (float): Seconds between two attempts
        sleep: Coroutine function used to wait between attempts

    Returns:
        PairingResult: The new bridge config and the number of attempts used

    Raises:
        NoBridgeFound: No bridge was discovered.
        PairingError: The button was never pressed, or the bridge refused.
    """
    host = await discover_bridge(client)
    config = BridgeConfig.from_store(store)
    print(f"🔄 Registering with bridge at {host} as '{config.devicetype}'...")

    credentials = None
    attempt = 0
    while attempt < max_attempts:
        attempt += 1
        try:
            credentials = await client.create_user(host, config.devicetype)
            break
        except LinkButtonNotPressed:
            print(
                f"Please, press the Hue button to allow the connection. "
                f"Attempt {attempt} of {max_attempts}.",
                end="\r",
                flush=True,
            )
            if attempt < max_attempts:
                await sleep(interval)
        except AiohueException as e:
            raise PairingError(f"Unexpected Hue Error: {e}", attempts=attempt) from e
        except (ClientError, asyncio.TimeoutError) as e:
            raise PairingError(f"Unexpected Error: {e}", attempts=attempt) from e

    if credentials is None:
        print()
        raise PairingError(
            "The Link button on the bridge was not pressed. "
            "Please press the Link button and try again.",
            attempts=attempt,
        )

    config.ipaddress = host
    config.username = credentials.username
    config.clientkey = credentials.clientkey
    config.store_into(store)
    store.save()

    print()
    print("✅ Client correctly registered to Hue Bridge!")
    _LOGGER.info("Paired with bridge at %s after %d attempt(s)", host, attempt)
    return PairingResult(config, attempt)
