"""
Thin wrapper around aiohue for the handful of bridge calls huevision needs.

Discovery uses Philips' N-UPnP service. User registration is a raw POST to
``/api`` so that a client key can be requested along with the username. Light
control goes through ``aiohue.HueBridgeV1`` because scenes address lights by
their numeric v1 id.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout
from aiohue import HueBridgeV1
from aiohue.discovery import discover_nupnp
from aiohue.errors import AiohueException, raise_from_error

_LOGGER = logging.getLogger(__name__)

REGISTER_TIMEOUT = ClientTimeout(total=30)


@dataclass
class Credentials:
    username: str
    clientkey: Optional[str] = None


@dataclass
class LightInfo:
    id: int
    name: str = ""
    state: Dict[str, Any] = field(default_factory=dict)


class BridgeConnection:
    """An authorized connection to one bridge."""

    def __init__(self, host: str, bridge: HueBridgeV1):
        self.host = host
        self._bridge = bridge

    async def list_lights(self) -> List[LightInfo]:
        """Return all lights known to the bridge with their raw state."""
        result = await self._bridge.request("get", "lights")
        return [
            LightInfo(int(light_id), raw.get("name", ""), raw.get("state", {}))
            for light_id, raw in sorted(result.items(), key=lambda item: int(item[0]))
        ]

    async def set_light_state(self, light_id: int, state: Dict[str, Any]) -> None:
        await self._bridge.request("put", f"lights/{light_id}/state", json=state)

    async def close(self) -> None:
        await self._bridge.close()


class BridgeClient:
    """Discovery, registration and connection against Hue bridges."""

    def __init__(self, session: ClientSession):
        self._session = session

    async def discover(self) -> List[str]:
        """
        Discover bridges on the local network.

        Returns:
            list: IP addresses of the discovered bridges, possibly empty
        """
        bridges = await discover_nupnp(websession=self._session)
        for bridge in bridges:
            _LOGGER.debug("Discovered bridge %s at %s", bridge.id, bridge.host)
        return [bridge.host for bridge in bridges]

    async def create_user(self, host: str, devicetype: str) -> Credentials:
        """
        Register an application with the bridge.

        The link button must have been pressed on the bridge shortly before.

        Args:
            host (str): IP address of the bridge
            devicetype (str): "<application>#<device>" identity

        Returns:
            Credentials: username and client key

        Raises:
            aiohue.errors.LinkButtonNotPressed: The button was not pressed yet.
            aiohue.errors.AiohueException: Any other error reported by the bridge.
            aiohttp.ClientError: The bridge could not be reached.
        """
        data = {"devicetype": devicetype, "generateclientkey": True}

        # Try HTTPS first, then HTTP for older firmware
        for proto in ["https", "http"]:
            url = f"{proto}://{host}/api"
            try:
                async with self._session.post(url, json=data, ssl=False, timeout=REGISTER_TIMEOUT) as resp:
                    resp.raise_for_status()
                    result = await resp.json()
            except ClientError:
                if proto == "http":
                    raise
                _LOGGER.debug("Registration over https failed, retrying over http")
                continue

            if (
                not isinstance(result, list)
                or not result
                or not isinstance(result[0], dict)
                or not ("error" in result[0] or "success" in result[0])
            ):
                raise AiohueException(f"Unexpected response: {result!r}")

            result = result[0]
            if "error" in result:
                raise_from_error(result["error"])

            success = result["success"]
            if not isinstance(success, dict) or "username" not in success:
                raise AiohueException(f"Unexpected response: {result!r}")
            return Credentials(success["username"], success.get("clientkey"))

    async def connect(self, host: str, username: str) -> BridgeConnection:
        """
        Open an authorized connection to the bridge at ``host``.

        Raises:
            aiohttp.ClientConnectionError: The address is not reachable.
            aiohue.errors.Unauthorized: The username is not known to the bridge.
        """
        bridge = HueBridgeV1(host, username, self._session)
        try:
            await bridge.initialize()
        except Exception:
            await bridge.close()
            raise
        _LOGGER.debug("Connected to bridge at %s", host)
        return BridgeConnection(host, bridge)
