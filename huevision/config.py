"""
Layered configuration store.

Values are looked up, in order of priority, in:

    1. values set at runtime with ``ConfigStore.set``
    2. command-line overrides
    3. environment variables (``HUEVISION_BRIDGE_IPADDRESS``, ``HUEVISION_BLOGURL``, ...)
    4. the JSON config file (``config/config.json`` by default)

Keys are dotted (``bridge.ipaddress``) and are stored nested in the file:

    {
      "bridge": {"ipaddress": "192.168.1.20", "username": "...", "clientkey": "..."},
      "blogurl": "https://..."
    }

Setting a value never writes the file; call ``save`` for that.
"""

import json
import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .const import (
    CONF_APP_NAME,
    CONF_BRIDGE_CLIENTKEY,
    CONF_BRIDGE_IPADDRESS,
    CONF_BRIDGE_USERNAME,
    CONF_DEVICE_NAME,
    DEFAULT_APP_NAME,
    ENV_PREFIX,
)
from .errors import ConfigError

_LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config") / "config.json"


def env_name(key: str) -> str:
    """Return the environment variable that overrides ``key``."""
    return ENV_PREFIX + key.upper().replace(".", "_")


class ConfigStore:
    """Key/value store backed by a JSON file with env and CLI overrides."""

    def __init__(
        self,
        path=DEFAULT_CONFIG_FILE,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.path = Path(path)
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        self._environ = os.environ if environ is None else environ
        self._memory: Dict[str, Any] = {}
        self._data: Dict[str, Any] = {}

    def load(self) -> "ConfigStore":
        """
        Read the config file into the file layer.

        A missing file is treated as empty, so a first run starts unpaired.

        Raises:
            ConfigError: If the file exists but is not a JSON object.
        """
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except FileNotFoundError:
            _LOGGER.debug("No config file at %s, starting empty", self.path)
            data = {}
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {self.path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {self.path} must contain a JSON object")

        self._data = data
        return self

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._memory:
            return self._memory[key]
        if key in self._overrides:
            return self._overrides[key]
        env_value = self._environ.get(env_name(key))
        if env_value:
            return env_value

        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set ``key`` for this process and in the file layer (not saved)."""
        self._memory[key] = value

        node = self._data
        *parents, leaf = key.split(".")
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

    def save(self) -> None:
        """
        Write the file layer back to disk.

        Overrides coming from the command line or the environment are not
        persisted unless they were explicitly ``set``.

        Raises:
            ConfigError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(self._data, f, indent=2)
        except OSError as e:
            raise ConfigError(f"Cannot save config file {self.path}: {e}") from e
        _LOGGER.debug("Config saved to %s", self.path)

    def has_bridge(self) -> bool:
        """
        Return True if the app is registered with a bridge.

        Only the username counts: a missing address is rediscovered, the
        credentials are not.
        """
        return bool(self.get(CONF_BRIDGE_USERNAME))


@dataclass
class BridgeConfig:
    """Persisted identity of the paired bridge."""

    ipaddress: Optional[str] = None
    username: Optional[str] = None
    clientkey: Optional[str] = None
    app_name: str = DEFAULT_APP_NAME
    device_name: str = ""

    @property
    def devicetype(self) -> str:
        """Value sent as ``devicetype`` when registering with the bridge."""
        # bridge limits: 20 chars application, 19 chars device
        return f"{self.app_name[:20]}#{self.device_name[:19]}"

    @classmethod
    def from_store(cls, store: ConfigStore) -> "BridgeConfig":
        return cls(
            ipaddress=store.get(CONF_BRIDGE_IPADDRESS),
            username=store.get(CONF_BRIDGE_USERNAME),
            clientkey=store.get(CONF_BRIDGE_CLIENTKEY),
            app_name=store.get(CONF_APP_NAME) or DEFAULT_APP_NAME,
            device_name=store.get(CONF_DEVICE_NAME) or socket.gethostname(),
        )

    def store_into(self, store: ConfigStore) -> None:
        """Copy the bridge credentials into ``store`` (caller saves)."""
        store.set(CONF_BRIDGE_IPADDRESS, self.ipaddress)
        store.set(CONF_BRIDGE_USERNAME, self.username)
        store.set(CONF_BRIDGE_CLIENTKEY, self.clientkey)
