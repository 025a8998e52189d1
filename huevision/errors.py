"""Exceptions raised by huevision.

Pairing and connection errors are fatal and end the process; feed errors only
skip one poll cycle.
"""


class HuevisionError(Exception):
    """Base class for all huevision errors."""


class ConfigError(HuevisionError):
    """Configuration is missing a required value or cannot be read."""


class SceneTableError(HuevisionError):
    """The scene data asset is malformed."""


class NoBridgeFound(HuevisionError):
    """Discovery did not return any Hue bridge."""


class PairingError(HuevisionError):
    """Registering with the bridge failed for good."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class BridgeConnectionError(HuevisionError):
    """The bridge could not be reached, even after rediscovery."""


class FeedError(HuevisionError):
    """The feed could not be fetched or decoded."""
