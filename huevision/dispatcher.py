"""Apply scenes to the bridge."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from .scenes import Scene

_LOGGER = logging.getLogger(__name__)


class SceneDispatcher:
    """
    Sends every light of a scene to the bridge in one concurrent batch.

    Calls are best effort: a light that fails to update is logged and
    otherwise ignored, and nothing is rolled back.
    """

    def __init__(self, connection):
        self.connection = connection

    async def apply(self, scene: Scene) -> None:
        _LOGGER.debug("Applying scene %s to %d light(s)", scene.name, len(scene))
        results = await asyncio.gather(
            *(
                self.connection.set_light_state(step.light_id, step.state.to_bridge_state())
                for step in scene.steps
            ),
            return_exceptions=True,
        )
        for step, result in zip(scene.steps, results):
            if isinstance(result, Exception):
                _LOGGER.debug("Light %s did not accept scene %s: %s", step.light_id, scene.name, result)


@dataclass
class PollContext:
    """State carried from one poll cycle to the next."""

    dispatcher: SceneDispatcher
    last_applied_country: Optional[str] = None
